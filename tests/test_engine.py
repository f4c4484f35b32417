import math
from datetime import date

import pytest

from mortgage_sim.data_models import Applicant, LoanInput
from mortgage_sim.engine import (
    annuity_payment,
    compute_subsidy,
    down_payment_amount,
    effective_annual_cost_rate,
    internal_rate_of_return,
    monthly_rate,
    net_present_value,
    periodic_insurance_rate,
    simulate,
    term_in_months,
)
from mortgage_sim.errors import (
    InvalidPrincipalError,
    InvalidRateError,
    InvalidTermError,
    SimulationInputError,
)


def make_input(**overrides):
    params = dict(
        property_price=200_000,
        down_payment=20,
        down_payment_type="percentage",
        rate=10,
        rate_type="TEA",
        term=20,
        term_unit="years",
        applicant=Applicant(income=6_000),
        start_date=date(2024, 1, 31),
    )
    params.update(overrides)
    return LoanInput(**params)


def test_tea_converts_geometrically_to_monthly():
    assert math.isclose(monthly_rate(12, "TEA"), 1.12 ** (1 / 12) - 1, abs_tol=1e-12)
    assert math.isclose(monthly_rate(12, "TEA"), 0.009489, abs_tol=1e-5)


def test_tna_is_split_by_capitalizations_first():
    assert math.isclose(monthly_rate(12, "TNA", 12), 0.01, rel_tol=1e-12)
    assert math.isclose(monthly_rate(12, "TNA", 4), 1.03 ** (4 / 12) - 1, rel_tol=1e-12)


def test_tna_requires_positive_capitalizations():
    with pytest.raises(InvalidRateError):
        monthly_rate(12, "TNA", 0)


def test_unknown_rate_type_is_rejected():
    with pytest.raises(SimulationInputError):
        monthly_rate(12, "APR")


def test_annuity_payment_matches_closed_form():
    rate = monthly_rate(12, "TEA")
    factor = (1 + rate) ** 240
    expected = 100_000 * rate * factor / (factor - 1)
    assert math.isclose(annuity_payment(100_000, rate, 240), expected, rel_tol=1e-12)


def test_annuity_payment_rejects_zero_rate():
    with pytest.raises(InvalidRateError):
        annuity_payment(100_000, 0.0, 240)


def test_term_in_months():
    assert term_in_months(20, "years") == 240
    assert term_in_months(18, "months") == 18


def test_down_payment_modes():
    assert down_payment_amount(make_input()) == 40_000
    assert down_payment_amount(make_input(down_payment=15_000, down_payment_type="amount")) == 15_000


def test_subsidy_uses_caller_defaults():
    # Missing income defaults above the integrated support threshold.
    assert compute_subsidy(make_input(applicant=Applicant())) == 20_900
    assert compute_subsidy(make_input(applicant=Applicant(income=0))) == 20_900 + 3_600
    assert compute_subsidy(make_input(housing_type=" Sustainable ")) == 27_200
    assert compute_subsidy(make_input(housing_type="villa")) == 20_900


def test_periodic_insurance_rate_uses_360_day_year():
    assert math.isclose(periodic_insurance_rate(0.36, False, 12), 0.00012, rel_tol=1e-12)
    assert math.isclose(periodic_insurance_rate(0.05, True, 12), 0.0005, rel_tol=1e-12)


def test_simulation_nets_down_payment_and_subsidy():
    result = simulate(make_input())
    assert result.down_payment_amount == 40_000
    assert result.subsidy == 20_900
    assert result.financed_amount == 200_000 - 40_000 - 20_900
    assert result.term_months == 240
    assert len(result.schedule) == 240


def test_standard_schedule_amortizes_to_zero():
    result = simulate(make_input())
    principal = result.financed_amount
    rows = result.schedule
    assert rows[0].opening_balance == principal
    assert abs(rows[-1].closing_balance) <= 1e-6 * principal
    amortized = sum(row.amortization for row in rows)
    assert math.isclose(amortized, principal - rows[-1].closing_balance, rel_tol=1e-9)
    for previous, row in zip(rows, rows[1:]):
        assert row.opening_balance == previous.closing_balance


def test_rows_are_numbered_and_dated_from_start_date():
    rows = simulate(make_input(term=3, term_unit="months")).schedule
    assert [row.period for row in rows] == [1, 2, 3]
    assert [row.due_date for row in rows] == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_insurance_and_fees_are_prorated_per_period():
    config = make_input(
        life_insurance_rate=0.36,
        risk_insurance_rate=0.3,
        postage_per_period=10,
        admin_fee_per_period=5,
        commission_per_period=2.5,
    )
    result = simulate(config)
    first = result.schedule[0]
    assert math.isclose(first.insurance_life, first.opening_balance * 0.00012, rel_tol=1e-9)
    assert math.isclose(first.insurance_risk, 200_000 * 0.0001, rel_tol=1e-9)
    assert first.periodic_fees == 17.5
    assert math.isclose(
        first.total_periodic_costs, first.insurance_life + first.insurance_risk + 17.5, rel_tol=1e-12
    )
    # Risk insurance follows the property, life insurance the shrinking debt.
    last = result.schedule[-1]
    assert last.insurance_risk == first.insurance_risk
    assert last.insurance_life < first.insurance_life
    assert math.isclose(
        result.total_periodic_costs,
        result.total_insurance_life + result.total_insurance_risk + result.total_periodic_fees,
        rel_tol=1e-9,
    )


def test_partial_grace_pays_interest_only():
    result = simulate(make_input(grace_period_type="partial", grace_period_months=6, postage_per_period=4))
    rows = result.schedule
    for row in rows[:6]:
        assert row.amortization == 0
        assert row.closing_balance == row.opening_balance
        assert math.isclose(row.payment, row.interest + row.total_periodic_costs, rel_tol=1e-12)
    assert rows[6].amortization > 0
    assert result.monthly_payment == rows[6].payment
    # The installment is still sized for the full term, so a residual remains.
    assert rows[-1].closing_balance > 0
    amortized = sum(row.amortization for row in rows)
    assert math.isclose(amortized, result.financed_amount - rows[-1].closing_balance, rel_tol=1e-9)


def test_total_grace_defers_everything_but_costs():
    result = simulate(make_input(grace_period_type="total", grace_period_months=12, admin_fee_per_period=8))
    rows = result.schedule
    for row in rows[:12]:
        assert row.amortization == 0
        assert row.payment == row.total_periodic_costs
    assert rows[12].amortization > 0
    assert abs(rows[-1].closing_balance) <= 1e-6 * result.financed_amount


def test_total_grace_covering_the_whole_term_falls_back_to_full_term():
    result = simulate(
        make_input(term=12, term_unit="months", grace_period_type="total", grace_period_months=12)
    )
    assert len(result.schedule) == 12
    assert all(row.amortization == 0 for row in result.schedule)
    assert result.monthly_payment == 0


def test_npv_at_loan_rate_equals_principal_without_costs():
    result = simulate(make_input(term=10, term_unit="years"))
    assert math.isclose(result.npv, result.financed_amount, rel_tol=1e-9)
    payments = [row.payment for row in result.schedule]
    assert math.isclose(net_present_value(payments, result.monthly_rate), result.npv, rel_tol=1e-12)


def test_metrics_follow_their_definitions():
    result = simulate(make_input(term=5, term_unit="years", life_insurance_rate=0.5))
    payments = [row.payment for row in result.schedule]
    assert math.isclose(result.total_interest, sum(row.interest for row in result.schedule))
    assert math.isclose(result.trea, result.tcea * 0.9)
    expected_irr = ((sum(payments) / result.financed_amount) ** (12 / 60) - 1) * 100
    assert math.isclose(result.irr, expected_irr, rel_tol=1e-12)
    assert result.monthly_payment == result.schedule[0].payment


def test_cost_rate_scan_finds_grid_rate():
    payment = annuity_payment(100_000, 0.01, 12)
    assert math.isclose(effective_annual_cost_rate([payment] * 12, 100_000), 12.0, abs_tol=1e-6)


def test_cost_rate_scan_returns_zero_when_not_converging():
    assert effective_annual_cost_rate([0.0] * 12, 100_000) == 0.0


def test_irr_of_zero_principal_is_zero():
    assert internal_rate_of_return([10.0, 10.0], 0.0, 2) == 0.0


def test_zero_financed_amount_is_allowed():
    # 100k falls in R2 (22,800 bonus); the down payment covers the rest.
    config = make_input(property_price=100_000, down_payment=77_200, down_payment_type="amount", term=12, term_unit="months")
    result = simulate(config)
    assert result.financed_amount == 0
    assert result.irr == 0
    assert result.monthly_payment == 0


def test_negative_principal_is_rejected():
    with pytest.raises(InvalidPrincipalError):
        simulate(make_input(property_price=100_000, down_payment=90_000, down_payment_type="amount"))


def test_zero_rate_is_rejected():
    with pytest.raises(InvalidRateError):
        simulate(make_input(rate=0))


def test_negative_rate_is_rejected():
    with pytest.raises(InvalidRateError):
        simulate(make_input(rate=-5))


def test_zero_term_is_rejected():
    with pytest.raises(InvalidTermError):
        simulate(make_input(term=0))


def test_negative_grace_is_rejected():
    with pytest.raises(InvalidTermError):
        simulate(make_input(grace_period_type="partial", grace_period_months=-1))


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        simulate(make_input(grace_period_type="forever"))


def test_simulate_is_repeatable():
    config = make_input(term=24, term_unit="months")
    assert simulate(config) == simulate(config)


@pytest.mark.parametrize("rate", [math.nan, math.inf, -math.inf])
def test_non_finite_rate_is_rejected(rate):
    with pytest.raises(InvalidRateError, match="finite"):
        simulate(make_input(rate=rate))


@pytest.mark.parametrize(
    "overrides",
    [
        {"property_price": math.nan},
        {"down_payment": math.inf, "down_payment_type": "amount"},
        {"commission_per_period": math.nan},
        {"life_insurance_rate": math.inf},
        {"applicant": Applicant(income=math.nan)},
    ],
)
def test_non_finite_amounts_are_rejected_before_any_row(overrides):
    with pytest.raises(SimulationInputError, match="finite"):
        simulate(make_input(**overrides))
