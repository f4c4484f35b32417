"""Core calculation engine for the mortgage simulator.

This module turns a ``LoanInput`` into a ``SimulationResult``: it nets the
down payment and the good-payer bonus out of the property price, converts the
annual rate to an effective monthly rate, builds a fixed-installment schedule
with optional grace months, insurance and fixed fees, and finally derives the
summary metrics (total interest, TCEA, TREA, NPV and IRR).

Every function is pure. Input problems are reported with the exceptions in
``errors`` before any schedule row is produced.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import (
    COST_RATE_SCAN_START,
    COST_RATE_SCAN_STEP,
    COST_RATE_SCAN_STOP,
    COST_RATE_TOLERANCE,
    DAY_COUNT_BASIS,
    DEFAULT_COST_FREQUENCY,
    DEFAULT_HOUSING_TYPE,
    DEFAULT_INCOME,
    MONTHS_IN_YEAR,
    RETURN_RATE_RATIO,
)
from .data_models import GRACE_TYPES, LoanInput, ScheduleRow, SimulationResult
from .errors import InvalidPrincipalError, InvalidRateError, InvalidTermError, SimulationInputError
from .subsidy import SubsidyCalculator
from .utils import add_months

logger = logging.getLogger(__name__)


def down_payment_amount(config: LoanInput) -> float:
    """Return the down payment in currency units."""
    if config.down_payment_type == "percentage":
        return config.property_price * config.down_payment / 100
    if config.down_payment_type == "amount":
        return config.down_payment
    raise SimulationInputError(f"Unknown down payment type: {config.down_payment_type}")


def normalize_housing_type(housing_type: Optional[str]) -> str:
    """Map anything other than ``"sustainable"`` to the default housing type."""
    if housing_type and housing_type.strip().lower() == "sustainable":
        return "sustainable"
    return DEFAULT_HOUSING_TYPE


def _subsidy_arguments(config: LoanInput) -> Tuple[Any, ...]:
    applicant = config.applicant
    income = applicant.income if applicant.income is not None else DEFAULT_INCOME
    return (
        config.property_price,
        normalize_housing_type(config.housing_type),
        income,
        bool(applicant.is_elderly),
        bool(applicant.is_displaced),
        bool(applicant.is_returning_migrant),
        bool(applicant.has_disability),
        config.currency,
    )


def compute_subsidy(config: LoanInput, calculator: Optional[SubsidyCalculator] = None) -> float:
    """Return the good-payer bonus for the loan's property and applicant.

    The bonus is based on the full property price, not on the financed
    amount. A missing income is replaced by ``DEFAULT_INCOME``, which does
    not qualify for integrated support.
    """
    calculator = calculator or SubsidyCalculator()
    return calculator.compute(*_subsidy_arguments(config))


def subsidy_breakdown(config: LoanInput, calculator: Optional[SubsidyCalculator] = None) -> Dict[str, Any]:
    """Same as ``compute_subsidy`` but with the band and supplement detail."""
    calculator = calculator or SubsidyCalculator()
    return calculator.breakdown(*_subsidy_arguments(config))


def monthly_rate(rate: float, rate_type: str, capitalizations_per_year: int = 12) -> float:
    """Convert an annual rate in percent to an effective monthly rate.

    A TEA rate is already compounded once a year:

        i_m = (1 + TEA)^(1/12) - 1

    A TNA rate is first split into its ``capitalizations_per_year`` periods:

        i_m = (1 + TNA / m)^(m/12) - 1
    """
    if rate_type == "TEA":
        annual = rate / 100
        if annual <= -1:
            raise InvalidRateError(f"Annual rate {rate}% cannot be converted to a monthly rate")
        return (1 + annual) ** (1 / MONTHS_IN_YEAR) - 1
    if rate_type == "TNA":
        if capitalizations_per_year <= 0:
            raise InvalidRateError("Capitalizations per year must be positive")
        periodic = rate / 100 / capitalizations_per_year
        if periodic <= -1:
            raise InvalidRateError(f"Nominal rate {rate}% cannot be converted to a monthly rate")
        return (1 + periodic) ** (capitalizations_per_year / MONTHS_IN_YEAR) - 1
    raise SimulationInputError(f"Unknown rate type: {rate_type}")


def term_in_months(term: int, unit: str) -> int:
    if unit == "years":
        return term * MONTHS_IN_YEAR
    if unit == "months":
        return term
    raise SimulationInputError(f"Unknown term unit: {unit}")


def annuity_payment(principal: float, rate: float, periods: int) -> float:
    """Return the fixed installment that amortizes ``principal``.

    The formula is:

        payment = P * i * (1 + i)^n / ((1 + i)^n - 1)

    A rate of zero (or one too small to move ``(1 + i)^n`` away from 1)
    would divide by zero and is rejected.
    """
    if periods <= 0:
        raise InvalidTermError("Number of amortizing periods must be positive")
    if rate <= 0:
        raise InvalidRateError(f"Monthly rate must be positive, got {rate}")
    factor = (1 + rate) ** periods
    if factor == 1:
        raise InvalidRateError(f"Monthly rate {rate} is too small for a fixed installment")
    return principal * rate * factor / (factor - 1)


def base_level_payment(
    principal: float, rate: float, term_months: int, grace_type: str, grace_months: int
) -> float:
    """Installment paid once amortization starts.

    Under total grace the principal is amortized over the months left after
    the grace window; if none are left the full term is used instead.
    """
    amortizing_periods = term_months - (grace_months if grace_type == "total" else 0)
    if grace_type == "none" or amortizing_periods <= 0:
        amortizing_periods = term_months
    return annuity_payment(principal, rate, amortizing_periods)


def periodic_insurance_rate(rate: float, per_period: bool, periods_per_year: int) -> float:
    """Turn an insurance rate in percent into a per-period factor.

    Annual rates are prorated on a 360-day year.
    """
    if per_period:
        return rate / 100
    return rate / 100 * (periods_per_year / DAY_COUNT_BASIS)


def generate_schedule(
    config: LoanInput,
    principal: float,
    rate: float,
    term_months: int,
    base_payment: float,
    start_date: date,
) -> List[ScheduleRow]:
    """Build one ``ScheduleRow`` per month of the term.

    Life insurance is charged on the opening balance, risk insurance on the
    property price. Within the grace window a partial grace row pays interest
    plus costs, a total grace row pays costs only; neither amortizes.
    """
    frequency = config.periodic_cost_frequency or DEFAULT_COST_FREQUENCY
    life_rate = periodic_insurance_rate(
        config.life_insurance_rate, config.insurance_rates_per_period, frequency
    )
    risk_rate = periodic_insurance_rate(
        config.risk_insurance_rate, config.insurance_rates_per_period, frequency
    )
    periodic_fees = config.postage_per_period + config.admin_fee_per_period + config.commission_per_period
    grace_type = config.grace_period_type
    grace_months = config.grace_period_months

    schedule: List[ScheduleRow] = []
    balance = principal
    for period in range(1, term_months + 1):
        opening_balance = balance
        interest = opening_balance * rate
        insurance_life = opening_balance * life_rate
        insurance_risk = config.property_price * risk_rate
        total_periodic_costs = insurance_life + insurance_risk + periodic_fees

        if grace_type == "none" or period > grace_months:
            amortization = base_payment - interest
            payment = base_payment + total_periodic_costs
        elif grace_type == "partial":
            amortization = 0.0
            payment = interest + total_periodic_costs
        else:
            amortization = 0.0
            payment = total_periodic_costs

        balance = max(0.0, opening_balance - amortization)
        schedule.append(
            ScheduleRow(
                period=period,
                due_date=add_months(start_date, period),
                opening_balance=opening_balance,
                interest=interest,
                amortization=amortization,
                insurance_life=insurance_life,
                insurance_risk=insurance_risk,
                periodic_fees=periodic_fees,
                total_periodic_costs=total_periodic_costs,
                payment=payment,
                closing_balance=balance,
            )
        )
    return schedule


def effective_annual_cost_rate(payments: Sequence[float], financed_amount: float) -> float:
    """Scan annual rates from 1% to 200% for the one that zeroes the NPV.

    Each candidate is discounted monthly at ``candidate / 12``. The first
    candidate whose NPV against ``financed_amount`` is within one currency
    unit of zero is returned as a percentage. The scan uses 0.1% steps and
    returns 0 when no candidate is close enough.
    """
    candidate = COST_RATE_SCAN_START
    while candidate <= COST_RATE_SCAN_STOP:
        npv = -financed_amount
        for index, payment in enumerate(payments, start=1):
            npv += payment / (1 + candidate / MONTHS_IN_YEAR) ** index
        if abs(npv) < COST_RATE_TOLERANCE:
            return candidate * 100
        candidate += COST_RATE_SCAN_STEP
    logger.debug("Cost rate scan did not converge for financed amount %.2f", financed_amount)
    return 0.0


def effective_annual_return_rate(tcea: float) -> float:
    # Fixed ratio, not a separate cash-flow model.
    return tcea * RETURN_RATE_RATIO


def net_present_value(payments: Sequence[float], rate: float) -> float:
    return sum(payment / (1 + rate) ** index for index, payment in enumerate(payments, start=1))


def internal_rate_of_return(payments: Sequence[float], financed_amount: float, term_months: int) -> float:
    """Closed-form IRR proxy used by the simulator's reports.

        IRR = ((sum(payments) / financed) ^ (12 / months) - 1) * 100

    This is not a root-find on the cash flows. A zero financed amount yields 0.
    """
    if financed_amount == 0 or term_months <= 0:
        return 0.0
    return ((sum(payments) / financed_amount) ** (MONTHS_IN_YEAR / term_months) - 1) * 100


def _require_finite(config: LoanInput) -> None:
    if not math.isfinite(config.rate):
        raise InvalidRateError(f"Annual rate must be a finite number, got {config.rate}")
    amounts = {
        "property price": config.property_price,
        "down payment": config.down_payment,
        "life insurance rate": config.life_insurance_rate,
        "risk insurance rate": config.risk_insurance_rate,
        "postage": config.postage_per_period,
        "administrative fee": config.admin_fee_per_period,
        "commission": config.commission_per_period,
    }
    if config.applicant.income is not None:
        amounts["income"] = config.applicant.income
    for name, value in amounts.items():
        if not math.isfinite(value):
            raise SimulationInputError(f"The {name} must be a finite number, got {value}")


def simulate(config: LoanInput, calculator: Optional[SubsidyCalculator] = None) -> SimulationResult:
    """Run a full simulation.

    Parameters
    ----------
    config: LoanInput
        The loan and applicant data, already validated by the caller for
        types. Semantic problems raise ``InvalidTermError``,
        ``InvalidPrincipalError`` or ``InvalidRateError``.
    calculator: SubsidyCalculator, optional
        Calculator used for the good-payer bonus; defaults to the current
        policy.

    Returns
    -------
    SimulationResult
        Metrics and the full schedule, owned by the caller.
    """
    _require_finite(config)
    term_months = term_in_months(config.term, config.term_unit)
    if term_months < 1:
        raise InvalidTermError(f"Loan term must be at least one month, got {term_months}")
    if config.grace_period_type not in GRACE_TYPES:
        raise SimulationInputError(f"Unknown grace period type: {config.grace_period_type}")
    if config.grace_period_months < 0:
        raise InvalidTermError("Grace period months cannot be negative")

    down_payment = down_payment_amount(config)
    subsidy = compute_subsidy(config, calculator)
    financed_amount = config.property_price - down_payment - subsidy
    if financed_amount < 0:
        raise InvalidPrincipalError(
            f"Down payment and bonus exceed the property price by {-financed_amount:.2f}"
        )

    rate = monthly_rate(config.rate, config.rate_type, config.capitalizations_per_year)
    if rate <= 0:
        raise InvalidRateError(f"Monthly rate must be positive, got {rate}")
    logger.debug(
        "Simulating %.2f %s at monthly rate %.6f over %d months",
        financed_amount,
        config.currency,
        rate,
        term_months,
    )

    base_payment = base_level_payment(
        financed_amount, rate, term_months, config.grace_period_type, config.grace_period_months
    )
    schedule = generate_schedule(
        config,
        financed_amount,
        rate,
        term_months,
        base_payment,
        config.start_date or date.today(),
    )

    payments = [row.payment for row in schedule]
    tcea = effective_annual_cost_rate(payments, financed_amount)
    monthly_payment = next((row.payment for row in schedule if row.amortization > 0), 0.0)

    return SimulationResult(
        monthly_payment=monthly_payment,
        total_interest=sum(row.interest for row in schedule),
        financed_amount=financed_amount,
        down_payment_amount=down_payment,
        subsidy=subsidy,
        monthly_rate=rate,
        term_months=term_months,
        tcea=tcea,
        trea=effective_annual_return_rate(tcea),
        npv=net_present_value(payments, rate),
        irr=internal_rate_of_return(payments, financed_amount, term_months),
        total_insurance_life=sum(row.insurance_life for row in schedule),
        total_insurance_risk=sum(row.insurance_risk for row in schedule),
        total_periodic_fees=sum(row.periodic_fees for row in schedule),
        total_periodic_costs=sum(row.total_periodic_costs for row in schedule),
        currency=config.currency,
        schedule=schedule,
    )
