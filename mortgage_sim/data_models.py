"""Data models for the mortgage simulator.

This module defines dataclasses representing the entities used by the
simulator: the applicant applying for the good-payer bonus, the loan input
collected from the user, individual schedule rows and the overall simulation
result. All of them are frozen: a simulation builds them once and the caller
owns them afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

DOWN_PAYMENT_TYPES = ("amount", "percentage")
RATE_TYPES = ("TEA", "TNA")
TERM_UNITS = ("months", "years")
GRACE_TYPES = ("none", "partial", "total")
HOUSING_TYPES = ("standard", "sustainable")
CURRENCIES = ("PEN", "USD")


@dataclass(frozen=True)
class Applicant:
    """Attributes used to decide the good-payer bonus.

    Attributes
    ----------
    income: Optional[float]
        Monthly household income. ``None`` means the user did not provide it
        and the engine falls back to ``config.DEFAULT_INCOME``.
    is_elderly, is_displaced, is_returning_migrant, has_disability: bool
        Social-vulnerability flags. Any of them makes the applicant eligible
        for the integrated support supplement.
    """

    income: Optional[float] = None
    is_elderly: bool = False
    is_displaced: bool = False
    is_returning_migrant: bool = False
    has_disability: bool = False


@dataclass(frozen=True)
class LoanInput:
    """Everything needed to run one simulation.

    Rates are expressed in percent, as typed by the user. The ``term`` is
    interpreted according to ``term_unit`` and the ``down_payment`` according
    to ``down_payment_type``.
    """

    property_price: float
    down_payment: float = 0.0
    down_payment_type: str = "amount"  # "amount" or "percentage"
    rate: float = 0.0  # annual rate in percent
    rate_type: str = "TEA"  # "TEA" (effective) or "TNA" (nominal)
    capitalizations_per_year: int = 12  # only used for TNA rates
    term: int = 240
    term_unit: str = "months"
    grace_period_type: str = "none"
    grace_period_months: int = 0
    life_insurance_rate: float = 0.0  # percent, on the opening balance
    risk_insurance_rate: float = 0.0  # percent, on the property price
    insurance_rates_per_period: bool = False
    postage_per_period: float = 0.0
    admin_fee_per_period: float = 0.0
    commission_per_period: float = 0.0
    periodic_cost_frequency: int = 12
    applicant: Applicant = field(default_factory=Applicant)
    housing_type: str = "standard"
    currency: str = "PEN"
    start_date: Optional[date] = None


@dataclass(frozen=True)
class ScheduleRow:
    """A row in the payment schedule.

    One row is produced per month of the term, including grace months. During
    a grace month ``amortization`` is zero and ``closing_balance`` equals
    ``opening_balance``.
    """

    period: int
    due_date: date
    opening_balance: float
    interest: float
    amortization: float
    insurance_life: float
    insurance_risk: float
    periodic_fees: float
    total_periodic_costs: float
    payment: float
    closing_balance: float


@dataclass(frozen=True)
class SimulationResult:
    """Aggregated metrics plus the full schedule of a simulation.

    ``tcea`` (effective annual cost rate), ``trea`` (effective annual return
    rate) and ``irr`` are percentages. ``npv`` is expressed in the loan
    currency.
    """

    monthly_payment: float
    total_interest: float
    financed_amount: float
    down_payment_amount: float
    subsidy: float
    monthly_rate: float
    term_months: int
    tcea: float
    trea: float
    npv: float
    irr: float
    total_insurance_life: float
    total_insurance_risk: float
    total_periodic_fees: float
    total_periodic_costs: float
    currency: str
    schedule: List[ScheduleRow]
