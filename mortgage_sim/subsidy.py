"""Good-payer bonus (housing subsidy) calculator.

The bonus depends on the property price band and the housing type, plus a
fixed supplement for applicants eligible for integrated support (low income
or any social-vulnerability flag). The top band never receives a bonus nor
the supplement.

The calculator expects normalized inputs: the caller applies defaults and
maps unknown housing types to ``"standard"`` before calling ``compute``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .config import DEFAULT_CURRENCY, DEFAULT_HOUSING_TYPE, DEFAULT_INCOME, SUBSIDY_POLICY, SubsidyPolicy

logger = logging.getLogger(__name__)


class SubsidyCalculator:
    def __init__(self, policy: SubsidyPolicy = SUBSIDY_POLICY) -> None:
        self.policy = policy

    def classify(self, property_price: float) -> str:
        """Return the name of the price band ``property_price`` falls into.

        Prices outside every explicit band (too low, too high or
        non-positive) fall back to the policy's fallback band, which carries
        no bonus.
        """
        for index, band in enumerate(self.policy.bands):
            above_lower = property_price >= band.lower if index == 0 else property_price > band.lower
            if above_lower and property_price <= band.upper:
                logger.debug("Price %.2f falls in band %s", property_price, band.name)
                return band.name
        logger.warning(
            "Price %.2f is outside every price band, using %s",
            property_price,
            self.policy.fallback_band,
        )
        return self.policy.fallback_band

    def base_bonus(self, band: str, housing_type: str) -> float:
        return float(self.policy.bonuses[housing_type][band])

    def qualifies_for_integrated(
        self,
        income: float,
        is_elderly: bool = False,
        is_displaced: bool = False,
        is_returning_migrant: bool = False,
        has_disability: bool = False,
    ) -> bool:
        return (
            income <= self.policy.income_threshold
            or is_elderly
            or is_displaced
            or is_returning_migrant
            or has_disability
        )

    def breakdown(
        self,
        property_price: float,
        housing_type: str,
        income: float,
        is_elderly: bool = False,
        is_displaced: bool = False,
        is_returning_migrant: bool = False,
        has_disability: bool = False,
        currency: str = DEFAULT_CURRENCY,
    ) -> Dict[str, Any]:
        """Return the band, base bonus, supplement and total for an applicant.

        ``currency`` is accepted for the record only: the policy amounts are
        applied as-is regardless of the loan currency.
        """
        band = self.classify(property_price)
        base = self.base_bonus(band, housing_type)
        integrated = self.qualifies_for_integrated(
            income, is_elderly, is_displaced, is_returning_migrant, has_disability
        )
        supplement = 0.0
        if integrated and band not in self.policy.excluded_from_supplement:
            supplement = float(self.policy.integrated_supplement)
        logger.debug(
            "Good-payer bonus %.2f %s (band=%s, housing=%s, integrated=%s, policy=%s)",
            base + supplement,
            currency,
            band,
            housing_type,
            integrated,
            self.policy.version,
        )
        return {
            "band": band,
            "housing_type": housing_type,
            "integrated_support": integrated,
            "base_bonus": base,
            "supplement": supplement,
            "bonus": base + supplement,
            "currency": currency,
            "policy_version": self.policy.version,
        }

    def compute(
        self,
        property_price: float,
        housing_type: str,
        income: float,
        is_elderly: bool = False,
        is_displaced: bool = False,
        is_returning_migrant: bool = False,
        has_disability: bool = False,
        currency: str = DEFAULT_CURRENCY,
    ) -> float:
        """Return the bonus amount for a property and applicant."""
        details = self.breakdown(
            property_price,
            housing_type,
            income,
            is_elderly,
            is_displaced,
            is_returning_migrant,
            has_disability,
            currency,
        )
        return details["bonus"]


def calculate_subsidy(
    property_price: float,
    housing_type: str = DEFAULT_HOUSING_TYPE,
    income: float = DEFAULT_INCOME,
    is_elderly: bool = False,
    is_displaced: bool = False,
    is_returning_migrant: bool = False,
    has_disability: bool = False,
    currency: str = DEFAULT_CURRENCY,
) -> float:
    """Compute the bonus with the current policy."""
    return SubsidyCalculator().compute(
        property_price,
        housing_type,
        income,
        is_elderly,
        is_displaced,
        is_returning_migrant,
        has_disability,
        currency,
    )
