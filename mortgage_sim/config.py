"""Policy tables and numeric defaults for the simulator.

Every tuneable constant lives here so policy changes are data updates. The
good-payer bonus table is versioned: a new programme year gets a new
``SubsidyPolicy`` instance instead of new branches in the calculator.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple


@dataclass(frozen=True)
class PriceBand:
    """A property price band, closed at ``upper`` and open at ``lower``.

    The first band of a policy is closed at both ends.
    """

    name: str
    lower: float
    upper: float


@dataclass(frozen=True)
class SubsidyPolicy:
    version: str
    bands: Tuple[PriceBand, ...]
    bonuses: Mapping[str, Mapping[str, float]]  # housing type -> band -> amount
    fallback_band: str
    income_threshold: float
    integrated_supplement: float
    excluded_from_supplement: Tuple[str, ...]

    def __post_init__(self) -> None:
        # Read-only copies of the caller's tables.
        frozen = {housing: MappingProxyType(dict(table)) for housing, table in self.bonuses.items()}
        object.__setattr__(self, "bonuses", MappingProxyType(frozen))
        object.__setattr__(self, "bands", tuple(self.bands))
        object.__setattr__(self, "excluded_from_supplement", tuple(self.excluded_from_supplement))


SUBSIDY_POLICY = SubsidyPolicy(
    version="2024",
    bands=(
        PriceBand("R1", 68_800, 98_100),
        PriceBand("R2", 98_100, 146_900),
        PriceBand("R3", 146_900, 244_600),
        PriceBand("R4", 244_600, 362_100),
        PriceBand("R5", 362_100, 488_800),
    ),
    bonuses={
        "standard": {"R1": 27_400, "R2": 22_800, "R3": 20_900, "R4": 7_800, "R5": 0},
        "sustainable": {"R1": 33_700, "R2": 29_100, "R3": 27_200, "R4": 14_100, "R5": 0},
    },
    fallback_band="R5",
    income_threshold=4_746,
    integrated_supplement=3_600,
    excluded_from_supplement=("R5",),
)

# ── Caller defaults ──────────────────────────────────────────────────────────

DEFAULT_INCOME: float = 5_000  # above the integrated support threshold
DEFAULT_HOUSING_TYPE: str = "standard"
DEFAULT_CURRENCY: str = "PEN"
DEFAULT_COST_FREQUENCY: int = 12
DEFAULT_CAPITALIZATIONS: int = 12

# ── Numeric conventions ──────────────────────────────────────────────────────

MONTHS_IN_YEAR: int = 12
DAY_COUNT_BASIS: int = 360

# Effective annual cost rate scan (annual rates as fractions)
COST_RATE_SCAN_START: float = 0.01
COST_RATE_SCAN_STOP: float = 2.0
COST_RATE_SCAN_STEP: float = 0.001
COST_RATE_TOLERANCE: float = 1.0  # currency units

RETURN_RATE_RATIO: float = 0.9
