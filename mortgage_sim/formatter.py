"""Output helpers for the mortgage simulator.

This module renders simulation results in a tabular text format for the
terminal and converts them into plain dictionaries for JSON/CSV export and
for the web API.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable, List

from .data_models import LoanInput, ScheduleRow, SimulationResult

SCHEDULE_FIELDS = [
    "period",
    "due_date",
    "opening_balance",
    "interest",
    "amortization",
    "insurance_life",
    "insurance_risk",
    "periodic_fees",
    "total_periodic_costs",
    "payment",
    "closing_balance",
]


def serialize_schedule(schedule: Iterable[ScheduleRow]) -> List[Dict[str, Any]]:
    """Convert schedule rows into JSON-serialisable dictionaries."""
    serialized = []
    for row in schedule:
        item = asdict(row)
        item["due_date"] = row.due_date.isoformat()
        serialized.append(item)
    return serialized


def serialize_result(result: SimulationResult, include_schedule: bool = True) -> Dict[str, Any]:
    data = {key: value for key, value in asdict(result).items() if key != "schedule"}
    if include_schedule:
        data["schedule"] = serialize_schedule(result.schedule)
    return data


def serialize_input(config: LoanInput) -> Dict[str, Any]:
    data = asdict(config)
    data["start_date"] = config.start_date.isoformat() if config.start_date else None
    return data


def print_summary(result: SimulationResult) -> None:
    """Print the simulation metrics in a human‑readable format."""
    cur = result.currency
    print("Summary")
    print("-" * 72)
    print(f"Down payment          : {result.down_payment_amount:.2f} {cur}")
    print(f"Good-payer bonus      : {result.subsidy:.2f} {cur}")
    print(f"Financed amount       : {result.financed_amount:.2f} {cur}")
    print(f"Monthly rate (TEM)    : {result.monthly_rate * 100:.4f}%")
    print(f"Term                  : {result.term_months} months")
    print(f"Monthly payment       : {result.monthly_payment:.2f} {cur}")
    print(f"Total interest        : {result.total_interest:.2f} {cur}")
    if result.total_periodic_costs:
        print(f"Life insurance        : {result.total_insurance_life:.2f} {cur}")
        print(f"Risk insurance        : {result.total_insurance_risk:.2f} {cur}")
        print(f"Fixed fees            : {result.total_periodic_fees:.2f} {cur}")
    print(f"TCEA                  : {result.tcea:.2f}%")
    print(f"TREA                  : {result.trea:.2f}%")
    print(f"NPV                   : {result.npv:.2f} {cur}")
    print(f"IRR (approx)          : {result.irr:.2f}%")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleRow]) -> None:
    """Print the payment schedule as a simple table."""
    headers = [
        "Period",
        "Date",
        "Opening",
        "Interest",
        "Principal",
        "LifeIns",
        "RiskIns",
        "Fees",
        "Payment",
        "Closing",
    ]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.period),
                    row.due_date.strftime("%Y-%m"),
                    f"{row.opening_balance:.2f}",
                    f"{row.interest:.2f}",
                    f"{row.amortization:.2f}",
                    f"{row.insurance_life:.2f}",
                    f"{row.insurance_risk:.2f}",
                    f"{row.periodic_fees:.2f}",
                    f"{row.payment:.2f}",
                    f"{row.closing_balance:.2f}",
                ]
            )
        )


def print_subsidy(details: Dict[str, Any]) -> None:
    print("Good-payer bonus")
    print("-" * 72)
    print(f"Price band            : {details['band']}")
    print(f"Housing type          : {details['housing_type']}")
    print(f"Base bonus            : {details['base_bonus']:.2f} {details['currency']}")
    print(f"Integrated supplement : {details['supplement']:.2f} {details['currency']}")
    print(f"Total bonus           : {details['bonus']:.2f} {details['currency']}")
    print("-" * 72)


def print_comparison(base: SimulationResult, other: SimulationResult) -> None:
    """Print two simulations side by side.

    The difference column is ``other - base``; a negative value means the
    second scenario is cheaper.
    """
    print("Comparison")
    print("=" * 72)
    keys = [
        "financed_amount",
        "monthly_payment",
        "total_interest",
        "total_periodic_costs",
        "tcea",
        "npv",
        "irr",
    ]
    print(f"{'Metric':22s} {'Base':>15s} {'Scenario':>15s} {'Difference':>15s}")
    for key in keys:
        v1 = getattr(base, key)
        v2 = getattr(other, key)
        print(f"{key:22s} {v1:15.2f} {v2:15.2f} {v2 - v1:15.2f}")
    print("=" * 72)
