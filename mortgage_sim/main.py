"""Command‑line interface for the mortgage simulator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute full payment schedules, view summaries, check
the good-payer bonus for a property or compare two scenarios stored as JSON
files. Results can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import inspect
import json
import logging
import math
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import click

from .data_models import (
    CURRENCIES,
    DOWN_PAYMENT_TYPES,
    GRACE_TYPES,
    HOUSING_TYPES,
    RATE_TYPES,
    TERM_UNITS,
    Applicant,
    LoanInput,
    SimulationResult,
)
from .config import DEFAULT_CAPITALIZATIONS, DEFAULT_COST_FREQUENCY, DEFAULT_CURRENCY
from .engine import simulate, subsidy_breakdown
from .errors import SimulationInputError
from .formatter import (
    SCHEDULE_FIELDS,
    print_comparison,
    print_schedule,
    print_subsidy,
    print_summary,
    serialize_input,
    serialize_result,
    serialize_schedule,
)
from .utils import parse_year_month

MAX_PRINTED_ROWS = 120
TRUE_VALUES = ("true", "1", "yes")
FALSE_VALUES = ("false", "0", "no", "")


def parse_amount(value: Any) -> float:
    """Parse a numeric amount with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a float.
    """
    text = str(value).strip().lower().replace(",", "")
    factor = 1.0
    if text.endswith("k"):
        factor = 1_000.0
        text = text[:-1]
    elif text.endswith("m"):
        factor = 1_000_000.0
        text = text[:-1]
    try:
        amount = float(text) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")
    if not math.isfinite(amount):
        raise click.BadParameter(f"Amount must be a finite number: {value}")
    return amount


def _number(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise click.BadParameter(f"Invalid value for {name}: {value}")
    if not math.isfinite(number):
        raise click.BadParameter(f"{name} must be a finite number; got {value}")
    return number


def _whole(name: str, value: Any) -> int:
    """Parse a count such as a term or a number of months.

    "12" and 12.0 are accepted, 12.5 is rejected rather than truncated.
    """
    if isinstance(value, bool):
        raise click.BadParameter(f"Invalid value for {name}: {value}")
    number = _number(name, value)
    if not number.is_integer():
        raise click.BadParameter(f"{name} must be a whole number; got {value}")
    return int(number)


def _flag(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise click.BadParameter(f"{name} must be true or false; got {value}")


def _choice(name: str, value: str, choices: tuple) -> str:
    if value not in choices:
        raise click.BadParameter(f"{name} must be one of {', '.join(choices)}; got {value}")
    return value


def build_input_from_options(
    price: Any,
    rate: Any,
    down_payment: Any = None,
    down_payment_type: str = "amount",
    rate_type: str = "TEA",
    capitalizations: Any = DEFAULT_CAPITALIZATIONS,
    term: Any = 240,
    term_unit: str = "months",
    grace: str = "none",
    grace_months: Any = 0,
    life_insurance_rate: Any = 0.0,
    risk_insurance_rate: Any = 0.0,
    per_period_rates: bool = False,
    postage: Any = None,
    admin_fee: Any = None,
    commission: Any = None,
    cost_frequency: Any = DEFAULT_COST_FREQUENCY,
    income: Any = None,
    elderly: bool = False,
    displaced: bool = False,
    returning_migrant: bool = False,
    disability: bool = False,
    housing_type: str = "standard",
    currency: str = DEFAULT_CURRENCY,
    start_date: Optional[str] = None,
) -> LoanInput:
    if price is None or rate is None:
        raise click.BadParameter("Both price and rate are required")
    start_dt = None
    if start_date:
        try:
            start_dt = parse_year_month(start_date)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    applicant = Applicant(
        income=parse_amount(income) if income not in (None, "") else None,
        is_elderly=_flag("elderly", elderly),
        is_displaced=_flag("displaced", displaced),
        is_returning_migrant=_flag("returning_migrant", returning_migrant),
        has_disability=_flag("disability", disability),
    )
    return LoanInput(
        property_price=parse_amount(price),
        down_payment=parse_amount(down_payment) if down_payment not in (None, "") else 0.0,
        down_payment_type=_choice("down_payment_type", str(down_payment_type).lower(), DOWN_PAYMENT_TYPES),
        rate=_number("rate", rate),
        rate_type=_choice("rate_type", str(rate_type).upper(), RATE_TYPES),
        capitalizations_per_year=_whole("capitalizations", capitalizations),
        term=_whole("term", term),
        term_unit=_choice("term_unit", str(term_unit).lower(), TERM_UNITS),
        grace_period_type=_choice("grace", str(grace).lower(), GRACE_TYPES),
        grace_period_months=_whole("grace_months", grace_months),
        life_insurance_rate=_number("life_insurance_rate", life_insurance_rate),
        risk_insurance_rate=_number("risk_insurance_rate", risk_insurance_rate),
        insurance_rates_per_period=_flag("per_period_rates", per_period_rates),
        postage_per_period=parse_amount(postage) if postage not in (None, "") else 0.0,
        admin_fee_per_period=parse_amount(admin_fee) if admin_fee not in (None, "") else 0.0,
        commission_per_period=parse_amount(commission) if commission not in (None, "") else 0.0,
        periodic_cost_frequency=_whole("cost_frequency", cost_frequency),
        applicant=applicant,
        housing_type=str(housing_type or "standard").lower(),
        currency=_choice("currency", str(currency).upper(), CURRENCIES),
        start_date=start_dt,
    )


BUILDER_FIELDS = tuple(inspect.signature(build_input_from_options).parameters)


def input_from_mapping(data: Mapping[str, Any]) -> LoanInput:
    """Build a ``LoanInput`` from a dict using the CLI option names as keys.

    Used for scenario files and for the web API payloads.
    """
    unknown = set(data) - set(BUILDER_FIELDS)
    if unknown:
        raise click.BadParameter(f"Unknown fields: {', '.join(sorted(unknown))}")
    return build_input_from_options(**dict(data))


def export_to_json(path: Path, config: LoanInput, result: SimulationResult) -> None:
    """Export input, summary and schedule to a JSON file."""
    data = {
        "input": serialize_input(config),
        "summary": serialize_result(result, include_schedule=False),
        "schedule": serialize_schedule(result.schedule),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: SimulationResult) -> None:
    """Export the schedule to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=SCHEDULE_FIELDS)
        writer.writeheader()
        writer.writerows(serialize_schedule(result.schedule))


def run_simulation(config: LoanInput) -> SimulationResult:
    try:
        return simulate(config)
    except SimulationInputError as exc:
        raise click.ClickException(str(exc))


def loan_options(func: Callable) -> Callable:
    """Attach the options shared by every simulation command."""
    options = [
        click.option("--price", "-p", "price", required=True, help="Property price"),
        click.option("--down-payment", "-d", "down_payment", help="Down payment (amount or percent)"),
        click.option("--down-payment-type", type=click.Choice(DOWN_PAYMENT_TYPES), default="amount", show_default=True),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--rate-type", type=click.Choice(RATE_TYPES), default="TEA", show_default=True),
        click.option("--capitalizations", type=int, default=DEFAULT_CAPITALIZATIONS, show_default=True, help="Capitalizations per year (TNA only)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term"),
        click.option("--term-unit", type=click.Choice(TERM_UNITS), default="months", show_default=True),
        click.option("--grace", type=click.Choice(GRACE_TYPES), default="none", show_default=True, help="Grace period type"),
        click.option("--grace-months", type=int, default=0, show_default=True),
        click.option("--life-insurance-rate", type=float, default=0.0, help="Life insurance rate (percent) on the balance"),
        click.option("--risk-insurance-rate", type=float, default=0.0, help="Risk insurance rate (percent) on the property"),
        click.option("--per-period-rates", is_flag=True, help="Insurance rates are already per period"),
        click.option("--postage", help="Postage charge per period"),
        click.option("--admin-fee", help="Administrative fee per period"),
        click.option("--commission", help="Commission per period"),
        click.option("--cost-frequency", type=int, default=DEFAULT_COST_FREQUENCY, show_default=True, help="Periodic cost frequency per year"),
        click.option("--income", help="Monthly household income"),
        click.option("--elderly", is_flag=True),
        click.option("--displaced", is_flag=True),
        click.option("--returning-migrant", is_flag=True),
        click.option("--disability", is_flag=True),
        click.option("--housing-type", type=click.Choice(HOUSING_TYPES), default="standard", show_default=True),
        click.option("--currency", type=click.Choice(CURRENCIES), default=DEFAULT_CURRENCY, show_default=True),
        click.option("--start-date", "-s", "start_date", help="Simulation start (YYYY-MM)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Mortgage simulator with good-payer bonus, grace periods and insurance."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--full", is_flag=True, help="Print every schedule row")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(full: bool, output: Optional[str], **options: Any) -> None:
    """Compute and print the full payment schedule."""
    config = build_input_from_options(**options)
    result = run_simulation(config)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, config, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(result)
    rows = result.schedule
    if not full and len(rows) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_PRINTED_ROWS} rows.")
        rows = rows[:MAX_PRINTED_ROWS]
    print_schedule(rows)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options: Any) -> None:
    """Compute and print only the summary metrics."""
    config = build_input_from_options(**options)
    result = run_simulation(config)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": serialize_result(result, include_schedule=False)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@click.option("--price", "-p", "price", required=True, help="Property price")
@click.option("--income", help="Monthly household income")
@click.option("--elderly", is_flag=True)
@click.option("--displaced", is_flag=True)
@click.option("--returning-migrant", is_flag=True)
@click.option("--disability", is_flag=True)
@click.option("--housing-type", type=click.Choice(HOUSING_TYPES), default="standard", show_default=True)
@click.option("--currency", type=click.Choice(CURRENCIES), default=DEFAULT_CURRENCY, show_default=True)
def subsidy(**options: Any) -> None:
    """Show the good-payer bonus for a property and applicant."""
    config = build_input_from_options(rate=0.0, **options)
    print_subsidy(subsidy_breakdown(config))


def load_scenario(path: str) -> LoanInput:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise click.BadParameter(f"{path} is not valid JSON: {exc}")
    if not isinstance(data, dict):
        raise click.BadParameter(f"{path} must contain a JSON object")
    return input_from_mapping(data)


@cli.command()
@click.option("--base", "base", required=True, type=click.Path(exists=True, dir_okay=False), help="Base scenario JSON file")
@click.option("--scenario", "scenario", required=True, type=click.Path(exists=True, dir_okay=False), help="Scenario JSON file to compare")
def compare(base: str, scenario: str) -> None:
    """Compare a scenario against a base scenario.

    Scenario files hold the option names as keys, for example:

        {"price": "150k", "down_payment": 20, "down_payment_type": "percentage",
         "rate": 9.5, "term": 20, "term_unit": "years"}
    """
    base_result = run_simulation(load_scenario(base))
    other_result = run_simulation(load_scenario(scenario))
    print_comparison(base_result, other_result)


if __name__ == "__main__":
    cli()
