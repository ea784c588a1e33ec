"""Command-line interface for the installment calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules, view summaries,
compare prepayment strategies or ask the AI advisor for an assessment.
Results can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import click

from .advisor import get_financial_advice
from .data_models import (
    GRACE_PARTIAL,
    GRACE_TYPES,
    RATE_ANNUAL,
    RATE_TYPES,
    REDUCE_TERM,
    STRATEGIES,
    TERM_MONTHS,
    TERM_UNITS,
    CalculationResult,
    CalculationSummary,
    LoanParameters,
    PaymentRow,
    ScenarioMetrics,
)
from .engine import compute_schedule, outstanding_balance, suggested_extra_payment_month
from .formatter import print_comparison, print_schedule, print_summary
from .utils import decimal_from_str, parse_iso_date

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a ``Decimal``.
    """
    value = str(value).strip().lower()
    value = value.replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_rate(value: str) -> Decimal:
    """Parse a percentage string (e.g. "15" or "15%")."""
    value = str(value).strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return decimal_from_str(value)
    except ValueError:
        raise click.BadParameter(f"Invalid rate: {value}")


def parse_count(name: str, value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise click.BadParameter(f"{name} must be a whole number; got {value}")
    if count < 0:
        raise click.BadParameter(f"{name} must not be negative; got {value}")
    return count


def _check_choice(name: str, value: str, choices: tuple) -> str:
    value = str(value).lower()
    if value not in choices:
        raise click.BadParameter(f"{name} must be one of {', '.join(choices)}; got {value}")
    return value


def build_parameters_from_options(
    amount: str,
    rate: str,
    term: Any,
    start_date: str,
    rate_type: str = RATE_ANNUAL,
    term_unit: str = TERM_MONTHS,
    grace_period: Any = 0,
    grace_type: str = GRACE_PARTIAL,
    grace_days: Any = 0,
    insurance: str = "0",
    fixed_fee: str = "0",
    paid_installments: Any = 0,
    extra_payment: Optional[str] = None,
    extra_month: Any = None,
    strategy: str = REDUCE_TERM,
) -> LoanParameters:
    try:
        start_dt = parse_iso_date(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    paid = parse_count("paid_installments", paid_installments)
    # A prepayment defaults to the first installment not yet paid
    if extra_month is None or extra_month == "":
        extra_month_value = suggested_extra_payment_month(paid)
    else:
        extra_month_value = parse_count("extra_month", extra_month)
    extra_amount = parse_amount(extra_payment) if extra_payment else Decimal(0)
    if extra_amount < 0:
        raise click.BadParameter(f"Extra payment must not be negative; got {extra_payment}")
    return LoanParameters(
        amount=parse_amount(amount),
        rate_value=parse_rate(rate),
        term=parse_count("term", term),
        start_date=start_dt,
        rate_type=_check_choice("rate_type", rate_type, RATE_TYPES),
        term_unit=_check_choice("term_unit", term_unit, TERM_UNITS),
        grace_period=parse_count("grace_period", grace_period),
        grace_type=_check_choice("grace_type", grace_type, GRACE_TYPES),
        grace_days=parse_count("grace_days", grace_days),
        insurance=parse_rate(insurance),
        fixed_fee=parse_amount(fixed_fee),
        paid_installments=paid,
        extra_payment_amount=extra_amount,
        extra_payment_month=extra_month_value,
        extra_payment_strategy=_check_choice("strategy", strategy, STRATEGIES),
    )


def serialize_schedule(schedule: List[PaymentRow]) -> List[Dict[str, Any]]:
    """Convert schedule rows into JSON-serialisable dictionaries."""
    serialized = []
    for row in schedule:
        serialized.append(
            {
                "period": row.period,
                "date": row.date.isoformat(),
                "interest": float(row.interest),
                "amortization": float(row.amortization),
                "insurance": float(row.insurance),
                "fee": float(row.fee),
                "payment": float(row.payment),
                "balance": float(row.balance),
                "extra_payment": float(row.extra_payment) if row.extra_payment is not None else None,
            }
        )
    return serialized


def _serialize_metrics(metrics: ScenarioMetrics) -> Dict[str, Any]:
    return {
        "total_payment": float(metrics.total_payment),
        "total_interest": float(metrics.total_interest),
        "term": metrics.term,
        "regular_payment": float(metrics.regular_payment),
        "savings": float(metrics.savings),
    }


def serialize_summary(summary: CalculationSummary) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "total_interest": float(summary.total_interest),
        "total_payment": float(summary.total_payment),
        "monthly_rate": float(summary.monthly_rate),
        "annual_rate": float(summary.annual_rate),
        "first_payment": float(summary.first_payment),
        "regular_payment": float(summary.regular_payment),
        "new_term": summary.new_term,
        "total_insurance": float(summary.total_insurance),
        "total_fees": float(summary.total_fees),
        "total_extra_payment": float(summary.total_extra_payment),
        "end_date": summary.end_date.isoformat(),
        "comparison": None,
    }
    if summary.comparison is not None:
        data["comparison"] = {
            "original": _serialize_metrics(summary.comparison.original),
            "reduce_term": _serialize_metrics(summary.comparison.reduce_term),
            "reduce_quota": _serialize_metrics(summary.comparison.reduce_quota),
        }
    return data


def export_to_json(path: Path, result: CalculationResult) -> None:
    """Export schedule and summary to a JSON file."""
    data = {
        "start_date": result.start_date.isoformat(),
        "summary": serialize_summary(result.summary),
        "schedule": serialize_schedule(result.schedule),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[PaymentRow]) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Period",
        "Date",
        "Interest",
        "Amortization",
        "Insurance",
        "Fee",
        "Payment",
        "Balance",
        "Extra_Payment",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in serialize_schedule(schedule):
            writer.writerow(
                [
                    row["period"],
                    row["date"],
                    row["interest"],
                    row["amortization"],
                    row["insurance"],
                    row["fee"],
                    row["payment"],
                    row["balance"],
                    row["extra_payment"] if row["extra_payment"] is not None else "",
                ]
            )


def loan_options(func: Callable) -> Callable:
    """Attach the loan parameter options shared by every command."""
    options = [
        click.option("--amount", "-a", "amount", required=True, help="Loan amount (accepts k/m suffixes)"),
        click.option("--rate", "-r", "rate", required=True, help="Effective interest rate (percent)"),
        click.option("--rate-type", "rate_type", type=click.Choice(RATE_TYPES), default=RATE_ANNUAL, help="Whether --rate is an annual (TEA) or monthly (TEM) rate"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term"),
        click.option("--term-unit", "term_unit", type=click.Choice(TERM_UNITS), default=TERM_MONTHS, help="Unit of --term"),
        click.option("--start-date", "-s", "start_date", required=True, help="Disbursement date (YYYY-MM-DD)"),
        click.option("--grace-period", "grace_period", type=int, default=0, help="Grace months before amortization starts"),
        click.option("--grace-type", "grace_type", type=click.Choice(GRACE_TYPES), default=GRACE_PARTIAL, help="partial: pay interest only; total: capitalize everything"),
        click.option("--grace-days", "grace_days", type=int, default=0, help="Days between disbursement and the first period"),
        click.option("--insurance", "insurance", default="0", help="Monthly insurance (percent of balance)"),
        click.option("--fixed-fee", "fixed_fee", default="0", help="Flat fee charged every period"),
        click.option("--paid-installments", "paid_installments", type=int, default=0, help="Installments already paid"),
        click.option("--extra-payment", "extra_payment", help="One-off prepayment amount"),
        click.option("--extra-month", "extra_month", type=int, help="Period of the prepayment (default: first unpaid installment)"),
        click.option("--strategy", "strategy", type=click.Choice(STRATEGIES), default=REDUCE_TERM, help="What the prepayment reduces"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A command-line installment calculator with prepayment scenarios."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(output: Optional[str], **options: Any) -> None:
    """Compute and print the full amortization schedule."""
    params = build_parameters_from_options(**options)
    result = compute_schedule(params)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result.schedule)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        return
    print_summary(result.summary, outstanding_balance(params, result))
    # Limit schedule length printed to avoid flooding the terminal
    if len(result.schedule) > MAX_PRINTED_ROWS:
        click.echo(
            f"Schedule has {len(result.schedule)} rows; showing first {MAX_PRINTED_ROWS} rows."
        )
    print_schedule(result.schedule[:MAX_PRINTED_ROWS], params.paid_installments)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options: Any) -> None:
    """Compute and print only the summary metrics for a loan."""
    params = build_parameters_from_options(**options)
    result = compute_schedule(params)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": serialize_summary(result.summary)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
        return
    print_summary(result.summary, outstanding_balance(params, result))
    if result.summary.comparison is not None:
        print_comparison(result.summary.comparison)


@cli.command()
@loan_options
def compare(**options: Any) -> None:
    """Compare no prepayment, reduce-term and reduce-quota side by side.

    Example:

        installment-calc compare -a 10k -r 15 -t 24 -s 2024-01-15 --extra-payment 2000 --extra-month 6
    """
    params = build_parameters_from_options(**options)
    if params.extra_payment_amount <= 0:
        raise click.BadParameter("compare needs a positive --extra-payment")
    result = compute_schedule(params)
    print_comparison(result.summary.comparison)


@cli.command()
@loan_options
def advise(**options: Any) -> None:
    """Ask the AI advisor for a short assessment of the loan."""
    params = build_parameters_from_options(**options)
    result = compute_schedule(params)
    click.echo(get_financial_advice(params, result))


if __name__ == "__main__":
    cli()
