"""Output helpers for the installment calculator.

This module provides simple functions to render amortization schedules,
summaries and prepayment comparisons in a tabular text format. We rely only
on built-in printing and string formatting; currency symbols and locale are
left to whoever embeds the calculator.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from .data_models import CalculationSummary, PaymentRow, ScenarioComparison


def print_summary(summary: CalculationSummary, outstanding: Optional[Decimal] = None) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    if summary.payment_changed():
        # A reduce_quota prepayment lowered the installment
        print(f"First payment      : {summary.first_payment:.2f}")
        print(f"New payment        : {summary.regular_payment:.2f}")
    else:
        print(f"Monthly payment    : {summary.regular_payment:.2f}")
    print(f"Annual rate (TEA)  : {summary.annual_rate * 100:.2f}%")
    print(f"Monthly rate (TEM) : {summary.monthly_rate * 100:.4f}%")
    print(f"Total interest     : {summary.total_interest:.2f}")
    if summary.total_insurance or summary.total_fees:
        print(f"Insurance and fees : {summary.total_insurance + summary.total_fees:.2f}")
    if summary.total_extra_payment:
        print(f"Extra payment      : {summary.total_extra_payment:.2f}")
    print(f"Total paid         : {summary.total_payment:.2f}")
    print(f"Installments       : {summary.new_term}")
    print(f"Last payment date  : {summary.end_date.isoformat()}")
    if outstanding is not None:
        print(f"Outstanding balance: {outstanding:.2f}")
    print("-" * 72)


def print_schedule(schedule: Iterable[PaymentRow], paid_installments: int = 0) -> None:
    """Print the amortization schedule as a simple table.

    Parameters
    ----------
    schedule: Iterable[PaymentRow]
        The schedule rows to print.
    paid_installments: int
        Rows up to this period are flagged as already paid.
    """
    headers = [
        "Period",
        "Date",
        "Payment",
        "Capital",
        "Interest",
        "Insurance",
        "Fee",
        "Extra",
        "Balance",
        "Paid",
    ]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.period),
                    row.date.isoformat(),
                    f"{row.payment:.2f}",
                    f"{row.amortization:.2f}",
                    f"{row.interest:.2f}",
                    f"{row.insurance:.2f}",
                    f"{row.fee:.2f}",
                    f"{row.extra_payment:.2f}" if row.extra_payment is not None else "-",
                    f"{row.balance:.2f}",
                    "Yes" if row.period <= paid_installments else "No",
                ]
            )
        )


def print_comparison(comparison: ScenarioComparison) -> None:
    """Print the baseline and both prepayment strategies side by side.

    Savings are measured against the baseline, so a positive figure means
    the strategy costs less in total.
    """
    scenarios = [
        ("No prepayment", comparison.original),
        ("Reduce term", comparison.reduce_term),
        ("Reduce quota", comparison.reduce_quota),
    ]
    print("Comparison")
    print("=" * 72)
    print(f"{'Scenario':16s} {'Total paid':>13s} {'Interest':>12s} {'Term':>6s} {'Payment':>11s} {'Savings':>11s}")
    for label, metrics in scenarios:
        print(
            f"{label:16s} {metrics.total_payment:13.2f} {metrics.total_interest:12.2f} "
            f"{metrics.term:6d} {metrics.regular_payment:11.2f} {metrics.savings:11.2f}"
        )
    print("=" * 72)
