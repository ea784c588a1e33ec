"""Data models for the installment calculator.

This module defines dataclasses representing the entities used by the
calculator: the loan parameters supplied by the user, individual schedule
rows, the per-scenario metrics used when comparing prepayment strategies and
the overall calculation result. Parameters are frozen so that scenario
variants are built with ``dataclasses.replace`` instead of mutating the
caller's object.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

RATE_MONTHLY = "monthly"
RATE_ANNUAL = "annual"
RATE_TYPES = (RATE_MONTHLY, RATE_ANNUAL)

TERM_MONTHS = "months"
TERM_YEARS = "years"
TERM_UNITS = (TERM_MONTHS, TERM_YEARS)

GRACE_PARTIAL = "partial"
GRACE_TOTAL = "total"
GRACE_TYPES = (GRACE_PARTIAL, GRACE_TOTAL)

REDUCE_TERM = "reduce_term"
REDUCE_QUOTA = "reduce_quota"
STRATEGIES = (REDUCE_TERM, REDUCE_QUOTA)

# Smallest change between first and regular payment worth reporting
PAYMENT_CHANGE_THRESHOLD = Decimal("1")


@dataclass(frozen=True)
class LoanParameters:
    """Inputs of a single schedule computation.

    Attributes
    ----------
    amount: Decimal
        The disbursed principal.
    rate_type: str
        ``"monthly"`` or ``"annual"``; tells which effective rate
        ``rate_value`` expresses.
    rate_value: Decimal
        The rate in percent (``Decimal("15")`` means 15 %).
    term: int
        Term length expressed in ``term_unit``.
    grace_period: int
        Number of leading grace months.
    grace_type: str
        ``"partial"`` pays interest, insurance and fee in cash during grace;
        ``"total"`` capitalizes them.
    grace_days: int
        Days between disbursement and the first period. Interest for these
        days is capitalized once before period 1 using a 30-day month.
    insurance: Decimal
        Insurance in percent of the outstanding balance, charged monthly.
    fixed_fee: Decimal
        Flat fee charged every period.
    paid_installments: int
        Number of installments the borrower has already paid. Informational
        only; it does not alter the simulation.
    extra_payment_amount, extra_payment_month, extra_payment_strategy
        A single prepayment applied in the given 1-based period, followed by
        either a shorter payoff (``"reduce_term"``) or a lower installment
        (``"reduce_quota"``).
    """

    amount: Decimal
    rate_value: Decimal
    term: int
    start_date: date  # disbursement date
    rate_type: str = RATE_ANNUAL
    term_unit: str = TERM_MONTHS
    grace_period: int = 0
    grace_type: str = GRACE_PARTIAL
    grace_days: int = 0
    insurance: Decimal = Decimal("0")
    fixed_fee: Decimal = Decimal("0")
    paid_installments: int = 0
    extra_payment_amount: Decimal = Decimal("0")
    extra_payment_month: int = 1
    extra_payment_strategy: str = REDUCE_TERM

    @property
    def total_months(self) -> int:
        return self.term * 12 if self.term_unit == TERM_YEARS else self.term


@dataclass
class PaymentRow:
    """One simulated period of the schedule.

    ``amortization`` is the capital portion and is negative during total
    grace months, when carrying costs are added to the balance. ``payment``
    is the cash outflow of the period including any prepayment.
    """

    period: int
    date: date
    interest: Decimal
    amortization: Decimal
    insurance: Decimal
    fee: Decimal
    payment: Decimal
    balance: Decimal
    extra_payment: Optional[Decimal] = None


@dataclass
class ScenarioMetrics:
    total_payment: Decimal
    total_interest: Decimal
    term: int
    regular_payment: Decimal
    savings: Decimal


@dataclass
class ScenarioComparison:
    """Baseline without prepayment against both prepayment strategies."""

    original: ScenarioMetrics
    reduce_term: ScenarioMetrics
    reduce_quota: ScenarioMetrics


@dataclass
class CalculationSummary:
    """Aggregate metrics of a computed schedule.

    ``first_payment`` is the installment scheduled before any prepayment
    recalculation, ``regular_payment`` the installment in force at the end
    of the schedule. Both include the fixed fee. ``new_term`` is the index of
    the last emitted row.
    """

    total_interest: Decimal
    total_payment: Decimal
    monthly_rate: Decimal
    annual_rate: Decimal
    first_payment: Decimal
    regular_payment: Decimal
    new_term: int
    total_insurance: Decimal
    total_fees: Decimal
    total_extra_payment: Decimal
    end_date: date
    comparison: Optional[ScenarioComparison] = None

    def payment_changed(self) -> bool:
        """True when a prepayment moved the installment by more than one unit."""
        if not (self.first_payment.is_finite() and self.regular_payment.is_finite()):
            return False
        return abs(self.first_payment - self.regular_payment) > PAYMENT_CHANGE_THRESHOLD


@dataclass
class CalculationResult:
    schedule: List[PaymentRow]
    summary: CalculationSummary
    start_date: date
