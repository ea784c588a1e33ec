"""Core calculation engine for the installment calculator.

This module implements the financial logic required to build amortization
schedules for fixed-installment (annuity) loans. It supports effective
monthly or annual rates, capitalized grace days, partial and total grace
months, balance-based insurance, a flat per-period fee and a single
prepayment that either shortens the term or lowers the installment. When a
prepayment is requested, the schedule is also recomputed without it and under
both strategies so the three outcomes can be compared.

Every function here is pure: results depend only on the arguments and no
state is kept between calls.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal, DivisionByZero, InvalidOperation, Overflow, getcontext, localcontext
from typing import List, Optional, Tuple

from .data_models import (
    GRACE_TOTAL,
    RATE_MONTHLY,
    REDUCE_QUOTA,
    REDUCE_TERM,
    CalculationResult,
    CalculationSummary,
    LoanParameters,
    PaymentRow,
    ScenarioComparison,
    ScenarioMetrics,
)
from .utils import add_months

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
# Balances below this are treated as fully repaid.
BALANCE_TOLERANCE = Decimal("0.01")
DAYS_PER_MONTH = 30


def _lenient_context():
    """Return a context where invalid results become NaN or Infinity instead of raising."""
    ctx = getcontext().copy()
    for signal in (InvalidOperation, DivisionByZero, Overflow):
        ctx.traps[signal] = False
    return localcontext(ctx)


def normalize_rates(rate_type: str, rate_value: Decimal) -> Tuple[Decimal, Decimal]:
    """Return ``(monthly_rate, annual_rate)`` as fractions.

    Whichever rate ``rate_type`` declares is canonical; the other one is
    derived so that ``(1 + monthly) ** 12 - 1 == annual``.
    """
    with _lenient_context():
        if rate_type == RATE_MONTHLY:
            monthly_rate = rate_value / HUNDRED
            annual_rate = (ONE + monthly_rate) ** 12 - ONE
        else:
            annual_rate = rate_value / HUNDRED
            monthly_rate = (ONE + annual_rate) ** (ONE / Decimal(12)) - ONE
    return monthly_rate, annual_rate


def capitalize_grace_days(amount: Decimal, monthly_rate: Decimal, grace_days: int) -> Decimal:
    """Return ``amount`` with interest for ``grace_days`` added to it.

    The daily rate is the 30th root of the monthly growth factor, i.e. every
    month is assumed to have 30 days.
    """
    if grace_days == 0:
        return amount
    with _lenient_context():
        daily_rate = (ONE + monthly_rate) ** (ONE / Decimal(DAYS_PER_MONTH)) - ONE
        return amount * (ONE + daily_rate) ** grace_days


def forecast_grace_balance(
    balance: Decimal,
    grace_period: int,
    grace_type: str,
    monthly_rate: Decimal,
    insurance_rate: Decimal,
    fixed_fee: Decimal,
) -> Decimal:
    """Return the balance at the start of the amortization phase.

    Under total grace, interest, insurance and the fee of every grace month
    are capitalized. Under partial grace they are paid in cash, so the
    balance is unchanged.
    """
    for _ in range(grace_period):
        interest = balance * monthly_rate
        insurance_amount = balance * insurance_rate
        if grace_type == GRACE_TOTAL:
            balance += interest + insurance_amount + fixed_fee
    return balance


def calculate_annuity(principal: Decimal, periods: int, combined_rate: Decimal) -> Decimal:
    """Return the fixed installment that repays ``principal`` in ``periods``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` the combined interest and insurance
    rate and ``n`` the number of payments. When the rate is zero the payment
    simplifies to ``P / n``. Non-positive periods or principal give zero.
    The fixed fee is not included.
    """
    if periods <= 0 or principal <= 0:
        return ZERO
    if combined_rate == 0:
        return principal / Decimal(periods)
    factor = (ONE + combined_rate) ** periods
    return principal * (combined_rate * factor) / (factor - ONE)


def _simulate(params: LoanParameters) -> CalculationResult:
    # Rates at or below -100% turn into NaN/Infinity figures, never an exception
    with _lenient_context():
        return _run_periods(params)


def _run_periods(params: LoanParameters) -> CalculationResult:
    """Run the period loop for one set of parameters.

    The installment is held in ``fixed_annuity`` and is only recomputed in
    the period a ``reduce_quota`` prepayment is applied.
    """
    total_months = params.total_months
    monthly_rate, annual_rate = normalize_rates(params.rate_type, params.rate_value)
    insurance_rate = params.insurance / HUNDRED
    combined_rate = monthly_rate + insurance_rate
    fixed_fee = params.fixed_fee

    balance = capitalize_grace_days(params.amount, monthly_rate, params.grace_days)
    forecast_balance = forecast_grace_balance(
        balance,
        params.grace_period,
        params.grace_type,
        monthly_rate,
        insurance_rate,
        fixed_fee,
    )
    amortization_months = total_months - params.grace_period
    fixed_annuity = calculate_annuity(forecast_balance, amortization_months, combined_rate)
    initial_annuity = fixed_annuity

    schedule: List[PaymentRow] = []
    total_interest = ZERO
    total_payment = ZERO
    total_insurance = ZERO
    total_fees = ZERO
    total_extra = ZERO
    last_period = 0

    for period in range(1, total_months + 1):
        payment_date = add_months(params.start_date, period)
        if params.grace_days:
            payment_date += timedelta(days=params.grace_days)

        is_extra_period = (
            period == params.extra_payment_month
            and params.extra_payment_amount > 0
            and period > params.grace_period
        )

        # Costs are charged on the opening balance
        interest = balance * monthly_rate
        insurance_amount = balance * insurance_rate
        fee = fixed_fee
        extra_applied = ZERO

        if period <= params.grace_period:
            carrying_cost = interest + insurance_amount + fee
            if params.grace_type == GRACE_TOTAL:
                amortization = -carrying_cost
                payment = ZERO
                balance += carrying_cost
            else:
                amortization = ZERO
                payment = carrying_cost
        else:
            regular_amortization = fixed_annuity - interest - insurance_amount
            closes_loan = balance <= regular_amortization or (
                period == total_months and params.extra_payment_strategy != REDUCE_TERM
            )
            if closes_loan:
                regular_amortization = balance
                payment = balance + interest + insurance_amount + fee
            else:
                payment = fixed_annuity + fee

            if is_extra_period:
                # Never prepay more than what is left after the regular capital
                extra_applied = min(params.extra_payment_amount, balance - regular_amortization)

            amortization = regular_amortization + extra_applied
            balance -= amortization

            if is_extra_period and params.extra_payment_strategy == REDUCE_QUOTA and balance > BALANCE_TOLERANCE:
                fixed_annuity = calculate_annuity(balance, total_months - period, combined_rate)

        if balance < BALANCE_TOLERANCE:
            balance = ZERO

        total_interest += interest
        total_payment += payment + extra_applied
        total_insurance += insurance_amount
        total_fees += fee
        total_extra += extra_applied

        schedule.append(
            PaymentRow(
                period=period,
                date=payment_date,
                interest=interest,
                amortization=amortization,
                insurance=insurance_amount,
                fee=fee,
                payment=payment + extra_applied,
                balance=balance,
                extra_payment=extra_applied if extra_applied > 0 else None,
            )
        )
        last_period = period

        if balance == 0 and period >= params.grace_period:
            break

    logger.debug(
        "Simulated %d of %d periods (strategy=%s, extra=%s)",
        last_period,
        total_months,
        params.extra_payment_strategy,
        params.extra_payment_amount,
    )

    summary = CalculationSummary(
        total_interest=total_interest,
        total_payment=total_payment,
        monthly_rate=monthly_rate,
        annual_rate=annual_rate,
        first_payment=initial_annuity + fixed_fee,
        regular_payment=fixed_annuity + fixed_fee,
        new_term=last_period,
        total_insurance=total_insurance,
        total_fees=total_fees,
        total_extra_payment=total_extra,
        end_date=schedule[-1].date if schedule else params.start_date,
    )
    return CalculationResult(schedule=schedule, summary=summary, start_date=params.start_date)


def _scenario_metrics(
    params: LoanParameters,
    summary: CalculationSummary,
    baseline: Optional[CalculationSummary] = None,
) -> ScenarioMetrics:
    savings = baseline.total_payment - summary.total_payment if baseline is not None else ZERO
    return ScenarioMetrics(
        total_payment=summary.total_payment,
        total_interest=summary.total_interest,
        term=summary.new_term or params.total_months,
        regular_payment=summary.regular_payment,
        savings=savings,
    )


def compare_scenarios(params: LoanParameters) -> ScenarioComparison:
    """Compare the loan without prepayment against both prepayment strategies.

    Each scenario is an independent run on a modified copy of ``params``;
    the caller's parameters are left untouched. Savings are measured in
    total cash paid relative to the no-prepayment baseline.
    """
    original = _simulate(replace(params, extra_payment_amount=ZERO)).summary
    by_term = _simulate(replace(params, extra_payment_strategy=REDUCE_TERM)).summary
    by_quota = _simulate(replace(params, extra_payment_strategy=REDUCE_QUOTA)).summary
    with _lenient_context():
        return ScenarioComparison(
            original=_scenario_metrics(params, original),
            reduce_term=_scenario_metrics(params, by_term, original),
            reduce_quota=_scenario_metrics(params, by_quota, original),
        )


def compute_schedule(params: LoanParameters) -> CalculationResult:
    """Compute the amortization schedule and summary for a loan.

    Parameters
    ----------
    params: LoanParameters
        The loan parameters. They are never modified.

    Returns
    -------
    CalculationResult
        The schedule rows in period order, the summary and the disbursement
        date. When ``extra_payment_amount`` is positive the summary also
        carries a ``ScenarioComparison``.

    Degenerate inputs (zero term, zero principal, zero rate) never raise;
    they produce an empty or short schedule with zero-valued totals. Rates
    below -100% have no real monthly equivalent and give NaN figures.
    """
    result = _simulate(params)
    if params.extra_payment_amount > 0:
        result.summary.comparison = compare_scenarios(params)
    return result


def outstanding_balance(params: LoanParameters, result: CalculationResult) -> Decimal:
    """Return the balance left after ``params.paid_installments`` installments.

    With no installments paid this is the disbursed amount. A cursor past
    the last row means the loan is already repaid.
    """
    if params.paid_installments <= 0:
        return params.amount
    for row in result.schedule:
        if row.period == params.paid_installments:
            return row.balance
    return ZERO


def suggested_extra_payment_month(paid_installments: int) -> int:
    """Return the first unpaid period, where a prepayment can still apply."""
    return max(paid_installments, 0) + 1

