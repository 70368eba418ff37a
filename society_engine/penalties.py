"""
Certificate Deposit Penalty Module

Day-of-month grace rule for certificate-style (CD) payment requests:

- Due on or before the 15th: no penalty until the 16th, then one
  penalty day for each day of the month past the 15th.
- Due after the 15th: every day late is a penalty day.

Each penalty day costs a flat amount (10 by default).

The rule looks only at the day of the month of the as-of date. A request
due on the 5th and checked eleven months later on the 20th scores 5 penalty
days, not eleven months' worth.

TODO: confirm with the society whether penalty days should accumulate
across month boundaries.
"""

import calendar
from decimal import Decimal
from datetime import date, timedelta
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .config import get_config
from .currency import Money, Currency, to_decimal
from .dates import days_between
from .deposits import DepositRequest, DepositType, PaymentRequestStatus
from .errors import ValidationError


@dataclass(frozen=True)
class PenaltyAssessment:
    has_penalty: bool
    penalty_amount: Money
    days_late: int
    penalty_days: int
    penalty_per_day: Money
    message: str
    due_date: Optional[date] = None
    as_of: Optional[date] = None


@dataclass(frozen=True)
class PenaltyLine:
    """One request's assessment within a batch"""
    request_id: Optional[str]
    deposit_type: DepositType
    amount: Money
    due_date: date
    status: PaymentRequestStatus
    penalty: PenaltyAssessment

    @property
    def total_amount_with_penalty(self) -> Money:
        return self.amount + self.penalty.penalty_amount


@dataclass(frozen=True)
class PenaltySummary:
    total_payments: int
    overdue_count: int
    on_time_count: int
    total_penalty: Money
    total_amount: Money
    total_amount_with_penalty: Money
    breakdown: List[PenaltyLine]
    message: str

    @property
    def has_overdue(self) -> bool:
        return self.overdue_count > 0


class GracePeriodPenaltyCalculator:
    """Flat per-day penalty after a day-of-month grace boundary"""

    def __init__(self, grace_day: Optional[int] = None, penalty_per_day: Optional[Decimal] = None,
                 currency: Currency = Currency.INR):
        config = get_config()
        self.grace_day = grace_day if grace_day is not None else config.certificate_grace_day
        per_day = penalty_per_day if penalty_per_day is not None else config.certificate_penalty_per_day
        self.penalty_per_day = Money(to_decimal(per_day), currency)
        self.currency = currency

    def calculate(self, due_date: date, as_of: date) -> PenaltyAssessment:
        """Assess the penalty on a request due ``due_date`` as of ``as_of``"""
        if as_of <= due_date:
            return PenaltyAssessment(
                has_penalty=False,
                penalty_amount=Money.zero(self.currency),
                days_late=0,
                penalty_days=0,
                penalty_per_day=self.penalty_per_day,
                message="Payment is not overdue",
                due_date=due_date,
                as_of=as_of
            )

        days_late = days_between(due_date, as_of)

        if due_date.day <= self.grace_day:
            penalty_days = max(0, as_of.day - self.grace_day)
        else:
            penalty_days = days_late

        penalty_amount = self.penalty_per_day * penalty_days
        has_penalty = penalty_amount.is_positive()

        if has_penalty:
            message = f"Penalty of {penalty_amount.to_string()} for {penalty_days} days after grace period"
        else:
            message = "No penalty applicable"

        return PenaltyAssessment(
            has_penalty=has_penalty,
            penalty_amount=penalty_amount,
            days_late=days_late,
            penalty_days=penalty_days,
            penalty_per_day=self.penalty_per_day,
            message=message,
            due_date=due_date,
            as_of=as_of
        )

    def is_penalty_applicable(self, due_date: date, as_of: date) -> bool:
        return self.calculate(due_date, as_of).has_penalty

    def next_penalty_date(self, due_date: date, as_of: date) -> Optional[date]:
        """
        First day after ``as_of`` on which the penalty grows, or None if the
        grace day leaves no later day of any month to count.
        """
        start = max(as_of, due_date) + timedelta(days=1)
        if due_date.day > self.grace_day or start.day > self.grace_day:
            return start
        if self.grace_day >= 31:
            return None

        year, month = start.year, start.month
        while calendar.monthrange(year, month)[1] <= self.grace_day:
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        return date(year, month, self.grace_day + 1)

    def assess_many(self, deposits: Iterable[DepositRequest], as_of: date) -> List[PenaltyLine]:
        lines = []
        for deposit in deposits:
            if deposit.due_date is None:
                raise ValidationError(f"Payment request {deposit.request_id} has no due date")
            lines.append(PenaltyLine(
                request_id=deposit.request_id,
                deposit_type=DepositType.parse(deposit.deposit_type),
                amount=Money(to_decimal(deposit.amount), self.currency),
                due_date=deposit.due_date,
                status=deposit.status,
                penalty=self.calculate(deposit.due_date, as_of)
            ))
        return lines

    def summarize(self, deposits: Iterable[DepositRequest], as_of: date) -> PenaltySummary:
        """Aggregate penalties over a member's certificate payment requests"""
        lines = self.assess_many(deposits, as_of)
        zero = Money.zero(self.currency)

        total_penalty = sum((line.penalty.penalty_amount for line in lines), zero)
        total_amount = sum((line.amount for line in lines), zero)
        overdue = sum(1 for line in lines if line.penalty.has_penalty)

        if overdue:
            message = f"Total penalty: {total_penalty.to_string()} for {overdue} overdue payment(s)"
        else:
            message = "All payments are on time"

        return PenaltySummary(
            total_payments=len(lines),
            overdue_count=overdue,
            on_time_count=len(lines) - overdue,
            total_penalty=total_penalty,
            total_amount=total_amount,
            total_amount_with_penalty=total_amount + total_penalty,
            breakdown=lines,
            message=message
        )
