"""
Deposit Calculator Module

Maturity and interest computation for member payment requests:
recurring (RD), fixed (FD), overdraft (OD) and certificate (CD) deposits.
Also generates RD contribution schedules and OD repayment schedules and
computes late fees on overdue requests.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import List, Optional, Union
from enum import Enum

from .config import get_config
from .currency import Money, Currency, to_decimal
from .dates import add_months, days_between
from .errors import ValidationError
from . import rates


class DepositType(Enum):
    """Payment request instrument types"""
    RECURRING = "RD"       # Periodic equal contributions
    FIXED = "FD"           # Lump sum, monthly compounding
    OVERDRAFT = "OD"       # Revolving credit, day-rate simple interest
    CERTIFICATE = "CD"     # Day-rate simple interest

    @property
    def requires_duration(self) -> bool:
        return self in (DepositType.RECURRING, DepositType.FIXED)

    @classmethod
    def parse(cls, value: Union['DepositType', str]) -> 'DepositType':
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        for member in cls:
            if text in (member.name, member.value):
                return member
        raise ValidationError(f"Invalid payment type: {value}")


class Frequency(Enum):
    """Contribution frequency for recurring deposits"""
    MONTHLY = ("MONTHLY", 1, 12)
    WEEKLY = ("WEEKLY", 4, 52)
    DAILY = ("DAILY", 30, 365)

    def __init__(self, label: str, periods_per_month: int, periods_per_year: int):
        self.label = label
        self.periods_per_month = periods_per_month
        self.periods_per_year = periods_per_year

    @classmethod
    def parse(cls, value: Union['Frequency', str, None]) -> Optional['Frequency']:
        if value is None or isinstance(value, cls):
            return value
        return cls.__members__.get(str(value).strip().upper())


class PaymentRequestStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class DepositRequest:
    """Immutable payment request snapshot"""
    deposit_type: DepositType
    amount: Decimal
    annual_rate_percent: Decimal
    due_date: Optional[date] = None
    duration_months: Optional[int] = None       # Required for RD and FD
    frequency: Optional[Frequency] = None       # RD only
    days: Optional[int] = None                  # OD/CD day count override
    request_id: Optional[str] = None
    status: PaymentRequestStatus = PaymentRequestStatus.PENDING
    currency: Currency = Currency.INR


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str]


@dataclass(frozen=True)
class MaturityResult:
    """
    Outcome of a deposit calculation.

    ``total_deposited`` is the sum of contributions for RD and the principal
    otherwise; ``maturity_amount`` is what the member holds at the end.
    """
    deposit_type: DepositType
    total_deposited: Money
    interest_earned: Money
    maturity_amount: Money
    maturity_date: Optional[date] = None
    periods: Optional[int] = None               # RD contribution count
    days: Optional[int] = None                  # OD/CD day count

    @property
    def total_amount(self) -> Money:
        return self.maturity_amount


@dataclass(frozen=True)
class RecurringInstallment:
    installment: int
    due_date: Optional[date]
    amount: Money
    running_balance: Money
    interest_earned: Money          # Cumulative
    total_amount: Money


@dataclass(frozen=True)
class OverdraftInstallment:
    installment: int
    emi: Money
    principal_paid: Money
    interest_paid: Money
    remaining_balance: Money


class DepositCalculator:
    """Dispatches maturity calculations on deposit type"""

    def __init__(self, days_per_month: Optional[int] = None, max_duration_months: Optional[int] = None,
                 late_fee_rate: Optional[Decimal] = None, late_fee_cap: Optional[Decimal] = None):
        config = get_config()
        self.days_per_month = days_per_month if days_per_month is not None else config.default_days_per_month
        self.max_duration_months = (
            max_duration_months if max_duration_months is not None else config.max_deposit_duration_months
        )
        self.late_fee_rate = to_decimal(late_fee_rate if late_fee_rate is not None else config.deposit_late_fee_rate)
        self.late_fee_cap = to_decimal(late_fee_cap if late_fee_cap is not None else config.deposit_late_fee_cap)

    def validate_params(self, deposit_type, amount, rate, duration=None,
                        frequency=None, days=None) -> ValidationResult:
        """Collect every problem with the parameters instead of stopping at the first"""
        errors = []

        try:
            kind = DepositType.parse(deposit_type)
        except ValidationError as e:
            return ValidationResult(False, [str(e)])

        if not _is_positive(amount):
            errors.append("Amount must be greater than 0")

        rate_value = _decimal_or_none(rate)
        if rate_value is None or rate_value < 0 or rate_value > 100:
            errors.append("Interest rate must be between 0 and 100")

        if kind.requires_duration:
            if not _is_int(duration) or not 1 <= duration <= self.max_duration_months:
                errors.append(f"Duration must be between 1 and {self.max_duration_months} months")

        if kind == DepositType.RECURRING and Frequency.parse(frequency) is None:
            errors.append("Frequency must be MONTHLY, WEEKLY, or DAILY")

        if days is not None and (not _is_int(days) or days < 0):
            errors.append("Days must be a whole number, 0 or more")

        return ValidationResult(is_valid=not errors, errors=errors)

    def validate(self, request: DepositRequest) -> ValidationResult:
        return self.validate_params(
            request.deposit_type, request.amount, request.annual_rate_percent,
            request.duration_months, request.frequency, request.days
        )

    def calculate_maturity(self, request: DepositRequest) -> MaturityResult:
        """
        Compute interest and maturity amount for a payment request.

        Raises:
            ValidationError: With every failed rule listed in ``errors``
        """
        result = self.validate(request)
        if not result.is_valid:
            raise ValidationError("; ".join(result.errors), result.errors)

        kind = DepositType.parse(request.deposit_type)
        if kind == DepositType.RECURRING:
            return self._recurring_maturity(request)
        if kind == DepositType.FIXED:
            return self._fixed_maturity(request)
        return self._day_rate_interest(request, kind)

    def _recurring_maturity(self, request: DepositRequest) -> MaturityResult:
        """
        Each contribution earns simple interest for the periods remaining
        until maturity, counting its own period: contribution i of N earns
        for N - i + 1 periods. WEEKLY and DAILY split the monthly amount
        into 4 and 30 contributions a month.
        """
        currency = request.currency
        frequency = Frequency.parse(request.frequency)
        monthly_amount = to_decimal(request.amount)
        duration = request.duration_months

        periods = duration * frequency.periods_per_month
        contribution = monthly_amount / Decimal(frequency.periods_per_month)
        period_rate = to_decimal(request.annual_rate_percent) / Decimal(frequency.periods_per_year) / rates.HUNDRED

        # sum of (N - i + 1) over i = 1..N
        period_weight = Decimal(periods * (periods + 1) // 2)
        interest = contribution * period_rate * period_weight
        total_deposited = monthly_amount * duration

        return MaturityResult(
            deposit_type=DepositType.RECURRING,
            total_deposited=Money(total_deposited, currency),
            interest_earned=Money(interest, currency),
            maturity_amount=Money(total_deposited + interest, currency),
            maturity_date=self._maturity_date(request),
            periods=periods
        )

    def _fixed_maturity(self, request: DepositRequest) -> MaturityResult:
        currency = request.currency
        principal = to_decimal(request.amount)
        interest = rates.compound_interest_exact(
            principal, request.annual_rate_percent, request.duration_months, compoundings_per_year=12
        )

        return MaturityResult(
            deposit_type=DepositType.FIXED,
            total_deposited=Money(principal, currency),
            interest_earned=Money(interest, currency),
            maturity_amount=Money(principal + interest, currency),
            maturity_date=self._maturity_date(request)
        )

    def _day_rate_interest(self, request: DepositRequest, kind: DepositType) -> MaturityResult:
        currency = request.currency
        amount = to_decimal(request.amount)
        days = self.day_count(request)
        interest = amount * rates.daily_rate(request.annual_rate_percent) * Decimal(days)

        return MaturityResult(
            deposit_type=kind,
            total_deposited=Money(amount, currency),
            interest_earned=Money(interest, currency),
            maturity_amount=Money(amount + interest, currency),
            days=days
        )

    def day_count(self, request: DepositRequest) -> int:
        """Explicit day count, else duration in 30-day months, else 0"""
        if request.days is not None:
            return request.days
        return (request.duration_months or 0) * self.days_per_month

    def _maturity_date(self, request: DepositRequest) -> Optional[date]:
        if request.due_date is None:
            return None
        return add_months(request.due_date, request.duration_months)

    def recurring_schedule(self, request: DepositRequest) -> List[RecurringInstallment]:
        """
        Monthly contribution schedule with running balance and cumulative
        interest. Installment i falls due i - 1 months after the first.
        """
        result = self.validate(request)
        if not result.is_valid:
            raise ValidationError("; ".join(result.errors), result.errors)
        if DepositType.parse(request.deposit_type) != DepositType.RECURRING:
            raise ValidationError("Contribution schedules exist only for recurring deposits")

        currency = request.currency
        amount = to_decimal(request.amount)
        monthly = rates.monthly_rate(request.annual_rate_percent)
        duration = request.duration_months

        schedule = []
        running_balance = Decimal('0')
        total_interest = Decimal('0')

        for i in range(1, duration + 1):
            running_balance += amount
            total_interest += amount * monthly * (duration - i + 1)
            due = add_months(request.due_date, i - 1) if request.due_date else None

            schedule.append(RecurringInstallment(
                installment=i,
                due_date=due,
                amount=Money(amount, currency),
                running_balance=Money(running_balance, currency),
                interest_earned=Money(total_interest, currency),
                total_amount=Money(running_balance + total_interest, currency)
            ))

        return schedule

    def overdraft_repayment_schedule(self, principal: Decimal, rate_percent: Decimal,
                                     duration_months: int,
                                     currency: Currency = Currency.INR) -> List[OverdraftInstallment]:
        """EMI repayment plan for an overdraft; interest is not rounded between rows"""
        if not _is_positive(principal):
            raise ValidationError("Amount must be greater than 0")
        if not _is_int(duration_months) or duration_months < 1:
            raise ValidationError("Duration must be at least 1 month")

        emi = rates.emi(principal, rate_percent, duration_months)
        monthly = rates.monthly_rate(rate_percent)
        remaining = to_decimal(principal)
        schedule = []

        for i in range(1, duration_months + 1):
            interest = remaining * monthly
            principal_paid = emi - interest
            remaining -= principal_paid

            schedule.append(OverdraftInstallment(
                installment=i,
                emi=Money(emi, currency),
                principal_paid=Money(principal_paid, currency),
                interest_paid=Money(interest, currency),
                remaining_balance=Money(max(Decimal('0'), remaining), currency)
            ))

        return schedule

    def late_fee(self, amount: Decimal, days_late: int, currency: Currency = Currency.INR) -> Money:
        """``amount * rate * days``, capped at a fraction of the amount"""
        if days_late <= 0:
            return Money.zero(currency)
        principal = to_decimal(amount)
        fee = principal * self.late_fee_rate * Decimal(days_late)
        return Money(min(fee, principal * self.late_fee_cap), currency)

    def is_overdue(self, request: DepositRequest, as_of: date) -> bool:
        return (
            request.status == PaymentRequestStatus.PENDING
            and request.due_date is not None
            and as_of > request.due_date
        )

    def request_late_fee(self, request: DepositRequest, as_of: date) -> Money:
        if not self.is_overdue(request, as_of):
            return Money.zero(request.currency)
        return self.late_fee(request.amount, days_between(request.due_date, as_of), request.currency)


def _decimal_or_none(value) -> Optional[Decimal]:
    try:
        return to_decimal(value)
    except ValidationError:
        return None


def _is_positive(value) -> bool:
    number = _decimal_or_none(value)
    return number is not None and number > 0


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
