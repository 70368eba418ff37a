"""
Loan Module

Loan data model and amortization: EMI computation, installment schedule
generation with principal/interest split, and the loan approval lifecycle.
Every operation returns a new snapshot; nothing here mutates its input.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional, Tuple
from enum import Enum

from .config import get_config
from .currency import Money, Currency, to_decimal, round_money
from .dates import add_months
from .errors import InvalidScheduleInput, InvalidStatusTransition, ValidationError
from . import rates


class LoanStatus(Enum):
    """Loan lifecycle states"""
    PENDING = "PENDING"          # Application received
    APPROVED = "APPROVED"        # Approved, schedule generated
    ACTIVE = "ACTIVE"            # Funds released, repayments running
    OVERDUE = "OVERDUE"          # Penalised by the overdue batch
    COMPLETED = "COMPLETED"      # Every installment paid
    DEFAULTED = "DEFAULTED"      # Marked by an administrator
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return not _LOAN_TRANSITIONS[self]

    def can_transition_to(self, target: 'LoanStatus') -> bool:
        return target in _LOAN_TRANSITIONS[self]


_LOAN_TRANSITIONS: Dict[LoanStatus, FrozenSet[LoanStatus]] = {
    LoanStatus.PENDING: frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED, LoanStatus.CANCELLED}),
    LoanStatus.APPROVED: frozenset({
        LoanStatus.ACTIVE, LoanStatus.OVERDUE, LoanStatus.COMPLETED,
        LoanStatus.DEFAULTED, LoanStatus.CANCELLED
    }),
    LoanStatus.ACTIVE: frozenset({LoanStatus.OVERDUE, LoanStatus.COMPLETED, LoanStatus.DEFAULTED}),
    LoanStatus.OVERDUE: frozenset({LoanStatus.COMPLETED, LoanStatus.DEFAULTED}),
    LoanStatus.COMPLETED: frozenset(),
    LoanStatus.DEFAULTED: frozenset(),
    LoanStatus.REJECTED: frozenset(),
    LoanStatus.CANCELLED: frozenset(),
}


class InstallmentStatus(Enum):
    """Installment states; PAID and DEFAULTED are terminal"""
    PENDING = "PENDING"
    PAID = "PAID"
    DEFAULTED = "DEFAULTED"

    def can_transition_to(self, target: 'InstallmentStatus') -> bool:
        return self == InstallmentStatus.PENDING and target != InstallmentStatus.PENDING


@dataclass(frozen=True)
class LoanSnapshot:
    """Immutable loan terms handed in by the service layer"""
    principal: Decimal
    annual_rate_percent: Decimal        # e.g. 12 for 12% p.a.
    duration_months: int
    start_date: date
    currency: Currency = Currency.INR


@dataclass(frozen=True)
class Installment:
    """Single entry in a repayment schedule"""
    number: int
    due_date: date
    amount: Money
    principal_portion: Money
    interest_portion: Money
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_at: Optional[date] = None
    late_fee: Optional[Money] = None

    def __post_init__(self):
        if self.late_fee is None:
            object.__setattr__(self, 'late_fee', Money.zero(self.amount.currency))
        if self.late_fee.is_negative():
            raise ValueError("Late fee cannot be negative")

    @property
    def is_pending(self) -> bool:
        return self.status == InstallmentStatus.PENDING

    def is_overdue(self, as_of: date) -> bool:
        return self.is_pending and self.due_date < as_of

    def transition(self, target: InstallmentStatus, on: Optional[date] = None) -> 'Installment':
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransition(
                f"Installment {self.number} cannot move from {self.status.value} to {target.value}"
            )
        paid_at = on if target == InstallmentStatus.PAID else self.paid_at
        return replace(self, status=target, paid_at=paid_at)


@dataclass(frozen=True)
class LoanSchedule:
    """Ordered installments plus derived totals"""
    principal: Money
    annual_rate_percent: Decimal
    start_date: date
    emi_amount: Money
    total_interest: Money
    total_amount: Money
    installments: Tuple[Installment, ...]

    def __post_init__(self):
        numbers = [inst.number for inst in self.installments]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError("Installments must be numbered contiguously from 1")

    @property
    def duration_months(self) -> int:
        return len(self.installments)

    @property
    def currency(self) -> Currency:
        return self.principal.currency

    @property
    def all_paid(self) -> bool:
        return all(inst.status == InstallmentStatus.PAID for inst in self.installments)

    @property
    def residual_balance(self) -> Money:
        """Principal left unscheduled after per-installment rounding"""
        scheduled = sum((inst.principal_portion.amount for inst in self.installments), Decimal('0'))
        return Money(self.principal.amount - scheduled, self.currency)

    def installment(self, number: int) -> Optional[Installment]:
        if 1 <= number <= len(self.installments):
            return self.installments[number - 1]
        return None

    def with_installments(self, installments: List[Installment]) -> 'LoanSchedule':
        return replace(self, installments=tuple(installments))


@dataclass(frozen=True)
class LoanPayment:
    """Record of a payment against one installment"""
    installment_number: int
    amount: Money
    paid_at: date
    payment_method: Optional[str] = None    # UPI, CASH, ... opaque to the engine
    reference: Optional[str] = None


@dataclass(frozen=True)
class LoanNote:
    note: str
    added_at: date
    added_by: Optional[str] = None          # None for system-generated notes


@dataclass(frozen=True)
class LoanLedgerState:
    """
    Loan aggregate derived from a schedule and its payment history.

    Created as an application (PENDING, no schedule), given a schedule at
    approval, then moved along by payments, overdue assessment and the
    penalty batch.
    """
    loan_id: str
    terms: LoanSnapshot
    status: LoanStatus = LoanStatus.PENDING
    schedule: Optional[LoanSchedule] = None
    current_balance: Optional[Money] = None
    overdue_amount: Optional[Money] = None
    total_late_fee: Optional[Money] = None
    expected_end_date: Optional[date] = None
    actual_end_date: Optional[date] = None
    last_penalty_assessed_date: Optional[date] = None
    rejection_reason: Optional[str] = None
    notes: Tuple[LoanNote, ...] = field(default_factory=tuple)
    payments: Tuple[LoanPayment, ...] = field(default_factory=tuple)

    def __post_init__(self):
        zero = Money.zero(self.terms.currency)
        for name in ('current_balance', 'overdue_amount', 'total_late_fee'):
            if getattr(self, name) is None:
                object.__setattr__(self, name, zero)

    @property
    def principal(self) -> Money:
        return Money(self.terms.principal, self.terms.currency)

    @property
    def start_date(self) -> date:
        return self.terms.start_date

    def with_status(self, target: LoanStatus, **changes) -> 'LoanLedgerState':
        """Move to ``target`` if the lifecycle allows it"""
        if target != self.status and not self.status.can_transition_to(target):
            raise InvalidStatusTransition(
                f"Loan {self.loan_id} cannot move from {self.status.value} to {target.value}"
            )
        return replace(self, status=target, **changes)

    def with_note(self, note: str, on: date, added_by: Optional[str] = None) -> 'LoanLedgerState':
        return replace(self, notes=self.notes + (LoanNote(note, on, added_by),))


class AmortizationEngine:
    """
    Builds equal-installment repayment schedules and drives the approval
    part of the loan lifecycle.
    """

    def __init__(self, absorb_residual: Optional[bool] = None):
        if absorb_residual is None:
            absorb_residual = get_config().schedule_absorb_residual
        self.absorb_residual = absorb_residual

    def build_schedule(self, snapshot: LoanSnapshot) -> LoanSchedule:
        """
        Compute EMI and the full installment schedule for a loan.

        Interest and principal are rounded per installment, so the balance
        left after the last installment need not be exactly zero. With
        ``absorb_residual`` the final principal portion takes up whatever
        is left and that installment's amount changes accordingly.

        Raises:
            InvalidScheduleInput: If principal, rate or duration is missing
                or out of range
        """
        principal, rate, duration = self._validated_terms(snapshot)
        currency = snapshot.currency

        periodic_rate = rates.monthly_rate(rate)
        emi_exact = rates.emi_exact(principal, rate, duration)
        emi_amount = round_money(emi_exact, currency)
        if periodic_rate == Decimal('0'):
            total_interest = Decimal('0')
        else:
            total_interest = round_money(emi_exact * duration - principal, currency)
        total_amount = principal + total_interest

        remaining = principal
        installments = []

        for number in range(1, duration + 1):
            if periodic_rate == Decimal('0'):
                interest = Decimal('0')
                principal_part = emi_amount
            else:
                interest = round_money(remaining * periodic_rate, currency)
                principal_part = round_money(emi_amount - interest, currency)

            amount = emi_amount
            if number == duration and self.absorb_residual:
                principal_part = remaining
                amount = principal_part + interest

            remaining -= principal_part

            installments.append(Installment(
                number=number,
                due_date=add_months(snapshot.start_date, number),
                amount=Money(amount, currency),
                principal_portion=Money(principal_part, currency),
                interest_portion=Money(interest, currency)
            ))

        return LoanSchedule(
            principal=Money(principal, currency),
            annual_rate_percent=rate,
            start_date=snapshot.start_date,
            emi_amount=Money(emi_amount, currency),
            total_interest=Money(total_interest, currency),
            total_amount=Money(total_amount, currency),
            installments=tuple(installments)
        )

    def new_application(self, loan_id: str, snapshot: LoanSnapshot) -> LoanLedgerState:
        """Create a PENDING loan awaiting approval"""
        if not loan_id:
            raise ValidationError("Loan id is required")
        return LoanLedgerState(loan_id=loan_id, terms=snapshot)

    def approve(self, ledger: LoanLedgerState, start_date: Optional[date] = None,
                note: Optional[str] = None, approved_by: Optional[str] = None) -> LoanLedgerState:
        """
        Approve a loan: fix its start date, generate the schedule and set
        the outstanding balance to principal plus total interest.
        """
        if ledger.status != LoanStatus.PENDING:
            raise InvalidStatusTransition(
                f"Only PENDING loans can be approved, loan {ledger.loan_id} is {ledger.status.value}"
            )

        terms = replace(ledger.terms, start_date=start_date) if start_date else ledger.terms
        schedule = self.build_schedule(terms)

        approved = replace(ledger, terms=terms).with_status(
            LoanStatus.APPROVED,
            schedule=schedule,
            current_balance=schedule.total_amount,
            expected_end_date=add_months(terms.start_date, terms.duration_months)
        )
        if note:
            approved = approved.with_note(note, terms.start_date, approved_by)
        return approved

    def open_ledger(self, loan_id: str, snapshot: LoanSnapshot) -> LoanLedgerState:
        """Application and approval in one step"""
        return self.approve(self.new_application(loan_id, snapshot))

    def activate(self, ledger: LoanLedgerState) -> LoanLedgerState:
        """Release funds; payments already taken while APPROVED stay on the balance"""
        if ledger.schedule is None:
            raise InvalidStatusTransition(f"Loan {ledger.loan_id} has no schedule to activate")
        return ledger.with_status(LoanStatus.ACTIVE)

    def reject(self, ledger: LoanLedgerState, reason: str, on: date) -> LoanLedgerState:
        rejected = ledger.with_status(LoanStatus.REJECTED, rejection_reason=reason)
        return rejected.with_note(f"Loan rejected - {reason}", on)

    def cancel(self, ledger: LoanLedgerState, on: date, note: Optional[str] = None) -> LoanLedgerState:
        cancelled = ledger.with_status(LoanStatus.CANCELLED)
        return cancelled.with_note(note or "Loan cancelled", on)

    def _validated_terms(self, snapshot: LoanSnapshot) -> Tuple[Decimal, Decimal, int]:
        errors = []
        principal = rate = None

        try:
            principal = to_decimal(snapshot.principal)
            if principal <= 0:
                errors.append("Principal must be greater than 0")
        except ValidationError:
            errors.append("Principal is required")

        try:
            rate = to_decimal(snapshot.annual_rate_percent)
            if rate < 0 or rate > 100:
                errors.append("Interest rate must be between 0 and 100")
        except ValidationError:
            errors.append("Interest rate is required")

        duration = snapshot.duration_months
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 1:
            errors.append("Duration must be a whole number of months, at least 1")

        if not isinstance(snapshot.start_date, date):
            errors.append("Start date is required")

        if errors:
            raise InvalidScheduleInput("; ".join(errors), errors)

        return round_money(principal, snapshot.currency), rate, duration
