"""
Overdue Assessment Module

Determines overdue installments and late fees for a loan schedule, records
installment payments, and handles administrative default. All functions
return new snapshots; the caller persists them.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import date
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .config import get_config
from .currency import Money, to_decimal, round_money
from .dates import days_between
from .errors import InstallmentNotFound, InvalidStatusTransition, ValidationError
from .loans import (
    Installment, InstallmentStatus, LoanLedgerState, LoanPayment,
    LoanSchedule, LoanStatus
)


@dataclass(frozen=True)
class OverdueResult:
    overdue_amount: Money
    total_late_fee: Money
    schedule: LoanSchedule
    overdue_installments: Tuple[int, ...] = ()


@dataclass(frozen=True)
class PaymentResult:
    ledger: LoanLedgerState
    new_balance: Money
    completed: bool

    @property
    def schedule(self) -> LoanSchedule:
        return self.ledger.schedule


@dataclass(frozen=True)
class LoanSummary:
    """Member-facing view of a loan's repayment progress"""
    loan_id: str
    status: LoanStatus
    emi_amount: Money
    total_amount: Money
    current_balance: Money
    overdue_amount: Money
    total_late_fee: Money
    is_overdue: bool
    next_payment: Optional[Installment]
    total_installments: int
    paid_installments: int
    pending_installments: int
    overdue_installments: int
    progress_percentage: int


def months_late(due_date: date, as_of: date, days_per_month: int = 30) -> int:
    """Started 30-day months between due date and as-of date"""
    days = days_between(due_date, as_of)
    if days <= 0:
        return 0
    return -(-days // days_per_month)


class OverdueAssessor:
    """
    Assesses overdue installments and late fees and records payments.

    Late fee per overdue installment: ``amount * rate * months_late`` where
    months late counts started 30-day periods since the due date.
    """

    PAYABLE_STATUSES = frozenset({
        LoanStatus.APPROVED, LoanStatus.ACTIVE, LoanStatus.OVERDUE, LoanStatus.DEFAULTED
    })

    def __init__(self, late_fee_rate: Optional[Decimal] = None, days_per_month: Optional[int] = None):
        config = get_config()
        self.late_fee_rate = to_decimal(late_fee_rate if late_fee_rate is not None else config.loan_late_fee_rate)
        self.days_per_month = days_per_month if days_per_month is not None else config.default_days_per_month

    def is_overdue(self, schedule: LoanSchedule, as_of: date) -> bool:
        """True iff some PENDING installment fell due before ``as_of``"""
        return any(inst.is_overdue(as_of) for inst in schedule.installments)

    def assess_overdue(self, schedule: LoanSchedule, as_of: date) -> OverdueResult:
        """
        Sum overdue installment amounts and late fees as of a date.

        Returns a new schedule whose overdue installments carry their
        computed late fee; other installments are left untouched.
        """
        currency = schedule.currency
        overdue_amount = Decimal('0')
        total_late_fee = Decimal('0')
        overdue_numbers = []
        installments = []

        for inst in schedule.installments:
            if inst.is_overdue(as_of):
                late = months_late(inst.due_date, as_of, self.days_per_month)
                fee = round_money(inst.amount.amount * self.late_fee_rate * late, currency)
                inst = replace(inst, late_fee=Money(fee, currency))

                overdue_amount += inst.amount.amount
                total_late_fee += fee
                overdue_numbers.append(inst.number)
            installments.append(inst)

        return OverdueResult(
            overdue_amount=Money(overdue_amount, currency),
            total_late_fee=Money(total_late_fee, currency),
            schedule=schedule.with_installments(installments),
            overdue_installments=tuple(overdue_numbers)
        )

    def assess_ledger(self, ledger: LoanLedgerState, as_of: date) -> LoanLedgerState:
        """
        Write a fresh overdue assessment onto the ledger.

        The assessed totals replace ``overdue_amount`` and ``total_late_fee``
        outright, so a flat penalty the batch added earlier is dropped.
        The batch never re-penalises an OVERDUE loan, so it does not come back.

        TODO: decide with the society whether the batch penalty should
        survive re-assessment.
        """
        if ledger.schedule is None:
            return ledger
        result = self.assess_overdue(ledger.schedule, as_of)
        return replace(
            ledger,
            schedule=result.schedule,
            overdue_amount=result.overdue_amount,
            total_late_fee=result.total_late_fee
        )

    def record_payment(
        self,
        ledger: LoanLedgerState,
        installment_number: int,
        paid_amount: Decimal,
        as_of: date,
        payment_method: Optional[str] = None,
        reference: Optional[str] = None
    ) -> PaymentResult:
        """
        Mark an installment PAID and reduce the outstanding balance.

        Args:
            ledger: Loan state holding the schedule
            installment_number: 1-based installment number
            paid_amount: Amount received; reduces the balance, floored at 0
            as_of: Business date of the payment
            payment_method: Opaque label recorded in the payment history
            reference: Gateway or receipt reference

        Returns:
            PaymentResult with the updated ledger

        Raises:
            InstallmentNotFound: If the installment does not exist or is
                already PAID, so a replayed payment never reduces the
                balance twice
            InvalidStatusTransition: If the installment was DEFAULTED or
                the loan does not accept payments
            ValidationError: If the amount is not positive
        """
        if ledger.status not in self.PAYABLE_STATUSES:
            raise InvalidStatusTransition(
                f"Loan {ledger.loan_id} is {ledger.status.value} and does not accept payments"
            )

        schedule = ledger.schedule
        installment = schedule.installment(installment_number) if schedule else None
        if installment is None:
            raise InstallmentNotFound(
                f"Installment {installment_number} not found on loan {ledger.loan_id}"
            )
        if installment.status == InstallmentStatus.PAID:
            raise InstallmentNotFound(
                f"Installment {installment_number} on loan {ledger.loan_id} is already paid"
            )

        amount = Money(to_decimal(paid_amount), schedule.currency)
        if not amount.is_positive():
            raise ValidationError("Payment amount must be greater than 0")

        paid = installment.transition(InstallmentStatus.PAID, as_of)
        installments = list(schedule.installments)
        installments[installment_number - 1] = paid
        new_schedule = schedule.with_installments(installments)

        new_balance = (ledger.current_balance - amount).floor_at_zero()
        payment = LoanPayment(installment_number, amount, as_of, payment_method, reference)

        updated = replace(
            ledger,
            schedule=new_schedule,
            current_balance=new_balance,
            payments=ledger.payments + (payment,)
        )

        completed = new_schedule.all_paid
        if completed and ledger.status.can_transition_to(LoanStatus.COMPLETED):
            updated = updated.with_status(LoanStatus.COMPLETED, actual_end_date=as_of)

        return PaymentResult(ledger=updated, new_balance=new_balance, completed=completed)

    def mark_defaulted(self, ledger: LoanLedgerState, as_of: date,
                       note: Optional[str] = None, added_by: Optional[str] = None) -> LoanLedgerState:
        """
        Administrative default: the loan becomes DEFAULTED and every PENDING
        installment already past due becomes DEFAULTED with it.
        """
        defaulted = ledger.with_status(LoanStatus.DEFAULTED)

        if ledger.schedule is not None:
            installments = [
                inst.transition(InstallmentStatus.DEFAULTED) if inst.is_overdue(as_of) else inst
                for inst in ledger.schedule.installments
            ]
            defaulted = replace(defaulted, schedule=ledger.schedule.with_installments(installments))

        if note:
            defaulted = defaulted.with_note(f"Loan marked as defaulted - {note}", as_of, added_by)
        return defaulted

    def summarize(self, ledger: LoanLedgerState, as_of: date) -> LoanSummary:
        schedule = ledger.schedule
        installments = schedule.installments if schedule else ()
        currency = ledger.terms.currency

        paid = sum(1 for inst in installments if inst.status == InstallmentStatus.PAID)
        pending = [inst for inst in installments if inst.is_pending]
        overdue = [inst for inst in pending if inst.is_overdue(as_of)]
        total = len(installments)

        return LoanSummary(
            loan_id=ledger.loan_id,
            status=ledger.status,
            emi_amount=schedule.emi_amount if schedule else Money.zero(currency),
            total_amount=schedule.total_amount if schedule else Money.zero(currency),
            current_balance=ledger.current_balance,
            overdue_amount=ledger.overdue_amount,
            total_late_fee=ledger.total_late_fee,
            is_overdue=bool(overdue),
            next_payment=pending[0] if pending else None,
            total_installments=total,
            paid_installments=paid,
            pending_installments=len(pending),
            overdue_installments=len(overdue),
            progress_percentage=_percent(paid, total)
        )


def _percent(part: int, whole: int) -> int:
    if not whole:
        return 0
    return int((Decimal(part * 100) / Decimal(whole)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
