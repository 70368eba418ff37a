"""
Overdue Loan Penalty Batch Module

Applies a flat penalty to loans that have run past their expected end
date. The batch owns no timer: an external scheduler calls ``run_once``
with the as-of instant, typically daily at 02:00 in the society's zone.

A loan is penalised at most once per business date. The
``last_penalty_assessed_date`` stamp on the returned ledger carries that
guard; callers must persist it together with the penalty and must not run
two batches for the same period concurrently.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional
import uuid

from .config import get_config
from .currency import Money, to_decimal, round_money
from .dates import DateLike, business_date, business_zone, days_between
from .errors import LoanNotFound, ValidationError
from .loans import LoanLedgerState, LoanStatus
from .logging_config import get_logger, log_action
from .rates import HUNDRED


@dataclass(frozen=True)
class BatchResult:
    as_of: date
    processed_count: int
    error_count: int
    skipped_count: int
    total_penalty_applied: Money
    loans: List[LoanLedgerState] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    penalised_loan_ids: List[str] = field(default_factory=list)
    run_id: Optional[str] = None


@dataclass(frozen=True)
class PenaltyDetails:
    """What the batch would do to one loan, without doing it"""
    loan_id: str
    status: LoanStatus
    original_amount: Money
    total_amount: Money
    current_balance: Money
    overdue_amount: Money
    total_late_fee: Money
    expected_end_date: Optional[date]
    is_overdue: bool
    days_overdue: int
    potential_penalty: Money
    total_amount_with_penalty: Money
    already_assessed: bool


def calculate_penalty(principal: Decimal, penalty_percent: Decimal = Decimal('2')) -> Decimal:
    """Flat penalty as a percentage of the original principal"""
    return round_money(to_decimal(principal) * to_decimal(penalty_percent) / HUNDRED)


def parse_statuses(text: str) -> FrozenSet[LoanStatus]:
    """Comma separated status names, e.g. ``"ACTIVE,APPROVED"``"""
    try:
        return frozenset(LoanStatus(name.strip().upper()) for name in text.split(",") if name.strip())
    except ValueError as e:
        raise ValidationError(f"Invalid loan status list '{text}': {e}")


def find_loan(loans: Iterable[LoanLedgerState], loan_id: str) -> LoanLedgerState:
    for loan in loans:
        if loan.loan_id == loan_id:
            return loan
    raise LoanNotFound(f"Loan {loan_id} not found")


class PenaltyBatchOrchestrator:
    """
    One pass over a set of loans: every ACTIVE or APPROVED loan whose
    expected end date is before the as-of date gets ``penalty_percent`` of
    its original principal added to overdue amount and late fee, an audit
    note, and status OVERDUE.
    """

    def __init__(self, penalty_percent: Optional[Decimal] = None,
                 eligible_statuses: Optional[Iterable[LoanStatus]] = None,
                 timezone: Optional[str] = None):
        config = get_config()
        self.penalty_percent = to_decimal(
            penalty_percent if penalty_percent is not None else config.loan_overdue_penalty_percent
        )
        if eligible_statuses is None:
            eligible_statuses = parse_statuses(config.penalty_eligible_statuses)
        self.eligible_statuses: FrozenSet[LoanStatus] = frozenset(eligible_statuses)
        self.zone = business_zone(timezone)
        self.logger = get_logger("society.batch")

    def is_eligible(self, loan: LoanLedgerState, as_of: date) -> bool:
        return (
            loan.status in self.eligible_statuses
            and loan.expected_end_date is not None
            and loan.expected_end_date < as_of
        )

    def already_assessed(self, loan: LoanLedgerState, as_of: date) -> bool:
        stamp = loan.last_penalty_assessed_date
        return stamp is not None and stamp >= as_of

    def run_once(self, loans: Iterable[LoanLedgerState], as_of: DateLike) -> BatchResult:
        """
        Penalise every eligible overdue loan once for the business date of
        ``as_of``.

        Returns:
            BatchResult whose ``loans`` holds every input loan in order,
            replaced by its penalised version where a penalty was applied
        """
        run_date = business_date(as_of, self.zone)
        run_id = str(uuid.uuid4())

        processed = errors = skipped = 0
        total_penalty = None
        updated: List[LoanLedgerState] = []
        failures: Dict[str, str] = {}
        penalised_ids: List[str] = []

        for loan in loans:
            if not self.is_eligible(loan, run_date):
                updated.append(loan)
                continue

            if self.already_assessed(loan, run_date):
                skipped += 1
                updated.append(loan)
                log_action(
                    self.logger, "info", f"Penalty already assessed for loan {loan.loan_id}",
                    action="loan_penalty_skipped", resource=loan.loan_id, correlation_id=run_id,
                    extra={"last_penalty_assessed_date": loan.last_penalty_assessed_date.isoformat()}
                )
                continue

            try:
                penalised, penalty = self.apply_penalty(loan, run_date)
            except Exception as e:
                # Log error but continue with other loans
                errors += 1
                failures[loan.loan_id] = str(e)
                updated.append(loan)
                self.logger.error(
                    f"Penalty processing failed for loan {loan.loan_id}: {e}",
                    exc_info=True, extra={"correlation_id": run_id, "resource": loan.loan_id}
                )
                continue

            processed += 1
            total_penalty = penalty if total_penalty is None else total_penalty + penalty
            updated.append(penalised)
            penalised_ids.append(loan.loan_id)
            log_action(
                self.logger, "info", f"Penalty applied to loan {loan.loan_id}",
                action="loan_penalty_applied", resource=loan.loan_id, correlation_id=run_id,
                extra={"penalty_amount": str(penalty.amount), "as_of": run_date.isoformat()}
            )

        if total_penalty is None:
            total_penalty = Money.zero(updated[0].terms.currency) if updated else Money.zero()

        log_action(
            self.logger, "info",
            f"Penalty processing completed: {processed} processed, {errors} errors, {skipped} skipped",
            action="loan_penalty_batch", correlation_id=run_id,
            extra={"total_penalty_applied": str(total_penalty.amount), "as_of": run_date.isoformat()}
        )

        return BatchResult(
            as_of=run_date,
            processed_count=processed,
            error_count=errors,
            skipped_count=skipped,
            total_penalty_applied=total_penalty,
            loans=updated,
            errors=failures,
            penalised_loan_ids=penalised_ids,
            run_id=run_id
        )

    def apply_penalty(self, loan: LoanLedgerState, as_of: date):
        """Penalise one loan; returns the new ledger and the penalty charged"""
        penalty = Money(calculate_penalty(loan.principal.amount, self.penalty_percent), loan.terms.currency)
        days_overdue = days_between(loan.expected_end_date, as_of)

        penalised = loan.with_status(
            LoanStatus.OVERDUE,
            overdue_amount=loan.overdue_amount + penalty,
            total_late_fee=loan.total_late_fee + penalty,
            last_penalty_assessed_date=as_of
        )
        note = (
            f"Penalty of {penalty.to_string()} applied for {days_overdue} days overdue "
            f"({self.penalty_percent.normalize():f}% of loan amount)"
        )
        return penalised.with_note(note, as_of), penalty

    def penalty_details(self, loan: LoanLedgerState, as_of: DateLike) -> PenaltyDetails:
        run_date = business_date(as_of, self.zone)
        currency = loan.terms.currency
        end = loan.expected_end_date

        is_overdue = end is not None and run_date > end
        days_overdue = max(0, days_between(end, run_date)) if end else 0
        potential = (
            Money(calculate_penalty(loan.principal.amount, self.penalty_percent), currency)
            if is_overdue else Money.zero(currency)
        )
        total_amount = loan.schedule.total_amount if loan.schedule else Money.zero(currency)

        return PenaltyDetails(
            loan_id=loan.loan_id,
            status=loan.status,
            original_amount=loan.principal,
            total_amount=total_amount,
            current_balance=loan.current_balance,
            overdue_amount=loan.overdue_amount,
            total_late_fee=loan.total_late_fee,
            expected_end_date=end,
            is_overdue=is_overdue,
            days_overdue=days_overdue,
            potential_penalty=potential,
            total_amount_with_penalty=total_amount + potential,
            already_assessed=self.already_assessed(loan, run_date)
        )
