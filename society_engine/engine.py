"""
Society Engine Facade

Single entry point for the calling service. Bundles configured components,
converts datetimes to business dates, and turns unexpected arithmetic
failures into ComputationError so raw decimal or type errors never leak
past this module.
"""

from datetime import date
from decimal import Decimal
from functools import wraps
from typing import Iterable, List, Optional

from .batch import BatchResult, PenaltyBatchOrchestrator, PenaltyDetails, find_loan, parse_statuses
from .config import SocietyEngineConfig, get_config
from .dates import DateLike, business_date, business_zone
from .deposits import DepositCalculator, DepositRequest, MaturityResult, RecurringInstallment
from .errors import ComputationError, SocietyEngineError
from .loans import AmortizationEngine, LoanLedgerState, LoanSchedule, LoanSnapshot
from .logging_config import get_logger
from .overdue import LoanSummary, OverdueAssessor, OverdueResult, PaymentResult
from .penalties import GracePeriodPenaltyCalculator, PenaltyAssessment, PenaltySummary

logger = get_logger("society.engine")


def boundary(operation: str):
    """Convert stray arithmetic and type failures into ComputationError"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SocietyEngineError:
                raise
            except (ArithmeticError, TypeError, AttributeError, ValueError) as e:
                logger.error(
                    f"{operation} failed: {e}", exc_info=True,
                    extra={"action": operation}
                )
                raise ComputationError(operation, str(e), {"exception": type(e).__name__}) from e
        return wrapper
    return decorator


class SocietyEngine:
    """Configured set of engine components"""

    def __init__(self, config: Optional[SocietyEngineConfig] = None):
        self.config = config or get_config()
        self.zone = business_zone(self.config.timezone)

        self.amortization = AmortizationEngine(absorb_residual=self.config.schedule_absorb_residual)
        self.overdue = OverdueAssessor(
            late_fee_rate=Decimal(self.config.loan_late_fee_rate),
            days_per_month=self.config.default_days_per_month
        )
        self.deposits = DepositCalculator(
            days_per_month=self.config.default_days_per_month,
            max_duration_months=self.config.max_deposit_duration_months,
            late_fee_rate=Decimal(self.config.deposit_late_fee_rate),
            late_fee_cap=Decimal(self.config.deposit_late_fee_cap)
        )
        self.penalties = GracePeriodPenaltyCalculator(
            grace_day=self.config.certificate_grace_day,
            penalty_per_day=Decimal(self.config.certificate_penalty_per_day)
        )
        self.batch = PenaltyBatchOrchestrator(
            penalty_percent=Decimal(self.config.loan_overdue_penalty_percent),
            eligible_statuses=parse_statuses(self.config.penalty_eligible_statuses),
            timezone=self.config.timezone
        )

    def _date(self, value: DateLike) -> date:
        return business_date(value, self.zone)

    # Loans

    @boundary("build_schedule")
    def build_schedule(self, snapshot: LoanSnapshot) -> LoanSchedule:
        return self.amortization.build_schedule(snapshot)

    @boundary("open_loan")
    def open_loan(self, loan_id: str, snapshot: LoanSnapshot) -> LoanLedgerState:
        return self.amortization.open_ledger(loan_id, snapshot)

    @boundary("activate_loan")
    def activate_loan(self, ledger: LoanLedgerState) -> LoanLedgerState:
        return self.amortization.activate(ledger)

    @boundary("assess_overdue")
    def assess_overdue(self, schedule: LoanSchedule, as_of: DateLike) -> OverdueResult:
        return self.overdue.assess_overdue(schedule, self._date(as_of))

    @boundary("assess_loan")
    def assess_loan(self, ledger: LoanLedgerState, as_of: DateLike) -> LoanLedgerState:
        return self.overdue.assess_ledger(ledger, self._date(as_of))

    @boundary("record_payment")
    def record_payment(self, ledger: LoanLedgerState, installment_number: int, paid_amount: Decimal,
                       as_of: DateLike, payment_method: Optional[str] = None,
                       reference: Optional[str] = None) -> PaymentResult:
        return self.overdue.record_payment(
            ledger, installment_number, paid_amount, self._date(as_of),
            payment_method=payment_method, reference=reference
        )

    @boundary("mark_defaulted")
    def mark_defaulted(self, ledger: LoanLedgerState, as_of: DateLike,
                       note: Optional[str] = None, added_by: Optional[str] = None) -> LoanLedgerState:
        return self.overdue.mark_defaulted(ledger, self._date(as_of), note, added_by)

    @boundary("summarize_loan")
    def summarize_loan(self, ledger: LoanLedgerState, as_of: DateLike) -> LoanSummary:
        return self.overdue.summarize(ledger, self._date(as_of))

    # Deposits

    @boundary("calculate_deposit_maturity")
    def calculate_deposit_maturity(self, request: DepositRequest) -> MaturityResult:
        return self.deposits.calculate_maturity(request)

    @boundary("recurring_schedule")
    def recurring_schedule(self, request: DepositRequest) -> List[RecurringInstallment]:
        return self.deposits.recurring_schedule(request)

    @boundary("calculate_grace_penalty")
    def calculate_grace_penalty(self, due_date: DateLike, as_of: DateLike) -> PenaltyAssessment:
        return self.penalties.calculate(self._date(due_date), self._date(as_of))

    @boundary("summarize_penalties")
    def summarize_penalties(self, deposits: Iterable[DepositRequest], as_of: DateLike) -> PenaltySummary:
        return self.penalties.summarize(deposits, self._date(as_of))

    # Batch

    @boundary("run_penalty_batch")
    def run_penalty_batch(self, loans: Iterable[LoanLedgerState], as_of: DateLike) -> BatchResult:
        return self.batch.run_once(loans, as_of)

    @boundary("loan_penalty_details")
    def loan_penalty_details(self, loans: Iterable[LoanLedgerState], loan_id: str,
                             as_of: DateLike) -> PenaltyDetails:
        return self.batch.penalty_details(find_loan(loans, loan_id), as_of)


def build_schedule(snapshot: LoanSnapshot) -> LoanSchedule:
    return SocietyEngine().build_schedule(snapshot)


def assess_overdue(schedule: LoanSchedule, as_of: DateLike) -> OverdueResult:
    return SocietyEngine().assess_overdue(schedule, as_of)


def record_payment(ledger: LoanLedgerState, installment_number: int, paid_amount: Decimal,
                   as_of: DateLike) -> PaymentResult:
    return SocietyEngine().record_payment(ledger, installment_number, paid_amount, as_of)


def calculate_deposit_maturity(request: DepositRequest) -> MaturityResult:
    return SocietyEngine().calculate_deposit_maturity(request)


def calculate_grace_penalty(due_date: DateLike, as_of: DateLike) -> PenaltyAssessment:
    return SocietyEngine().calculate_grace_penalty(due_date, as_of)


def run_penalty_batch(loans: Iterable[LoanLedgerState], as_of: DateLike) -> BatchResult:
    return SocietyEngine().run_penalty_batch(loans, as_of)
