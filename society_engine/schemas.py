"""
Pydantic schemas for requests and results crossing the service boundary
"""

from decimal import Decimal
from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .batch import BatchResult, PenaltyDetails
from .currency import Money, Currency, to_decimal
from .deposits import DepositRequest, DepositType, Frequency, MaturityResult
from .errors import ComputationError, SocietyEngineError, ValidationError
from .loans import Installment, LoanLedgerState, LoanSchedule, LoanSnapshot
from .overdue import LoanSummary
from .penalties import PenaltyAssessment, PenaltySummary


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field("INR", description="Currency code")

    def to_money(self) -> Money:
        return Money(Decimal(self.amount), Currency[self.currency])

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code)


# Loan schemas
class LoanSnapshotModel(BaseModel):
    principal: str = Field(..., description="Decimal amount as string")
    annual_rate_percent: str = Field(..., description="Annual rate, 12 for 12%")
    duration_months: int
    start_date: date
    currency: str = "INR"

    def to_snapshot(self) -> LoanSnapshot:
        return LoanSnapshot(
            principal=to_decimal(self.principal),
            annual_rate_percent=to_decimal(self.annual_rate_percent),
            duration_months=self.duration_months,
            start_date=self.start_date,
            currency=Currency[self.currency]
        )


class InstallmentModel(BaseModel):
    number: int
    due_date: date
    amount: MoneyModel
    principal_portion: MoneyModel
    interest_portion: MoneyModel
    status: str
    paid_at: Optional[date] = None
    late_fee: MoneyModel

    @classmethod
    def from_installment(cls, inst: Installment) -> 'InstallmentModel':
        return cls(
            number=inst.number,
            due_date=inst.due_date,
            amount=MoneyModel.from_money(inst.amount),
            principal_portion=MoneyModel.from_money(inst.principal_portion),
            interest_portion=MoneyModel.from_money(inst.interest_portion),
            status=inst.status.value,
            paid_at=inst.paid_at,
            late_fee=MoneyModel.from_money(inst.late_fee)
        )


class ScheduleModel(BaseModel):
    principal: MoneyModel
    annual_rate_percent: str
    start_date: date
    emi_amount: MoneyModel
    total_interest: MoneyModel
    total_amount: MoneyModel
    installments: List[InstallmentModel]

    @classmethod
    def from_schedule(cls, schedule: LoanSchedule) -> 'ScheduleModel':
        return cls(
            principal=MoneyModel.from_money(schedule.principal),
            annual_rate_percent=str(schedule.annual_rate_percent),
            start_date=schedule.start_date,
            emi_amount=MoneyModel.from_money(schedule.emi_amount),
            total_interest=MoneyModel.from_money(schedule.total_interest),
            total_amount=MoneyModel.from_money(schedule.total_amount),
            installments=[InstallmentModel.from_installment(i) for i in schedule.installments]
        )


class LoanNoteModel(BaseModel):
    note: str
    added_at: date
    added_by: Optional[str] = None


class LoanLedgerModel(BaseModel):
    loan_id: str
    status: str
    principal: MoneyModel
    current_balance: MoneyModel
    overdue_amount: MoneyModel
    total_late_fee: MoneyModel
    start_date: date
    expected_end_date: Optional[date] = None
    actual_end_date: Optional[date] = None
    last_penalty_assessed_date: Optional[date] = None
    schedule: Optional[ScheduleModel] = None
    notes: List[LoanNoteModel] = Field(default_factory=list)

    @classmethod
    def from_ledger(cls, ledger: LoanLedgerState) -> 'LoanLedgerModel':
        return cls(
            loan_id=ledger.loan_id,
            status=ledger.status.value,
            principal=MoneyModel.from_money(ledger.principal),
            current_balance=MoneyModel.from_money(ledger.current_balance),
            overdue_amount=MoneyModel.from_money(ledger.overdue_amount),
            total_late_fee=MoneyModel.from_money(ledger.total_late_fee),
            start_date=ledger.start_date,
            expected_end_date=ledger.expected_end_date,
            actual_end_date=ledger.actual_end_date,
            last_penalty_assessed_date=ledger.last_penalty_assessed_date,
            schedule=ScheduleModel.from_schedule(ledger.schedule) if ledger.schedule else None,
            notes=[LoanNoteModel(note=n.note, added_at=n.added_at, added_by=n.added_by) for n in ledger.notes]
        )


class LoanSummaryModel(BaseModel):
    loan_id: str
    status: str
    emi_amount: MoneyModel
    total_amount: MoneyModel
    current_balance: MoneyModel
    overdue_amount: MoneyModel
    total_late_fee: MoneyModel
    is_overdue: bool
    next_payment: Optional[InstallmentModel] = None
    total_installments: int
    paid_installments: int
    pending_installments: int
    overdue_installments: int
    progress_percentage: int

    @classmethod
    def from_summary(cls, summary: LoanSummary) -> 'LoanSummaryModel':
        return cls(
            loan_id=summary.loan_id,
            status=summary.status.value,
            emi_amount=MoneyModel.from_money(summary.emi_amount),
            total_amount=MoneyModel.from_money(summary.total_amount),
            current_balance=MoneyModel.from_money(summary.current_balance),
            overdue_amount=MoneyModel.from_money(summary.overdue_amount),
            total_late_fee=MoneyModel.from_money(summary.total_late_fee),
            is_overdue=summary.is_overdue,
            next_payment=(
                InstallmentModel.from_installment(summary.next_payment) if summary.next_payment else None
            ),
            total_installments=summary.total_installments,
            paid_installments=summary.paid_installments,
            pending_installments=summary.pending_installments,
            overdue_installments=summary.overdue_installments,
            progress_percentage=summary.progress_percentage
        )


class RecordPaymentRequest(BaseModel):
    installment_number: int = Field(..., ge=1)
    amount: str = Field(..., description="Decimal amount as string")
    payment_method: Optional[str] = None
    reference: Optional[str] = None


# Deposit schemas
class DepositRequestModel(BaseModel):
    deposit_type: str = Field(..., description="RD, FD, OD or CD")
    amount: str = Field(..., description="Decimal amount as string")
    annual_rate_percent: str
    due_date: Optional[date] = None
    duration_months: Optional[int] = None
    frequency: Optional[str] = Field(None, description="MONTHLY, WEEKLY or DAILY; RD only")
    days: Optional[int] = None
    request_id: Optional[str] = None

    def to_request(self) -> DepositRequest:
        return DepositRequest(
            deposit_type=DepositType.parse(self.deposit_type),
            amount=to_decimal(self.amount),
            annual_rate_percent=to_decimal(self.annual_rate_percent),
            due_date=self.due_date,
            duration_months=self.duration_months,
            frequency=Frequency.parse(self.frequency),
            days=self.days,
            request_id=self.request_id
        )


class MaturityModel(BaseModel):
    deposit_type: str
    total_deposited: MoneyModel
    interest_earned: MoneyModel
    maturity_amount: MoneyModel
    maturity_date: Optional[date] = None
    periods: Optional[int] = None
    days: Optional[int] = None

    @classmethod
    def from_result(cls, result: MaturityResult) -> 'MaturityModel':
        return cls(
            deposit_type=result.deposit_type.value,
            total_deposited=MoneyModel.from_money(result.total_deposited),
            interest_earned=MoneyModel.from_money(result.interest_earned),
            maturity_amount=MoneyModel.from_money(result.maturity_amount),
            maturity_date=result.maturity_date,
            periods=result.periods,
            days=result.days
        )


# Penalty schemas
class PenaltyAssessmentModel(BaseModel):
    has_penalty: bool
    penalty_amount: MoneyModel
    days_late: int
    penalty_days: int
    penalty_per_day: MoneyModel
    message: str

    @classmethod
    def from_assessment(cls, assessment: PenaltyAssessment) -> 'PenaltyAssessmentModel':
        return cls(
            has_penalty=assessment.has_penalty,
            penalty_amount=MoneyModel.from_money(assessment.penalty_amount),
            days_late=assessment.days_late,
            penalty_days=assessment.penalty_days,
            penalty_per_day=MoneyModel.from_money(assessment.penalty_per_day),
            message=assessment.message
        )


class PenaltyLineModel(BaseModel):
    request_id: Optional[str] = None
    deposit_type: str
    amount: MoneyModel
    due_date: date
    status: str
    penalty: PenaltyAssessmentModel
    total_amount_with_penalty: MoneyModel


class PenaltySummaryModel(BaseModel):
    total_payments: int
    overdue_count: int
    on_time_count: int
    total_penalty: MoneyModel
    total_amount: MoneyModel
    total_amount_with_penalty: MoneyModel
    has_overdue: bool
    message: str
    breakdown: List[PenaltyLineModel]

    @classmethod
    def from_summary(cls, summary: PenaltySummary) -> 'PenaltySummaryModel':
        return cls(
            total_payments=summary.total_payments,
            overdue_count=summary.overdue_count,
            on_time_count=summary.on_time_count,
            total_penalty=MoneyModel.from_money(summary.total_penalty),
            total_amount=MoneyModel.from_money(summary.total_amount),
            total_amount_with_penalty=MoneyModel.from_money(summary.total_amount_with_penalty),
            has_overdue=summary.has_overdue,
            message=summary.message,
            breakdown=[
                PenaltyLineModel(
                    request_id=line.request_id,
                    deposit_type=line.deposit_type.value,
                    amount=MoneyModel.from_money(line.amount),
                    due_date=line.due_date,
                    status=line.status.value,
                    penalty=PenaltyAssessmentModel.from_assessment(line.penalty),
                    total_amount_with_penalty=MoneyModel.from_money(line.total_amount_with_penalty)
                )
                for line in summary.breakdown
            ]
        )


class PenaltyDetailsModel(BaseModel):
    loan_id: str
    status: str
    original_amount: MoneyModel
    total_amount: MoneyModel
    current_balance: MoneyModel
    expected_end_date: Optional[date] = None
    is_overdue: bool
    days_overdue: int
    potential_penalty: MoneyModel
    total_amount_with_penalty: MoneyModel
    already_assessed: bool

    @classmethod
    def from_details(cls, details: PenaltyDetails) -> 'PenaltyDetailsModel':
        return cls(
            loan_id=details.loan_id,
            status=details.status.value,
            original_amount=MoneyModel.from_money(details.original_amount),
            total_amount=MoneyModel.from_money(details.total_amount),
            current_balance=MoneyModel.from_money(details.current_balance),
            expected_end_date=details.expected_end_date,
            is_overdue=details.is_overdue,
            days_overdue=details.days_overdue,
            potential_penalty=MoneyModel.from_money(details.potential_penalty),
            total_amount_with_penalty=MoneyModel.from_money(details.total_amount_with_penalty),
            already_assessed=details.already_assessed
        )


class BatchResultModel(BaseModel):
    as_of: date
    run_id: Optional[str] = None
    processed_count: int
    error_count: int
    skipped_count: int
    total_penalty_applied: MoneyModel
    penalised_loan_ids: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: BatchResult) -> 'BatchResultModel':
        return cls(
            as_of=result.as_of,
            run_id=result.run_id,
            processed_count=result.processed_count,
            error_count=result.error_count,
            skipped_count=result.skipped_count,
            total_penalty_applied=MoneyModel.from_money(result.total_penalty_applied),
            penalised_loan_ids=list(result.penalised_loan_ids),
            errors=dict(result.errors)
        )


class ErrorModel(BaseModel):
    error: str
    message: str
    errors: List[str] = Field(default_factory=list)
    operation: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: SocietyEngineError) -> 'ErrorModel':
        if isinstance(error, ComputationError):
            return cls(**error.to_dict())
        return cls(
            error=type(error).__name__,
            message=str(error),
            errors=error.errors if isinstance(error, ValidationError) else []
        )
