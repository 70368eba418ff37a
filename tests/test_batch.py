"""
Test suite for the overdue loan penalty batch

Tests loan selection, penalty application, the once-per-day guard and
per-loan failure isolation.
"""

import pytest
from dataclasses import replace
from decimal import Decimal
from datetime import date, datetime, timezone

from society_engine.batch import PenaltyBatchOrchestrator, calculate_penalty, find_loan, parse_statuses
from society_engine.currency import Money
from society_engine.errors import LoanNotFound, ValidationError
from society_engine.loans import AmortizationEngine, LoanLedgerState, LoanSnapshot, LoanStatus


def make_loan(loan_id, principal='100000', start=date(2023, 1, 1), months=12, activate=True):
    engine = AmortizationEngine(absorb_residual=False)
    ledger = engine.open_ledger(loan_id, LoanSnapshot(Decimal(principal), Decimal('12'), months, start))
    return engine.activate(ledger) if activate else ledger


class TestCalculatePenalty:

    def test_two_percent(self):
        assert calculate_penalty(Decimal('100000')) == Decimal('2000.00')

    def test_rounds_to_paise(self):
        assert calculate_penalty(Decimal('12345.67'), Decimal('2')) == Decimal('246.91')

    def test_parse_statuses(self):
        assert parse_statuses("active, approved") == frozenset({LoanStatus.ACTIVE, LoanStatus.APPROVED})
        with pytest.raises(ValidationError):
            parse_statuses("ACTIVE,SLEEPING")


class TestRunOnce:
    """Test a single batch pass"""

    def setup_method(self):
        self.batch = PenaltyBatchOrchestrator(
            penalty_percent=Decimal('2'),
            eligible_statuses=[LoanStatus.ACTIVE, LoanStatus.APPROVED],
            timezone="Asia/Kolkata"
        )
        self.as_of = date(2024, 2, 1)

    def test_penalises_overdue_loan(self):
        loan = make_loan("LN-1")
        assert loan.expected_end_date == date(2024, 1, 1)

        result = self.batch.run_once([loan], self.as_of)
        updated = result.loans[0]

        assert result.processed_count == 1
        assert result.error_count == 0
        assert result.total_penalty_applied == Money(Decimal('2000'))
        assert result.penalised_loan_ids == ["LN-1"]
        assert updated.status == LoanStatus.OVERDUE
        assert updated.overdue_amount == Money(Decimal('2000'))
        assert updated.total_late_fee == Money(Decimal('2000'))
        assert updated.last_penalty_assessed_date == self.as_of
        assert updated.notes[-1].note == "Penalty of INR 2,000.00 applied for 31 days overdue (2% of loan amount)"
        # Input untouched
        assert loan.status == LoanStatus.ACTIVE

    def test_approved_loans_are_eligible(self):
        loan = make_loan("LN-1", activate=False)
        result = self.batch.run_once([loan], self.as_of)
        assert result.loans[0].status == LoanStatus.OVERDUE

    def test_second_run_same_day_applies_nothing(self):
        first = self.batch.run_once([make_loan("LN-1")], self.as_of)
        second = self.batch.run_once(first.loans, self.as_of)

        assert second.processed_count == 0
        assert second.total_penalty_applied == Money.zero()
        assert second.loans[0].overdue_amount == Money(Decimal('2000'))

    def test_stamp_guards_reset_status(self):
        """A loan already stamped for the day is skipped even if still ACTIVE"""
        loan = replace(make_loan("LN-1"), last_penalty_assessed_date=self.as_of)
        result = self.batch.run_once([loan], self.as_of)

        assert result.skipped_count == 1
        assert result.processed_count == 0
        assert result.loans[0] is loan

    def test_stamp_from_earlier_day_does_not_guard(self):
        loan = replace(make_loan("LN-1"), last_penalty_assessed_date=date(2024, 1, 20))
        result = self.batch.run_once([loan], self.as_of)
        assert result.processed_count == 1

    def test_loans_not_yet_due_are_untouched(self):
        loan = make_loan("LN-2", start=date(2024, 1, 1))
        result = self.batch.run_once([loan], self.as_of)

        assert result.processed_count == 0
        assert result.loans[0] is loan

    def test_loan_ending_on_as_of_is_not_overdue(self):
        loan = make_loan("LN-1")
        result = self.batch.run_once([loan], loan.expected_end_date)
        assert result.processed_count == 0

    def test_terminal_loans_are_ignored(self):
        loan = make_loan("LN-1").with_status(LoanStatus.DEFAULTED)
        result = self.batch.run_once([loan], self.as_of)
        assert result.processed_count == 0

    def test_failure_is_isolated(self):
        broken = LoanLedgerState(
            loan_id="BROKEN",
            terms=LoanSnapshot("not a number", Decimal('12'), 12, date(2023, 1, 1)),
            status=LoanStatus.ACTIVE,
            expected_end_date=date(2024, 1, 1)
        )
        good = make_loan("LN-1")

        result = self.batch.run_once([broken, good], self.as_of)

        assert result.error_count == 1
        assert result.processed_count == 1
        assert "BROKEN" in result.errors
        assert result.loans[0] is broken
        assert result.loans[1].status == LoanStatus.OVERDUE

    def test_totals_across_loans(self):
        loans = [make_loan("LN-1"), make_loan("LN-2", principal='50000')]
        result = self.batch.run_once(loans, self.as_of)

        assert result.processed_count == 2
        assert result.total_penalty_applied == Money(Decimal('3000'))

    def test_aware_datetime_uses_business_date(self):
        """20:00 UTC on Jan 31 is already Feb 1 in India"""
        loan = make_loan("LN-1", start=date(2023, 1, 31))
        as_of = datetime(2024, 1, 31, 20, 0, tzinfo=timezone.utc)

        result = self.batch.run_once([loan], as_of)

        assert result.as_of == date(2024, 2, 1)
        assert result.processed_count == 1

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValidationError):
            self.batch.run_once([make_loan("LN-1")], datetime(2024, 2, 1, 2, 0))

    def test_empty_run(self):
        result = self.batch.run_once([], self.as_of)
        assert result.processed_count == 0
        assert result.total_penalty_applied == Money.zero()


class TestPenaltyDetails:

    def setup_method(self):
        self.batch = PenaltyBatchOrchestrator(penalty_percent=Decimal('2'))

    def test_overdue_loan(self):
        loan = make_loan("LN-1")
        details = self.batch.penalty_details(loan, date(2024, 2, 1))

        assert details.is_overdue
        assert details.days_overdue == 31
        assert details.potential_penalty == Money(Decimal('2000'))
        assert details.total_amount_with_penalty == loan.schedule.total_amount + Money(Decimal('2000'))
        assert not details.already_assessed

    def test_loan_in_term(self):
        details = self.batch.penalty_details(make_loan("LN-1"), date(2023, 6, 1))

        assert not details.is_overdue
        assert details.days_overdue == 0
        assert details.potential_penalty == Money.zero()

    def test_find_loan(self):
        loans = [make_loan("LN-1"), make_loan("LN-2")]
        assert find_loan(loans, "LN-2").loan_id == "LN-2"
        with pytest.raises(LoanNotFound):
            find_loan(loans, "LN-3")
