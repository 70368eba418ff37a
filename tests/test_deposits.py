"""
Test suite for deposit calculations

Tests RD/FD/OD/CD maturity, parameter validation, contribution and
repayment schedules and late fees on payment requests.
"""

import pytest
from decimal import Decimal
from datetime import date

from society_engine.currency import Money
from society_engine.deposits import (
    DepositCalculator, DepositRequest, DepositType, Frequency, PaymentRequestStatus
)
from society_engine.errors import ValidationError


class TestDepositType:

    def test_parse_by_code_or_name(self):
        assert DepositType.parse("RD") == DepositType.RECURRING
        assert DepositType.parse("fixed") == DepositType.FIXED
        assert DepositType.parse(DepositType.CERTIFICATE) == DepositType.CERTIFICATE

    def test_parse_unknown(self):
        with pytest.raises(ValidationError, match="Invalid payment type"):
            DepositType.parse("XX")

    def test_frequency_parse(self):
        assert Frequency.parse("weekly") == Frequency.WEEKLY
        assert Frequency.parse("YEARLY") is None


class TestValidation:
    """Test parameter validation collects every error"""

    def setup_method(self):
        self.calc = DepositCalculator(max_duration_months=120)

    def test_valid_fixed_deposit(self):
        result = self.calc.validate_params("FD", Decimal('10000'), Decimal('7'), duration=12)
        assert result.is_valid
        assert result.errors == []

    def test_zero_rate_is_valid(self):
        assert self.calc.validate_params("FD", Decimal('10000'), Decimal('0'), duration=12).is_valid

    def test_multiple_errors(self):
        result = self.calc.validate_params("RD", Decimal('0'), Decimal('101'), duration=121, frequency="YEARLY")

        assert not result.is_valid
        assert result.errors == [
            "Amount must be greater than 0",
            "Interest rate must be between 0 and 100",
            "Duration must be between 1 and 120 months",
            "Frequency must be MONTHLY, WEEKLY, or DAILY",
        ]

    def test_duration_required_for_fixed(self):
        result = self.calc.validate_params("FD", Decimal('1000'), Decimal('7'))
        assert "Duration must be between 1 and 120 months" in result.errors

    def test_duration_optional_for_certificate(self):
        assert self.calc.validate_params("CD", Decimal('1000'), Decimal('7')).is_valid

    def test_invalid_type(self):
        result = self.calc.validate_params("XX", Decimal('1000'), Decimal('7'))
        assert result.errors == ["Invalid payment type: XX"]

    def test_calculate_raises_with_errors(self):
        request = DepositRequest(DepositType.FIXED, Decimal('-5'), Decimal('7'), duration_months=12)
        with pytest.raises(ValidationError) as exc_info:
            self.calc.calculate_maturity(request)
        assert exc_info.value.errors == ["Amount must be greater than 0"]


class TestRecurringDeposit:

    def setup_method(self):
        self.calc = DepositCalculator()

    def test_monthly(self):
        """1000/month at 12% for 12 months: 1000 * 1% * (12+11+...+1) = 780"""
        request = DepositRequest(
            DepositType.RECURRING, Decimal('1000'), Decimal('12'),
            due_date=date(2024, 1, 5), duration_months=12, frequency=Frequency.MONTHLY
        )
        result = self.calc.calculate_maturity(request)

        assert result.total_deposited == Money(Decimal('12000'))
        assert result.interest_earned == Money(Decimal('780.00'))
        assert result.maturity_amount == Money(Decimal('12780.00'))
        assert result.periods == 12
        assert result.maturity_date == date(2025, 1, 5)

    def test_weekly_splits_monthly_amount(self):
        """48 weekly contributions of 250 at 12%/52"""
        request = DepositRequest(
            DepositType.RECURRING, Decimal('1000'), Decimal('12'),
            duration_months=12, frequency=Frequency.WEEKLY
        )
        result = self.calc.calculate_maturity(request)

        assert result.periods == 48
        assert result.total_deposited == Money(Decimal('12000'))
        assert result.interest_earned == Money(Decimal('678.46'))

    def test_daily(self):
        request = DepositRequest(
            DepositType.RECURRING, Decimal('3000'), Decimal('10'),
            duration_months=1, frequency="DAILY"
        )
        result = self.calc.calculate_maturity(request)

        assert result.periods == 30
        assert result.total_deposited == Money(Decimal('3000'))
        assert result.interest_earned.is_positive()

    def test_contribution_schedule(self):
        request = DepositRequest(
            DepositType.RECURRING, Decimal('1000'), Decimal('12'),
            due_date=date(2024, 1, 31), duration_months=3, frequency=Frequency.MONTHLY
        )
        schedule = self.calc.recurring_schedule(request)

        assert [row.due_date for row in schedule] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]
        assert [row.running_balance.amount for row in schedule] == [
            Decimal('1000.00'), Decimal('2000.00'), Decimal('3000.00')
        ]
        assert [row.interest_earned.amount for row in schedule] == [
            Decimal('30.00'), Decimal('50.00'), Decimal('60.00')
        ]
        assert schedule[-1].total_amount == Money(Decimal('3060'))

    def test_schedule_matches_maturity(self):
        request = DepositRequest(
            DepositType.RECURRING, Decimal('500'), Decimal('9'),
            duration_months=24, frequency=Frequency.MONTHLY
        )
        schedule = self.calc.recurring_schedule(request)
        assert schedule[-1].total_amount == self.calc.calculate_maturity(request).maturity_amount

    def test_schedule_only_for_recurring(self):
        request = DepositRequest(DepositType.FIXED, Decimal('500'), Decimal('9'), duration_months=12)
        with pytest.raises(ValidationError):
            self.calc.recurring_schedule(request)


class TestFixedDeposit:

    def setup_method(self):
        self.calc = DepositCalculator()

    def test_monthly_compounding(self):
        request = DepositRequest(DepositType.FIXED, Decimal('100000'), Decimal('9.5'), duration_months=12)
        result = self.calc.calculate_maturity(request)

        assert result.maturity_amount > Money(Decimal('100000'))
        # Monthly compounding beats simple interest of 9500
        assert Money(Decimal('9500')) < result.interest_earned < Money(Decimal('10000'))

    def test_higher_rate_earns_more(self):
        low = DepositRequest(DepositType.FIXED, Decimal('100000'), Decimal('9.5'), duration_months=12)
        high = DepositRequest(DepositType.FIXED, Decimal('100000'), Decimal('10'), duration_months=12)

        assert (self.calc.calculate_maturity(high).maturity_amount
                > self.calc.calculate_maturity(low).maturity_amount)

    def test_maturity_date_clamps(self):
        request = DepositRequest(
            DepositType.FIXED, Decimal('1000'), Decimal('7'),
            due_date=date(2024, 1, 31), duration_months=1
        )
        assert self.calc.calculate_maturity(request).maturity_date == date(2024, 2, 29)


class TestDayRateDeposits:

    def setup_method(self):
        self.calc = DepositCalculator(days_per_month=30)

    def test_certificate_with_explicit_days(self):
        request = DepositRequest(DepositType.CERTIFICATE, Decimal('10000'), Decimal('7.3'), days=100)
        result = self.calc.calculate_maturity(request)

        assert result.days == 100
        assert result.interest_earned == Money(Decimal('200.00'))
        assert result.maturity_amount == Money(Decimal('10200.00'))

    def test_overdraft_days_from_duration(self):
        request = DepositRequest(DepositType.OVERDRAFT, Decimal('10000'), Decimal('7.3'), duration_months=2)
        result = self.calc.calculate_maturity(request)

        assert result.days == 60
        assert result.interest_earned == Money(Decimal('120.00'))

    def test_no_duration_no_days(self):
        request = DepositRequest(DepositType.OVERDRAFT, Decimal('10000'), Decimal('7.3'))
        result = self.calc.calculate_maturity(request)

        assert result.days == 0
        assert result.interest_earned == Money.zero()
        assert result.total_amount == Money(Decimal('10000'))

    def test_overdraft_repayment_schedule(self):
        schedule = self.calc.overdraft_repayment_schedule(Decimal('12000'), Decimal('0'), 12)

        assert len(schedule) == 12
        assert all(row.emi == Money(Decimal('1000')) for row in schedule)
        assert schedule[-1].remaining_balance == Money.zero()

    def test_overdraft_schedule_with_interest(self):
        schedule = self.calc.overdraft_repayment_schedule(Decimal('120000'), Decimal('12'), 12)

        assert schedule[0].interest_paid == Money(Decimal('1200'))
        # Rounded EMI leaves only paise outstanding
        assert schedule[-1].remaining_balance < Money(Decimal('1'))

    def test_overdraft_schedule_rejects_bad_input(self):
        with pytest.raises(ValidationError):
            self.calc.overdraft_repayment_schedule(Decimal('0'), Decimal('12'), 12)


class TestLateFee:

    def setup_method(self):
        self.calc = DepositCalculator(late_fee_rate=Decimal('0.01'), late_fee_cap=Decimal('0.5'))

    def test_fee_per_day(self):
        assert self.calc.late_fee(Decimal('1000'), 10) == Money(Decimal('100'))

    def test_fee_is_capped(self):
        assert self.calc.late_fee(Decimal('1000'), 100) == Money(Decimal('500'))

    def test_no_fee_when_not_late(self):
        assert self.calc.late_fee(Decimal('1000'), 0) == Money.zero()

    def test_request_late_fee(self):
        request = DepositRequest(
            DepositType.RECURRING, Decimal('1000'), Decimal('12'),
            due_date=date(2024, 1, 10), duration_months=12, frequency=Frequency.MONTHLY
        )
        assert self.calc.is_overdue(request, date(2024, 1, 15))
        assert self.calc.request_late_fee(request, date(2024, 1, 15)) == Money(Decimal('50'))

    def test_paid_request_is_not_overdue(self):
        request = DepositRequest(
            DepositType.RECURRING, Decimal('1000'), Decimal('12'),
            due_date=date(2024, 1, 10), duration_months=12, frequency=Frequency.MONTHLY,
            status=PaymentRequestStatus.PAID
        )
        assert not self.calc.is_overdue(request, date(2024, 2, 1))
        assert self.calc.request_late_fee(request, date(2024, 2, 1)) == Money.zero()
