"""
Test suite for rate math

Simple interest, compound interest and the EMI formula.
"""

import pytest
from decimal import Decimal

from society_engine import rates
from society_engine.errors import ValidationError


class TestPeriodicRates:

    def test_monthly_rate(self):
        assert rates.monthly_rate(12) == Decimal('0.01')

    def test_daily_rate(self):
        assert rates.daily_rate(Decimal('7.3')) == Decimal('0.0002')

    def test_weekly_rate(self):
        assert rates.weekly_rate(52) == Decimal('0.01')


class TestSimpleInterest:

    def test_years_are_the_time_unit(self):
        """Two years at 10% on 10000 is 2000"""
        assert rates.simple_interest(10000, 10, 2) == Decimal('2000.00')

    def test_fractional_years(self):
        assert rates.simple_interest(12000, 12, Decimal('0.5')) == Decimal('720.00')


class TestCompoundInterest:

    def test_monthly_compounding_one_year(self):
        """10000 at 12% compounded monthly for a year: 10000 * (1.01^12 - 1)"""
        assert rates.compound_interest(10000, 12, 12) == Decimal('1268.25')

    def test_annual_compounding(self):
        assert rates.compound_interest(1000, 10, 24, compoundings_per_year=1) == Decimal('210.00')

    def test_zero_rate(self):
        assert rates.compound_interest(5000, 0, 36) == Decimal('0.00')

    def test_invalid_compounding_frequency(self):
        with pytest.raises(ValidationError):
            rates.compound_interest(1000, 10, 12, compoundings_per_year=0)


class TestEMI:

    def test_reference_value(self):
        """120000 at 12% over 12 months"""
        assert rates.emi(120000, 12, 12) == Decimal('10661.85')

    def test_zero_rate_divides_evenly(self):
        assert rates.emi(12000, 0, 12) == Decimal('1000.00')
        assert rates.emi_exact(12000, 0, 12) == Decimal('1000')

    def test_single_month(self):
        """One installment repays principal plus one month of interest"""
        assert rates.emi(10000, 12, 1) == Decimal('10100.00')

    def test_emi_times_count_covers_principal(self):
        emi = rates.emi(250000, Decimal('10.5'), 36)
        assert emi * 36 > Decimal('250000')

    def test_invalid_duration(self):
        with pytest.raises(ValidationError):
            rates.emi(1000, 12, 0)
