"""
Rate Math Module

Shared interest primitives: simple interest, compound interest and the EMI
formula. Inputs are Decimal percentages (12 means 12% per annum); results
are rounded to the cent half away from zero unless the ``exact`` variants
are used for intermediate sums.
"""

from decimal import Decimal
from typing import Union

from .currency import to_decimal, round_money
from .errors import ValidationError

Number = Union[Decimal, int, str]

HUNDRED = Decimal('100')
MONTHS_PER_YEAR = Decimal('12')
WEEKS_PER_YEAR = Decimal('52')
DAYS_PER_YEAR = Decimal('365')


def monthly_rate(rate_percent: Number) -> Decimal:
    """Monthly periodic rate as a fraction: 12 -> 0.01"""
    return to_decimal(rate_percent) / MONTHS_PER_YEAR / HUNDRED


def weekly_rate(rate_percent: Number) -> Decimal:
    return to_decimal(rate_percent) / WEEKS_PER_YEAR / HUNDRED


def daily_rate(rate_percent: Number) -> Decimal:
    return to_decimal(rate_percent) / DAYS_PER_YEAR / HUNDRED


def simple_interest(principal: Number, rate_percent: Number, years: Number) -> Decimal:
    """
    Simple interest ``P * rate/100 * years``.

    Args:
        principal: Amount the interest is charged on
        rate_percent: Annual rate in percent
        years: Time in YEARS. Convert months (m/12) or days (d/365) first.

    Returns:
        Interest rounded to the cent
    """
    interest = to_decimal(principal) * to_decimal(rate_percent) / HUNDRED * to_decimal(years)
    return round_money(interest)


def compound_interest_exact(principal: Number, rate_percent: Number, months: Number,
                            compoundings_per_year: int = 12) -> Decimal:
    """Unrounded ``P(1 + r/n)^(n*t) - P`` with ``t = months/12``"""
    if compoundings_per_year < 1:
        raise ValidationError("Compounding frequency must be at least once a year")

    p = to_decimal(principal)
    r = to_decimal(rate_percent) / HUNDRED
    n = Decimal(compoundings_per_year)
    periods = n * to_decimal(months) / MONTHS_PER_YEAR

    # Integral exponents keep Decimal's power exact to context precision
    if periods == periods.to_integral_value():
        growth = (Decimal('1') + r / n) ** int(periods)
    else:
        growth = (Decimal('1') + r / n) ** periods
    return p * growth - p


def compound_interest(principal: Number, rate_percent: Number, months: Number,
                      compoundings_per_year: int = 12) -> Decimal:
    """Compound interest rounded to the cent"""
    return round_money(compound_interest_exact(principal, rate_percent, months, compoundings_per_year))


def emi_exact(principal: Number, rate_percent: Number, months: int) -> Decimal:
    """
    Unrounded equal monthly installment.

    Standard formula: P * r * (1+r)^n / ((1+r)^n - 1), r = rate/12/100.
    """
    if months < 1:
        raise ValidationError("Duration must be at least 1 month")

    p = to_decimal(principal)
    r = monthly_rate(rate_percent)

    if r == Decimal('0'):
        # No interest - linear repayment
        return p / Decimal(months)

    factor = (Decimal('1') + r) ** months
    return p * r * factor / (factor - Decimal('1'))


def emi(principal: Number, rate_percent: Number, months: int) -> Decimal:
    """Equal monthly installment rounded to the cent"""
    return round_money(emi_exact(principal, rate_percent, months))
