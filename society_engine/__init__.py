"""
Society Engine

Financial calculation and scheduling engine for a cooperative society:
loan amortization, overdue assessment, deposit maturity and penalty
computation. All financial math uses Decimal, never float.
"""

__version__ = "1.0.0"
