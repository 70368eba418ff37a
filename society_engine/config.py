"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class SocietyEngineConfig(BaseSettings):
    """Society engine configuration"""

    # Calendar configuration
    timezone: str = "Asia/Kolkata"  # Business dates are taken in this zone

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Loan rules
    loan_late_fee_rate: str = "0.01"  # Per started 30-day month, per installment
    loan_overdue_penalty_percent: str = "2"  # Of original principal
    schedule_absorb_residual: bool = False  # Force last installment to clear balance
    penalty_eligible_statuses: str = "ACTIVE,APPROVED"

    # Deposit rules
    certificate_grace_day: int = 15
    certificate_penalty_per_day: str = "10"
    deposit_late_fee_rate: str = "0.01"  # Per day late
    deposit_late_fee_cap: str = "0.5"  # Fraction of the requested amount
    max_deposit_duration_months: int = 120
    default_days_per_month: int = 30

    class Config:
        env_prefix = "SOCIETY_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = SocietyEngineConfig()


def get_config() -> SocietyEngineConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> SocietyEngineConfig:
    """Reload configuration from environment"""
    global config
    config = SocietyEngineConfig()
    return config
