"""
Test suite for configuration and structured logging
"""

import io
import json
import logging
from datetime import date
from zoneinfo import ZoneInfo

import pytest

from society_engine.config import SocietyEngineConfig, get_config, reload_config
from society_engine.dates import add_months, business_date, business_zone, days_between
from society_engine.errors import ValidationError
from society_engine.logging_config import JSONFormatter, log_action, setup_logging, setup_logging_from_config


class TestConfig:

    def test_defaults(self):
        config = SocietyEngineConfig()

        assert config.timezone == "Asia/Kolkata"
        assert config.certificate_grace_day == 15
        assert config.loan_overdue_penalty_percent == "2"
        assert config.schedule_absorb_residual is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SOCIETY_CERTIFICATE_GRACE_DAY", "10")
        monkeypatch.setenv("SOCIETY_SCHEDULE_ABSORB_RESIDUAL", "true")
        try:
            config = reload_config()
            assert config.certificate_grace_day == 10
            assert config.schedule_absorb_residual is True
            assert get_config() is config
        finally:
            monkeypatch.undo()
            reload_config()


class TestDates:

    def test_business_zone(self):
        assert business_zone() == ZoneInfo("Asia/Kolkata")

    def test_plain_date_passes_through(self):
        assert business_date(date(2024, 1, 1)) == date(2024, 1, 1)

    def test_rejects_other_types(self):
        with pytest.raises(ValidationError):
            business_date("2024-01-01")

    def test_add_months_clamps(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    def test_days_between(self):
        assert days_between(date(2024, 2, 15), date(2024, 3, 20)) == 34
        assert days_between(date(2024, 3, 20), date(2024, 2, 15)) == -34


class TestLogging:
    """Test structured JSON log output"""

    def setup_method(self):
        self.stream = io.StringIO()
        self.logger = logging.getLogger("society.test")
        self.logger.handlers = []
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(JSONFormatter())
        self.logger.addHandler(handler)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

    def test_log_action_fields(self):
        log_action(
            self.logger, "info", "Penalty applied", action="loan_penalty_applied",
            resource="LN-1", correlation_id="run-1", extra={"penalty_amount": "2000.00"}
        )
        entry = json.loads(self.stream.getvalue())

        assert entry["message"] == "Penalty applied"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "society.test"
        assert entry["action"] == "loan_penalty_applied"
        assert entry["resource"] == "LN-1"
        assert entry["correlation_id"] == "run-1"
        assert entry["extra"] == {"penalty_amount": "2000.00"}

    def test_disabled_level_is_skipped(self):
        log_action(self.logger, "debug", "noise")
        assert self.stream.getvalue() == ""

    def test_exception_is_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            self.logger.error("failed", exc_info=True)

        entry = json.loads(self.stream.getvalue())
        assert "ValueError: boom" in entry["exception"]

    def test_setup_logging_text_format(self):
        logger = setup_logging("WARNING", logger_name="society.text", fmt="text")

        assert logger.level == logging.WARNING
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.propagate is False

    def test_setup_from_config(self):
        logger = setup_logging_from_config()

        assert logger.name == "society"
        assert logger.level == logging.INFO
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
