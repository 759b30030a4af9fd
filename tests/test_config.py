"""Tests for circulation configuration.

These tests demonstrate:
1. Default circulation policy
2. Environment variable loading
3. Validation of policy bounds
4. The configuration singleton
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from library_circulation.config import CirculationConfig, get_config, reset_config


class TestCirculationConfig:
    """Test circulation configuration behavior."""

    def test_default_configuration(self, clean_env):
        """Test the default loan and waitlist policy."""
        config = CirculationConfig()

        assert config.loan_period_days == 14
        assert config.checkout_limit == 5
        assert config.reservation_hold_hours == 72
        assert config.transfer_lock_timeout_seconds == 5.0
        assert config.log_level == "INFO"
        assert config.debug is False

    def test_environment_variable_loading(self, clean_env):
        """Test loading configuration from environment variables."""
        env_vars = {
            "LIBRARY_CIRCULATION_LOAN_PERIOD_DAYS": "21",
            "LIBRARY_CIRCULATION_CHECKOUT_LIMIT": "3",
            "LIBRARY_CIRCULATION_RESERVATION_HOLD_HOURS": "24",
            "LIBRARY_CIRCULATION_TRANSFER_LOCK_TIMEOUT_SECONDS": "1.5",
            "LIBRARY_CIRCULATION_DEBUG": "true",
            "LIBRARY_CIRCULATION_LOG_LEVEL": "warning",
        }

        with patch.dict(os.environ, env_vars):
            config = CirculationConfig()

            assert config.loan_period_days == 21
            assert config.checkout_limit == 3
            assert config.reservation_hold_hours == 24
            assert config.transfer_lock_timeout_seconds == 1.5
            assert config.debug is True
            # Lower-case levels from the environment are normalized
            assert config.log_level == "WARNING"

    def test_case_insensitive_env_vars(self, clean_env):
        """Test that environment variable names are case-insensitive."""
        with patch.dict(os.environ, {"library_circulation_checkout_limit": "7"}):
            config = CirculationConfig()
            assert config.checkout_limit == 7

    @pytest.mark.parametrize(
        "field,value",
        [
            ("loan_period_days", 0),
            ("loan_period_days", 366),
            ("checkout_limit", 0),
            ("checkout_limit", 51),
            ("reservation_hold_hours", 0),
            ("transfer_lock_timeout_seconds", 0),
        ],
    )
    def test_policy_bounds(self, field, value):
        """Test that out-of-range policy values are rejected."""
        with pytest.raises(ValidationError):
            CirculationConfig(**{field: value})

    def test_log_level_validation(self):
        """Test that only known log levels are accepted."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR"]:
            assert CirculationConfig(log_level=level).log_level == level

        with pytest.raises(ValidationError):
            CirculationConfig(log_level="VERBOSE")

    def test_development_mode(self):
        """Test development mode detection and the effective log level."""
        config = CirculationConfig(debug=False, log_level="INFO")
        assert config.is_development is False
        assert config.effective_log_level == "INFO"

        config = CirculationConfig(debug=True, log_level="WARNING")
        assert config.is_development is True
        assert config.effective_log_level == "DEBUG"

        config = CirculationConfig(debug=False, log_level="DEBUG")
        assert config.is_development is True


class TestConfigSingleton:
    """Test the process-wide configuration accessor."""

    def test_get_config_returns_same_instance(self, clean_env):
        """Test that get_config caches its instance."""
        reset_config()
        assert get_config() is get_config()

    def test_reset_config_rebuilds_from_environment(self, clean_env):
        """Test that reset_config picks up environment changes."""
        reset_config()
        first = get_config()

        with patch.dict(os.environ, {"LIBRARY_CIRCULATION_LOAN_PERIOD_DAYS": "30"}):
            reset_config()
            second = get_config()

        assert first is not second
        assert first.loan_period_days == 14
        assert second.loan_period_days == 30
