"""Configuration management for the library circulation engine.

Settings are loaded with pydantic-settings, so every value can be supplied
through a ``LIBRARY_CIRCULATION_`` prefixed environment variable or a local
``.env`` file:

1. Loan policy - loan period and per-patron checkout limit
2. Waitlist policy - how long a notified patron keeps a hold
3. Transfer hardening - lock acquisition timeout
4. Logging - level and debug switch
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CirculationConfig(BaseSettings):
    """Circulation policy and runtime settings.

    A registry and its branches read their policy from one of these. The
    module-level accessor below is a convenience; components also take an
    explicit instance so several registries can run side by side with
    different settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_CIRCULATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Loan Policy ===

    loan_period_days: int = Field(
        default=14,
        description="Days between checkout and due date",
        ge=1,
        le=365,
    )

    checkout_limit: int = Field(
        default=5,
        description="Maximum number of books a patron may hold at once",
        ge=1,
        le=50,
    )

    # === Waitlist Policy ===

    reservation_hold_hours: int = Field(
        default=72,
        description="Hours a notified waitlist head keeps the hold before it passes on",
        ge=1,
    )

    # === Transfer Hardening ===

    transfer_lock_timeout_seconds: float = Field(
        default=5.0,
        description="Seconds to wait for both branch locks during a transfer",
        gt=0,
    )

    # === Logging ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"

    @property
    def effective_log_level(self) -> str:
        """Level the demo entry point should configure logging with."""
        return "DEBUG" if self.debug else self.log_level


class _ConfigStore:
    """Internal storage for the configuration singleton."""

    _instance: CirculationConfig | None = None


def get_config() -> CirculationConfig:
    """Get or create the process-wide configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = CirculationConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
