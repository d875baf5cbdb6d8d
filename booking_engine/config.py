"""
Centralized configuration with environment variable overrides.

Backend location, pricing parameters, and booking rule thresholds are
configurable here. Nothing is hardcoded in wizard or tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_engine.logging_context import SESSION_LOG_FORMAT, install_session_filter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ApiConfig:
    """Remote booking backend settings."""

    base_url: str = os.getenv("BOOKING_API_BASE_URL", "http://localhost:8000/api")
    timeout_sec: float = _safe_float("BOOKING_API_TIMEOUT", "60")
    token: str = os.getenv("BOOKING_API_TOKEN", "")


@dataclass(frozen=True)
class PricingConfig:
    """Tax and currency used when quoting a booking."""

    tax_rate: float = _safe_float("TAX_RATE", "0.10")
    currency: str = os.getenv("CURRENCY", "USD")


@dataclass(frozen=True)
class BookingRulesConfig:
    """Thresholds enforced by the booking wizard."""

    postal_debounce_ms: int = _safe_int("POSTAL_DEBOUNCE_MS", "500")
    max_custom_text_length: int = _safe_int("MAX_CUSTOM_TEXT_LENGTH", "500")
    min_phone_digits: int = _safe_int("MIN_PHONE_DIGITS", "10")
    max_phone_digits: int = _safe_int("MAX_PHONE_DIGITS", "15")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    api: ApiConfig = field(default_factory=ApiConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    booking: BookingRulesConfig = field(default_factory=BookingRulesConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "cleaning-booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not config.api.base_url.strip():
        raise ValueError("BOOKING_API_BASE_URL must not be empty")
    if config.api.timeout_sec <= 0:
        raise ValueError(
            f"BOOKING_API_TIMEOUT must be > 0, got {config.api.timeout_sec}"
        )
    if not 0.0 <= config.pricing.tax_rate <= 1.0:
        raise ValueError(
            f"TAX_RATE must be between 0.0 and 1.0, got {config.pricing.tax_rate}"
        )
    if config.booking.postal_debounce_ms < 0:
        raise ValueError(
            f"POSTAL_DEBOUNCE_MS must be >= 0, got {config.booking.postal_debounce_ms}"
        )
    if config.booking.max_custom_text_length < 1:
        raise ValueError(
            "MAX_CUSTOM_TEXT_LENGTH must be >= 1, "
            f"got {config.booking.max_custom_text_length}"
        )
    if config.booking.min_phone_digits < 1:
        raise ValueError(
            f"MIN_PHONE_DIGITS must be >= 1, got {config.booking.min_phone_digits}"
        )
    if config.booking.max_phone_digits < config.booking.min_phone_digits:
        raise ValueError(
            "MAX_PHONE_DIGITS must be >= MIN_PHONE_DIGITS, "
            f"got {config.booking.max_phone_digits} < {config.booking.min_phone_digits}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=SESSION_LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_session_filter()
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Default instance for callers that don't pass a config explicitly
settings = load_config()
