"""Application configuration accessors.

Centralizes environment variable parsing & defaults. Every setting is read
through a small function so tests can flip values with ``monkeypatch.setenv``
without reloading modules.
"""
from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation
from functools import lru_cache

APP_NAME = "booktech"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "BookTech digital bookstore & e-reader API"

DEFAULT_DB_PATH = "booktech.db"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TAX_RATE = "0.18"
_TRUE = {"1", "true", "yes", "on"}


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _clean_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def env_bool(name: str, default: bool = False) -> bool:
    raw = _raw_env(name, str(default).lower())
    if raw is None:
        return default
    return raw.lower() in _TRUE


def env_int(name: str, default: int) -> int:
    raw = _clean_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_db_path() -> str:
    raw = _raw_env("BOOKTECH_DB_PATH", DEFAULT_DB_PATH)
    if raw and raw != ":memory:" and not os.path.isabs(raw):
        data_dir = os.getenv("BOOKTECH_DATA_DIR")
        if data_dir:
            return os.path.join(data_dir, raw)
    return raw  # type: ignore[return-value]


def log_level_name() -> str:
    return _raw_env("BOOKTECH_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()  # type: ignore[union-attr]


def secret_key() -> str:
    return _clean_env("BOOKTECH_SECRET_KEY") or "dev-secret-change-me"


def token_ttl_days() -> int:
    """Lifetime of bearer tokens issued at signup / signin."""
    return env_int("BOOKTECH_TOKEN_TTL_DAYS", 7)


def reset_token_ttl_hours() -> int:
    return env_int("BOOKTECH_RESET_TOKEN_TTL_HOURS", 1)


def tax_rate() -> Decimal:
    """Checkout tax rate as a Decimal fraction (0.18 == 18%)."""
    raw = _clean_env("BOOKTECH_TAX_RATE") or DEFAULT_TAX_RATE
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return Decimal(DEFAULT_TAX_RATE)
    if value < 0:
        return Decimal("0")
    return value


def currency() -> str:
    return (_clean_env("BOOKTECH_CURRENCY") or "INR").upper()


def demo_orders_enabled() -> bool:
    """Whether checkout may fall back to a demo order when the gateway is down.

    Environment Variable: BOOKTECH_DEMO_ORDERS (default: true)
    """
    return env_bool("BOOKTECH_DEMO_ORDERS", default=True)


def frontend_url() -> str:
    return (_clean_env("FRONTEND_URL") or "https://book-tech.vercel.app").rstrip("/")


def razorpay_key_id() -> str | None:
    return _clean_env("RAZORPAY_KEY_ID")


def razorpay_key_secret() -> str | None:
    return _clean_env("RAZORPAY_KEY_SECRET")


def razorpay_webhook_secret() -> str | None:
    """HMAC secret for inbound webhooks (falls back to the key secret)."""
    return _clean_env("RAZORPAY_WEBHOOK_SECRET") or razorpay_key_secret()


def razorpay_api_base() -> str:
    return os.getenv("RAZORPAY_API_BASE", "https://api.razorpay.com/v1")


def http_timeout() -> int:
    return env_int("BOOKTECH_HTTP_TIMEOUT", 10)


def reader_poll_seconds() -> float:
    return float(env_int("BOOKTECH_READER_POLL_SECONDS", 5))


def reader_stats_seconds() -> float:
    return float(env_int("BOOKTECH_READER_STATS_SECONDS", 30))


def admin_bootstrap_email() -> str:
    """Admin email to seed on startup.

    Environment Variable: BOOKTECH_ADMIN_EMAIL
    Default: admin@booktech.local
    """
    return (os.getenv("BOOKTECH_ADMIN_EMAIL") or "admin@booktech.local").strip().lower()


def admin_bootstrap_password() -> str | None:
    """Admin password to seed; no admin is created when unset."""
    return _clean_env("BOOKTECH_ADMIN_PASSWORD")


@lru_cache(maxsize=1)
def metadata() -> dict:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
    }


def summarize_runtime_config() -> dict:
    return {
        "db_path": get_db_path(),
        "log_level": log_level_name(),
        "tax_rate": str(tax_rate()),
        "currency": currency(),
        "demo_orders": demo_orders_enabled(),
        "gateway_configured": bool(razorpay_key_id() and razorpay_key_secret()),
        "frontend_url": frontend_url(),
    }


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "env_bool",
    "env_int",
    "get_db_path",
    "log_level_name",
    "secret_key",
    "token_ttl_days",
    "reset_token_ttl_hours",
    "tax_rate",
    "currency",
    "demo_orders_enabled",
    "frontend_url",
    "razorpay_key_id",
    "razorpay_key_secret",
    "razorpay_webhook_secret",
    "razorpay_api_base",
    "http_timeout",
    "reader_poll_seconds",
    "reader_stats_seconds",
    "admin_bootstrap_email",
    "admin_bootstrap_password",
    "metadata",
    "summarize_runtime_config",
]
