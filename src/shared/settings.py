"""Business settings read from the ``[custom]`` section of each domain.toml."""

from decimal import Decimal

from protean.domain import Domain

DEFAULTS = {
    "RESERVATION_TIMEOUT_MINUTES": 15,
    "LOW_STOCK_THRESHOLD": 10,
    "SWEEP_INTERVAL_SECONDS": 60,
    "ORDER_NUMBER_PREFIX": "ORD",
    "TAX_RATE": "0.10",
    "SHIPPING_FLAT_RATE": "10.00",
    "DEFAULT_CURRENCY": "USD",
    "RETRY_ATTEMPTS": 3,
    "RETRY_BACKOFF_SECONDS": 0.05,
}


def custom_setting(domain: Domain, key: str, default=None):
    """Look up ``key`` under ``[custom]``, falling back to ``default`` then DEFAULTS."""
    custom = domain.config.get("custom") or {}
    if key in custom and custom[key] is not None:
        return custom[key]
    if default is not None:
        return default
    return DEFAULTS.get(key)


def decimal_setting(domain: Domain, key: str) -> Decimal:
    return Decimal(str(custom_setting(domain, key)))
