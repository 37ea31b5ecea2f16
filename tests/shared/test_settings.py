"""Tests for business settings lookup and logging helpers."""

from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import structlog
from shared.logging import get_log_level, log_context, stringify_values
from shared.settings import custom_setting, decimal_setting


def _domain(**custom):
    return SimpleNamespace(config={"custom": custom})


class TestCustomSetting:
    def test_reads_domain_value(self):
        assert custom_setting(_domain(LOW_STOCK_THRESHOLD=3), "LOW_STOCK_THRESHOLD") == 3

    def test_falls_back_to_default_argument(self):
        assert custom_setting(_domain(), "LOW_STOCK_THRESHOLD", default=7) == 7

    def test_falls_back_to_builtin_defaults(self):
        assert custom_setting(_domain(), "RESERVATION_TIMEOUT_MINUTES") == 15
        assert custom_setting(SimpleNamespace(config={}), "SWEEP_INTERVAL_SECONDS") == 60

    def test_unknown_key(self):
        assert custom_setting(_domain(), "NOPE") is None

    def test_decimal_setting(self):
        assert decimal_setting(_domain(TAX_RATE="0.0825"), "TAX_RATE") == Decimal("0.0825")


class TestLogLevel:
    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert get_log_level() == "ERROR"

    def test_level_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENV", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "production")
        assert get_log_level() == "INFO"

        monkeypatch.setenv("PROTEAN_ENV", "test")
        assert get_log_level() == "WARNING"


class TestLogProcessors:
    def test_decimals_and_uuids_are_stringified(self):
        order_id = UUID("12345678-1234-5678-1234-567812345678")
        event = stringify_values(None, "info", {"grand_total": Decimal("10.50"), "order_id": order_id, "qty": 2})
        assert event == {"grand_total": "10.50", "order_id": str(order_id), "qty": 2}

    def test_log_context_binds_and_unbinds(self):
        with log_context(order_id="ord-1", actor=None):
            bound = structlog.contextvars.get_contextvars()
            assert bound["order_id"] == "ord-1"
            assert "actor" not in bound
        assert "order_id" not in structlog.contextvars.get_contextvars()
