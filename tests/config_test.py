from __future__ import annotations

from datetime import timedelta

import pytest

from config import config
from domain.transaction import Currency


def test_defaults() -> None:
    settings = config()
    assert settings.fiat_currency == Currency.EUR
    assert settings.tax_free_after == timedelta(days=365)


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CRYPTOTAX_TAX_FREE_DAYS", "30")
    monkeypatch.setenv("CRYPTOTAX_LOG_LEVEL", "DEBUG")

    settings = config()

    assert settings.tax_free_after == timedelta(days=30)
    assert settings.log_level == "DEBUG"
    assert config() is settings
