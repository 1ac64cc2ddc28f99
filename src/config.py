from __future__ import annotations

from datetime import timedelta
from functools import cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.transaction import Currency


class AppSettings(BaseSettings):
    fiat_currency: Currency = Currency.EUR
    tax_free_days: int = 365
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CRYPTOTAX_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def tax_free_after(self) -> timedelta:
        return timedelta(days=self.tax_free_days)


@cache
def config() -> AppSettings:
    return AppSettings()
