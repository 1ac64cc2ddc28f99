from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from domain.precision import CONTEXT

DATE_FORMAT = "%d.%m.%Y"


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize(context=CONTEXT)
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_currency(value: Decimal) -> str:
    cents = value.quantize(Decimal("0.01"), context=CONTEXT)
    return f"{cents:.2f}"


def format_amount(value: Decimal, unit: str) -> str:
    return f"{format_decimal(value)} {unit}"


def format_date(value: datetime) -> str:
    return value.strftime(DATE_FORMAT)


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %z")


def format_days(value: timedelta) -> str:
    return f"{value / timedelta(days=1):.2f}"
