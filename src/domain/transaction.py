from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .precision import mul, to_decimal


class UnsupportedCurrencyError(ValueError):
    pass


class UnsupportedTransactionTypeError(ValueError):
    pass


class Currency(StrEnum):
    BCH = "BCH"
    BTC = "BTC"
    DASH = "DASH"
    EOS = "EOS"
    ETH = "ETH"
    EUR = "EUR"
    LTC = "LTC"
    NMC = "NMC"
    XLM = "XLM"
    XMR = "XMR"
    XRP = "XRP"
    ZEC = "ZEC"

    @classmethod
    def parse(cls, value: str) -> Currency:
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise UnsupportedCurrencyError(f"unsupported currency: {value!r}") from None


class TxType(StrEnum):
    UNDEFINED = "undefined"
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: str) -> TxType:
        normalized = value.strip().lower()
        if normalized in (cls.BUY, cls.SELL):
            return cls(normalized)
        raise UnsupportedTransactionTypeError(f"unsupported transaction type: {value!r}")


class Transaction(BaseModel):
    """A normalized buy or sell as reported by an exchange.

    ``spot_price`` is the price of one unit of ``currency`` expressed in
    ``pay_currency``; ``fees`` are expressed in ``pay_currency`` too. A buy
    whose ``pay_currency`` is not fiat is a crypto-to-crypto trade.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    exchange: str
    timestamp: datetime
    tx_type: TxType
    currency: Currency
    pay_currency: Currency
    quantity: Decimal
    spot_price: Decimal
    fees: Decimal = Decimal(0)

    @field_validator("timestamp", mode="after")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("currency", "pay_currency", mode="before")
    @classmethod
    def _parse_currency(cls, value: str | Currency) -> str | Currency:
        if isinstance(value, str) and not isinstance(value, Currency):
            return Currency.parse(value)
        return value

    @field_validator("quantity", "spot_price", "fees", mode="after")
    @classmethod
    def _non_negative(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("must be >= 0")
        return to_decimal(value)

    @model_validator(mode="after")
    def _validate_fields(self) -> Transaction:
        if not self.id:
            raise ValueError("Transaction.id must be non-empty")
        if self.tx_type == TxType.UNDEFINED:
            raise UnsupportedTransactionTypeError(f"unsupported transaction type: {self.tx_type}")
        return self

    @property
    def price_no_fees(self) -> Decimal:
        return mul(self.quantity, self.spot_price)

    def __str__(self) -> str:
        return (
            f"{self.timestamp.isoformat()} {self.tx_type} {self.quantity} {self.currency} @ {self.exchange} "
            f"for {self.price_no_fees:f} {self.pay_currency} + {self.fees} fees"
        )
