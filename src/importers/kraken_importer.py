from __future__ import annotations

import logging
from csv import DictReader
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from domain.transaction import Currency, Transaction, TxType, UnsupportedTransactionTypeError

logger = logging.getLogger(__name__)

EXCHANGE_NAME = "Kraken"

# https://support.kraken.com/hc/en-us/articles/360001185506-Asset-Codes
ASSET_CODES = {
    **{currency.value: currency for currency in Currency},
    "XETH": Currency.ETH,
    "XLTC": Currency.LTC,
    "XXBT": Currency.BTC,
    "XBT": Currency.BTC,
    "XXLM": Currency.XLM,
    "XXMR": Currency.XMR,
    "XXRP": Currency.XRP,
    "XZEC": Currency.ZEC,
    "ZEUR": Currency.EUR,
    "XNMC": Currency.NMC,
}

_TIME_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S")


class KrakenImportError(ValueError):
    pass


class KrakenTradeEntry(BaseModel):
    txid: str
    pair: str
    time: datetime
    type: str
    price: Decimal
    fee: Decimal
    vol: Decimal

    @field_validator("time", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: str | datetime) -> datetime:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value
        for time_format in _TIME_FORMATS:
            try:
                return datetime.strptime(value, time_format).replace(tzinfo=timezone.utc)
            except ValueError:
                continue
        raise ValueError(f"unsupported time format: {value!r}")

    @field_validator("fee", mode="before")
    @classmethod
    def _empty_fee(cls, value: str | Decimal) -> str | Decimal:
        if value == "":
            return "0"
        return value


def parse_pair(pair: str) -> tuple[Currency, Currency]:
    """Split a Kraken pair like ``XXBTZEUR`` or ``XBTLTC`` into (currency, pay currency)."""
    code = pair.strip().upper()
    for split_at in (3, 4):
        currency = ASSET_CODES.get(code[:split_at])
        if currency is None:
            continue
        pay_currency = ASSET_CODES.get(code[split_at:])
        if pay_currency is None:
            raise KrakenImportError(f"unknown pay currency in pair {pair!r}")
        return currency, pay_currency
    raise KrakenImportError(f"unknown currency in pair {pair!r}")


class KrakenImporter:
    """Import the trades export of Kraken.

    Fees of trades not paid in EUR are dropped: their EUR value at the time
    they were paid is unknown.
    """

    def __init__(self, source_path: str | Path) -> None:
        self._source_path = Path(source_path)

    def load_transactions(self) -> list[Transaction]:
        transactions = [self._build_transaction(entry) for entry in self._read_entries()]
        transactions.sort(key=lambda tx: tx.timestamp)
        return transactions

    def _read_entries(self) -> list[KrakenTradeEntry]:
        entries: list[KrakenTradeEntry] = []
        with self._source_path.open(encoding="utf-8") as handle:
            reader = DictReader(handle)
            for line_no, row in enumerate(reader, start=2):
                try:
                    entries.append(KrakenTradeEntry.model_validate(row))
                except ValidationError as err:
                    raise KrakenImportError(f"{self._source_path}:{line_no}: invalid trade row: {err}") from err
        return entries

    def _build_transaction(self, entry: KrakenTradeEntry) -> Transaction:
        currency, pay_currency = parse_pair(entry.pair)

        try:
            tx_type = TxType.parse(entry.type)
        except UnsupportedTransactionTypeError as err:
            raise KrakenImportError(f"trade {entry.txid}: {err}") from err

        fee = entry.fee
        if pay_currency != Currency.EUR:
            logger.warning("currency was not bought in EUR, fees are ignored: %s", entry.model_dump())
            fee = Decimal(0)

        return Transaction(
            id=entry.txid,
            exchange=EXCHANGE_NAME,
            timestamp=entry.time,
            tx_type=tx_type,
            currency=currency,
            pay_currency=pay_currency,
            quantity=entry.vol,
            spot_price=entry.price,
            fees=fee,
        )
