from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import uuid4

from pydantic import ValidationError

from domain.precision import ZERO, mul, sub, to_decimal
from domain.transaction import (
    Currency,
    Transaction,
    TxType,
    UnsupportedCurrencyError,
    UnsupportedTransactionTypeError,
)

logger = logging.getLogger(__name__)

EXCHANGE_NAME = "Coinbase"

# Timestamp, Transaction Type, Asset, Quantity Transacted, EUR Spot Price at Transaction,
# EUR Total (inclusive of Coinbase fees), Address, Notes
RECORD_FIELDS = 8
SKIPPED_TYPES = {"send", "receive"}


class CoinbaseImportError(ValueError):
    pass


def _parse_decimal(value: str, *, column: str, line_no: int) -> Decimal:
    try:
        result = to_decimal(value.strip())
    except InvalidOperation as err:
        raise CoinbaseImportError(f"line {line_no}: converting {column} {value!r} to Decimal failed") from err
    if not result.is_finite():
        raise CoinbaseImportError(f"line {line_no}: {column} {value!r} is not a finite number")
    return result


class CoinbaseImporter:
    """Import the tax history export of Coinbase.

    The export starts with a free-form preamble; every line that does not look
    like a transaction row is skipped. Fees are not listed explicitly, they are
    the difference between the EUR total and quantity * spot price.
    """

    def __init__(self, source_path: str | Path) -> None:
        self._source_path = Path(source_path)

    def load_transactions(self) -> list[Transaction]:
        transactions: list[Transaction] = []
        with self._source_path.open(encoding="utf-8", newline="") as handle:
            for line_no, row in enumerate(csv.reader(handle), start=1):
                tx = self._parse_row(row, line_no)
                if tx is not None:
                    transactions.append(tx)

        transactions.sort(key=lambda tx: tx.timestamp)
        return transactions

    def _parse_row(self, row: list[str], line_no: int) -> Transaction | None:
        if len(row) != RECORD_FIELDS:
            logger.info("skipping line %d: %s", line_no, row)
            return None

        try:
            timestamp = datetime.strptime(row[0].strip(), "%m/%d/%Y").replace(tzinfo=timezone.utc)
        except ValueError:
            logger.info("skipping line %d: %s", line_no, row)
            return None

        if row[1].strip().lower() in SKIPPED_TYPES:
            logger.info("skipping line %d: %s", line_no, row)
            return None

        try:
            tx_type = TxType.parse(row[1])
            currency = Currency.parse(row[2])
        except (UnsupportedTransactionTypeError, UnsupportedCurrencyError) as err:
            raise CoinbaseImportError(f"line {line_no}: {err}") from err

        quantity = _parse_decimal(row[3], column="quantity", line_no=line_no)
        spot_price = _parse_decimal(row[4], column="spot price", line_no=line_no)
        total_with_fees = _parse_decimal(row[5], column="total", line_no=line_no)

        price = mul(quantity, spot_price)
        if tx_type == TxType.BUY:
            fees = sub(total_with_fees, price)
        else:
            fees = sub(price, total_with_fees)
        if fees < 0:
            # Totals are rounded to cents and can undercut quantity * spot price.
            logger.info("line %d: negative fee %s treated as 0", line_no, fees)
            fees = ZERO

        try:
            return Transaction(
                id=str(uuid4()),
                exchange=EXCHANGE_NAME,
                timestamp=timestamp,
                tx_type=tx_type,
                currency=currency,
                pay_currency=Currency.EUR,
                quantity=quantity,
                spot_price=spot_price,
                fees=fees,
            )
        except ValidationError as err:
            raise CoinbaseImportError(f"{self._source_path}:{line_no}: invalid transaction row: {err}") from err
