from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from .credit_pool import TAX_FREE_AFTER, Credit
from .precision import ZERO, add, mul, sub
from .transaction import Currency, Transaction


@dataclass(frozen=True)
class TaxRecord:
    currency: Currency
    buy_timestamp: datetime
    sell_timestamp: datetime
    sell_price: Decimal
    buy_price: Decimal
    advertising_costs: Decimal
    hold_longer_than_a_year: bool
    tax_year: int

    @property
    def profit(self) -> Decimal:
        return sub(sub(self.sell_price, self.buy_price), self.advertising_costs)


def _fee_key(tx: Transaction) -> tuple[str, str]:
    return tx.exchange, tx.id


def generate_tax_records(
    credits: Iterable[Credit], *, tax_free_after: timedelta = TAX_FREE_AFTER
) -> list[TaxRecord]:
    """Create one record per match, sorted by tax year, sell timestamp and currency.

    A transaction split over several matches contributes its fee to the first
    record only.
    """
    counted_fees: set[tuple[str, str]] = set()
    records: list[TaxRecord] = []

    for credit in credits:
        buy_tx = credit.buy_tx
        for match in credit.sells:
            costs = ZERO
            for tx in (match.tx, buy_tx):
                key = _fee_key(tx)
                if key in counted_fees:
                    continue
                counted_fees.add(key)
                costs = add(costs, tx.fees)

            records.append(
                TaxRecord(
                    currency=buy_tx.currency,
                    buy_timestamp=buy_tx.timestamp,
                    sell_timestamp=match.tx.timestamp,
                    sell_price=mul(match.quantity, match.tx.spot_price),
                    buy_price=mul(match.quantity, buy_tx.spot_price),
                    advertising_costs=costs,
                    hold_longer_than_a_year=match.is_tax_exempt(tax_free_after),
                    tax_year=match.tx.timestamp.year,
                )
            )

    records.sort(key=lambda record: (record.tax_year, record.sell_timestamp, record.currency))
    return records


@dataclass
class TaxReport:
    tax_year: int | None
    records: list[TaxRecord] = field(default_factory=list)
    earnings: Decimal = ZERO
    loss: Decimal = ZERO

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def full(self) -> bool:
        return self.tax_year is None


def compute_tax_report(records: Iterable[TaxRecord], *, tax_year: int, full: bool) -> TaxReport:
    """Aggregate records into earnings and loss totals.

    Unless ``full`` is set only taxable records of ``tax_year`` are included.
    """
    report = TaxReport(tax_year=None if full else tax_year)

    for record in records:
        if not full and (record.tax_year != tax_year or record.hold_longer_than_a_year):
            continue

        report.records.append(record)
        profit = record.profit
        if profit >= 0:
            report.earnings = add(report.earnings, profit)
        else:
            report.loss = add(report.loss, profit)

    return report
