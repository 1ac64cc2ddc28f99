from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Iterable

from utils.report import render_ledger, render_tax_report

from .credit_pool import TAX_FREE_AFTER, Credit, CreditPool, Match
from .precision import ZERO, div, mul, sub, total
from .tax_records import TaxRecord, compute_tax_report, generate_tax_records
from .transaction import Currency, Transaction, TxType, UnsupportedTransactionTypeError

logger = logging.getLogger(__name__)


class BookError(Exception):
    def __init__(self, message: str, *, transaction: Transaction | None = None) -> None:
        super().__init__(message)
        self.transaction = transaction


class FundingLotNotFoundError(BookError):
    """A crypto-funded buy has no lot of its payment currency to draw from."""


@dataclass(frozen=True)
class BookWarning:
    """Disposal quantity that could not be matched against any credit.

    The unmatched quantity is assumed to have zero cost basis, so the whole
    sell value of it counts as profit.
    """

    transaction: Transaction
    unmatched_quantity: Decimal
    assumed_profit: Decimal
    message: str


@dataclass
class MatchResult:
    matches: list[Match] = field(default_factory=list)
    unmatched: Decimal = ZERO
    warnings: list[BookWarning] = field(default_factory=list)

    @property
    def matched_quantity(self) -> Decimal:
        return total(match.quantity for match in self.matches)


class Book:
    """Matches sells against fiat buys in FIFO order.

    All buys are processed before any sell, each group in timestamp order.
    """

    def __init__(
        self,
        transactions: Iterable[Transaction],
        tax_year: int,
        *,
        fiat_currency: Currency = Currency.EUR,
        tax_free_after: timedelta = TAX_FREE_AFTER,
    ) -> None:
        self.tax_year = tax_year
        self.fiat_currency = fiat_currency
        self.tax_free_after = tax_free_after
        self.pool = CreditPool(fiat_currency)
        self.warnings: list[BookWarning] = []
        self._calculated = False

        buys: list[Transaction] = []
        sells: list[Transaction] = []
        for tx in transactions:
            if tx.tx_type == TxType.BUY:
                buys.append(tx)
            elif tx.tx_type == TxType.SELL:
                sells.append(tx)
            else:
                raise UnsupportedTransactionTypeError(f"unsupported transaction type: {tx.tx_type} (tx={tx.id})")

        self.buys = sorted(buys, key=lambda tx: tx.timestamp)
        self.sells = sorted(sells, key=lambda tx: tx.timestamp)

    @property
    def credits(self) -> list[Credit]:
        return list(self.pool)

    def calculate(self) -> None:
        if self._calculated:
            raise BookError("book was already calculated")
        self._calculated = True

        for tx in self.buys:
            self.add_credit(tx.quantity, tx)

        for tx in self.sells:
            self.sell(tx.quantity, tx)

    def add_credit(self, quantity: Decimal, tx: Transaction) -> MatchResult:
        """Record a buy.

        A fiat buy opens a new credit. A buy paid with another cryptocurrency
        draws down credits of that currency instead; ``quantity`` is then the
        amount of ``tx.currency`` still to be paid for.
        """
        result = MatchResult()

        if tx.pay_currency == self.fiat_currency:
            self.pool.add_lot(tx)
            logger.info("recording buy: %s", tx)
            return result

        remaining = quantity
        while remaining > 0:
            needed = mul(remaining, tx.spot_price)
            if needed == 0:
                break

            credit = self.pool.find_eligible_lot(tx.pay_currency, tx.timestamp)
            if credit is None:
                raise FundingLotNotFoundError(
                    f"could not find {tx.pay_currency} credit for buying {tx}",
                    transaction=tx,
                )

            if credit.balance >= needed:
                match = credit.consume(needed, tx, profit=ZERO, paid_with_cryptocurrency=True)
                result.matches.append(match)
                logger.info("recording trade: %s paid with %s %s", tx, match.quantity, tx.pay_currency)
                break

            match = credit.consume(credit.balance, tx, profit=ZERO, paid_with_cryptocurrency=True)
            result.matches.append(match)
            logger.info("recording partial trade: %s paid with %s %s", tx, match.quantity, tx.pay_currency)
            remaining = div(sub(needed, match.quantity), tx.spot_price)

        return result

    def sell(self, quantity: Decimal, tx: Transaction) -> MatchResult:
        """Match ``quantity`` of ``tx.currency`` against the oldest eligible credits."""
        result = MatchResult()

        remaining = quantity
        while remaining > 0:
            credit = self.pool.find_eligible_lot(tx.currency, tx.timestamp)
            if credit is None:
                warning = BookWarning(
                    transaction=tx,
                    unmatched_quantity=remaining,
                    assumed_profit=mul(remaining, tx.spot_price),
                    message=f"could not find buy record for {remaining} {tx.currency} of {tx}, assuming 100% earning",
                )
                logger.warning(warning.message)
                result.warnings.append(warning)
                self.warnings.append(warning)
                result.unmatched = remaining
                break

            take = min(remaining, credit.balance)
            profit = sub(mul(take, tx.spot_price), mul(take, credit.buy_tx.spot_price))
            result.matches.append(credit.consume(take, tx, profit=profit))
            remaining = sub(remaining, take)

        return result

    def tax_records(self) -> list[TaxRecord]:
        return generate_tax_records(self.pool, tax_free_after=self.tax_free_after)

    def tax_report(self, full: bool) -> str:
        report = compute_tax_report(self.tax_records(), tax_year=self.tax_year, full=full)
        return render_tax_report(report, currency=self.fiat_currency)

    def ledger(self) -> str:
        return render_ledger(self.pool, tax_free_after=self.tax_free_after)

    def __str__(self) -> str:
        return self.ledger()
