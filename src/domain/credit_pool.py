from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from itertools import islice
from typing import Iterator

from .precision import ZERO, sub, total
from .transaction import Currency, Transaction

TAX_FREE_AFTER = timedelta(days=365)


@dataclass
class Match:
    """Portion of a credit consumed by one disposal."""

    tx: Transaction
    quantity: Decimal
    profit: Decimal
    hold_time: timedelta
    paid_with_cryptocurrency: bool = False

    def is_tax_exempt(self, tax_free_after: timedelta = TAX_FREE_AFTER) -> bool:
        return self.hold_time >= tax_free_after


@dataclass
class Credit:
    """Open purchase lot created from a fiat buy."""

    buy_tx: Transaction
    balance: Decimal
    sells: list[Match] = field(default_factory=list)

    @property
    def matched_quantity(self) -> Decimal:
        return total(match.quantity for match in self.sells)

    def consume(
        self,
        quantity: Decimal,
        tx: Transaction,
        *,
        profit: Decimal,
        paid_with_cryptocurrency: bool = False,
    ) -> Match:
        if quantity <= 0:
            raise ValueError(f"consumed quantity must be > 0, got {quantity}")
        if quantity > self.balance:
            raise ValueError(f"cannot consume {quantity} from credit with balance {self.balance}")

        self.balance = sub(self.balance, quantity)
        match = Match(
            tx=tx,
            quantity=quantity,
            profit=profit,
            hold_time=tx.timestamp - self.buy_tx.timestamp,
            paid_with_cryptocurrency=paid_with_cryptocurrency,
        )
        self.sells.append(match)
        return match


class CreditPool:
    """Credits in the order they were added, indexed per currency."""

    def __init__(self, fiat_currency: Currency = Currency.EUR) -> None:
        self.fiat_currency = fiat_currency
        self._credits: list[Credit] = []
        self._by_currency: dict[Currency, list[Credit]] = defaultdict(list)
        # Per currency, number of leading credits known to be exhausted.
        self._exhausted: dict[Currency, int] = defaultdict(int)

    def __iter__(self) -> Iterator[Credit]:
        return iter(self._credits)

    def __len__(self) -> int:
        return len(self._credits)

    def add_lot(self, buy_tx: Transaction) -> Credit:
        if buy_tx.pay_currency != self.fiat_currency:
            raise ValueError(
                f"credit must be paid in {self.fiat_currency}, got {buy_tx.pay_currency} (tx={buy_tx.id})"
            )

        credit = Credit(buy_tx=buy_tx, balance=buy_tx.quantity)
        self._credits.append(credit)
        self._by_currency[buy_tx.currency].append(credit)
        return credit

    def find_eligible_lot(self, currency: Currency, at_or_before: datetime) -> Credit | None:
        """Return the oldest credit of ``currency`` with balance left, bought no later than ``at_or_before``."""
        credits = self._by_currency.get(currency)
        if not credits:
            return None

        start = self._exhausted[currency]
        while start < len(credits) and credits[start].balance == ZERO:
            start += 1
        self._exhausted[currency] = start

        for credit in islice(credits, start, None):
            if credit.balance > 0 and credit.buy_tx.timestamp <= at_or_before:
                return credit
        return None

    def open_balance(self, currency: Currency) -> Decimal:
        return total(credit.balance for credit in self._by_currency.get(currency, []))
