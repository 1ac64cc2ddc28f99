from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

from config import config
from domain.book import Book
from domain.transaction import Transaction
from importers.coinbase_importer import CoinbaseImporter
from importers.kraken_importer import KrakenImporter

logger = logging.getLogger(__name__)


def load_transactions(*, coinbase_csv: Path | None, kraken_csv: Path | None) -> list[Transaction]:
    transactions: list[Transaction] = []

    if coinbase_csv is not None:
        logger.info("reading %s", coinbase_csv)
        transactions.extend(CoinbaseImporter(coinbase_csv).load_transactions())

    if kraken_csv is not None:
        logger.info("reading %s", kraken_csv)
        transactions.extend(KrakenImporter(kraken_csv).load_transactions())

    return transactions


def run(*, coinbase_csv: Path | None, kraken_csv: Path | None, tax_year: int) -> None:
    settings = config()
    transactions = load_transactions(coinbase_csv=coinbase_csv, kraken_csv=kraken_csv)

    book = Book(
        transactions,
        tax_year,
        fiat_currency=settings.fiat_currency,
        tax_free_after=settings.tax_free_after,
    )
    book.calculate()

    print(book)
    print()
    print("TAX REPORT Full")
    print(book.tax_report(full=True))
    print("================")
    print(f"TAX REPORT {tax_year}")
    print(book.tax_report(full=False))
    print()


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create a capital gains report from exchange CSV exports.")
    parser.add_argument("--coinbase-csv", type=Path, help="path to a Coinbase tax history CSV file")
    parser.add_argument("--kraken-csv", type=Path, help="path to a Kraken trades CSV file")
    parser.add_argument(
        "--tax-year",
        type=int,
        default=datetime.now().year - 1,
        help="year for which the report is created (default: last year)",
    )
    args = parser.parse_args(argv)

    if args.coinbase_csv is None and args.kraken_csv is None:
        parser.error("you have to specify the path to at least 1 CSV file")

    logging.basicConfig(level=config().log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    run(coinbase_csv=args.coinbase_csv, kraken_csv=args.kraken_csv, tax_year=args.tax_year)


if __name__ == "__main__":
    main()
