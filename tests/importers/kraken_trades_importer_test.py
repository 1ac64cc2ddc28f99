from __future__ import annotations

import logging
from csv import DictWriter
from datetime import datetime, timezone
from decimal import Decimal
from itertools import count
from pathlib import Path

import pytest

from domain.transaction import Currency, TxType
from importers.kraken_importer import KrakenImporter, KrakenImportError, parse_pair

FIELDNAMES = [
    "txid",
    "ordertxid",
    "pair",
    "time",
    "type",
    "ordertype",
    "price",
    "cost",
    "fee",
    "vol",
    "margin",
    "misc",
    "ledgers",
]

_txid_counter = count(1)


def write_csv(path: Path, rows: list[dict[str, str]]) -> None:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = DictWriter(handle, fieldnames=FIELDNAMES)
        writer.writeheader()
        writer.writerows(rows)


def trade_row(
    *,
    pair: str,
    time: str,
    tx_type: str,
    price: str,
    vol: str,
    fee: str = "0",
    txid: str | None = None,
) -> dict[str, str]:
    if txid is None:
        txid = f"T{next(_txid_counter)}"
    return {
        "txid": txid,
        "ordertxid": f"O{txid}",
        "pair": pair,
        "time": time,
        "type": tx_type,
        "ordertype": "limit",
        "price": price,
        "cost": "0",
        "fee": fee,
        "vol": vol,
        "margin": "0",
        "misc": "",
        "ledgers": "",
    }


@pytest.mark.parametrize(
    ("pair", "expected"),
    [
        ("XXBTZEUR", (Currency.BTC, Currency.EUR)),
        ("XETHZEUR", (Currency.ETH, Currency.EUR)),
        ("XXLMXXBT", (Currency.XLM, Currency.BTC)),
        ("XXRPBCH", (Currency.XRP, Currency.BCH)),
        ("XBTLTC", (Currency.BTC, Currency.LTC)),
        ("DASHEUR", (Currency.DASH, Currency.EUR)),
        ("EOSETH", (Currency.EOS, Currency.ETH)),
    ],
)
def test_parse_pair(pair: str, expected: tuple[Currency, Currency]) -> None:
    assert parse_pair(pair) == expected


@pytest.mark.parametrize("pair", ["DOGEEUR", "XXBTZUSD"])
def test_parse_pair_rejects_unknown_assets(pair: str) -> None:
    with pytest.raises(KrakenImportError):
        parse_pair(pair)


def test_eur_trades_become_transactions(tmp_path: Path) -> None:
    file = tmp_path / "trades.csv"
    write_csv(
        file,
        [
            trade_row(
                txid="SELL1",
                pair="XXBTZEUR",
                time="2018-02-01 10:00:00.1234",
                tx_type="sell",
                price="9000.0",
                vol="0.5",
                fee="7.2",
            ),
            trade_row(
                txid="BUY1",
                pair="XXBTZEUR",
                time="2018-01-01 09:30:00.000",
                tx_type="buy",
                price="12000.5",
                vol="1.25",
                fee="12.5",
            ),
        ],
    )

    transactions = KrakenImporter(file).load_transactions()

    assert [tx.id for tx in transactions] == ["BUY1", "SELL1"]
    first = transactions[0]
    assert first.exchange == "Kraken"
    assert first.tx_type == TxType.BUY
    assert first.currency == Currency.BTC
    assert first.pay_currency == Currency.EUR
    assert first.quantity == Decimal("1.25")
    assert first.spot_price == Decimal("12000.5")
    assert first.fees == Decimal("12.5")
    assert first.timestamp == datetime(2018, 1, 1, 9, 30, tzinfo=timezone.utc)

    second = transactions[1]
    assert second.tx_type == TxType.SELL
    assert second.timestamp == datetime(2018, 2, 1, 10, 0, 0, 123400, tzinfo=timezone.utc)


def test_fees_of_crypto_trades_are_ignored(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    file = tmp_path / "trades.csv"
    write_csv(
        file,
        [trade_row(pair="XETHXXBT", time="2018-03-01 12:00:00", tx_type="buy", price="0.08", vol="3", fee="0.0001")],
    )

    with caplog.at_level(logging.WARNING, logger="importers.kraken_importer"):
        [tx] = KrakenImporter(file).load_transactions()

    assert tx.currency == Currency.ETH
    assert tx.pay_currency == Currency.BTC
    assert tx.fees == 0
    assert "fees are ignored" in caplog.text


def test_unknown_type_is_rejected(tmp_path: Path) -> None:
    file = tmp_path / "trades.csv"
    write_csv(file, [trade_row(pair="XXBTZEUR", time="2018-03-01 12:00:00", tx_type="margin", price="1", vol="1")])

    with pytest.raises(KrakenImportError, match="unsupported transaction type"):
        KrakenImporter(file).load_transactions()


def test_invalid_time_is_rejected(tmp_path: Path) -> None:
    file = tmp_path / "trades.csv"
    write_csv(file, [trade_row(pair="XXBTZEUR", time="01.03.2018", tx_type="buy", price="1", vol="1")])

    with pytest.raises(KrakenImportError, match="trades.csv:2"):
        KrakenImporter(file).load_transactions()


def test_invalid_number_is_rejected(tmp_path: Path) -> None:
    file = tmp_path / "trades.csv"
    write_csv(file, [trade_row(pair="XXBTZEUR", time="2018-03-01 12:00:00", tx_type="buy", price="abc", vol="1")])

    with pytest.raises(KrakenImportError):
        KrakenImporter(file).load_transactions()
