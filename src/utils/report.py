from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Sequence

from domain.credit_pool import TAX_FREE_AFTER, Credit
from domain.tax_records import TaxReport

from .formatting import format_amount, format_currency, format_date, format_days, format_timestamp

LEDGER_HEADERS = (
    "Balance",
    "Type",
    "Timestamp",
    "Exchange",
    "Quantity",
    "Spot Price",
    "Exchange TX ID",
    "TX Fees",
    "Profit",
    "Hold Time in days",
    "Taxable",
)

TAX_REPORT_HEADERS = (
    "Tax Year",
    "Hold >= 1 Year",
    "Currency",
    "Buy Date",
    "Sell Date",
    "Sell Price",
    "Buy Price",
    "Advertising Costs",
)


def _render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    widths = [max(len(header), max((len(row[idx]) for row in rows), default=0)) for idx, header in enumerate(headers)]

    def render_row(cells: Sequence[str]) -> str:
        return "  ".join(f"{cell:<{width}}" for cell, width in zip(cells, widths)).rstrip()

    header = render_row(headers)
    return [header, "-" * len(header), *(render_row(row) for row in rows)]


def render_ledger(credits: Iterable[Credit], *, tax_free_after: timedelta = TAX_FREE_AFTER) -> str:
    """Render every credit followed by the matches drawn from it."""
    rows: list[tuple[str, ...]] = []

    for credit in credits:
        buy = credit.buy_tx
        rows.append(
            (
                format_amount(credit.balance, buy.currency),
                "BUY",
                format_timestamp(buy.timestamp),
                buy.exchange,
                format_amount(buy.quantity, buy.currency),
                format_amount(buy.spot_price, buy.pay_currency),
                buy.id,
                format_amount(buy.fees, buy.pay_currency),
                "-",
                "-",
                "-",
            )
        )

        for match in credit.sells:
            tx = match.tx
            rows.append(
                (
                    "-",
                    "TRADE" if match.paid_with_cryptocurrency else "SELL",
                    format_timestamp(tx.timestamp),
                    tx.exchange,
                    format_amount(match.quantity, buy.currency),
                    format_amount(tx.spot_price, tx.pay_currency),
                    tx.id,
                    format_amount(tx.fees, tx.pay_currency),
                    format_amount(match.profit, buy.pay_currency),
                    format_days(match.hold_time),
                    "no" if match.is_tax_exempt(tax_free_after) else "yes",
                )
            )

    if not rows:
        return "(no credits)"

    return "\n".join(_render_table(LEDGER_HEADERS, rows))


def render_tax_report(report: TaxReport, *, currency: str) -> str:
    rows = [
        (
            str(record.tax_year),
            "yes" if record.hold_longer_than_a_year else "no",
            str(record.currency),
            format_date(record.buy_timestamp),
            format_date(record.sell_timestamp),
            f"{format_currency(record.sell_price)} {currency}",
            f"{format_currency(record.buy_price)} {currency}",
            f"{format_currency(record.advertising_costs)} {currency}",
        )
        for record in report.records
    ]

    lines = _render_table(TAX_REPORT_HEADERS, rows)
    lines.extend(
        [
            "---",
            f"Count: {report.count}",
            f"Earning: {format_currency(report.earnings)} {currency}",
            f"Loss: {format_currency(report.loss)} {currency}",
        ]
    )
    return "\n".join(lines)
