from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from holdings_ledger.config import DIVIDEND_WITHHOLDING_RATE
from holdings_ledger.ledger.models import Dividend


@dataclass(frozen=True)
class DividendAmounts:
    gross: float
    tax: float
    net: float
    net_secondary: float


def calc_dividend(
    amount_per_unit: float,
    units: float,
    taxable: bool,
    conversion_rate: float,
    withholding_rate: float = DIVIDEND_WITHHOLDING_RATE,
) -> DividendAmounts:
    """Gross, withheld tax and net amounts of one distribution.

    Inputs are taken as given; zero or negative values flow straight through
    the arithmetic.
    """
    gross = amount_per_unit * units
    tax = gross * withholding_rate if taxable else 0.0
    net = gross - tax
    return DividendAmounts(gross=gross, tax=tax, net=net, net_secondary=net * conversion_rate)


def group_by_ticker(dividends: Iterable[Dividend]) -> dict[str, list[Dividend]]:
    """Group distributions per ticker, most recent ex-date first."""
    groups: dict[str, list[Dividend]] = {}
    for div in dividends:
        groups.setdefault(div.ticker, []).append(div)
    for items in groups.values():
        items.sort(key=lambda d: d.ex_date, reverse=True)
    return groups
