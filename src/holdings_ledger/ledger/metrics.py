from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from holdings_ledger.ledger.models import Asset, Dividend, Realization

# Dividend history is treated as roughly six months of payouts.
_MONTHS_OF_DIVIDEND_HISTORY = 6


def _pct(numerator: float, denominator: float) -> float:
    if denominator > 0:
        return numerator / denominator * 100
    return 0.0


def total_invested(assets: Sequence[Asset]) -> float:
    return sum(a.total_cost for a in assets)


def market_value(assets: Sequence[Asset]) -> float:
    return sum(a.units * a.last_price for a in assets)


def total_dividends(dividends: Sequence[Dividend]) -> float:
    return sum(d.net_amount for d in dividends)


def total_dividends_secondary(dividends: Sequence[Dividend]) -> float:
    return sum(d.net_amount_secondary for d in dividends)


def estimated_monthly_dividend(dividends: Sequence[Dividend]) -> float:
    return total_dividends(dividends) / _MONTHS_OF_DIVIDEND_HISTORY


def unrealized_roi(assets: Sequence[Asset]) -> float:
    invested = total_invested(assets)
    return _pct(market_value(assets) - invested, invested)


def total_roi(assets: Sequence[Asset], dividends: Sequence[Dividend]) -> float:
    """Unrealized return with received dividends counted as value."""
    invested = total_invested(assets)
    return _pct(market_value(assets) + total_dividends(dividends) - invested, invested)


def dividend_yield(assets: Sequence[Asset], dividends: Sequence[Dividend]) -> float:
    return _pct(total_dividends(dividends), total_invested(assets))


def realized_pnl(realizations: Sequence[Realization], ticker: str | None = None) -> float:
    """Sum realized P&L, optionally for one ticker."""
    return sum(r.pnl for r in realizations if ticker is None or r.ticker == ticker)


def realized_roi(realizations: Sequence[Realization]) -> float:
    cost = sum(r.avg_cost * r.units for r in realizations)
    return _pct(realized_pnl(realizations), cost)


def unrealized_gain(assets: Sequence[Asset]) -> dict[str, float]:
    """Unrealized gain per ticker at last-known prices, plus a '_total' key."""
    gains: dict[str, float] = {}
    for asset in assets:
        if asset.units <= 0:
            continue
        gain = asset.units * asset.last_price - asset.total_cost
        gains[asset.ticker] = gains.get(asset.ticker, 0.0) + gain

    gains["_total"] = sum(v for k, v in gains.items() if k != "_total")
    return gains


def current_allocation(assets: Sequence[Asset]) -> dict[str, float]:
    """Share of total market value per ticker; fractions sum to ~1.0."""
    values: dict[str, float] = {}
    for asset in assets:
        if asset.units <= 0:
            continue
        values[asset.ticker] = values.get(asset.ticker, 0.0) + asset.units * asset.last_price

    total = sum(values.values())
    if total == 0:
        return {}
    return {ticker: val / total for ticker, val in values.items()}


@dataclass(frozen=True)
class PortfolioStats:
    total_invested: float
    market_value: float
    total_dividends: float
    total_dividends_secondary: float
    value_with_dividends: float
    estimated_monthly_dividend: float
    unrealized_roi: float
    total_roi: float
    dividend_yield: float
    realized_pnl: float
    realized_roi: float


def summarize(
    assets: Sequence[Asset],
    dividends: Sequence[Dividend],
    realizations: Sequence[Realization],
) -> PortfolioStats:
    """Every headline figure for an already owner-filtered entity set."""
    mv = market_value(assets)
    divs = total_dividends(dividends)
    return PortfolioStats(
        total_invested=total_invested(assets),
        market_value=mv,
        total_dividends=divs,
        total_dividends_secondary=total_dividends_secondary(dividends),
        value_with_dividends=mv + divs,
        estimated_monthly_dividend=estimated_monthly_dividend(dividends),
        unrealized_roi=unrealized_roi(assets),
        total_roi=total_roi(assets, dividends),
        dividend_yield=dividend_yield(assets, dividends),
        realized_pnl=realized_pnl(realizations),
        realized_roi=realized_roi(realizations),
    )
