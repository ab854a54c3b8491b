from __future__ import annotations

from datetime import date
from typing import Sequence

import empyrical
import numpy as np
import pandas as pd
import pyxirr

from holdings_ledger.ledger.models import Asset


def holdings_xirr(assets: Sequence[Asset], as_of: date) -> float | None:
    """Money-weighted annual return of the lots still held.

    Each lot is an outflow on its acquisition date; the current market value
    of all held units is the single inflow on ``as_of``.
    """
    dates: list[date] = []
    amounts: list[float] = []
    for asset in assets:
        for lot in asset.lots:
            dates.append(lot.acquired_date)
            amounts.append(-lot.units * lot.price)

    if not dates:
        return None

    dates.append(as_of)
    amounts.append(sum(a.units * a.last_price for a in assets))

    try:
        return pyxirr.xirr(dates, amounts)
    except Exception:
        return None


def _lot_units_frame(assets: Sequence[Asset], index: pd.DatetimeIndex) -> pd.DataFrame:
    """Units held per ticker on each day of ``index``, from lot acquisition dates."""
    units = pd.DataFrame(0.0, index=index, columns=sorted({a.ticker for a in assets}))
    for asset in assets:
        for lot in asset.lots:
            held_from = index >= pd.Timestamp(lot.acquired_date)
            units.loc[held_from, asset.ticker] += lot.units
    return units


def holdings_value_series(assets: Sequence[Asset], closes: pd.DataFrame) -> pd.Series:
    """Daily market value of the current lots, each counted from its purchase date.

    ``closes`` has one column per ticker; missing closes carry forward.
    """
    if closes.empty or not assets:
        return pd.Series(dtype=float)
    prices = closes.sort_index().ffill()
    units = _lot_units_frame(assets, pd.DatetimeIndex(prices.index))
    tickers = [t for t in units.columns if t in prices.columns]
    values = (units[tickers] * prices[tickers]).sum(axis=1)
    return values[values > 0]


def holdings_daily_returns(assets: Sequence[Asset], closes: pd.DataFrame) -> pd.Series:
    """Daily returns of the held lots with purchases stripped out.

    On the day a lot is bought its value is treated as new money rather than
    growth: r_t = (V_t - new_t) / V_{t-1} - 1.
    """
    values = holdings_value_series(assets, closes)
    if len(values) < 2:
        return pd.Series(dtype=float)

    prices = closes.sort_index().ffill().reindex(values.index)
    units = _lot_units_frame(assets, pd.DatetimeIndex(values.index))
    tickers = [t for t in units.columns if t in prices.columns]
    added_units = units[tickers].diff().fillna(0.0)
    new_money = (added_units * prices[tickers]).sum(axis=1)

    prev = values.shift(1)
    returns = (values - new_money) / prev - 1
    returns = returns.iloc[1:].astype(float)
    return returns[np.isfinite(returns)]


def sharpe_ratio(daily_returns: pd.Series, risk_free_rate: float = 0.0) -> float:
    return float(empyrical.sharpe_ratio(daily_returns, risk_free=risk_free_rate))


def max_drawdown(daily_returns: pd.Series) -> float:
    return float(empyrical.max_drawdown(daily_returns))


def annual_volatility(daily_returns: pd.Series) -> float:
    return float(empyrical.annual_volatility(daily_returns))
