from __future__ import annotations

import logging
import time
from datetime import date, timedelta
from typing import Iterable

import pandas as pd
import yfinance as yf

from holdings_ledger.config import REFRESH_PAUSE
from holdings_ledger.ledger.models import Asset, AssetKind
from holdings_ledger.market.fund_nav import fetch_fund_nav_any, is_fund_nav_source

logger = logging.getLogger(__name__)

# Days to look back for a close when the requested date was not a trading day.
_HISTORY_LOOKBACK_DAYS = 7


def fetch_live_price(ticker: str) -> float | None:
    """Latest traded price, or the last close outside market hours.

    Returns None when the lookup fails or yields nothing usable.
    """
    try:
        info = yf.Ticker(ticker).fast_info
        price = info.get("lastPrice") or info.get("last_price")
    except Exception:
        logger.warning("Failed to fetch live price for %s", ticker)
        return None
    if price and price > 0:
        return float(price)
    logger.debug("No live price for %s", ticker)
    return None


def _flatten(df: pd.DataFrame) -> pd.DataFrame:
    # yfinance 1.1+ always returns MultiIndex columns (Price, Ticker)
    if isinstance(df.columns, pd.MultiIndex):
        df = df.copy()
        df.columns = df.columns.get_level_values(0)
        df = df.loc[:, ~df.columns.duplicated()]
    return df


def fetch_historical_price(ticker: str, on: date) -> float | None:
    """Close on ``on``, or the nearest earlier trading day within a week."""
    start = on - timedelta(days=_HISTORY_LOOKBACK_DAYS)
    end = on + timedelta(days=1)
    try:
        df = yf.download(
            ticker, start=start.isoformat(), end=end.isoformat(),
            progress=False, auto_adjust=False,
        )
    except Exception:
        logger.warning("Failed to fetch historical price for %s on %s", ticker, on)
        return None
    if df is None or df.empty:
        return None
    df = _flatten(df)
    if "Close" not in df.columns:
        logger.warning("No Close column for %s after download", ticker)
        return None
    closes = df["Close"].dropna()
    closes = closes[[idx.date() <= on for idx in closes.index]]
    if closes.empty:
        return None
    return float(closes.iloc[-1])


def fetch_close_history(tickers: Iterable[str], start: date, end: date) -> pd.DataFrame:
    """Daily closes, one column per ticker, indexed by date.

    Tickers with no data are left out rather than failing the whole frame.
    """
    columns: dict[str, pd.Series] = {}
    for ticker in sorted(set(tickers)):
        try:
            df = yf.download(
                ticker, start=start.isoformat(), end=end.isoformat(),
                progress=False, auto_adjust=False,
            )
        except Exception:
            logger.warning("Failed to fetch price history for %s", ticker)
            continue
        if df is None or df.empty:
            continue
        df = _flatten(df)
        if "Close" not in df.columns:
            logger.warning("No Close column for %s after download", ticker)
            continue
        series = df["Close"].astype(float)
        series.index = pd.DatetimeIndex(series.index).normalize()
        columns[ticker] = series
    if not columns:
        return pd.DataFrame()
    return pd.DataFrame(columns).sort_index()


def refresh_prices(
    assets: Iterable[Asset],
    pause: float = REFRESH_PAUSE,
) -> dict[str, float]:
    """Look up a current price for each asset. Returns {asset_id: price}.

    Assets with fund NAV pages are priced from those pages; listed stocks
    and ETFs from yfinance. Anything that fails is left out, which leaves
    its stored price unchanged.
    """
    prices: dict[str, float] = {}
    failed = 0
    for asset in assets:
        price = None
        if is_fund_nav_source(asset.data_url):
            price = fetch_fund_nav_any(asset.data_url)
        elif asset.kind in (AssetKind.STOCK, AssetKind.ETF):
            price = fetch_live_price(asset.ticker)

        if price:
            prices[asset.asset_id] = price
            logger.info("Price update %s: %s", asset.ticker, price)
        else:
            failed += 1
            logger.warning("Price update failed for %s, keeping %s", asset.ticker, asset.last_price)

        if pause > 0:
            time.sleep(pause)

    if failed:
        logger.warning("No price for %d asset(s)", failed)
    return prices
