from __future__ import annotations

import logging

import yfinance as yf

from holdings_ledger.config import FALLBACK_FX_RATE, FX_SYMBOL

logger = logging.getLogger(__name__)


def fetch_conversion_rate(
    symbol: str = FX_SYMBOL,
    fallback: float = FALLBACK_FX_RATE,
) -> float:
    """Current conversion rate for ``symbol``, or ``fallback`` if unavailable."""
    try:
        info = yf.Ticker(symbol).fast_info
        rate = info.get("lastPrice") or info.get("last_price")
    except Exception:
        logger.warning("Failed to fetch exchange rate %s, using default %s", symbol, fallback)
        return fallback
    if not rate or rate <= 0:
        logger.warning("No exchange rate for %s, using default %s", symbol, fallback)
        return fallback
    return float(rate)
