from datetime import date
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from holdings_ledger.ledger.models import Asset, AssetKind, Frequency
from holdings_ledger.market import prices
from holdings_ledger.market.fx import fetch_conversion_rate


def _asset(asset_id, ticker, kind=AssetKind.ETF, data_url=""):
    return Asset(
        asset_id=asset_id, owner_id="u1", ticker=ticker, kind=kind,
        frequency=Frequency.QUARTERLY, last_price=10.0, data_url=data_url,
    )


def _mock_download(symbol, start, end, progress=False, auto_adjust=False):
    dates = pd.bdate_range(start=start, end=end)
    data = {
        "Close": [100.0 + i for i in range(len(dates))],
        "Volume": [1000000] * len(dates),
    }
    return pd.DataFrame(data, index=dates)


def _ticker_with(price):
    mock_ticker = MagicMock()
    mock_ticker.fast_info = {"lastPrice": price}
    return mock_ticker


@patch("holdings_ledger.market.prices.yf")
def test_live_price(mock_yf):
    mock_yf.Ticker.return_value = _ticker_with(105.5)
    assert prices.fetch_live_price("VTI") == 105.5


@patch("holdings_ledger.market.prices.yf")
def test_live_price_failure_is_none(mock_yf):
    mock_yf.Ticker.side_effect = RuntimeError("rate limited")
    assert prices.fetch_live_price("VTI") is None

    mock_yf.Ticker.side_effect = None
    mock_yf.Ticker.return_value = _ticker_with(None)
    assert prices.fetch_live_price("VTI") is None


@patch("holdings_ledger.market.prices.yf.download", side_effect=_mock_download)
def test_historical_price_uses_last_close_on_or_before(mock_dl):
    # 2024-01-06 is a Saturday; Friday's close is used
    price = prices.fetch_historical_price("VTI", date(2024, 1, 6))
    closes = _mock_download("VTI", "2023-12-30", "2024-01-07")["Close"]
    assert price == closes.iloc[-1]
    mock_dl.assert_called_once()


@patch("holdings_ledger.market.prices.yf.download", return_value=pd.DataFrame())
def test_historical_price_handles_empty(mock_dl):
    assert prices.fetch_historical_price("FAKE", date(2024, 1, 5)) is None


@patch("holdings_ledger.market.prices.yf.download")
def test_historical_price_flattens_multiindex(mock_dl):
    idx = pd.bdate_range("2024-01-01", "2024-01-05")
    cols = pd.MultiIndex.from_tuples([("Close", "VTI"), ("Volume", "VTI")])
    mock_dl.return_value = pd.DataFrame(
        [[float(i), 1.0] for i in range(len(idx))], index=idx, columns=cols
    )
    assert prices.fetch_historical_price("VTI", date(2024, 1, 5)) == 4.0


@patch("holdings_ledger.market.prices.yf.download", side_effect=_mock_download)
def test_close_history_one_column_per_ticker(mock_dl):
    frame = prices.fetch_close_history(["VTI", "BND", "VTI"], date(2024, 1, 1), date(2024, 1, 10))
    assert list(frame.columns) == ["BND", "VTI"]
    assert mock_dl.call_count == 2
    assert frame.index.is_monotonic_increasing


@patch("holdings_ledger.market.prices.fetch_fund_nav_any", return_value=15.2)
@patch("holdings_ledger.market.prices.yf")
def test_refresh_prices_routes_by_source(mock_yf, mock_nav):
    mock_yf.Ticker.return_value = _ticker_with(101.0)
    assets = [
        _asset("a1", "VTI"),
        _asset("a2", "FUND1", kind=AssetKind.FUND, data_url="https://www.moneydj.com/funddj/x"),
        _asset("a3", "FUND2", kind=AssetKind.FUND),
    ]

    result = prices.refresh_prices(assets, pause=0)

    assert result == {"a1": 101.0, "a2": 15.2}
    mock_nav.assert_called_once_with("https://www.moneydj.com/funddj/x")
    mock_yf.Ticker.assert_called_once_with("VTI")


@patch("holdings_ledger.market.prices.yf")
def test_refresh_prices_leaves_out_failures(mock_yf, caplog):
    mock_yf.Ticker.side_effect = RuntimeError("boom")
    with caplog.at_level("WARNING"):
        result = prices.refresh_prices([_asset("a1", "VTI")], pause=0)
    assert result == {}
    assert "Price update failed for VTI" in caplog.text


@patch("holdings_ledger.market.prices.time.sleep")
@patch("holdings_ledger.market.prices.yf")
def test_refresh_prices_pauses_between_lookups(mock_yf, mock_sleep):
    mock_yf.Ticker.return_value = _ticker_with(1.0)
    prices.refresh_prices([_asset("a1", "VTI"), _asset("a2", "BND")], pause=0.25)
    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(0.25)


@patch("holdings_ledger.market.fx.yf")
def test_conversion_rate(mock_yf):
    mock_yf.Ticker.return_value = _ticker_with(31.8)
    assert fetch_conversion_rate() == pytest.approx(31.8)
    mock_yf.Ticker.assert_called_once_with("TWD=X")


@patch("holdings_ledger.market.fx.yf")
def test_conversion_rate_fallback(mock_yf):
    mock_yf.Ticker.side_effect = RuntimeError("offline")
    assert fetch_conversion_rate(fallback=30.0) == 30.0

    mock_yf.Ticker.side_effect = None
    mock_yf.Ticker.return_value = _ticker_with(0.0)
    assert fetch_conversion_rate() == 32.5
