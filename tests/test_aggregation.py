from datetime import date

import pytest

from holdings_ledger.ledger.aggregation import recompute, with_lots
from holdings_ledger.ledger.models import Asset, AssetKind, Frequency, Lot


def _lot(lot_id, units, price, day=1):
    return Lot(lot_id=lot_id, acquired_date=date(2024, 1, day), price=price, units=units)


def test_recompute_sums_lots():
    agg = recompute([_lot("a", 10, 100.0), _lot("b", 5, 130.0, day=2)])
    assert agg.units == pytest.approx(15.0)
    assert agg.total_cost == pytest.approx(1000.0 + 650.0)
    assert agg.average_cost == pytest.approx(1650.0 / 15)


def test_average_times_units_matches_total():
    lots = [_lot(str(i), 0.1 * (i + 1), 3.33 * (i + 1), day=i + 1) for i in range(20)]
    agg = recompute(lots)
    assert agg.total_cost == pytest.approx(sum(l.units * l.price for l in lots))
    assert agg.average_cost * agg.units == pytest.approx(agg.total_cost)


def test_recompute_empty_is_zero():
    agg = recompute([])
    assert agg.units == 0.0
    assert agg.total_cost == 0.0
    assert agg.average_cost == 0.0


def test_with_lots_refreshes_derived_fields():
    asset = Asset(
        asset_id="x", owner_id="u1", ticker="VTI",
        kind=AssetKind.ETF, frequency=Frequency.QUARTERLY,
        units=999.0, total_cost=999.0, average_cost=999.0,
    )
    updated = with_lots(asset, [_lot("a", 4, 25.0)])
    assert updated.units == pytest.approx(4.0)
    assert updated.total_cost == pytest.approx(100.0)
    assert updated.average_cost == pytest.approx(25.0)
    assert updated.lots == (_lot("a", 4, 25.0),)
    # Original untouched
    assert asset.units == 999.0
