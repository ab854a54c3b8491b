import logging
from datetime import date

import pytest

from holdings_ledger.ledger.errors import InsufficientUnitsError
from holdings_ledger.ledger.fifo import dispose_lots, order_lots
from holdings_ledger.ledger.models import Lot


def _lot(lot_id, acquired, units, price):
    return Lot(lot_id=lot_id, acquired_date=acquired, price=price, units=units)


def test_fifo_consumes_oldest_first():
    lots = [
        _lot("1", date(2024, 1, 1), 10.0, 1.0),
        _lot("2", date(2024, 1, 2), 10.0, 2.0),
    ]
    result = dispose_lots(lots, 15.0, 5.0, date(2024, 3, 1))

    # 10*1 + 5*2
    assert result.consumed_cost_basis == pytest.approx(20.0)
    assert len(result.remaining_lots) == 1
    assert result.remaining_lots[0].lot_id == "2"
    assert result.remaining_lots[0].units == pytest.approx(5.0)
    assert result.remaining_lots[0].price == 2.0
    assert result.pnl == pytest.approx(55.0)
    assert result.pnl_percent == pytest.approx(275.0)
    assert result.avg_disposed_cost == pytest.approx(20.0 / 15.0)


def test_fifo_orders_by_acquisition_not_entry():
    newer = _lot("new", date(2024, 6, 1), 10.0, 2.0)
    older = _lot("old", date(2024, 1, 1), 10.0, 1.0)
    result = dispose_lots([newer, older], 10.0, 5.0, date(2024, 7, 1))
    assert result.consumed_cost_basis == pytest.approx(10.0)
    assert [l.lot_id for l in result.remaining_lots] == ["new"]


def test_same_date_keeps_entry_order():
    first = _lot("first", date(2024, 1, 1), 10.0, 1.0)
    second = _lot("second", date(2024, 1, 1), 10.0, 3.0)
    assert [l.lot_id for l in order_lots([first, second])] == ["first", "second"]

    result = dispose_lots([first, second], 10.0, 5.0, date(2024, 2, 1))
    assert result.consumed_cost_basis == pytest.approx(10.0)
    assert [l.lot_id for l in result.remaining_lots] == ["second"]


def test_full_liquidation_leaves_no_lots():
    lots = [
        _lot("1", date(2024, 1, 1), 10.0, 1.0),
        _lot("2", date(2024, 1, 2), 10.0, 2.0),
    ]
    result = dispose_lots(lots, 20.0, 3.0, date(2024, 2, 1))
    assert result.remaining_lots == ()
    assert result.consumed_cost_basis == pytest.approx(30.0)
    assert result.pnl == pytest.approx(30.0)


def test_exact_single_lot_is_dropped_not_zeroed():
    lots = [
        _lot("1", date(2024, 1, 1), 10.0, 1.0),
        _lot("2", date(2024, 1, 2), 10.0, 2.0),
    ]
    result = dispose_lots(lots, 10.0, 3.0, date(2024, 2, 1))
    assert [l.lot_id for l in result.remaining_lots] == ["2"]
    assert all(l.units > 0 for l in result.remaining_lots)


def test_float_residue_counts_as_full_liquidation():
    lots = [
        _lot("1", date(2024, 1, 1), 0.1, 10.0),
        _lot("2", date(2024, 1, 2), 0.2, 10.0),
    ]
    result = dispose_lots(lots, 0.3, 10.0, date(2024, 2, 1))
    assert result.remaining_lots == ()


def test_insufficient_units_raises_and_leaves_lots(caplog):
    lots = (_lot("1", date(2024, 1, 1), 5.0, 100.0),)
    snapshot = tuple(lots)
    with caplog.at_level(logging.WARNING):
        with pytest.raises(InsufficientUnitsError) as exc_info:
            dispose_lots(lots, 10.0, 120.0, date(2024, 2, 1), ticker="VTI")

    assert exc_info.value.requested == 10.0
    assert exc_info.value.held == 5.0
    assert lots == snapshot
    assert "Insufficient units" in caplog.text


def test_zero_cost_basis_has_zero_percent():
    lots = [_lot("1", date(2024, 1, 1), 10.0, 0.0)]
    result = dispose_lots(lots, 4.0, 5.0, date(2024, 2, 1))
    assert result.consumed_cost_basis == 0.0
    assert result.pnl == pytest.approx(20.0)
    assert result.pnl_percent == 0.0


def test_disposal_date_does_not_change_matching():
    lots = [
        _lot("1", date(2024, 1, 1), 10.0, 1.0),
        _lot("2", date(2024, 5, 1), 10.0, 2.0),
    ]
    early = dispose_lots(lots, 12.0, 3.0, date(2024, 2, 1))
    late = dispose_lots(lots, 12.0, 3.0, date(2030, 2, 1))
    assert early.consumed_cost_basis == late.consumed_cost_basis
    assert early.remaining_lots == late.remaining_lots
    assert early.disposal_date == date(2024, 2, 1)
