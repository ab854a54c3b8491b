from datetime import date

import pytest

from holdings_ledger.ledger.commands import (
    AddLot,
    EditDividend,
    RecordDividend,
    add_lot_from_form,
    dispose_from_form,
    dividend_from_form,
    edit_asset_from_form,
    edit_lot_from_form,
)
from holdings_ledger.ledger.errors import InvalidInputError
from holdings_ledger.ledger.models import AssetKind, Frequency


def _lot_form(**overrides):
    form = {
        "ticker": "vti",
        "buy_date": "2024-01-15",
        "unit_price": "1,000.50",
        "units": "10",
        "exchange_rate": "31.2",
        "type": "ETF",
        "frequency": "Quarterly",
    }
    form.update(overrides)
    return form


def test_add_lot_form():
    cmd = add_lot_from_form(_lot_form(), owner_id="u1")
    assert isinstance(cmd, AddLot)
    assert cmd.ticker == "VTI"
    assert cmd.acquired_date == date(2024, 1, 15)
    assert cmd.price == pytest.approx(1000.5)
    assert cmd.units == pytest.approx(10.0)
    assert cmd.rate == "31.2"
    assert cmd.kind is AssetKind.ETF
    assert cmd.frequency is Frequency.QUARTERLY
    assert cmd.asset_id is None


def test_add_lot_defaults():
    cmd = add_lot_from_form(_lot_form(type="", frequency=""), owner_id="u1")
    assert cmd.kind is AssetKind.STOCK
    assert cmd.frequency is Frequency.INDIVIDUAL


def test_add_lot_to_existing_asset_needs_no_ticker():
    cmd = add_lot_from_form(_lot_form(ticker=""), owner_id="u1", asset_id="a1")
    assert cmd.asset_id == "a1"


@pytest.mark.parametrize(
    "field_name, value",
    [
        ("unit_price", "abc"),
        ("unit_price", ""),
        ("units", "0"),
        ("units", "-3"),
        ("units", "nan"),
        ("buy_date", "15/01/2024"),
        ("ticker", "  "),
        ("type", "Bond"),
    ],
)
def test_add_lot_rejects_bad_fields(field_name, value):
    with pytest.raises(InvalidInputError) as exc_info:
        add_lot_from_form(_lot_form(**{field_name: value}), owner_id="u1")
    assert exc_info.value.field_name == field_name


def test_missing_field_is_invalid():
    form = _lot_form()
    del form["units"]
    with pytest.raises(InvalidInputError, match="units"):
        add_lot_from_form(form, owner_id="u1")


def test_edit_forms():
    lot = edit_lot_from_form(_lot_form(), asset_id="a1", lot_id="l1")
    assert (lot.asset_id, lot.lot_id, lot.units) == ("a1", "l1", 10.0)

    meta = edit_asset_from_form(
        {"ticker": "bnd", "type": "fund", "frequency": "MONTHLY", "data_url": "http://x"},
        asset_id="a1",
    )
    assert meta.ticker == "BND"
    assert meta.kind is AssetKind.FUND
    assert meta.frequency is Frequency.MONTHLY


def test_dispose_form():
    cmd = dispose_from_form({"units": "3", "price": "12.5", "date": "2024-04-01"}, asset_id="a1")
    assert cmd.units == 3.0
    assert cmd.price == 12.5
    assert cmd.disposal_date == date(2024, 4, 1)

    with pytest.raises(InvalidInputError):
        dispose_from_form({"units": "0", "price": "1", "date": "2024-04-01"}, asset_id="a1")


def test_dividend_form_record_and_edit():
    form = {
        "ticker": "vti",
        "ex_date": "2024-03-20",
        "dividend_per_share": "0.85",
        "units": "100",
        "is_taxable": "true",
    }
    record = dividend_from_form(form, owner_id="u1", conversion_rate=32.0)
    assert isinstance(record, RecordDividend)
    assert record.taxable is True
    assert record.pay_date is None
    assert record.conversion_rate == 32.0

    edit = dividend_from_form(
        {**form, "is_taxable": ""}, owner_id="u1", conversion_rate=32.0, dividend_id="d1"
    )
    assert isinstance(edit, EditDividend)
    assert edit.dividend_id == "d1"
    assert edit.taxable is False
