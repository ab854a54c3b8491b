from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Union

from holdings_ledger.ledger.errors import InvalidInputError
from holdings_ledger.ledger.models import AssetKind, EntityKind, Frequency


@dataclass(frozen=True)
class AddLot:
    owner_id: str
    ticker: str
    acquired_date: date
    price: float
    units: float
    rate: str = ""
    kind: AssetKind = AssetKind.STOCK
    frequency: Frequency = Frequency.INDIVIDUAL
    name: str = ""
    data_url: str = ""
    currency: str = ""
    asset_id: str | None = None  # append to this asset instead of matching by ticker


@dataclass(frozen=True)
class EditLot:
    asset_id: str
    lot_id: str
    acquired_date: date
    price: float
    units: float
    rate: str = ""


@dataclass(frozen=True)
class EditAssetMeta:
    asset_id: str
    ticker: str
    kind: AssetKind
    frequency: Frequency
    data_url: str = ""
    name: str = ""


@dataclass(frozen=True)
class Dispose:
    asset_id: str
    units: float
    price: float
    disposal_date: date


@dataclass(frozen=True)
class RecordDividend:
    owner_id: str
    ticker: str
    ex_date: date
    amount_per_unit: float
    units: float
    taxable: bool
    conversion_rate: float
    pay_date: date | None = None


@dataclass(frozen=True)
class EditDividend:
    dividend_id: str
    ticker: str
    ex_date: date
    amount_per_unit: float
    units: float
    taxable: bool
    conversion_rate: float
    pay_date: date | None = None


@dataclass(frozen=True)
class UpdatePrices:
    prices: Mapping[str, float] = field(default_factory=dict)  # asset_id -> price


@dataclass(frozen=True)
class Delete:
    kind: EntityKind
    entity_id: str
    asset_id: str | None = None  # parent asset, required for lots


Command = Union[
    AddLot, EditLot, EditAssetMeta, Dispose,
    RecordDividend, EditDividend, UpdatePrices, Delete,
]


# --- Form parsing ---
#
# Forms arrive as string mappings from whatever front end submits them.
# Everything is checked here so the engine only ever sees typed commands.

_TRUE_STRINGS = {"1", "true", "yes", "on", "y"}


def _text(data: Mapping[str, object], key: str, required: bool = True) -> str:
    val = data.get(key)
    s = "" if val is None else str(val).strip()
    if required and not s:
        raise InvalidInputError(key, "is required")
    return s


def _number(data: Mapping[str, object], key: str, positive: bool = False) -> float:
    raw = _text(data, key).replace(",", "")
    try:
        val = float(raw)
    except ValueError:
        raise InvalidInputError(key, f"{raw!r} is not a number") from None
    if not math.isfinite(val):
        raise InvalidInputError(key, f"{raw!r} is not a finite number")
    if positive and val <= 0:
        raise InvalidInputError(key, "must be greater than zero")
    return val


def _date(data: Mapping[str, object], key: str, required: bool = True) -> date | None:
    val = data.get(key)
    if isinstance(val, date):
        return val
    raw = _text(data, key, required=required)
    if not raw:
        return None
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInputError(key, f"{raw!r} is not a YYYY-MM-DD date") from None


def _flag(data: Mapping[str, object], key: str) -> bool:
    val = data.get(key)
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in _TRUE_STRINGS


def _enum(data: Mapping[str, object], key: str, enum_cls, default):
    raw = _text(data, key, required=False)
    if not raw:
        return default
    for member in enum_cls:
        if raw.lower() in (member.value.lower(), member.name.lower()):
            return member
    raise InvalidInputError(key, f"{raw!r} is not one of {[m.value for m in enum_cls]}")


def add_lot_from_form(
    data: Mapping[str, object], owner_id: str, asset_id: str | None = None
) -> AddLot:
    ticker = _text(data, "ticker", required=asset_id is None).upper()
    return AddLot(
        owner_id=owner_id,
        ticker=ticker,
        acquired_date=_date(data, "buy_date"),
        price=_number(data, "unit_price"),
        units=_number(data, "units", positive=True),
        rate=_text(data, "exchange_rate", required=False),
        kind=_enum(data, "type", AssetKind, AssetKind.STOCK),
        frequency=_enum(data, "frequency", Frequency, Frequency.INDIVIDUAL),
        name=_text(data, "name", required=False),
        data_url=_text(data, "data_url", required=False),
        currency=_text(data, "currency", required=False),
        asset_id=asset_id,
    )


def edit_lot_from_form(data: Mapping[str, object], asset_id: str, lot_id: str) -> EditLot:
    return EditLot(
        asset_id=asset_id,
        lot_id=lot_id,
        acquired_date=_date(data, "buy_date"),
        price=_number(data, "unit_price"),
        units=_number(data, "units", positive=True),
        rate=_text(data, "exchange_rate", required=False),
    )


def edit_asset_from_form(data: Mapping[str, object], asset_id: str) -> EditAssetMeta:
    return EditAssetMeta(
        asset_id=asset_id,
        ticker=_text(data, "ticker").upper(),
        kind=_enum(data, "type", AssetKind, AssetKind.STOCK),
        frequency=_enum(data, "frequency", Frequency, Frequency.INDIVIDUAL),
        data_url=_text(data, "data_url", required=False),
        name=_text(data, "name", required=False),
    )


def dispose_from_form(data: Mapping[str, object], asset_id: str) -> Dispose:
    return Dispose(
        asset_id=asset_id,
        units=_number(data, "units", positive=True),
        price=_number(data, "price"),
        disposal_date=_date(data, "date"),
    )


def dividend_from_form(
    data: Mapping[str, object],
    owner_id: str,
    conversion_rate: float,
    dividend_id: str | None = None,
) -> RecordDividend | EditDividend:
    """Build a record or edit command; ``dividend_id`` selects an edit."""
    fields = dict(
        ticker=_text(data, "ticker").upper(),
        ex_date=_date(data, "ex_date"),
        amount_per_unit=_number(data, "dividend_per_share"),
        units=_number(data, "units"),
        taxable=_flag(data, "is_taxable"),
        conversion_rate=conversion_rate,
        pay_date=_date(data, "pay_date", required=False),
    )
    if dividend_id is not None:
        return EditDividend(dividend_id=dividend_id, **fields)
    return RecordDividend(owner_id=owner_id, **fields)
