from __future__ import annotations

import dataclasses
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Callable

from holdings_ledger.config import DIVIDEND_WITHHOLDING_RATE
from holdings_ledger.ledger.aggregation import with_lots
from holdings_ledger.ledger.commands import (
    AddLot,
    Command,
    Delete,
    Dispose,
    EditAssetMeta,
    EditDividend,
    EditLot,
    RecordDividend,
    UpdatePrices,
)
from holdings_ledger.ledger.dividends import calc_dividend
from holdings_ledger.ledger.errors import InvalidInputError, NotFoundError
from holdings_ledger.ledger.fifo import dispose_lots
from holdings_ledger.ledger.models import (
    Asset,
    Dividend,
    EntityKind,
    Ledger,
    Lot,
    Realization,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]

RESTOCK_WARNING = (
    "Realization {record_id} deleted; {units:g} units of {ticker} were not returned to holdings"
)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CommandResult:
    ledger: Ledger
    upserted: tuple[Asset | Dividend | Realization, ...] = ()
    deleted: tuple[tuple[EntityKind, str], ...] = ()
    warnings: tuple[str, ...] = ()
    persisted: bool = False


@dataclass(frozen=True)
class _Context:
    make_id: IdFactory
    withholding_rate: float


def _require_asset(ledger: Ledger, asset_id: str) -> Asset:
    asset = ledger.find_asset(asset_id)
    if asset is None:
        raise NotFoundError(EntityKind.ASSET.value, asset_id)
    return asset


def _replace_asset(ledger: Ledger, asset: Asset) -> Ledger:
    assets = tuple(asset if a.asset_id == asset.asset_id else a for a in ledger.assets)
    return dataclasses.replace(ledger, assets=assets)


def _without_asset(ledger: Ledger, asset_id: str) -> Ledger:
    return dataclasses.replace(
        ledger, assets=tuple(a for a in ledger.assets if a.asset_id != asset_id)
    )


# --- Lots ---

def _add_lot(ledger: Ledger, cmd: AddLot, ctx: _Context) -> CommandResult:
    lot = Lot(
        lot_id=ctx.make_id(),
        acquired_date=cmd.acquired_date,
        price=cmd.price,
        units=cmd.units,
        rate=cmd.rate,
    )

    if cmd.asset_id is not None:
        target = _require_asset(ledger, cmd.asset_id)
    else:
        ticker = cmd.ticker.upper()
        target = next(
            (a for a in ledger.assets if a.owner_id == cmd.owner_id and a.ticker == ticker),
            None,
        )

    if target is not None:
        updated = with_lots(target, (*target.lots, lot))
        return CommandResult(ledger=_replace_asset(ledger, updated), upserted=(updated,))

    # First purchase of this ticker by this owner
    created = with_lots(
        Asset(
            asset_id=ctx.make_id(),
            owner_id=cmd.owner_id,
            ticker=cmd.ticker.upper(),
            kind=cmd.kind,
            frequency=cmd.frequency,
            last_price=cmd.price,
            name=cmd.name,
            data_url=cmd.data_url,
            currency=cmd.currency,
        ),
        (lot,),
    )
    logger.info("New asset %s for owner %s", created.ticker, created.owner_id)
    ledger = dataclasses.replace(ledger, assets=(*ledger.assets, created))
    return CommandResult(ledger=ledger, upserted=(created,))


def _edit_lot(ledger: Ledger, cmd: EditLot, ctx: _Context) -> CommandResult:
    asset = _require_asset(ledger, cmd.asset_id)
    if not any(lot.lot_id == cmd.lot_id for lot in asset.lots):
        raise NotFoundError(EntityKind.LOT.value, cmd.lot_id)
    lots = tuple(
        dataclasses.replace(
            lot,
            acquired_date=cmd.acquired_date,
            price=cmd.price,
            units=cmd.units,
            rate=cmd.rate,
        ) if lot.lot_id == cmd.lot_id else lot
        for lot in asset.lots
    )
    updated = with_lots(asset, lots)
    return CommandResult(ledger=_replace_asset(ledger, updated), upserted=(updated,))


def _edit_asset_meta(ledger: Ledger, cmd: EditAssetMeta, ctx: _Context) -> CommandResult:
    asset = _require_asset(ledger, cmd.asset_id)
    ticker = cmd.ticker.upper()
    clash = next(
        (
            a for a in ledger.assets
            if a.asset_id != asset.asset_id and a.owner_id == asset.owner_id and a.ticker == ticker
        ),
        None,
    )
    if clash is not None:
        raise InvalidInputError("ticker", f"{ticker} is already held as asset {clash.asset_id}")
    updated = dataclasses.replace(
        asset,
        ticker=ticker,
        kind=cmd.kind,
        frequency=cmd.frequency,
        data_url=cmd.data_url,
        name=cmd.name,
    )
    return CommandResult(ledger=_replace_asset(ledger, updated), upserted=(updated,))


# --- Disposal ---

def _dispose(ledger: Ledger, cmd: Dispose, ctx: _Context) -> CommandResult:
    asset = _require_asset(ledger, cmd.asset_id)
    disposal = dispose_lots(
        asset.lots, cmd.units, cmd.price, cmd.disposal_date, ticker=asset.ticker
    )
    record = Realization(
        record_id=ctx.make_id(),
        owner_id=asset.owner_id,
        ticker=asset.ticker,
        sell_date=cmd.disposal_date,
        sell_price=cmd.price,
        avg_cost=disposal.avg_disposed_cost,
        units=cmd.units,
        pnl=disposal.pnl,
        pnl_percent=disposal.pnl_percent,
        name=asset.name,
        currency=asset.currency,
    )
    ledger = dataclasses.replace(ledger, realizations=(*ledger.realizations, record))

    if not disposal.remaining_lots:
        logger.info("Fully disposed %s, removing asset %s", asset.ticker, asset.asset_id)
        return CommandResult(
            ledger=_without_asset(ledger, asset.asset_id),
            upserted=(record,),
            deleted=((EntityKind.ASSET, asset.asset_id),),
        )

    updated = with_lots(asset, disposal.remaining_lots)
    return CommandResult(ledger=_replace_asset(ledger, updated), upserted=(record, updated))


# --- Dividends ---

def _build_dividend(
    dividend_id: str, owner_id: str, cmd: RecordDividend | EditDividend, withholding_rate: float
) -> Dividend:
    amounts = calc_dividend(
        cmd.amount_per_unit, cmd.units, cmd.taxable, cmd.conversion_rate, withholding_rate
    )
    return Dividend(
        dividend_id=dividend_id,
        owner_id=owner_id,
        ticker=cmd.ticker.upper(),
        ex_date=cmd.ex_date,
        pay_date=cmd.pay_date or cmd.ex_date,
        amount_per_unit=cmd.amount_per_unit,
        units=cmd.units,
        gross_amount=amounts.gross,
        tax=amounts.tax,
        net_amount=amounts.net,
        net_amount_secondary=amounts.net_secondary,
        conversion_rate=cmd.conversion_rate,
    )


def _record_dividend(ledger: Ledger, cmd: RecordDividend, ctx: _Context) -> CommandResult:
    div = _build_dividend(ctx.make_id(), cmd.owner_id, cmd, ctx.withholding_rate)
    ledger = dataclasses.replace(ledger, dividends=(*ledger.dividends, div))
    return CommandResult(ledger=ledger, upserted=(div,))


def _edit_dividend(ledger: Ledger, cmd: EditDividend, ctx: _Context) -> CommandResult:
    existing = ledger.find_dividend(cmd.dividend_id)
    if existing is None:
        raise NotFoundError(EntityKind.DIVIDEND.value, cmd.dividend_id)
    div = _build_dividend(existing.dividend_id, existing.owner_id, cmd, ctx.withholding_rate)
    dividends = tuple(div if d.dividend_id == div.dividend_id else d for d in ledger.dividends)
    return CommandResult(ledger=dataclasses.replace(ledger, dividends=dividends), upserted=(div,))


# --- Prices ---

def _update_prices(ledger: Ledger, cmd: UpdatePrices, ctx: _Context) -> CommandResult:
    updated: list[Asset] = []
    for asset_id, price in cmd.prices.items():
        asset = ledger.find_asset(asset_id)
        if asset is None or price is None:
            continue
        if not math.isfinite(price) or price <= 0:
            continue
        if price == asset.last_price:
            continue
        asset = dataclasses.replace(asset, last_price=float(price))
        ledger = _replace_asset(ledger, asset)
        updated.append(asset)
    return CommandResult(ledger=ledger, upserted=tuple(updated))


# --- Deletion ---

def _delete(ledger: Ledger, cmd: Delete, ctx: _Context) -> CommandResult:
    if cmd.kind is EntityKind.LOT:
        if cmd.asset_id is None:
            raise InvalidInputError("asset_id", "is required to delete a lot")
        asset = _require_asset(ledger, cmd.asset_id)
        lots = tuple(lot for lot in asset.lots if lot.lot_id != cmd.entity_id)
        if len(lots) == len(asset.lots):
            raise NotFoundError(EntityKind.LOT.value, cmd.entity_id)
        updated = with_lots(asset, lots)
        return CommandResult(ledger=_replace_asset(ledger, updated), upserted=(updated,))

    if cmd.kind is EntityKind.ASSET:
        _require_asset(ledger, cmd.entity_id)
        return CommandResult(
            ledger=_without_asset(ledger, cmd.entity_id),
            deleted=((EntityKind.ASSET, cmd.entity_id),),
        )

    if cmd.kind is EntityKind.DIVIDEND:
        if ledger.find_dividend(cmd.entity_id) is None:
            raise NotFoundError(EntityKind.DIVIDEND.value, cmd.entity_id)
        dividends = tuple(d for d in ledger.dividends if d.dividend_id != cmd.entity_id)
        return CommandResult(
            ledger=dataclasses.replace(ledger, dividends=dividends),
            deleted=((EntityKind.DIVIDEND, cmd.entity_id),),
        )

    record = ledger.find_realization(cmd.entity_id)
    if record is None:
        raise NotFoundError(EntityKind.REALIZATION.value, cmd.entity_id)
    warning = RESTOCK_WARNING.format(
        record_id=record.record_id, units=record.units, ticker=record.ticker
    )
    logger.warning(warning)
    realizations = tuple(r for r in ledger.realizations if r.record_id != cmd.entity_id)
    return CommandResult(
        ledger=dataclasses.replace(ledger, realizations=realizations),
        deleted=((EntityKind.REALIZATION, cmd.entity_id),),
        warnings=(warning,),
    )


_COMMAND_HANDLERS = {
    AddLot: _add_lot,
    EditLot: _edit_lot,
    EditAssetMeta: _edit_asset_meta,
    Dispose: _dispose,
    RecordDividend: _record_dividend,
    EditDividend: _edit_dividend,
    UpdatePrices: _update_prices,
    Delete: _delete,
}


def apply_command(
    ledger: Ledger,
    command: Command,
    make_id: IdFactory = new_id,
    withholding_rate: float = DIVIDEND_WITHHOLDING_RATE,
) -> CommandResult:
    """Apply one command to a snapshot and return the resulting snapshot.

    The input snapshot is never modified. Engine errors propagate unchanged
    so the caller can report them without any partial state to undo.
    """
    handler = _COMMAND_HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Unsupported command: {type(command).__name__}")
    return handler(ledger, command, _Context(make_id, withholding_rate))
