from __future__ import annotations

import sqlite3
from datetime import date

from holdings_ledger.ledger.errors import StaleSnapshotError
from holdings_ledger.ledger.models import (
    Asset,
    AssetKind,
    Dividend,
    Frequency,
    Ledger,
    Lot,
    Realization,
)


# --- Snapshot ---

def load_ledger(conn: sqlite3.Connection, namespace: str) -> Ledger:
    """Read every entity in a namespace as one snapshot."""
    return Ledger(
        assets=tuple(get_assets(conn, namespace)),
        dividends=tuple(get_dividends(conn, namespace)),
        realizations=tuple(get_realizations(conn, namespace)),
    )


# --- Assets ---

def _lots_for(conn: sqlite3.Connection, namespace: str, asset_id: str) -> tuple[Lot, ...]:
    rows = conn.execute(
        "SELECT * FROM lots WHERE namespace = ? AND asset_id = ? ORDER BY position",
        (namespace, asset_id),
    ).fetchall()
    return tuple(
        Lot(
            lot_id=r["lot_id"],
            acquired_date=date.fromisoformat(r["acquired_date"]),
            price=r["price"],
            units=r["units"],
            rate=r["rate"],
        )
        for r in rows
    )


def _asset_from_row(conn: sqlite3.Connection, row: sqlite3.Row) -> Asset:
    return Asset(
        asset_id=row["asset_id"],
        owner_id=row["owner_id"],
        ticker=row["ticker"],
        kind=AssetKind(row["kind"]),
        frequency=Frequency(row["frequency"]),
        lots=_lots_for(conn, row["namespace"], row["asset_id"]),
        units=row["units"],
        total_cost=row["total_cost"],
        average_cost=row["average_cost"],
        last_price=row["last_price"],
        name=row["name"],
        data_url=row["data_url"],
        currency=row["currency"],
        version=row["version"],
    )


def get_assets(conn: sqlite3.Connection, namespace: str) -> list[Asset]:
    rows = conn.execute(
        "SELECT * FROM assets WHERE namespace = ? ORDER BY ticker, asset_id",
        (namespace,),
    ).fetchall()
    return [_asset_from_row(conn, r) for r in rows]


def get_asset(conn: sqlite3.Connection, namespace: str, asset_id: str) -> Asset | None:
    row = conn.execute(
        "SELECT * FROM assets WHERE namespace = ? AND asset_id = ?",
        (namespace, asset_id),
    ).fetchone()
    return _asset_from_row(conn, row) if row else None


def _write_lots(conn: sqlite3.Connection, namespace: str, asset: Asset) -> None:
    conn.execute(
        "DELETE FROM lots WHERE namespace = ? AND asset_id = ?",
        (namespace, asset.asset_id),
    )
    conn.executemany(
        "INSERT INTO lots "
        "(namespace, asset_id, lot_id, position, acquired_date, price, units, rate) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [
            (
                namespace,
                asset.asset_id,
                lot.lot_id,
                position,
                lot.acquired_date.isoformat(),
                lot.price,
                lot.units,
                lot.rate,
            )
            for position, lot in enumerate(asset.lots)
        ],
    )


def upsert_asset(conn: sqlite3.Connection, namespace: str, asset: Asset) -> int:
    """Write an asset and its lots as a whole. Returns the stored version.

    ``asset.version`` is the revision the change was computed from: 0 means
    the asset is new. Raises ``StaleSnapshotError`` if the stored row has
    moved on (or already exists, for a new asset).
    """
    values = (
        asset.owner_id,
        asset.ticker,
        asset.name,
        asset.kind.value,
        asset.frequency.value,
        asset.units,
        asset.total_cost,
        asset.average_cost,
        asset.last_price,
        asset.data_url,
        asset.currency,
    )
    if asset.version == 0:
        try:
            conn.execute(
                "INSERT INTO assets "
                "(owner_id, ticker, name, kind, frequency, units, total_cost, "
                "average_cost, last_price, data_url, currency, namespace, asset_id, version) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)",
                (*values, namespace, asset.asset_id),
            )
        except sqlite3.IntegrityError:
            raise StaleSnapshotError(asset.asset_id, asset.version) from None
        new_version = 1
    else:
        cur = conn.execute(
            "UPDATE assets SET owner_id = ?, ticker = ?, name = ?, kind = ?, frequency = ?, "
            "units = ?, total_cost = ?, average_cost = ?, last_price = ?, data_url = ?, "
            "currency = ?, version = version + 1, updated_at = datetime('now') "
            "WHERE namespace = ? AND asset_id = ? AND version = ?",
            (*values, namespace, asset.asset_id, asset.version),
        )
        if cur.rowcount == 0:
            raise StaleSnapshotError(asset.asset_id, asset.version)
        new_version = asset.version + 1

    _write_lots(conn, namespace, asset)
    return new_version


def delete_asset(
    conn: sqlite3.Connection, namespace: str, asset_id: str, expected_version: int
) -> None:
    cur = conn.execute(
        "DELETE FROM assets WHERE namespace = ? AND asset_id = ? AND version = ?",
        (namespace, asset_id, expected_version),
    )
    if cur.rowcount == 0:
        raise StaleSnapshotError(asset_id, expected_version)
    conn.execute(
        "DELETE FROM lots WHERE namespace = ? AND asset_id = ?",
        (namespace, asset_id),
    )


# --- Dividends ---

def get_dividends(conn: sqlite3.Connection, namespace: str) -> list[Dividend]:
    rows = conn.execute(
        "SELECT * FROM dividends WHERE namespace = ? ORDER BY ex_date DESC, dividend_id",
        (namespace,),
    ).fetchall()
    return [
        Dividend(
            dividend_id=r["dividend_id"],
            owner_id=r["owner_id"],
            ticker=r["ticker"],
            ex_date=date.fromisoformat(r["ex_date"]),
            pay_date=date.fromisoformat(r["pay_date"]),
            amount_per_unit=r["amount_per_unit"],
            units=r["units"],
            gross_amount=r["gross_amount"],
            tax=r["tax"],
            net_amount=r["net_amount"],
            net_amount_secondary=r["net_amount_secondary"],
            conversion_rate=r["conversion_rate"],
        )
        for r in rows
    ]


def upsert_dividend(conn: sqlite3.Connection, namespace: str, div: Dividend) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO dividends "
        "(namespace, dividend_id, owner_id, ticker, ex_date, pay_date, amount_per_unit, "
        "units, gross_amount, tax, net_amount, net_amount_secondary, conversion_rate) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            namespace,
            div.dividend_id,
            div.owner_id,
            div.ticker,
            div.ex_date.isoformat(),
            div.pay_date.isoformat(),
            div.amount_per_unit,
            div.units,
            div.gross_amount,
            div.tax,
            div.net_amount,
            div.net_amount_secondary,
            div.conversion_rate,
        ),
    )


def delete_dividend(conn: sqlite3.Connection, namespace: str, dividend_id: str) -> None:
    conn.execute(
        "DELETE FROM dividends WHERE namespace = ? AND dividend_id = ?",
        (namespace, dividend_id),
    )


# --- Realizations ---

def get_realizations(conn: sqlite3.Connection, namespace: str) -> list[Realization]:
    rows = conn.execute(
        "SELECT * FROM realizations WHERE namespace = ? ORDER BY sell_date DESC, record_id",
        (namespace,),
    ).fetchall()
    return [
        Realization(
            record_id=r["record_id"],
            owner_id=r["owner_id"],
            ticker=r["ticker"],
            sell_date=date.fromisoformat(r["sell_date"]),
            sell_price=r["sell_price"],
            avg_cost=r["avg_cost"],
            units=r["units"],
            pnl=r["pnl"],
            pnl_percent=r["pnl_percent"],
            name=r["name"],
            currency=r["currency"],
        )
        for r in rows
    ]


def insert_realization(conn: sqlite3.Connection, namespace: str, rec: Realization) -> None:
    conn.execute(
        "INSERT INTO realizations "
        "(namespace, record_id, owner_id, ticker, name, sell_date, sell_price, avg_cost, "
        "units, pnl, pnl_percent, currency) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            namespace,
            rec.record_id,
            rec.owner_id,
            rec.ticker,
            rec.name,
            rec.sell_date.isoformat(),
            rec.sell_price,
            rec.avg_cost,
            rec.units,
            rec.pnl,
            rec.pnl_percent,
            rec.currency,
        ),
    )


def delete_realization(conn: sqlite3.Connection, namespace: str, record_id: str) -> None:
    conn.execute(
        "DELETE FROM realizations WHERE namespace = ? AND record_id = ?",
        (namespace, record_id),
    )
