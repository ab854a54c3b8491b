from __future__ import annotations

import sqlite3

LEDGER_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS assets (
    namespace     TEXT NOT NULL,
    asset_id      TEXT NOT NULL,
    owner_id      TEXT NOT NULL,
    ticker        TEXT NOT NULL,
    name          TEXT NOT NULL DEFAULT '',
    kind          TEXT NOT NULL,
    frequency     TEXT NOT NULL,
    units         REAL NOT NULL,
    total_cost    REAL NOT NULL,
    average_cost  REAL NOT NULL,
    last_price    REAL NOT NULL DEFAULT 0.0,
    data_url      TEXT NOT NULL DEFAULT '',
    currency      TEXT NOT NULL DEFAULT '',
    version       INTEGER NOT NULL DEFAULT 1,
    updated_at    TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (namespace, asset_id)
);

CREATE TABLE IF NOT EXISTS lots (
    namespace      TEXT NOT NULL,
    asset_id       TEXT NOT NULL,
    lot_id         TEXT NOT NULL,
    position       INTEGER NOT NULL,
    acquired_date  TEXT NOT NULL,
    price          REAL NOT NULL,
    units          REAL NOT NULL,
    rate           TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (namespace, asset_id, lot_id),
    FOREIGN KEY (namespace, asset_id)
        REFERENCES assets(namespace, asset_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS dividends (
    namespace             TEXT NOT NULL,
    dividend_id           TEXT NOT NULL,
    owner_id              TEXT NOT NULL,
    ticker                TEXT NOT NULL,
    ex_date               TEXT NOT NULL,
    pay_date              TEXT NOT NULL,
    amount_per_unit       REAL NOT NULL,
    units                 REAL NOT NULL,
    gross_amount          REAL NOT NULL,
    tax                   REAL NOT NULL,
    net_amount            REAL NOT NULL,
    net_amount_secondary  REAL NOT NULL,
    conversion_rate       REAL NOT NULL,
    PRIMARY KEY (namespace, dividend_id)
);

CREATE TABLE IF NOT EXISTS realizations (
    namespace    TEXT NOT NULL,
    record_id    TEXT NOT NULL,
    owner_id     TEXT NOT NULL,
    ticker       TEXT NOT NULL,
    name         TEXT NOT NULL DEFAULT '',
    sell_date    TEXT NOT NULL,
    sell_price   REAL NOT NULL,
    avg_cost     REAL NOT NULL,
    units        REAL NOT NULL,
    pnl          REAL NOT NULL,
    pnl_percent  REAL NOT NULL,
    currency     TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (namespace, record_id)
);

CREATE INDEX IF NOT EXISTS idx_assets_owner_ticker
    ON assets(namespace, owner_id, ticker);

CREATE INDEX IF NOT EXISTS idx_dividends_owner
    ON dividends(namespace, owner_id, ex_date);

CREATE INDEX IF NOT EXISTS idx_realizations_owner
    ON realizations(namespace, owner_id, sell_date);
"""


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(LEDGER_SCHEMA_SQL)
