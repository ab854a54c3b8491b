from __future__ import annotations

import dataclasses
import logging
import sqlite3
from typing import Callable, Mapping

from holdings_ledger.config import DIVIDEND_WITHHOLDING_RATE, namespace_for
from holdings_ledger.database import queries
from holdings_ledger.ledger import metrics
from holdings_ledger.ledger.commands import Command, UpdatePrices
from holdings_ledger.ledger.errors import StaleSnapshotError
from holdings_ledger.ledger.handler import CommandResult, IdFactory, apply_command, new_id
from holdings_ledger.ledger.models import (
    Asset,
    Dividend,
    EntityKind,
    Ledger,
    Realization,
    Scope,
)
from holdings_ledger.ledger.ownership import filter_ledger

logger = logging.getLogger(__name__)

PriceLookup = Callable[[list[Asset]], Mapping[str, float]]


class LedgerService:
    """Runs commands against the stored ledger of one visibility scope.

    Every command is computed against a fresh snapshot and written back as
    whole entities. Store failures do not raise: the computed result is
    returned with ``persisted=False`` and a warning, and the connection is
    rolled back.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        scope: Scope,
        identity: str | None = None,
        make_id: IdFactory = new_id,
        withholding_rate: float = DIVIDEND_WITHHOLDING_RATE,
    ) -> None:
        self._conn = conn
        self._scope = scope
        self._namespace = namespace_for(scope, identity)
        self._make_id = make_id
        self._withholding_rate = withholding_rate

    @property
    def namespace(self) -> str:
        return self._namespace

    def snapshot(self) -> Ledger:
        return queries.load_ledger(self._conn, self._namespace)

    def view(self, owner_id: str | None = None) -> Ledger:
        """Snapshot restricted to one owner, or all owners for ``None``."""
        return filter_ledger(self.snapshot(), owner_id)

    def stats(self, owner_id: str | None = None) -> metrics.PortfolioStats:
        ledger = self.view(owner_id)
        return metrics.summarize(ledger.assets, ledger.dividends, ledger.realizations)

    def execute(self, command: Command) -> CommandResult:
        """Apply ``command`` and persist the outcome.

        Engine errors (``InsufficientUnitsError``, ``NotFoundError``, ...)
        propagate before anything is written.
        """
        before = self.snapshot()
        result = apply_command(before, command, self._make_id, self._withholding_rate)
        try:
            self._persist(before, result)
            self._conn.commit()
        except StaleSnapshotError as exc:
            self._conn.rollback()
            logger.warning("Write conflict in %s: %s", self._namespace, exc)
            return dataclasses.replace(
                result, persisted=False, warnings=(*result.warnings, str(exc))
            )
        except sqlite3.Error as exc:
            self._conn.rollback()
            logger.warning("Store write failed in %s: %s", self._namespace, exc)
            return dataclasses.replace(
                result,
                persisted=False,
                warnings=(*result.warnings, f"Store write failed: {exc}"),
            )
        return dataclasses.replace(result, persisted=True)

    def refresh_prices(self, lookup: PriceLookup) -> CommandResult:
        """Fetch prices for every held asset and store the ones that resolved."""
        assets = list(self.snapshot().assets)
        prices = dict(lookup(assets))
        logger.info("Resolved %d/%d prices in %s", len(prices), len(assets), self._namespace)
        return self.execute(UpdatePrices(prices=prices))

    def _persist(self, before: Ledger, result: CommandResult) -> None:
        for entity in result.upserted:
            if isinstance(entity, Asset):
                queries.upsert_asset(self._conn, self._namespace, entity)
            elif isinstance(entity, Dividend):
                queries.upsert_dividend(self._conn, self._namespace, entity)
            elif isinstance(entity, Realization):
                queries.insert_realization(self._conn, self._namespace, entity)

        for kind, entity_id in result.deleted:
            if kind is EntityKind.ASSET:
                asset = before.find_asset(entity_id)
                version = asset.version if asset else 0
                queries.delete_asset(self._conn, self._namespace, entity_id, version)
            elif kind is EntityKind.DIVIDEND:
                queries.delete_dividend(self._conn, self._namespace, entity_id)
            elif kind is EntityKind.REALIZATION:
                queries.delete_realization(self._conn, self._namespace, entity_id)
