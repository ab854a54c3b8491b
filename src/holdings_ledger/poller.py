from __future__ import annotations

import logging
import threading

from holdings_ledger.config import Settings, get_identity
from holdings_ledger.database.connection import get_connection
from holdings_ledger.database.schema import initialize_schema
from holdings_ledger.ledger.service import LedgerService
from holdings_ledger.market.prices import refresh_prices

logger = logging.getLogger(__name__)


class PriceRefresher:
    """Refreshes last-known prices for one scope on a background thread."""

    def __init__(self, settings: Settings, interval: int = 900, identity: str | None = None) -> None:
        self._settings = settings
        self._interval = interval
        self._identity = identity if identity is not None else get_identity()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info("PriceRefresher started (interval=%ds)", self._interval)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=10)
        logger.info("PriceRefresher stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._poll()
            except Exception:
                logger.exception("PriceRefresher cycle failed")
            self._stop_event.wait(timeout=self._interval)

    def _lookup(self, assets):
        return refresh_prices(assets, pause=self._settings.refresh_pause)

    def _poll(self) -> None:
        conn = get_connection(self._settings.db_path)
        try:
            initialize_schema(conn)
            service = LedgerService(
                conn,
                self._settings.scope,
                self._identity,
                withholding_rate=self._settings.withholding_rate,
            )
            result = service.refresh_prices(self._lookup)
            logger.info(
                "Refreshed %d price(s) in %s (persisted=%s)",
                len(result.upserted), service.namespace, result.persisted,
            )
        finally:
            conn.close()
