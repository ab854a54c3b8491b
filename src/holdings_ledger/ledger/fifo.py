from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from holdings_ledger.ledger.errors import InsufficientUnitsError
from holdings_ledger.ledger.models import Lot

logger = logging.getLogger(__name__)

# Residual units at or below this are float noise, not a position.
UNIT_EPSILON = 1e-9


@dataclass(frozen=True)
class Disposal:
    units: float
    price: float
    disposal_date: date
    consumed_cost_basis: float
    remaining_lots: tuple[Lot, ...]
    pnl: float
    pnl_percent: float
    avg_disposed_cost: float

    @property
    def proceeds(self) -> float:
        return self.units * self.price


def order_lots(lots: Sequence[Lot]) -> list[Lot]:
    """Oldest acquisition first; equal dates keep their entry order."""
    return sorted(lots, key=lambda lot: lot.acquired_date)


def dispose_lots(
    lots: Sequence[Lot],
    requested_units: float,
    disposal_price: float,
    disposal_date: date,
    ticker: str = "",
) -> Disposal:
    """Consume lots oldest-first to cover ``requested_units``.

    Fully consumed lots are dropped; a partially consumed lot is kept with
    its remaining units; lots never reached pass through untouched. Raises
    ``InsufficientUnitsError`` without touching anything when more units are
    requested than held.
    """
    held = sum(lot.units for lot in lots)
    if requested_units > held + UNIT_EPSILON:
        logger.warning(
            "Insufficient units for disposal: %s requested %.6f, held %.6f",
            ticker, requested_units, held,
        )
        raise InsufficientUnitsError(ticker, requested_units, held)

    remaining = requested_units
    consumed_cost_basis = 0.0
    remaining_lots: list[Lot] = []

    for lot in order_lots(lots):
        if remaining <= 0:
            remaining_lots.append(lot)
            continue
        if lot.units <= remaining + UNIT_EPSILON:
            consumed_cost_basis += lot.units * lot.price
            remaining -= lot.units
        else:
            consumed_cost_basis += remaining * lot.price
            remaining_lots.append(dataclasses.replace(lot, units=lot.units - remaining))
            remaining = 0.0

    pnl = requested_units * disposal_price - consumed_cost_basis
    pnl_percent = pnl / consumed_cost_basis * 100 if consumed_cost_basis > 0 else 0.0
    avg_disposed_cost = consumed_cost_basis / requested_units if requested_units > 0 else 0.0

    return Disposal(
        units=requested_units,
        price=disposal_price,
        disposal_date=disposal_date,
        consumed_cost_basis=consumed_cost_basis,
        remaining_lots=tuple(remaining_lots),
        pnl=pnl,
        pnl_percent=pnl_percent,
        avg_disposed_cost=avg_disposed_cost,
    )
