from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterable

from holdings_ledger.ledger.models import Asset, Lot


@dataclass(frozen=True)
class LotAggregate:
    units: float
    total_cost: float
    average_cost: float


def recompute(lots: Iterable[Lot]) -> LotAggregate:
    """Derive an asset's totals from its full lot collection.

    Always summed from scratch; running totals are never adjusted in place.
    """
    units = 0.0
    total_cost = 0.0
    for lot in lots:
        units += lot.units
        total_cost += lot.units * lot.price
    average_cost = total_cost / units if units else 0.0
    return LotAggregate(units=units, total_cost=total_cost, average_cost=average_cost)


def with_lots(asset: Asset, lots: Iterable[Lot]) -> Asset:
    """Return a copy of ``asset`` holding ``lots`` with refreshed totals."""
    lots = tuple(lots)
    agg = recompute(lots)
    return dataclasses.replace(
        asset,
        lots=lots,
        units=agg.units,
        total_cost=agg.total_cost,
        average_cost=agg.average_cost,
    )
