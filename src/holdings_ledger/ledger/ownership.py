from __future__ import annotations

from typing import Iterable, TypeVar

from holdings_ledger.ledger.models import Asset, Dividend, Ledger, Realization

_Owned = TypeVar("_Owned", Asset, Dividend, Realization)


def filter_by_owner(entities: Iterable[_Owned], owner_id: str | None) -> list[_Owned]:
    """Entities belonging to ``owner_id``; ``None`` selects every owner."""
    if owner_id is None:
        return list(entities)
    return [e for e in entities if e.owner_id == owner_id]


def filter_ledger(ledger: Ledger, owner_id: str | None) -> Ledger:
    return Ledger(
        assets=tuple(filter_by_owner(ledger.assets, owner_id)),
        dividends=tuple(filter_by_owner(ledger.dividends, owner_id)),
        realizations=tuple(filter_by_owner(ledger.realizations, owner_id)),
    )


def owners(ledger: Ledger) -> list[str]:
    """Every owner id referenced anywhere in the snapshot, sorted."""
    ids = {a.owner_id for a in ledger.assets}
    ids.update(d.owner_id for d in ledger.dividends)
    ids.update(r.owner_id for r in ledger.realizations)
    return sorted(ids)
