from __future__ import annotations


class LedgerError(Exception):
    """Base class for errors raised by the ledger engine and store."""


class InsufficientUnitsError(LedgerError):
    def __init__(self, ticker: str, requested: float, held: float) -> None:
        self.ticker = ticker
        self.requested = requested
        self.held = held
        super().__init__(
            f"Cannot dispose {requested:g} units of {ticker or 'asset'}: only {held:g} held"
        )


class InvalidInputError(LedgerError, ValueError):
    def __init__(self, field_name: str, message: str) -> None:
        self.field_name = field_name
        super().__init__(f"{field_name}: {message}")


class NotFoundError(LedgerError, LookupError):
    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"No {kind} with id {entity_id!r} in the current snapshot")


class StaleSnapshotError(LedgerError):
    """A conditional write found a newer revision than the one it was computed from."""

    def __init__(self, entity_id: str, expected_version: int) -> None:
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{entity_id!r} changed since version {expected_version} was read"
        )
