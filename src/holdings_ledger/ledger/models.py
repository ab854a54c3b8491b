from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date


class AssetKind(enum.Enum):
    STOCK = "Stock"
    ETF = "ETF"
    FUND = "Fund"


class Frequency(enum.Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    INDIVIDUAL = "Individual"  # no fixed distribution schedule


class Scope(enum.Enum):
    SHARED = "shared"
    PRIVATE = "private"


class EntityKind(enum.Enum):
    ASSET = "asset"
    LOT = "lot"
    DIVIDEND = "dividend"
    REALIZATION = "realization"


@dataclass(frozen=True)
class Lot:
    """A single purchase of an instrument.

    ``rate`` is the exchange rate noted at purchase time. It is kept as
    entered and never used in arithmetic.
    """
    lot_id: str
    acquired_date: date
    price: float
    units: float
    rate: str = ""

    @property
    def cost(self) -> float:
        return self.units * self.price


@dataclass(frozen=True)
class Asset:
    """Holdings of one ticker by one owner.

    ``units``, ``total_cost`` and ``average_cost`` are derived from ``lots``;
    build new instances through ``aggregation.with_lots`` so they never go
    stale.
    """
    asset_id: str
    owner_id: str
    ticker: str
    kind: AssetKind
    frequency: Frequency
    lots: tuple[Lot, ...] = ()
    units: float = 0.0
    total_cost: float = 0.0
    average_cost: float = 0.0
    last_price: float = 0.0
    name: str = ""
    data_url: str = ""
    currency: str = ""
    version: int = 0

    @property
    def market_value(self) -> float:
        return self.units * self.last_price


@dataclass(frozen=True)
class Dividend:
    dividend_id: str
    owner_id: str
    ticker: str
    ex_date: date
    pay_date: date
    amount_per_unit: float
    units: float
    gross_amount: float
    tax: float
    net_amount: float
    net_amount_secondary: float
    conversion_rate: float


@dataclass(frozen=True)
class Realization:
    """Outcome of one disposal command.

    ``avg_cost`` is the weighted cost per unit of the disposed quantity only,
    not the asset's overall average.
    """
    record_id: str
    owner_id: str
    ticker: str
    sell_date: date
    sell_price: float
    avg_cost: float
    units: float
    pnl: float
    pnl_percent: float
    name: str = ""
    currency: str = ""

    @property
    def cost_basis(self) -> float:
        return self.avg_cost * self.units


@dataclass(frozen=True)
class Ledger:
    """Consistent snapshot of every entity in one storage namespace."""
    assets: tuple[Asset, ...] = field(default_factory=tuple)
    dividends: tuple[Dividend, ...] = field(default_factory=tuple)
    realizations: tuple[Realization, ...] = field(default_factory=tuple)

    def find_asset(self, asset_id: str) -> Asset | None:
        return next((a for a in self.assets if a.asset_id == asset_id), None)

    def find_dividend(self, dividend_id: str) -> Dividend | None:
        return next((d for d in self.dividends if d.dividend_id == dividend_id), None)

    def find_realization(self, record_id: str) -> Realization | None:
        return next((r for r in self.realizations if r.record_id == record_id), None)
