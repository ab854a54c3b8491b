from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from holdings_ledger.ledger.models import Scope

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DEFAULT_DB_PATH = _PROJECT_ROOT / "data" / "holdings_ledger.db"

# Withheld share of a taxable distribution.
DIVIDEND_WITHHOLDING_RATE = 0.30

# USD -> TWD; used whenever the live rate cannot be fetched.
FX_SYMBOL = "TWD=X"
FALLBACK_FX_RATE = 32.5

# Seconds between consecutive price lookups during a refresh.
REFRESH_PAUSE = 0.5

SHARED_NAMESPACE = "public"


def _load_env_file() -> dict[str, str]:
    """Read key=value pairs from .env at project root."""
    env_path = _PROJECT_ROOT / ".env"
    if not env_path.exists():
        return {}
    result = {}
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        result[key.strip()] = value.strip()
    return result


def get_identity() -> str | None:
    """Return the caller identity from environment or .env file."""
    identity = os.environ.get("LEDGER_IDENTITY")
    if identity:
        return identity
    return _load_env_file().get("LEDGER_IDENTITY")


def _scope_from_env() -> Scope:
    raw = os.environ.get("LEDGER_SCOPE", Scope.SHARED.value).strip().lower()
    try:
        return Scope(raw)
    except ValueError:
        return Scope.SHARED


def namespace_for(scope: Scope, identity: str | None) -> str:
    """Storage namespace for a visibility scope.

    The shared ledger lives under one namespace; private ledgers are keyed by
    the caller identity.
    """
    if scope is Scope.SHARED:
        return SHARED_NAMESPACE
    if not identity:
        raise ValueError("A private ledger needs a caller identity")
    return f"users/{identity}"


@dataclass(frozen=True)
class Settings:
    db_path: Path = field(default_factory=lambda: Path(os.environ.get(
        "LEDGER_DB_PATH", str(_DEFAULT_DB_PATH)
    )))
    scope: Scope = field(default_factory=_scope_from_env)
    withholding_rate: float = DIVIDEND_WITHHOLDING_RATE
    refresh_pause: float = REFRESH_PAUSE
