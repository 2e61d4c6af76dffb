"""SplitLedger - Track shared expenses and settle group balances."""

__version__ = "0.1.0"

from .aggregator import aggregate, aggregate_for_participant
from .allocator import allocate, from_cents, to_cents
from .config import Settings, load_settings
from .db import Database
from .engine import compute_ledger
from .models import (
    Balance,
    Expense,
    ExpenseSummary,
    GroupLedger,
    GroupSettlements,
    Member,
    ResolvedMembers,
    Settlement,
    Split,
    UnresolvedMembers,
)
from .planner import apply_settlements, plan
from .service import LedgerService, validate_splits

__all__ = [
    "aggregate",
    "aggregate_for_participant",
    "allocate",
    "from_cents",
    "to_cents",
    "Settings",
    "load_settings",
    "Database",
    "compute_ledger",
    "Balance",
    "Expense",
    "ExpenseSummary",
    "GroupLedger",
    "GroupSettlements",
    "Member",
    "ResolvedMembers",
    "Settlement",
    "Split",
    "UnresolvedMembers",
    "apply_settlements",
    "plan",
    "LedgerService",
    "validate_splits",
]
