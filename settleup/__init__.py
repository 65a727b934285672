"""
Shared-Expense Settlement for Groups

This module provides:
- Immutable ledger entries (expenses and payments)
- Net balance computation per group member
- Greedy, deterministic settle-up planning
- Typed errors for invalid entries and imbalanced ledgers
- In-memory group service with analytics and CSV export
"""

from .config import Settings, get_settings
from .engine import compute_balances, validate_entry
from .errors import (
    ErrorKind,
    ImbalanceInconsistencyError,
    InvalidEntryError,
    SettleUpError,
)
from .models import (
    BalanceSheet,
    EntryKind,
    LedgerEntry,
    MemberBalance,
    Settlement,
    SettleUpResult,
    UnknownMember,
)
from .planner import apply_settlements, plan_settlements, settle_up
from .service import SettleUpService

__all__ = [
    "Settings",
    "get_settings",
    "compute_balances",
    "validate_entry",
    "ErrorKind",
    "ImbalanceInconsistencyError",
    "InvalidEntryError",
    "SettleUpError",
    "BalanceSheet",
    "EntryKind",
    "LedgerEntry",
    "MemberBalance",
    "Settlement",
    "SettleUpResult",
    "UnknownMember",
    "apply_settlements",
    "plan_settlements",
    "settle_up",
    "SettleUpService",
]
