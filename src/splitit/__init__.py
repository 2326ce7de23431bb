"""SplitIt - Track shared expenses and work out who owes whom."""

__version__ = "0.1.0"

from .balances import aggregate, group_balances, is_settled
from .config import Settings, load_settings
from .db import Database
from .models import (
    Group,
    LedgerEntry,
    LedgerState,
    Person,
    Split,
    SplitMode,
    SplitResult,
    SuggestedTransfer,
)
from .service import LedgerService
from .simplifier import apply_transfers, simplify
from .splitter import compute_splits

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "Group",
    "LedgerEntry",
    "LedgerState",
    "Person",
    "Split",
    "SplitMode",
    "SplitResult",
    "SuggestedTransfer",
    "aggregate",
    "group_balances",
    "is_settled",
    "apply_transfers",
    "simplify",
    "compute_splits",
    "LedgerService",
]
