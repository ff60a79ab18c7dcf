"""
Sync engine for the site document.

This module provides:
1. The four document operations and their pure application
2. The SyncEngine with its load fallback and mutation protocol
3. Change notification and debounced commits
4. Read-side filters (expiry, ordering, counts)
"""

from .operations import Delete, Insert, Operation, ReplaceField, Update, apply_operation
from .notifier import ChangeNotifier, Subscription
from .engine import LoadResult, LoadSource, MutationResult, SaveStatus, SyncEngine

__all__ = [
    "Delete",
    "Insert",
    "Operation",
    "ReplaceField",
    "Update",
    "apply_operation",
    "ChangeNotifier",
    "Subscription",
    "LoadResult",
    "LoadSource",
    "MutationResult",
    "SaveStatus",
    "SyncEngine",
]
