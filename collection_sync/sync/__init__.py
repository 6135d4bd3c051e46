"""Diff-based collection sync engine module."""

from .engine import SyncOrchestrator, SyncResult, SyncPhase, Mutation
from .diff import ItemDiff, Direction, compute_diff
from .expander import CollectionExpander, CollectionSnapshot, VisitedSet

__all__ = [
    "SyncOrchestrator",
    "SyncResult",
    "SyncPhase",
    "Mutation",
    "ItemDiff",
    "Direction",
    "compute_diff",
    "CollectionExpander",
    "CollectionSnapshot",
    "VisitedSet",
]
