"""Turn-taking: whose attention a pull request requires right now."""

from prattention.turns.locks import KeyedLocks, RWLock
from prattention.turns.models import PRTurn, TurnMode, current_turn
from prattention.turns.store import DocumentStore, JsonFileStore, MemoryStore
from prattention.turns.tracker import AttentionTracker

__all__ = [
    "AttentionTracker",
    "DocumentStore",
    "JsonFileStore",
    "KeyedLocks",
    "MemoryStore",
    "PRTurn",
    "RWLock",
    "TurnMode",
    "current_turn",
]
