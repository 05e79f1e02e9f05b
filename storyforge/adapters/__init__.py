"""Adapters for external systems.

Storage backends implementing the repository protocols.
"""

from storyforge.adapters.history_store import HistoryStore

__all__ = [
    "HistoryStore",
]
