"""Ports (interfaces) for the application.

Protocol definitions that separate the application core from its storage
backend.
"""

from storyforge.ports.repositories import HistoryRecord, HistoryRepository

__all__ = [
    "HistoryRecord",
    "HistoryRepository",
]
