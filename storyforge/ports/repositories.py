"""Repository protocols for history persistence.

The generation orchestrator and the retention sweeper depend on these
interfaces rather than on the SQLite adapter, so tests can substitute an
in-memory double.
"""

from dataclasses import dataclass
from typing import Any, Protocol

# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class HistoryRecord:
    """One logged generation event.

    Attributes:
        id: Autoincrement primary key, monotonic in insertion order.
        prompt: The user prompt.
        story: Generated story text. None for rows written before stories
            were recorded.
        filename: Name of the image file in the managed directory.
        created_at: Insertion time as stored by the database
            ("YYYY-MM-DD HH:MM:SS", UTC).
    """

    id: int
    prompt: str
    story: str | None
    filename: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses (the internal id is not exposed)."""
        return {
            "prompt": self.prompt,
            "story": self.story,
            "filename": self.filename,
            "created_at": self.created_at,
        }


# =============================================================================
# Repository Protocols
# =============================================================================


class HistoryRepository(Protocol):
    """Protocol for the append-only history log."""

    async def append(self, prompt: str, story: str | None, filename: str) -> int:
        """Insert a record and return its id."""
        ...

    async def list_all(self) -> list[HistoryRecord]:
        """Return every record, newest first."""
        ...

    async def list_filenames(self) -> set[str]:
        """Return the filenames referenced by any record."""
        ...

    async def delete_by_filename(self, filename: str) -> int:
        """Delete records with this exact filename; return how many."""
        ...
