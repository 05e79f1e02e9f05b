"""Time-based retention for generated images.

The sweeper purges image files older than the retention threshold from the
managed directory together with their history records, then removes any
record whose file is gone. After a sweep completes, every remaining record
points at a file that exists.
"""

import asyncio
import os
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from storyforge.core.errors import PersistenceFailure
from storyforge.core.logging import get_logger
from storyforge.ports.repositories import HistoryRepository

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)
DEFAULT_RESERVED_NAMES = frozenset({".gitkeep", ".keep"})


@dataclass
class SweepReport:
    """Outcome of one sweep cycle.

    Attributes:
        scanned: Number of files examined.
        deleted_files: Files removed because they outlived the threshold.
        failed_files: Expired files that could not be removed.
        orphaned_records: Records removed because their file was missing.
    """

    scanned: int = 0
    deleted_files: list[str] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)
    orphaned_records: int = 0


@dataclass
class _ImageEntry:
    name: str
    path: Path
    mtime: float


class ImageRetentionSweeper:
    """Deletes expired image files and their history records."""

    def __init__(
        self,
        images_dir: str | Path,
        store: HistoryRepository,
        ttl: timedelta = DEFAULT_TTL,
        reserved_names: Iterable[str] = DEFAULT_RESERVED_NAMES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the sweeper.

        Args:
            images_dir: Managed directory of generated images.
            store: History log to keep consistent with the directory.
            ttl: Files whose age strictly exceeds this are purged.
            reserved_names: Placeholder entries that are never touched.
            clock: Wall clock comparable with st_mtime; injectable for tests.
        """
        self._images_dir = Path(images_dir)
        self._store = store
        self._ttl_seconds = ttl.total_seconds()
        self._reserved = frozenset(reserved_names)
        self._clock = clock

    @property
    def images_dir(self) -> Path:
        return self._images_dir

    def _scan_sync(self) -> list[_ImageEntry]:
        entries: list[_ImageEntry] = []
        with os.scandir(self._images_dir) as it:
            for entry in it:
                if entry.name in self._reserved:
                    continue
                try:
                    if not entry.is_file():
                        continue
                    mtime = entry.stat().st_mtime
                except FileNotFoundError:
                    # Removed between listing and stat
                    continue
                entries.append(_ImageEntry(entry.name, Path(entry.path), mtime))
        return entries

    async def sweep(self) -> SweepReport:
        """Run one sweep cycle.

        Raises:
            OSError: If the managed directory cannot be listed. The cycle is
                abandoned; the periodic task logs it and fires again later.
        """
        entries = await asyncio.to_thread(self._scan_sync)
        now = self._clock()
        report = SweepReport(scanned=len(entries))
        present = {entry.name for entry in entries}

        for entry in entries:
            age = now - entry.mtime
            if age <= self._ttl_seconds:
                continue

            try:
                await asyncio.to_thread(entry.path.unlink, True)
            except OSError as ex:
                report.failed_files.append(entry.name)
                logger.error(
                    "image_delete_failed",
                    filename=entry.name,
                    age_seconds=round(age),
                    error=str(ex),
                )
                continue

            present.discard(entry.name)
            report.deleted_files.append(entry.name)
            logger.info("image_expired", filename=entry.name, age_seconds=round(age))

            try:
                await self._store.delete_by_filename(entry.name)
            except PersistenceFailure as ex:
                logger.error(
                    "history_delete_failed",
                    filename=entry.name,
                    error=str(ex),
                )

        report.orphaned_records = await self._remove_orphans(present)

        logger.info(
            "retention_sweep_complete",
            scanned=report.scanned,
            deleted=len(report.deleted_files),
            failed=len(report.failed_files),
            orphaned_records=report.orphaned_records,
        )
        return report

    async def _remove_orphans(self, present: set[str]) -> int:
        """Delete records whose file is not in the directory."""
        try:
            referenced = await self._store.list_filenames()
        except PersistenceFailure as ex:
            logger.error("history_list_failed", error=str(ex))
            return 0

        removed = 0
        for filename in sorted(referenced - present):
            # Files written since the scan are not orphans
            if (self._images_dir / filename).exists():
                continue
            try:
                removed += await self._store.delete_by_filename(filename)
            except PersistenceFailure as ex:
                logger.error(
                    "history_delete_failed",
                    filename=filename,
                    error=str(ex),
                )
                continue
            logger.warning("orphaned_history_removed", filename=filename)
        return removed
