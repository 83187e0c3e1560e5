"""Whole-collection flat file storage for minishop."""

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from . import config
from .errors import StorageError

logger = logging.getLogger(__name__)

SLOT_SUFFIX = ".json"


class CollectionStore:
    """
    Reads and writes entire ordered collections of records, one file per slot.

    There is no partial update: every change to a collection means loading
    the whole slot, mutating it in memory and saving it back. Callers that
    read-modify-write should hold ``lock(slot)`` for the whole cycle.
    """

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize CollectionStore.

        Args:
            data_dir: Override data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR
        self._lock_depth: dict[str, int] = {}

    def path_for(self, slot: str) -> Path:
        """Get the file backing a slot."""
        return self.data_dir / f"{slot}{SLOT_SUFFIX}"

    def _ensure_dir(self) -> None:
        """Ensure data directory exists."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def lock(self, slot: str) -> Iterator[None]:
        """
        Acquire an exclusive lock on a slot for a read-modify-write cycle.

        Reentrant within this store: nested ``lock(slot)`` calls for a slot
        already held return immediately.
        """
        if self._lock_depth.get(slot, 0) > 0:
            self._lock_depth[slot] += 1
            try:
                yield
            finally:
                self._lock_depth[slot] -= 1
            return

        self._ensure_dir()
        lock_path = self.data_dir / f".{slot}.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            self._lock_depth[slot] = 1
            try:
                yield
            finally:
                self._lock_depth[slot] = 0
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def exists(self, slot: str) -> bool:
        """Check if a slot has ever been written."""
        path = self.path_for(slot)
        return path.exists() and path.is_file()

    def size(self, slot: str) -> int:
        """Size of the slot file in bytes (0 when absent)."""
        path = self.path_for(slot)
        return path.stat().st_size if path.exists() else 0

    def load(self, slot: str) -> list[dict[str, Any]]:
        """
        Load every record stored in a slot.

        A slot that was never written, is empty, or cannot be decoded loads
        as an empty list. This never raises for a missing or unreadable slot.
        """
        path = self.path_for(slot)
        if not path.exists():
            logger.debug("Slot %s does not exist yet, starting empty", path)
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            return []

        if not raw.strip():
            logger.debug("Slot %s is empty", path)
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Slot %s is corrupted (%s), treating as empty", path, e)
            return []

        records = _extract_records(data)
        if records is None:
            logger.warning("Slot %s has an unsupported layout, treating as empty", path)
            return []

        logger.debug("Loaded %d record(s) from %s", len(records), path)
        return records

    def save(self, slot: str, records: list[dict[str, Any]] | None) -> None:
        """
        Replace the entire contents of a slot.

        Uses write-to-temp-then-rename, so readers see either the old or the
        new collection. Saving ``None`` is a no-op that is logged.

        Raises:
            StorageError: If the collection could not be written.
        """
        path = self.path_for(slot)
        if records is None:
            logger.error("Refusing to save None to %s", path)
            return

        data = {"schema_version": config.SCHEMA_VERSION, "records": list(records)}
        try:
            self._ensure_dir()
            fd, temp_path = tempfile.mkstemp(
                dir=self.data_dir, prefix=f".{slot}_", suffix=".tmp"
            )
        except OSError as e:
            logger.error("Could not prepare %s for writing: %s", path, e)
            raise StorageError(str(path), str(e)) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            logger.error("Failed to save %s: %s", path, e)
            raise StorageError(str(path), str(e)) from e

        logger.debug("Saved %d record(s) to %s", len(data["records"]), path)

    def delete(self, slot: str) -> bool:
        """Delete a slot file. Returns False if it did not exist."""
        path = self.path_for(slot)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted %s", path)
        return True

    def clear(self) -> int:
        """
        Delete every slot file in the data directory.

        Returns:
            Number of slots deleted.
        """
        if not self.data_dir.exists():
            return 0

        count = 0
        for path in self.data_dir.glob(f"*{SLOT_SUFFIX}"):
            path.unlink()
            count += 1
        return count


def _extract_records(data: Any) -> list[dict[str, Any]] | None:
    """Pull the record list out of a decoded slot file, or None if unusable."""
    if isinstance(data, list):
        records = data
    elif isinstance(data, dict):
        if data.get("schema_version", config.SCHEMA_VERSION) != config.SCHEMA_VERSION:
            return None
        records = data.get("records", [])
    else:
        return None

    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        return None
    return records
