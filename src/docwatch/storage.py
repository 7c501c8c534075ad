"""
Storage layer for snapshot state and run exports.

Provides an abstract snapshot store interface and JSON file implementations
for the snapshot set, the change batch and single-page scrape results.
"""

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .hasher import url_key
from .models import PageRecord, SnapshotSet

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when state cannot be read, parsed or written. Always fatal."""

    pass


def _write_json_atomic(path: Path, data: Any) -> None:
    """
    Write JSON to ``path`` through a temporary file and os.replace.

    Readers never observe a half-written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


class SnapshotStore(ABC):
    """
    Abstract interface for snapshot persistence.

    Implementations must treat save() as a full replacement: records absent
    from the saved set are gone afterwards.
    """

    @abstractmethod
    def load(self) -> SnapshotSet:
        """
        Load the previous run's snapshot set.

        Returns:
            The persisted set, or an empty set when there is no prior state

        Raises:
            PersistenceError: If existing state cannot be read
        """
        pass

    @abstractmethod
    def save(self, snapshots: SnapshotSet) -> None:
        """
        Replace the persisted state with ``snapshots``.

        Raises:
            PersistenceError: If the state cannot be written
        """
        pass


class FileSnapshotStore(SnapshotStore):
    """
    Snapshot set stored as one JSON object keyed by SHA-1 of the URL.

    Entries stored under any other key (for example the raw URL, as older
    scraper versions did) are dropped on load so they are never compared
    against hash-keyed records.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> SnapshotSet:
        if not self.path.exists():
            logger.info("No snapshot file at %s, starting from an empty baseline", self.path)
            return SnapshotSet()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Snapshot file {self.path} is corrupt: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Cannot read snapshot file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Snapshot file {self.path} does not contain a JSON object")

        snapshots = SnapshotSet()
        for key, entry in data.items():
            try:
                record = PageRecord.from_dict(key, entry)
            except ValueError as e:
                raise PersistenceError(f"Snapshot file {self.path} is corrupt: {e}") from e

            if key != url_key(record.url):
                logger.warning("Dropping snapshot entry with foreign key %s (%s)", key, record.url)
                continue
            snapshots.put(record)

        logger.info("Loaded %d snapshots from %s", len(snapshots), self.path)
        return snapshots

    def save(self, snapshots: SnapshotSet) -> None:
        try:
            _write_json_atomic(self.path, snapshots.to_dict())
        except OSError as e:
            raise PersistenceError(f"Cannot write snapshot file {self.path}: {e}") from e
        logger.info("Saved %d snapshots to %s", len(snapshots), self.path)


class ChangeBatchStore:
    """JSON array of the records that changed in a run."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def write(self, records: list[PageRecord]) -> None:
        """Write the batch; an empty list is written as ``[]``."""
        try:
            _write_json_atomic(self.path, [record.to_change_dict() for record in records])
        except OSError as e:
            raise PersistenceError(f"Cannot write change file {self.path}: {e}") from e

    def clear(self) -> bool:
        """Delete the change file if present. Returns True if a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(f"Cannot delete change file {self.path}: {e}") from e
        return True


class ScrapeResultStore:
    """
    File storage for single-page scrape results.

    Each result goes to ``<host><path>.json`` inside the output directory,
    with an ``error_`` prefix for failed scrapes.
    """

    def __init__(self, output_directory: str | Path = Path("outputs") / "scraped_results"):
        self.output_directory = Path(output_directory)

    def filename_for(self, record: PageRecord) -> str:
        parsed = urlparse(record.url)
        stem = f"{'error_' if record.is_error else ''}{parsed.hostname or ''}{parsed.path}"
        return re.sub(r"[^\w\-_.]", "_", stem) + ".json"

    def save(self, data: dict, record: PageRecord) -> Path:
        """
        Save a serialized scrape result.

        Args:
            data: JSON-ready representation of the result
            record: The record it was built from (names the file)

        Returns:
            Path to the saved file
        """
        output_path = self.output_directory / self.filename_for(record)
        try:
            _write_json_atomic(output_path, data)
        except OSError as e:
            raise PersistenceError(f"Failed to save result: {e}") from e
        return output_path
