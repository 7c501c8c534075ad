"""
Core data models for the documentation change monitor.

All models are plain data structures shared by the engine, the CLI and the
storage layer. Serialization helpers keep the JSON field names used by the
snapshot files on disk.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Mapping


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


class ChangeStatus(str, Enum):
    """Classification of one URL within a run."""

    NEW = "NEW"
    CHANGED = "CHANGED"
    UNCHANGED = "UNCHANGED"
    ERROR = "ERROR"


class NormalizationStrategy(str, Enum):
    """How much work the normalizer does on a page."""

    PLAIN = "plain"  # Chrome stripping only
    EXPAND_SECTIONS = "expand"  # Chrome stripping plus accordion expansion


@dataclass(frozen=True)
class PageRecord:
    """
    Last-known state of one monitored URL.

    Exactly one variant is populated: the success variant carries content,
    hash and length; the error variant carries only the error message.
    Use :meth:`success` and :meth:`failure` rather than the constructor.
    """

    identity_key: str
    url: str
    timestamp: str
    content: str | None = None
    content_hash: str | None = None
    content_length: int | None = None
    error_message: str | None = None

    def __post_init__(self):
        """Enforce the one-variant rule."""
        has_content = self.content is not None or self.content_hash is not None
        has_error = self.error_message is not None
        if has_content == has_error:
            raise ValueError(
                f"PageRecord for {self.url} must hold either content or an error, not "
                f"{'both' if has_content else 'neither'}"
            )

    @classmethod
    def success(
        cls, identity_key: str, url: str, content: str, content_hash: str, timestamp: str
    ) -> "PageRecord":
        return cls(
            identity_key=identity_key,
            url=url,
            timestamp=timestamp,
            content=content,
            content_hash=content_hash,
            content_length=len(content),
        )

    @classmethod
    def failure(
        cls, identity_key: str, url: str, error_message: str, timestamp: str
    ) -> "PageRecord":
        return cls(
            identity_key=identity_key,
            url=url,
            timestamp=timestamp,
            error_message=error_message,
        )

    @property
    def is_error(self) -> bool:
        return self.error_message is not None

    def to_dict(self) -> dict:
        """Snapshot-file representation."""
        if self.is_error:
            return {
                "url": self.url,
                "error": self.error_message,
                "timestamp": self.timestamp,
                "urlHash": self.identity_key,
            }
        return {
            "url": self.url,
            "content": self.content,
            "timestamp": self.timestamp,
            "contentLength": self.content_length,
            "urlHash": self.identity_key,
            "hash": self.content_hash,
        }

    def to_change_dict(self) -> dict:
        """Change-batch representation (no hash)."""
        return {
            "url": self.url,
            "content": self.content,
            "timestamp": self.timestamp,
            "contentLength": self.content_length,
            "urlHash": self.identity_key,
        }

    @classmethod
    def from_dict(cls, identity_key: str, data: Mapping) -> "PageRecord":
        """
        Rebuild a record from its snapshot-file representation.

        Accepts both ``error`` and ``errorMessage`` for the error text.
        A success entry missing its hash is kept as content-only so the
        differ treats it as absent.

        Raises:
            ValueError: If the entry is not a mapping or has no URL
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Snapshot entry {identity_key} is not an object")

        url = data.get("url")
        if not url or not isinstance(url, str):
            raise ValueError(f"Snapshot entry {identity_key} has no url")

        timestamp = data.get("timestamp") or ""
        error = data.get("error", data.get("errorMessage"))
        if error is not None:
            return cls.failure(identity_key, url, str(error), timestamp)

        content = data.get("content")
        if content is None:
            content = ""
        content_length = data.get("contentLength")
        return cls(
            identity_key=identity_key,
            url=url,
            timestamp=timestamp,
            content=content,
            content_hash=data.get("hash"),
            content_length=content_length if content_length is not None else len(content),
        )


class SnapshotSet(Mapping[str, PageRecord]):
    """
    Mapping from identity key to PageRecord.

    The only state carried between runs. Each run builds a fresh set and
    replaces the persisted one wholesale.
    """

    def __init__(self, records: Mapping[str, PageRecord] | None = None):
        self._records: dict[str, PageRecord] = dict(records or {})

    def __getitem__(self, key: str) -> PageRecord:
        return self._records[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"SnapshotSet({len(self._records)} records)"

    @property
    def is_empty(self) -> bool:
        """An empty set marks the first run."""
        return not self._records

    def put(self, record: PageRecord) -> None:
        """Insert or replace the record stored under its identity key."""
        self._records[record.identity_key] = record

    def to_dict(self) -> dict:
        return {key: record.to_dict() for key, record in self._records.items()}


@dataclass
class SectionCapture:
    """
    Outcome of expanding one collapsible section.

    ``body`` is set for sections read from their own container;
    ``expanded_content`` for fallback sweeps that read the whole page.
    A skipped section carries the reason instead.
    """

    header: str
    body: str | None = None
    expanded_content: str | None = None
    skipped_reason: str | None = None

    @property
    def captured(self) -> bool:
        return self.skipped_reason is None and bool(self.body or self.expanded_content)

    @property
    def text(self) -> str:
        return (self.body or self.expanded_content or "").strip()


@dataclass
class NormalizedPage:
    """Normalizer output: canonical text plus the per-section trail."""

    text: str
    strategy: NormalizationStrategy
    sections: list[SectionCapture] = field(default_factory=list)

    @property
    def captured_sections(self) -> list[SectionCapture]:
        return [section for section in self.sections if section.captured]

    @property
    def skipped_sections(self) -> list[SectionCapture]:
        return [section for section in self.sections if not section.captured]


@dataclass
class DiffResult:
    """Comparison outcome for a single URL."""

    url: str
    status: ChangeStatus
    added_lines: list[str] = field(default_factory=list)
    removed_lines: list[str] = field(default_factory=list)
    details: str = ""

    @property
    def is_change(self) -> bool:
        return self.status in (ChangeStatus.NEW, ChangeStatus.CHANGED)


@dataclass
class RunResult:
    """
    Complete results for one monitoring run.

    ``results`` follows the configured URL order. ``change_batch`` is
    always empty on a first run.
    """

    started_at: datetime
    finished_at: datetime | None
    first_run: bool
    results: list[DiffResult]
    snapshots: SnapshotSet
    change_batch: list[PageRecord] = field(default_factory=list)

    @property
    def urls_processed(self) -> int:
        return len(self.results)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return round((self.finished_at - self.started_at).total_seconds(), 2)

    def count(self, status: ChangeStatus) -> int:
        """Number of URLs with the given status."""
        return sum(1 for result in self.results if result.status == status)

    def results_with_status(self, status: ChangeStatus) -> list[DiffResult]:
        return [result for result in self.results if result.status == status]
