"""
Unit tests for core data models.
"""

from datetime import datetime, timedelta, timezone

import pytest

from docwatch.models import (
    ChangeStatus,
    DiffResult,
    NormalizationStrategy,
    NormalizedPage,
    PageRecord,
    RunResult,
    SectionCapture,
    SnapshotSet,
    utc_timestamp,
)

URL = "https://www.agego.com/about-us"
KEY = "3f1c"
TIMESTAMP = "2026-01-01T00:00:00.000Z"


class TestPageRecord:
    """Tests for PageRecord model."""

    def test_success_variant(self):
        """Test that the success constructor fills content fields."""
        record = PageRecord.success(KEY, URL, "Hello", "abc", TIMESTAMP)

        assert record.is_error is False
        assert record.content_length == 5
        assert record.error_message is None

    def test_failure_variant(self):
        """Test that the failure constructor holds only the error."""
        record = PageRecord.failure(KEY, URL, "boom", TIMESTAMP)

        assert record.is_error is True
        assert record.content is None
        assert record.content_hash is None

    def test_both_variants_rejected(self):
        """Test that a record cannot hold content and an error at once."""
        with pytest.raises(ValueError, match="both"):
            PageRecord(KEY, URL, TIMESTAMP, content="x", content_hash="h", error_message="e")

    def test_neither_variant_rejected(self):
        """Test that a record must hold something."""
        with pytest.raises(ValueError, match="neither"):
            PageRecord(KEY, URL, TIMESTAMP)

    def test_success_to_dict(self):
        """Test the snapshot-file field names."""
        record = PageRecord.success(KEY, URL, "Hello", "abc", TIMESTAMP)

        assert record.to_dict() == {
            "url": URL,
            "content": "Hello",
            "timestamp": TIMESTAMP,
            "contentLength": 5,
            "urlHash": KEY,
            "hash": "abc",
        }

    def test_error_to_dict(self):
        """Test that error records serialize without content or hash."""
        record = PageRecord.failure(KEY, URL, "boom", TIMESTAMP)

        assert record.to_dict() == {
            "url": URL,
            "error": "boom",
            "timestamp": TIMESTAMP,
            "urlHash": KEY,
        }

    def test_change_dict_omits_hash(self):
        """Test the change-batch representation."""
        record = PageRecord.success(KEY, URL, "Hello", "abc", TIMESTAMP)

        assert "hash" not in record.to_change_dict()
        assert record.to_change_dict()["contentLength"] == 5

    def test_from_dict_round_trip(self):
        """Test that a serialized record loads back equal."""
        record = PageRecord.success(KEY, URL, "Hello", "abc", TIMESTAMP)
        assert PageRecord.from_dict(KEY, record.to_dict()) == record

    def test_from_dict_accepts_error_message_field(self):
        """Test that the errorMessage spelling is understood."""
        record = PageRecord.from_dict(KEY, {"url": URL, "errorMessage": "x", "timestamp": TIMESTAMP})
        assert record.is_error
        assert record.error_message == "x"

    def test_from_dict_without_hash(self):
        """Test that an entry missing its hash loads as content without a hash."""
        record = PageRecord.from_dict(KEY, {"url": URL, "content": "Hi"})

        assert record.content_hash is None
        assert record.content_length == 2

    def test_from_dict_requires_url(self):
        """Test that entries without a URL are rejected."""
        with pytest.raises(ValueError, match="no url"):
            PageRecord.from_dict(KEY, {"content": "Hi"})

    def test_from_dict_requires_object(self):
        with pytest.raises(ValueError, match="not an object"):
            PageRecord.from_dict(KEY, ["not", "a", "dict"])


class TestSnapshotSet:
    """Tests for SnapshotSet model."""

    def test_empty_set_marks_first_run(self):
        assert SnapshotSet().is_empty is True

    def test_put_replaces_by_key(self):
        """Test that one key holds exactly one record."""
        snapshots = SnapshotSet()
        snapshots.put(PageRecord.success(KEY, URL, "old", "h1", TIMESTAMP))
        snapshots.put(PageRecord.success(KEY, URL, "new", "h2", TIMESTAMP))

        assert len(snapshots) == 1
        assert snapshots[KEY].content == "new"
        assert snapshots.get("missing") is None

    def test_to_dict(self):
        snapshots = SnapshotSet()
        snapshots.put(PageRecord.failure(KEY, URL, "boom", TIMESTAMP))

        assert snapshots.to_dict() == {KEY: {"url": URL, "error": "boom", "timestamp": TIMESTAMP, "urlHash": KEY}}


class TestSectionCapture:
    """Tests for SectionCapture and NormalizedPage."""

    def test_captured_requires_text(self):
        assert SectionCapture(header="Q?", body="A").captured is True
        assert SectionCapture(header="Q?", expanded_content="Page").captured is True
        assert SectionCapture(header="Q?").captured is False
        assert SectionCapture(header="Q?", body="A", skipped_reason="x").captured is False

    def test_page_splits_sections(self):
        page = NormalizedPage(
            text="",
            strategy=NormalizationStrategy.EXPAND_SECTIONS,
            sections=[
                SectionCapture(header="A", body="a"),
                SectionCapture(header="B", skipped_reason="click failed"),
            ],
        )

        assert [s.header for s in page.captured_sections] == ["A"]
        assert [s.header for s in page.skipped_sections] == ["B"]


class TestRunResult:
    """Tests for RunResult model."""

    def test_counts_and_duration(self):
        """Test per-status counts and duration."""
        started = datetime(2026, 1, 1, tzinfo=timezone.utc)
        run = RunResult(
            started_at=started,
            finished_at=started + timedelta(seconds=2.5),
            first_run=False,
            results=[
                DiffResult(url="a", status=ChangeStatus.NEW),
                DiffResult(url="b", status=ChangeStatus.CHANGED),
                DiffResult(url="c", status=ChangeStatus.CHANGED),
                DiffResult(url="d", status=ChangeStatus.ERROR),
            ],
            snapshots=SnapshotSet(),
        )

        assert run.urls_processed == 4
        assert run.count(ChangeStatus.CHANGED) == 2
        assert run.count(ChangeStatus.UNCHANGED) == 0
        assert [r.url for r in run.results_with_status(ChangeStatus.ERROR)] == ["d"]
        assert run.duration_seconds == 2.5

    def test_unfinished_duration(self):
        run = RunResult(
            started_at=datetime.now(timezone.utc),
            finished_at=None,
            first_run=True,
            results=[],
            snapshots=SnapshotSet(),
        )
        assert run.duration_seconds == 0.0


def test_utc_timestamp_format():
    """Test ISO-8601 with milliseconds and a Z suffix."""
    moment = datetime(2026, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)
    assert utc_timestamp(moment) == "2026-03-04T05:06:07.891Z"
    assert utc_timestamp().endswith("Z")
