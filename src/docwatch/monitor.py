"""
Monitor for orchestrating a full change-detection run.

Manages navigation, normalization, hashing and comparison for every
configured URL, then persists the new snapshot set and the change batch.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncContextManager, Callable

from .config import MOCK_CONTENT, MonitorConfig, URLInput
from .differ import DiffEngine
from .hasher import content_hash, url_key
from .models import PageRecord, RunResult, SnapshotSet, utc_timestamp
from .normalizer import ContentNormalizer, ExtractionError
from .report import ReportBuilder
from .session import PageSession, SessionError, open_session
from .storage import ChangeBatchStore, FileSnapshotStore, SnapshotStore

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[PageSession]]


class Monitor:
    """
    Runs one monitoring pass over the configured URLs.

    URLs are processed strictly one after another on a single page session.
    A failure on one URL becomes an ERROR record for that URL and the run
    carries on; only persistence failures abort a run.
    """

    def __init__(
        self,
        config: MonitorConfig,
        session_factory: SessionFactory | None = None,
        normalizer: ContentNormalizer | None = None,
        snapshot_store: SnapshotStore | None = None,
        change_store: ChangeBatchStore | None = None,
        report_builder: ReportBuilder | None = None,
    ):
        """
        Initialize the monitor.

        Args:
            config: Immutable run configuration
            session_factory: Callable returning an async context manager that
                yields a PageSession (defaults to the configured renderer)
            normalizer: Content normalizer (defaults to the configured strategy)
            snapshot_store: Snapshot persistence (defaults to config.snapshot_file)
            change_store: Change batch persistence (defaults to config.changes_file)
            report_builder: Report builder used for the change batch export
        """
        self.config = config
        self.session_factory = session_factory or (lambda: open_session(config.renderer))
        self.normalizer = normalizer or ContentNormalizer(strategy=config.strategy)
        self.snapshot_store = snapshot_store or FileSnapshotStore(config.snapshot_file)
        self.change_store = change_store or ChangeBatchStore(config.changes_file)
        self.report_builder = report_builder or ReportBuilder()
        self.differ = DiffEngine()

    async def run_async(self) -> RunResult:
        """
        Run the monitor asynchronously.

        Returns:
            RunResult with one DiffResult per configured URL

        Raises:
            PersistenceError: If state cannot be loaded or saved
        """
        started_at = datetime.now(timezone.utc)

        previous = self.snapshot_store.load()
        first_run = previous.is_empty
        if first_run:
            logger.info("First run for %s: establishing baseline", self.config.name)

        current = SnapshotSet()
        results = []
        change_batch = []

        async with self.session_factory() as session:
            for url in self.config.urls:
                record = await self.process_url(session, url)
                current.put(record)

                result = self.differ.compare(previous.get(record.identity_key), record)
                results.append(result)
                if self.differ.belongs_in_change_batch(result, first_run):
                    change_batch.append(record)

                logger.info("%s: %s", url, result.status.value)

        self.snapshot_store.save(current)

        run = RunResult(
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            first_run=first_run,
            results=results,
            snapshots=current,
            change_batch=change_batch,
        )
        self.report_builder.persist_change_batch(run, self.change_store)
        return run

    def run(self) -> RunResult:
        """
        Run the monitor synchronously.

        Convenience method that wraps run_async.
        """
        return asyncio.run(self.run_async())

    async def process_url(self, session: PageSession, url: str) -> PageRecord:
        """
        Navigate, normalize and fingerprint a single URL.

        Never raises for page-level problems; they are returned as an error
        record instead.
        """
        key = url_key(url)

        if url == self.config.mock_url:
            logger.info("Using mock content for %s", url)
            return PageRecord.success(
                key, url, MOCK_CONTENT, content_hash(MOCK_CONTENT), utc_timestamp()
            )

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        try:
            await session.goto(url, timeout=self.config.navigation_timeout)
            page = await self.normalizer.normalize(session)
        except (SessionError, ExtractionError) as e:
            logger.warning("Failed %s in %dms: %s", url, (loop.time() - start_time) * 1000, e)
            return PageRecord.failure(key, url, str(e), utc_timestamp())
        except Exception as e:
            logger.exception("Unexpected error while processing %s", url)
            return PageRecord.failure(key, url, f"Unexpected error: {e}", utc_timestamp())

        for section in page.skipped_sections:
            logger.debug("Skipped section %r on %s: %s", section.header, url, section.skipped_reason)

        logger.debug("Processed %s in %dms", url, (loop.time() - start_time) * 1000)
        return PageRecord.success(key, url, page.text, content_hash(page.text), utc_timestamp())


async def scrape_page(
    url: str,
    session_factory: SessionFactory | None = None,
    normalizer: ContentNormalizer | None = None,
    timeout: int = 30000,
) -> PageRecord:
    """
    Scrape a single page outside of a monitoring run.

    The content is trimmed. Page failures come back as an error record.

    Raises:
        ConfigurationError: If the URL is invalid (before any network activity)
    """
    URLInput(url)
    session_factory = session_factory or (lambda: open_session("browser"))
    normalizer = normalizer or ContentNormalizer()
    key = url_key(url)

    async with session_factory() as session:
        try:
            await session.goto(url, timeout=timeout)
            page = await normalizer.normalize(session)
        except (SessionError, ExtractionError) as e:
            return PageRecord.failure(key, url, str(e), utc_timestamp())
        except Exception as e:
            logger.exception("Unexpected error while scraping %s", url)
            return PageRecord.failure(key, url, f"Unexpected error: {e}", utc_timestamp())

    content = page.text.strip()
    return PageRecord.success(key, url, content, content_hash(content), utc_timestamp())
