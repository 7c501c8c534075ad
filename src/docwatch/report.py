"""
Run report and change-batch export.
"""

import logging

from .models import ChangeStatus, RunResult
from .storage import ChangeBatchStore

logger = logging.getLogger(__name__)


class ReportBuilder:
    """
    Turns a RunResult into report lines and persists its change batch.

    Report lines follow URL processing order. CHANGED entries include the
    line counts and a preview of up to ``preview_size`` added and removed
    lines.
    """

    def __init__(self, title: str = "Scrape Report", preview_size: int = 5):
        self.title = title
        self.preview_size = preview_size

    def build_lines(self, run: RunResult) -> list[str]:
        """Human-readable report, one block per URL."""
        lines = [f"==== {self.title} ===="]

        for result in run.results:
            lines.append(f"- {result.url}: {result.status.value}")

            if result.status == ChangeStatus.CHANGED:
                lines.extend(f"  {detail}" for detail in result.details.split("\n"))
                if result.added_lines:
                    lines.append(f"  Added lines: {result.added_lines[: self.preview_size]!r}")
                if result.removed_lines:
                    lines.append(
                        f"  Removed lines: {result.removed_lines[: self.preview_size]!r}"
                    )
            elif result.status == ChangeStatus.NEW:
                lines.append(f"  {result.details or 'First time scraped.'}")
            elif result.status == ChangeStatus.ERROR:
                lines.append(f"  Error: {result.details}")

        lines.append("=" * (len(self.title) + 10))
        lines.append(
            "New: {new}  Changed: {changed}  Unchanged: {unchanged}  Errors: {errors}".format(
                new=run.count(ChangeStatus.NEW),
                changed=run.count(ChangeStatus.CHANGED),
                unchanged=run.count(ChangeStatus.UNCHANGED),
                errors=run.count(ChangeStatus.ERROR),
            )
        )
        if run.first_run:
            lines.append("First run: baseline established, no change file written.")
        lines.append(f"Scrape completed in {run.duration_seconds:.2f} seconds.")
        return lines

    def build(self, run: RunResult) -> str:
        return "\n".join(self.build_lines(run))

    def persist_change_batch(self, run: RunResult, store: ChangeBatchStore) -> bool:
        """
        Write or clear the change file.

        On a first run any leftover change file is deleted. Otherwise the
        batch is written, as ``[]`` when nothing changed.

        Returns:
            True if a change file exists afterwards
        """
        if run.first_run:
            if store.clear():
                logger.info("Removed stale change file %s", store.path)
            return False

        store.write(run.change_batch)
        logger.info("Wrote %d changed pages to %s", len(run.change_batch), store.path)
        return True
