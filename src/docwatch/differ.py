"""
Diff engine for classifying a URL against its previous snapshot.

Comparison is hash-based; line differences are reported for CHANGED pages
only and are a set comparison, not a positional diff.
"""

from .models import ChangeStatus, DiffResult, PageRecord


class DiffEngine:
    """
    Compares current and previous records for one identity key.

    A previous record without a hash (an error record, or nothing at all)
    counts as absent, so the URL is reported NEW.
    """

    def compare(self, previous: PageRecord | None, current: PageRecord) -> DiffResult:
        """
        Classify ``current`` against ``previous``.

        Args:
            previous: Record from the last run under the same key, if any
            current: Record produced by this run

        Returns:
            DiffResult with status, line differences and details
        """
        if current.is_error:
            return DiffResult(
                url=current.url,
                status=ChangeStatus.ERROR,
                details=current.error_message or "",
            )

        if previous is None or previous.content_hash is None:
            return DiffResult(url=current.url, status=ChangeStatus.NEW, details="First time scraped.")

        if previous.content_hash == current.content_hash:
            return DiffResult(url=current.url, status=ChangeStatus.UNCHANGED)

        added, removed = self.line_changes(previous.content or "", current.content or "")
        return DiffResult(
            url=current.url,
            status=ChangeStatus.CHANGED,
            added_lines=added,
            removed_lines=removed,
            details=f"Content changed.\nAdded: {len(added)} lines.\nRemoved: {len(removed)} lines.",
        )

    @staticmethod
    def line_changes(old_text: str, new_text: str) -> tuple[list[str], list[str]]:
        """
        Lines present on only one side.

        Each list keeps the order of its own text. Reordered lines are not
        reported.

        Returns:
            Tuple of (added_lines, removed_lines)
        """
        old_lines = old_text.split("\n")
        new_lines = new_text.split("\n")
        old_set = set(old_lines)
        new_set = set(new_lines)

        added = [line for line in new_lines if line not in old_set]
        removed = [line for line in old_lines if line not in new_set]
        return added, removed

    @staticmethod
    def belongs_in_change_batch(result: DiffResult, first_run: bool) -> bool:
        """NEW pages count as changes only once a baseline exists; CHANGED always does."""
        if result.status == ChangeStatus.CHANGED:
            return True
        return result.status == ChangeStatus.NEW and not first_run
