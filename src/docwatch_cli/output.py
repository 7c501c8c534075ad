"""
Terminal output formatter for CLI.

Handles all display logic - no business logic, just presentation.
"""

import json
import sys

from docwatch.models import PageRecord, RunResult
from docwatch.report import ReportBuilder


def print_run_report(result: RunResult, builder: ReportBuilder | None = None) -> None:
    """
    Print the run report to the terminal.

    Args:
        result: RunResult of a completed monitoring run
        builder: Report builder (defaults to a plain ReportBuilder)
    """
    builder = builder or ReportBuilder()
    print()
    for line in builder.build_lines(result):
        print(line)
    print()


def scrape_result_data(record: PageRecord, hash_key: bool = False) -> dict:
    """
    JSON-ready representation of a single-page scrape.

    Args:
        record: Scrape result
        hash_key: Wrap the result as {urlHash: result}
    """
    data = record.to_dict() if record.is_error else record.to_change_dict()
    if hash_key:
        return {record.identity_key: data}
    return data


def print_scrape_result(record: PageRecord, hash_key: bool = False) -> None:
    """Print a scrape result as JSON; errors go to stderr."""
    stream = sys.stderr if record.is_error else sys.stdout
    print(json.dumps(scrape_result_data(record, hash_key), indent=2, ensure_ascii=False), file=stream)
