"""
Documentation change monitor.

Core engine for detecting content changes on documentation pages across
runs. Pages are rendered, stripped of navigation chrome, have their
collapsible sections expanded, and are fingerprinted and compared against
the previous run's snapshot. Designed to be reusable by the CLI and other
callers.
"""

# Core models
from .config import ConfigurationError, MonitorConfig
from .models import (
    ChangeStatus,
    DiffResult,
    NormalizationStrategy,
    NormalizedPage,
    PageRecord,
    RunResult,
    SectionCapture,
    SnapshotSet,
)

# Main orchestrator
from .monitor import Monitor, scrape_page

__all__ = [
    # Models
    "ChangeStatus",
    "DiffResult",
    "NormalizationStrategy",
    "NormalizedPage",
    "PageRecord",
    "RunResult",
    "SectionCapture",
    "SnapshotSet",
    # Configuration
    "ConfigurationError",
    "MonitorConfig",
    # Main entry points
    "Monitor",
    "scrape_page",
]
