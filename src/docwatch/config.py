"""
Run configuration for the documentation monitor.

A MonitorConfig is built once (by the CLI or a caller) and passed into the
monitor. It is frozen so nothing downstream can change the URL list or file
paths halfway through a run.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping
from urllib.parse import urlparse

from .models import NormalizationStrategy

MOCK_CONTENT_ENV = "MOCK_CONTENT"
MOCK_CONTENT = "MOCKED CONTENT FOR TESTING CHANGE DETECTION"

RENDERERS = ("browser", "static")

DEFAULT_URLS = (
    "https://www.agego.com/verification-methods",
    "https://www.agego.com/verification-methods/selfie",
    "https://www.agego.com/verification-methods/credit-card",
    "https://www.agego.com/verification-methods/digital-id",
    "https://www.agego.com/about-us",
    "https://www.agego.com/help-about-agego",
    "https://www.agego.com/help-verification-methods",
    "https://www.agego.com/help-verification-failed",
    "https://www.agego.com/help-privacy-protection",
    "https://www.agego.com/help-general-questions",
)


class ConfigurationError(ValueError):
    """Raised for an invalid URL or run setting. Always fatal."""

    pass


@dataclass(frozen=True)
class URLInput:
    """
    Wrapper for a URL input with validation.

    Frozen to ensure immutability once created.
    """

    url: str

    def __post_init__(self):
        """Validate URL format."""
        if not self.url or not isinstance(self.url, str):
            raise ConfigurationError(f"URL must be a non-empty string: {self.url}")

        parsed = urlparse(self.url)
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"Invalid URL provided: {self.url}")

        if self.url != self.url.strip():
            raise ConfigurationError(f"URL must not contain surrounding whitespace: {self.url!r}")


@dataclass(frozen=True)
class MonitorConfig:
    """
    Immutable settings for one monitoring run.

    Attributes:
        name: Label used in reports
        urls: URLs to monitor, in processing order
        snapshot_file: JSON file holding the previous run's records
        changes_file: JSON file receiving this run's change batch
        strategy: Normalization strategy applied to every page
        renderer: 'browser' (Playwright) or 'static' (httpx + BeautifulSoup)
        navigation_timeout: Per-navigation timeout in milliseconds
        mock_content: When True, the first URL gets MOCK_CONTENT without navigation
    """

    name: str = "agegodoc"
    urls: tuple[str, ...] = DEFAULT_URLS
    snapshot_file: Path = field(default=Path("outputs") / "agegodoc_snapshots.json")
    changes_file: Path = field(default=Path("outputs") / "agegodoc_changed.json")
    strategy: NormalizationStrategy = NormalizationStrategy.EXPAND_SECTIONS
    renderer: str = "browser"
    navigation_timeout: int = 30000
    mock_content: bool = False

    def __post_init__(self):
        """Validate and freeze settings."""
        # Accept any iterable of URLs but store a tuple
        object.__setattr__(self, "urls", tuple(self.urls))
        object.__setattr__(self, "snapshot_file", Path(self.snapshot_file))
        object.__setattr__(self, "changes_file", Path(self.changes_file))

        if not self.urls:
            raise ConfigurationError("At least one URL must be configured")
        for url in self.urls:
            URLInput(url)
        if len(set(self.urls)) != len(self.urls):
            raise ConfigurationError("Configured URLs must be unique")

        if self.renderer not in RENDERERS:
            raise ConfigurationError(
                f"Unknown renderer: {self.renderer}. Use one of {', '.join(RENDERERS)}."
            )
        if self.navigation_timeout <= 0:
            raise ConfigurationError("Navigation timeout must be positive")
        if self.snapshot_file == self.changes_file:
            raise ConfigurationError("Snapshot and change files must differ")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "MonitorConfig":
        """
        Build a config, reading the mock-content flag from the environment.

        Args:
            environ: Environment mapping (defaults to os.environ)
            **overrides: Any MonitorConfig field
        """
        environ = os.environ if environ is None else environ
        overrides.setdefault("mock_content", environ.get(MOCK_CONTENT_ENV) == "1")
        return cls(**overrides)

    @property
    def mock_url(self) -> str | None:
        """URL whose content is replaced by MOCK_CONTENT, if mocking is on."""
        return self.urls[0] if self.mock_content else None

    def with_urls(self, urls) -> "MonitorConfig":
        return replace(self, urls=tuple(urls))


def read_urls_from_file(input_file: str | Path) -> list[str]:
    """
    Read URLs from a text file, one per line.

    Blank lines and lines starting with '#' are ignored.

    Raises:
        ConfigurationError: If the file is missing, unreadable or empty
    """
    file_path = Path(input_file)

    if not file_path.exists():
        raise ConfigurationError(f"File not found: {input_file}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            urls = [
                line.strip() for line in f if line.strip() and not line.lstrip().startswith("#")
            ]
    except OSError as e:
        raise ConfigurationError(f"Error reading file {input_file}: {e}") from e

    if not urls:
        raise ConfigurationError(f"No URLs found in {input_file}")

    return urls
