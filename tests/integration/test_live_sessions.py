"""
Integration tests for page sessions.

Tests actual HTTP requests and browser rendering with real URLs. Skipped
unless DOCWATCH_NETWORK=1 is set.
"""

import os

import pytest

from docwatch.config import MonitorConfig
from docwatch.hasher import content_hash
from docwatch.models import ChangeStatus, NormalizationStrategy
from docwatch.monitor import Monitor
from docwatch.normalizer import ContentNormalizer
from docwatch.session import NavigationError, open_browser_session, open_static_session

pytestmark = [
    pytest.mark.network,
    pytest.mark.skipif(
        os.environ.get("DOCWATCH_NETWORK") != "1", reason="set DOCWATCH_NETWORK=1 to run"
    ),
]


@pytest.mark.asyncio
async def test_static_session_fetches_html():
    """Test successful navigation with the static session."""
    async with open_static_session() as session:
        await session.goto("https://httpbin.org/html")
        page = await ContentNormalizer(strategy=NormalizationStrategy.PLAIN).normalize(session)

    assert "Herman Melville - Moby-Dick" in page.text


@pytest.mark.asyncio
async def test_static_session_404():
    """Test that HTTP errors become NavigationError."""
    async with open_static_session() as session:
        with pytest.raises(NavigationError, match="404"):
            await session.goto("https://httpbin.org/status/404")


@pytest.mark.asyncio
async def test_browser_session_normalizes_page():
    """Test rendering and normalization in headless Chromium."""
    async with open_browser_session() as session:
        await session.goto("https://example.com")
        page = await ContentNormalizer().normalize(session)

    assert "Example Domain" in page.text


@pytest.mark.asyncio
async def test_browser_normalization_is_deterministic():
    """Test that two renders of a static page hash the same."""
    normalizer = ContentNormalizer()
    hashes = []
    async with open_browser_session() as session:
        for _ in range(2):
            await session.goto("https://example.com")
            hashes.append(content_hash((await normalizer.normalize(session)).text))

    assert hashes[0] == hashes[1]


@pytest.mark.asyncio
async def test_browser_invalid_domain():
    """Test that unresolvable hosts become NavigationError."""
    async with open_browser_session() as session:
        with pytest.raises(NavigationError):
            await session.goto("https://this-domain-does-not-exist-12345.com", timeout=10000)


@pytest.mark.asyncio
async def test_monitor_two_runs(tmp_path):
    """Test a first run and an unchanged second run against a live page."""
    config = MonitorConfig(
        urls=["https://example.com"],
        snapshot_file=tmp_path / "snapshots.json",
        changes_file=tmp_path / "changed.json",
    )

    first = await Monitor(config).run_async()
    second = await Monitor(config).run_async()

    assert first.results[0].status == ChangeStatus.NEW
    assert second.results[0].status == ChangeStatus.UNCHANGED
    assert (tmp_path / "changed.json").read_text(encoding="utf-8") == "[]"
