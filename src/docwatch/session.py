"""
Page sessions: the browser capability the normalizer drives.

A PageSession navigates to a URL and exposes just enough of the DOM to strip
chrome, click collapsible headers and read text. Two implementations exist:

- PlaywrightPageSession renders pages in headless Chromium. This is what
  the monitor uses for JavaScript-driven documentation sites.
- StaticPageSession fetches HTML with httpx and models the DOM with
  BeautifulSoup. Clicking toggles ``open``/``aria-expanded``/``hidden`` the
  way simple disclosure widgets do, which makes it usable both for static
  sites and as an in-memory page in tests.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

import httpx
from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag
from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class SessionError(Exception):
    """Base exception for page session errors."""

    pass


class NavigationError(SessionError):
    """Raised when a page fails to load."""

    pass


class InteractionError(SessionError):
    """Raised when reading or clicking an element fails."""

    pass


class PageElement(ABC):
    """One element of the current page."""

    @abstractmethod
    async def text(self) -> str:
        """Rendered text of the element, one block per line."""
        pass

    @abstractmethod
    async def click(self) -> None:
        pass

    @abstractmethod
    async def parent(self) -> "PageElement | None":
        pass

    @abstractmethod
    async def is_actionable(self) -> bool:
        """True if the element is visible and enabled."""
        pass


class PageSession(ABC):
    """
    Abstract page capability.

    One session is reused for every URL of a run; each goto() discards the
    previous page's DOM.
    """

    @abstractmethod
    async def goto(self, url: str, timeout: int = 30000) -> None:
        """
        Navigate to a URL.

        Args:
            url: The URL to load
            timeout: Timeout in milliseconds

        Raises:
            NavigationError: If the page cannot be loaded
        """
        pass

    @abstractmethod
    async def remove_elements(self, selectors: Sequence[str]) -> int:
        """Remove every element matching any selector. Returns the number removed."""
        pass

    @abstractmethod
    async def query_one(self, selector: str) -> PageElement | None:
        pass

    @abstractmethod
    async def query_all(self, selector: str) -> list[PageElement]:
        """All matching elements in document order."""
        pass

    @abstractmethod
    async def wait(self, milliseconds: int) -> None:
        """Fixed-duration settle delay."""
        pass


# Playwright


_REMOVE_SCRIPT = """
selectors => {
    let removed = 0;
    for (const selector of selectors) {
        document.querySelectorAll(selector).forEach(el => { el.remove(); removed++; });
    }
    return removed;
}
"""


class PlaywrightElement(PageElement):
    def __init__(self, handle: ElementHandle, click_timeout: int = 5000):
        self._handle = handle
        self._click_timeout = click_timeout

    async def text(self) -> str:
        try:
            return await self._handle.inner_text()
        except PlaywrightError as e:
            raise InteractionError(f"Could not read element text: {e}") from e

    async def click(self) -> None:
        try:
            await self._handle.click(timeout=self._click_timeout)
        except PlaywrightError as e:
            raise InteractionError(f"Click failed: {e}") from e

    async def parent(self) -> PageElement | None:
        try:
            handle = await self._handle.evaluate_handle("el => el.parentElement")
        except PlaywrightError as e:
            raise InteractionError(f"Could not resolve parent: {e}") from e
        element = handle.as_element()
        if element is None:
            return None
        return PlaywrightElement(element, self._click_timeout)

    async def is_actionable(self) -> bool:
        try:
            return await self._handle.is_visible() and await self._handle.is_enabled()
        except PlaywrightError:
            return False


class PlaywrightPageSession(PageSession):
    """
    Page session backed by a Playwright Page.

    Navigation waits for DOMContentLoaded only; accordion content is revealed
    by clicking afterwards, with fixed settle delays.
    """

    def __init__(self, page: Page, click_timeout: int = 5000):
        self.page = page
        self.click_timeout = click_timeout

    async def goto(self, url: str, timeout: int = 30000) -> None:
        try:
            response = await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise NavigationError(f"Navigation timeout after {timeout}ms: {url}") from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed for {url}: {e}") from e

        if response is None:
            raise NavigationError(f"No response received for {url}")

    async def remove_elements(self, selectors: Sequence[str]) -> int:
        try:
            return await self.page.evaluate(_REMOVE_SCRIPT, list(selectors))
        except PlaywrightError as e:
            raise InteractionError(f"Could not remove elements: {e}") from e

    async def query_one(self, selector: str) -> PageElement | None:
        try:
            handle = await self.page.query_selector(selector)
        except PlaywrightError as e:
            raise InteractionError(f"Query failed for {selector!r}: {e}") from e
        return PlaywrightElement(handle, self.click_timeout) if handle else None

    async def query_all(self, selector: str) -> list[PageElement]:
        try:
            handles = await self.page.query_selector_all(selector)
        except PlaywrightError as e:
            raise InteractionError(f"Query failed for {selector!r}: {e}") from e
        return [PlaywrightElement(handle, self.click_timeout) for handle in handles]

    async def wait(self, milliseconds: int) -> None:
        await self.page.wait_for_timeout(milliseconds)


@asynccontextmanager
async def open_browser_session(
    headless: bool = True, user_agent: str | None = None
) -> AsyncIterator[PlaywrightPageSession]:
    """
    Launch Chromium and yield a session on a fresh page.

    The browser is closed on every exit path.
    """
    from playwright.async_api import async_playwright

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            page = await browser.new_page(user_agent=user_agent or DEFAULT_USER_AGENT)
            logger.debug("Browser session opened")
            yield PlaywrightPageSession(page)
        finally:
            await browser.close()
            logger.debug("Browser session closed")


# Static HTML


# Tags whose strings never contribute rendered text
_NON_TEXT_TAGS = {"script", "style", "noscript", "template", "head", "title", "meta", "link"}


def _is_rendered(tag: Tag) -> bool:
    """
    Check whether a tag would be rendered.

    Walks up the tree: hidden attributes, inline display/visibility rules and
    closed <details> (outside their <summary>) all hide content.
    """
    child = None
    node = tag
    while isinstance(node, Tag) and node.name != "[document]":
        if node.name in _NON_TEXT_TAGS:
            return False
        if node.has_attr("hidden"):
            return False

        style = node.get("style", "").replace(" ", "").lower()
        if "display:none" in style or "visibility:hidden" in style:
            return False

        if node.name == "details" and not node.has_attr("open"):
            if child is None or child.name != "summary":
                return False

        child = node
        node = node.parent
    return True


def _inner_text(tag: Tag) -> str:
    """Approximate innerText: visible strings, whitespace collapsed, one per line."""
    lines = []
    for string in tag.find_all(string=True):
        if not isinstance(string, NavigableString) or isinstance(string, PreformattedString):
            continue
        if not _is_rendered(string.parent):
            continue
        text = " ".join(string.split())
        if text:
            lines.append(text)
    return "\n".join(lines)


class StaticElement(PageElement):
    def __init__(self, tag: Tag, session: "StaticPageSession"):
        self.tag = tag
        self._session = session

    def _check_attached(self):
        if self.tag.decomposed:
            raise InteractionError("Element is no longer attached to the document")

    async def text(self) -> str:
        self._check_attached()
        return _inner_text(self.tag)

    async def click(self) -> None:
        self._check_attached()
        if not await self.is_actionable():
            raise InteractionError(f"Element <{self.tag.name}> is not clickable")
        self._session.activate(self.tag)

    async def parent(self) -> PageElement | None:
        self._check_attached()
        parent = self.tag.parent
        if not isinstance(parent, Tag) or parent.name == "[document]":
            return None
        return StaticElement(parent, self._session)

    async def is_actionable(self) -> bool:
        if self.tag.decomposed:
            return False
        return _is_rendered(self.tag) and not self.tag.has_attr("disabled")


class StaticPageSession(PageSession):
    """
    Page session over server-rendered HTML.

    Pages are fetched with httpx and parsed with BeautifulSoup (lxml).
    Clicking an element emulates a disclosure widget:

    - a <summary> toggles the ``open`` attribute of its <details>
    - ``aria-controls`` toggles ``hidden`` on the referenced element
    - ``aria-expanded`` flips between "true" and "false"
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client
        self._soup: BeautifulSoup | None = None
        self.url: str | None = None

    def load_html(self, html: str, url: str = "about:blank") -> None:
        """Replace the current document without any network activity."""
        self._soup = BeautifulSoup(html, "lxml")
        self.url = url

    @property
    def document(self) -> BeautifulSoup:
        if self._soup is None:
            raise NavigationError("No page has been loaded")
        return self._soup

    async def goto(self, url: str, timeout: int = 30000) -> None:
        if self._client is None:
            raise NavigationError(f"No HTTP client available to load {url}")

        try:
            response = await self._client.get(url, timeout=timeout / 1000.0)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise NavigationError(f"Timeout after {timeout}ms: {url}") from e
        except httpx.HTTPStatusError as e:
            raise NavigationError(f"HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise NavigationError(f"HTTP error: {e}") from e

        self.load_html(response.text, str(response.url))

    async def remove_elements(self, selectors: Sequence[str]) -> int:
        removed = 0
        for selector in selectors:
            for tag in self.document.select(selector):
                # Nested matches may already be gone with their ancestor
                if not tag.decomposed:
                    tag.decompose()
                    removed += 1
        return removed

    async def query_one(self, selector: str) -> PageElement | None:
        tag = self.document.select_one(selector)
        return StaticElement(tag, self) if tag is not None else None

    async def query_all(self, selector: str) -> list[PageElement]:
        return [StaticElement(tag, self) for tag in self.document.select(selector)]

    async def wait(self, milliseconds: int) -> None:
        await asyncio.sleep(milliseconds / 1000.0)

    def activate(self, tag: Tag) -> None:
        """Apply the DOM effect of clicking ``tag``."""
        parent = tag.parent
        if tag.name == "summary" and isinstance(parent, Tag) and parent.name == "details":
            if parent.has_attr("open"):
                del parent["open"]
            else:
                parent["open"] = ""

        expanding = tag.get("aria-expanded") != "true"
        if tag.has_attr("aria-expanded"):
            tag["aria-expanded"] = "true" if expanding else "false"

        controls = tag.get("aria-controls")
        if controls:
            target = self.document.find(id=controls)
            if target is not None:
                if expanding and target.has_attr("hidden"):
                    del target["hidden"]
                elif not expanding:
                    target["hidden"] = ""


@asynccontextmanager
async def open_static_session(
    user_agent: str | None = None, transport: httpx.AsyncBaseTransport | None = None
) -> AsyncIterator[StaticPageSession]:
    """Yield a static session with its own HTTP client, closed on exit."""
    async with httpx.AsyncClient(
        follow_redirects=True,
        headers={"User-Agent": user_agent or DEFAULT_USER_AGENT},
        transport=transport,
    ) as client:
        yield StaticPageSession(client)


def open_session(renderer: str = "browser", **kwargs):
    """
    Session factory keyed by renderer name.

    Args:
        renderer: 'browser' or 'static'
        **kwargs: Passed to the underlying opener

    Returns:
        An async context manager yielding a PageSession
    """
    if renderer == "browser":
        return open_browser_session(**kwargs)
    if renderer == "static":
        return open_static_session(**kwargs)
    raise ValueError(f"Unknown renderer: {renderer}")
