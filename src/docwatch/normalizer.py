"""
Content normalizer for turning a rendered page into canonical text.

Strips navigation chrome, dismisses cookie overlays and expands collapsible
sections so that hidden answers become part of the monitored text.
"""

import logging

from .models import NormalizationStrategy, NormalizedPage, SectionCapture
from .session import PageElement, PageSession, SessionError

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when no readable content region exists on a page."""

    pass


class ContentNormalizer:
    """
    Produces canonical text for an already-navigated page.

    With the EXPAND_SECTIONS strategy, Material-UI accordion headers are
    clicked one at a time and each answer is read from its own container,
    so sections that stay open do not bleed into each other. Pages without
    such accordions get a bounded sweep over generic disclosure widgets.
    """

    # Structural chrome removed before reading anything
    CHROME_SELECTORS = [
        "nav",
        "header",
        "footer",
        ".nav-header",
        ".navbar",
        ".site-header",
        ".main-nav",
        ".navigation",
        ".menu",
        ".site-nav",
        "[role='navigation']",
        ".sidebar",
        ".side-menu",
        ".drawer",
        ".drawer-menu",
        "#onetrust-consent-sdk",
        ".cookie-banner",
        ".cookie-consent",
    ]

    # Cookie overlay dismiss triggers, in priority order
    COOKIE_BUTTON_LABELS = ["Reject All", "Accept All", "OK"]
    COOKIE_BUTTON_SELECTORS = ["#onetrust-reject-all-handler", ".cookie-banner button"]

    SECTION_HEADER_SELECTOR = ".MuiAccordionSummary-root"

    FALLBACK_SELECTORS = [
        "details summary",
        "[aria-expanded='false']",
        "button[aria-expanded='false']",
        ".accordion-toggle",
        ".collapsible-header",
    ]

    BREADCRUMB_KEYWORDS = ("Back to", "Questions", "Help")
    BREADCRUMB_MAX_LENGTH = 100

    def __init__(
        self,
        strategy: NormalizationStrategy = NormalizationStrategy.EXPAND_SECTIONS,
        section_delay: int = 800,
        fallback_delay: int = 500,
        cookie_delay: int = 1000,
        max_fallback_expansions: int = 15,
        max_per_selector: int = 5,
    ):
        """
        Initialize the normalizer.

        Args:
            strategy: PLAIN (chrome stripping only) or EXPAND_SECTIONS
            section_delay: Settle delay after expanding an accordion, in ms
            fallback_delay: Settle delay after a fallback expansion, in ms
            cookie_delay: Settle delay after dismissing a cookie overlay, in ms
            max_fallback_expansions: Cap on fallback clicks per page
            max_per_selector: Cap on elements tried per fallback selector
        """
        self.strategy = strategy
        self.section_delay = section_delay
        self.fallback_delay = fallback_delay
        self.cookie_delay = cookie_delay
        self.max_fallback_expansions = max_fallback_expansions
        self.max_per_selector = max_per_selector

    async def normalize(self, session: PageSession) -> NormalizedPage:
        """
        Normalize the page currently loaded in ``session``.

        Raises:
            ExtractionError: If the page has neither <main> nor <body>
        """
        await session.remove_elements(self.CHROME_SELECTORS)

        if self.strategy == NormalizationStrategy.PLAIN:
            return NormalizedPage(text=await self._read_content(session), strategy=self.strategy)

        await self._dismiss_cookie_overlay(session)
        base_content = await self._read_content(session)

        sections = await self._expand_sections(session)
        if not any(section.captured for section in sections):
            sections.extend(await self._expand_fallback(session))

        captured = [section for section in sections if section.captured]
        if not captured:
            return NormalizedPage(text=base_content, strategy=self.strategy, sections=sections)

        logger.debug(
            "Captured %d sections (%d skipped)", len(captured), len(sections) - len(captured)
        )
        return NormalizedPage(
            text=self._rebuild(base_content, captured),
            strategy=self.strategy,
            sections=sections,
        )

    async def _read_content(self, session: PageSession) -> str:
        """Text of <main>, or of <body> when there is no <main>."""
        try:
            region = await session.query_one("main") or await session.query_one("body")
        except SessionError as e:
            raise ExtractionError(f"Could not locate page content: {e}") from e
        if region is None:
            raise ExtractionError("Page has no readable content region")
        try:
            return await region.text()
        except SessionError as e:
            raise ExtractionError(f"Could not read page content: {e}") from e

    async def _dismiss_cookie_overlay(self, session: PageSession) -> bool:
        """Click the first cookie-consent trigger that works. Returns True if one did."""
        candidates: list[PageElement] = []

        try:
            buttons = await session.query_all("button")
        except SessionError as e:
            logger.debug("Could not list buttons: %s", e)
            buttons = []
        for label in self.COOKIE_BUTTON_LABELS:
            for button in buttons:
                try:
                    if label.lower() in (await button.text()).lower():
                        candidates.append(button)
                        break
                except SessionError:
                    continue

        for selector in self.COOKIE_BUTTON_SELECTORS:
            try:
                element = await session.query_one(selector)
            except SessionError as e:
                logger.debug("Cookie selector %s failed: %s", selector, e)
                continue
            if element is not None:
                candidates.append(element)

        for candidate in candidates:
            try:
                await candidate.click()
            except SessionError as e:
                logger.debug("Cookie trigger not clickable: %s", e)
                continue
            await session.wait(self.cookie_delay)
            return True

        return False

    async def _expand_sections(self, session: PageSession) -> list[SectionCapture]:
        """Expand each accordion header in document order and read its own container."""
        captures = []
        try:
            headers = await session.query_all(self.SECTION_HEADER_SELECTOR)
        except SessionError as e:
            logger.debug("Could not list section headers: %s", e)
            return captures
        for header in headers:
            capture = await self._capture_section(session, header)
            if capture is not None:
                captures.append(capture)
        return captures

    async def _capture_section(
        self, session: PageSession, header: PageElement
    ) -> SectionCapture | None:
        """
        Expand one accordion and extract its body.

        Returns None for a header without a label, otherwise a capture that
        either holds the body or says why it was skipped.
        """
        try:
            label = (await header.text()).strip()
        except SessionError as e:
            return SectionCapture(header="", skipped_reason=f"unreadable header: {e}")
        if not label:
            return None

        try:
            await header.click()
        except SessionError as e:
            return SectionCapture(header=label, skipped_reason=f"click failed: {e}")
        await session.wait(self.section_delay)

        try:
            container = await header.parent()
            if container is None:
                return SectionCapture(header=label, skipped_reason="no container")
            scoped_text = await container.text()
        except SessionError as e:
            return SectionCapture(header=label, skipped_reason=f"unreadable container: {e}")

        lines = [line.strip() for line in scoped_text.split("\n") if line.strip()]
        if label not in lines:
            # Multi-line labels never match a single line
            return SectionCapture(header=label, skipped_reason="header not found in container")

        body = " ".join(lines[lines.index(label) + 1 :]).strip()
        if not body:
            return SectionCapture(header=label, skipped_reason="empty body")
        return SectionCapture(header=label, body=body)

    async def _expand_fallback(self, session: PageSession) -> list[SectionCapture]:
        """
        Click generic collapsible markers and record whole-page text after each.

        Bounded by max_per_selector elements per selector and
        max_fallback_expansions clicks overall.
        """
        captures: list[SectionCapture] = []
        expanded = 0

        for selector in self.FALLBACK_SELECTORS:
            if expanded >= self.max_fallback_expansions:
                break

            try:
                elements = await session.query_all(selector)
            except SessionError as e:
                logger.debug("Fallback selector %s failed: %s", selector, e)
                continue
            for element in elements[: self.max_per_selector]:
                if expanded >= self.max_fallback_expansions:
                    break
                if not await element.is_actionable():
                    continue

                try:
                    collapsed_text = (await element.text()).strip()
                    await element.click()
                except SessionError as e:
                    logger.debug("Fallback expansion failed for %s: %s", selector, e)
                    continue

                expanded += 1
                await session.wait(self.fallback_delay)

                try:
                    page_text = await self._read_content(session)
                except ExtractionError as e:
                    captures.append(SectionCapture(header=collapsed_text, skipped_reason=str(e)))
                    continue
                captures.append(SectionCapture(header=collapsed_text, expanded_content=page_text))

        return captures

    def _rebuild(self, base_content: str, captured: list[SectionCapture]) -> str:
        """Breadcrumb lines from the base content, then unique header/body pairs."""
        headers = {section.header for section in captured}

        base_lines = [line.strip() for line in base_content.split("\n") if line.strip()]
        breadcrumbs = [line for line in base_lines if self._is_breadcrumb(line, headers)]

        output = list(breadcrumbs)
        if breadcrumbs:
            output.append("")

        seen = set()
        for section in captured:
            if section.header in seen:
                continue
            seen.add(section.header)
            output.append(section.header)
            if section.text:
                output.append(section.text)

        return "\n".join(output)

    def _is_breadcrumb(self, line: str, headers: set[str]) -> bool:
        return (
            not line.endswith("?")
            and line not in headers
            and len(line) < self.BREADCRUMB_MAX_LENGTH
            and any(keyword in line for keyword in self.BREADCRUMB_KEYWORDS)
        )
