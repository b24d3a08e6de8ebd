from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from ..config import CrawlConfig
from ..errors import ExtractionError, FilterApplicationError, SessionError
from ..filters import Filter
from ..utils.parsing import FILTER_GROUPS_SELECTOR, parse_filters, parse_items
from .base import Item

logger = logging.getLogger(__name__)
console_logger = logging.getLogger(f"{__name__}.console")


@dataclass(frozen=True)
class SiteSelectors:
    """CSS selectors of the storefront's facet panel and result list."""

    filters_panel_trigger: str = "button.filtersPanelTrigger"
    filters_panel: str = "div.filtersPanelWrapper.open:not(.velocity-animating) > div.filtersPanel"
    reset_button: str = "button.resetFilters"
    filter_groups: str = FILTER_GROUPS_SELECTOR
    products: str = "ul.products > li"


class PlaywrightSession:
    """
    Session backed by one Playwright browser context and page.
    Every Playwright failure surfaces as a SessionError subclass so the engine
    can retry it.
    """

    def __init__(
        self,
        context: BrowserContext,
        page: Page,
        *,
        selectors: SiteSelectors,
        id_field: str,
        navigation_timeout: float,
        action_timeout: float,
    ) -> None:
        self.context = context
        self.page = page
        self.selectors = selectors
        self.id_field = id_field
        self._navigation_timeout_ms = navigation_timeout * 1000
        self._action_timeout_ms = action_timeout * 1000
        self._opened_url: Optional[str] = None

    async def open(self, url: str) -> None:
        if self._opened_url == url:
            return
        logger.debug("Loading page... %s", url)
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=self._navigation_timeout_ms)
            await self.page.click(self.selectors.filters_panel_trigger, timeout=self._action_timeout_ms)
            await self.page.wait_for_selector(self.selectors.filters_panel, timeout=self._action_timeout_ms)
        except PlaywrightError as exc:
            self._opened_url = None
            raise SessionError(f"could not open {url}: {exc}") from exc
        self._opened_url = url
        logger.debug("Loaded page with filters panel open: %s", url)

    async def reset_filters(self) -> None:
        logger.debug("Resetting filters...")
        try:
            await self.page.click(self.selectors.reset_button, timeout=self._action_timeout_ms)
            await self.page.wait_for_load_state("networkidle", timeout=self._navigation_timeout_ms)
        except PlaywrightError as exc:
            raise FilterApplicationError(f"could not reset filters: {exc}") from exc

    async def apply_filter(self, filter: Filter) -> None:
        # Indices are positions from the last listing of the panel. It can
        # re-render between tasks, so the label is checked before clicking.
        group_sel = (
            f"{self.selectors.filter_groups}:nth-child({filter.group_index + 1}) "
            f"ul.refinements > li"
        )
        filter_sel = f"{group_sel}:nth-child({filter.index_in_group + 1})"
        logger.debug("Clicking filter %s via %s", filter, filter_sel)
        try:
            await self.page.wait_for_selector(filter_sel, timeout=self._action_timeout_ms)
            label = await self.page.text_content(f"{filter_sel} a span.text", timeout=self._action_timeout_ms)
            if (label or "").strip() != filter.name:
                raise FilterApplicationError(
                    f"expected {filter} at {filter_sel}, found {label!r}", filter
                )
            await self.page.eval_on_selector(f"{filter_sel} > a span", "el => el.click()")
            await self.page.wait_for_load_state("networkidle", timeout=self._navigation_timeout_ms)
            await self.page.wait_for_selector(f"{group_sel}.selected", timeout=self._action_timeout_ms)
        except PlaywrightError as exc:
            raise FilterApplicationError(f"could not apply {filter}: {exc}", filter) from exc

    async def list_filters(self, group: str) -> List[Filter]:
        try:
            html = await self.page.content()
        except PlaywrightError as exc:
            raise ExtractionError(f"could not read {group} filters: {exc}") from exc
        filters = parse_filters(html, group, groups_selector=self.selectors.filter_groups)
        logger.debug("Got %d filters. (%s)", len(filters), group)
        return filters

    async def extract_items(self) -> List[Item]:
        try:
            html = await self.page.content()
        except PlaywrightError as exc:
            raise ExtractionError(f"could not read products: {exc}") from exc
        items = parse_items(html, self.page.url, id_field=self.id_field, card_selector=self.selectors.products)
        logger.debug("Got %d products.", len(items))
        return items

    async def screenshot(self, path: str) -> None:
        await self.page.screenshot(path=path, full_page=True)

    async def close(self) -> None:
        try:
            await self.context.close()
        except PlaywrightError:
            logger.debug("Failed to close Playwright context", exc_info=True)


class PlaywrightSessionFactory:
    """One Chromium browser; one fresh context and page per acquired session."""

    def __init__(self, config: CrawlConfig, selectors: Optional[SiteSelectors] = None) -> None:
        self.config = config
        self.selectors = selectors or SiteSelectors()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    async def _get_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                logger.debug("Starting async Playwright (headless=%s)", self.config.headless)
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
            return self._browser

    async def acquire(self) -> PlaywrightSession:
        browser = await self._get_browser()
        context = await browser.new_context()
        page = await context.new_page()
        page.on("console", lambda msg: console_logger.debug(msg.text))
        return PlaywrightSession(
            context,
            page,
            selectors=self.selectors,
            id_field=self.config.id_field,
            navigation_timeout=self.config.navigation_timeout,
            action_timeout=self.config.action_timeout,
        )

    async def release(self, session: PlaywrightSession) -> None:
        await session.close()

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError:
                logger.debug("Failed to close Playwright browser", exc_info=True)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
