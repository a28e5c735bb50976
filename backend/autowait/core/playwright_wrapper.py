"""
Playwright Browser Adapter

Connects the automation layer to a real browser:
- BrowserSession owns the Playwright runtime and one browser
- every test gets a fresh browser context and page (new_page)
- PlaywrightPage / PlaywrightElement implement the driver protocols

Playwright's own timeouts are switched off (0) on every context and call.
Budgets, actionability and strictness are enforced by the layer above, which
calls actions with force=True once its own checks have passed.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncGenerator

import structlog
from playwright.async_api import (
    async_playwright,
    Browser,
    ElementHandle as PlaywrightHandle,
    Error as PlaywrightError,
    Page as PlaywrightNativePage,
    Playwright,
)
from tenacity import retry, stop_after_attempt, wait_exponential

from autowait.config import settings
from autowait.core.driver import BoundingBox
from autowait.core.errors import ElementDetachedError, NavigationError

logger = structlog.get_logger()

_RECEIVES_EVENTS_JS = """
(element) => {
  element.scrollIntoView({ block: 'center', inline: 'center', behavior: 'instant' });
  const rect = element.getBoundingClientRect();
  const x = rect.left + rect.width / 2;
  const y = rect.top + rect.height / 2;
  const root = element.getRootNode();
  const hit = (root.elementFromPoint ? root : document).elementFromPoint(x, y);
  return !!hit && (hit === element || element.contains(hit));
}
"""


class BrowserType(str, Enum):
    """Supported browser types."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


@dataclass
class BrowserOptions:
    """Browser configuration options."""

    browser_type: BrowserType = BrowserType.CHROMIUM
    headless: bool = True
    slow_mo: int = 0
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: str | None = None
    locale: str = "en-US"
    timezone: str = "America/New_York"
    record_video: bool = False
    video_dir: str = "./videos"

    @classmethod
    def from_settings(cls) -> "BrowserOptions":
        return cls(
            browser_type=BrowserType(settings.browser),
            headless=settings.playwright_headless,
            slow_mo=settings.playwright_slow_mo,
        )


def _is_detached(error: PlaywrightError) -> bool:
    message = str(error).lower()
    return "not attached" in message or "detached" in message


class PlaywrightElement:
    """ElementHandle protocol over a Playwright element handle."""

    def __init__(self, handle: PlaywrightHandle):
        self._handle = handle

    async def _call(self, coro):
        try:
            return await coro
        except PlaywrightError as e:
            if _is_detached(e):
                raise ElementDetachedError(str(e)) from e
            raise

    async def query_all(self, selector: str) -> list["PlaywrightElement"]:
        handles = await self._call(self._handle.query_selector_all(selector))
        return [PlaywrightElement(h) for h in handles]

    async def is_same_node(self, other: "PlaywrightElement") -> bool:
        return await self._call(self._handle.evaluate("(a, b) => a === b", other._handle))

    async def is_attached(self) -> bool:
        try:
            return await self._handle.evaluate("(node) => node.isConnected")
        except PlaywrightError as e:
            if _is_detached(e):
                return False
            raise

    async def is_visible(self) -> bool:
        return await self._call(self._handle.is_visible())

    async def is_enabled(self) -> bool:
        return await self._call(self._handle.is_enabled())

    async def is_editable(self) -> bool:
        return await self._call(self._handle.is_editable())

    async def is_checked(self) -> bool:
        return await self._call(self._handle.is_checked())

    async def bounding_box(self) -> BoundingBox | None:
        return await self._call(self._handle.bounding_box())

    async def receives_events(self) -> bool:
        return await self._call(self._handle.evaluate(_RECEIVES_EVENTS_JS))

    async def text_content(self) -> str | None:
        return await self._call(self._handle.text_content())

    async def input_value(self) -> str:
        return await self._call(self._handle.input_value(timeout=0))

    async def get_attribute(self, name: str) -> str | None:
        return await self._call(self._handle.get_attribute(name))

    async def click(self) -> None:
        await self._call(self._handle.click(force=True, timeout=0))

    async def fill(self, value: str) -> None:
        await self._call(self._handle.fill(value, force=True, timeout=0))

    async def type(self, text: str, delay: float = 0) -> None:
        await self._call(self._handle.type(text, delay=delay, timeout=0))

    async def press(self, key: str) -> None:
        await self._call(self._handle.press(key, timeout=0))

    async def check(self) -> None:
        await self._call(self._handle.check(force=True, timeout=0))

    async def uncheck(self) -> None:
        await self._call(self._handle.uncheck(force=True, timeout=0))

    async def hover(self) -> None:
        await self._call(self._handle.hover(force=True, timeout=0))

    async def select_option(self, value: str | list[str]) -> list[str]:
        return await self._call(self._handle.select_option(value=value, force=True, timeout=0))

    async def dispose(self) -> None:
        await self._handle.dispose()


class PlaywrightPage:
    """PageDriver protocol over a Playwright page."""

    def __init__(self, page: PlaywrightNativePage):
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def query_all(self, selector: str) -> list[PlaywrightElement]:
        return [PlaywrightElement(h) for h in await self._page.query_selector_all(selector)]

    async def goto(self, url: str, wait_until: str) -> None:
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=0)
        except PlaywrightError as e:
            raise NavigationError(f"navigation to {url!r} failed: {e}") from e

    async def reload(self, wait_until: str) -> None:
        try:
            await self._page.reload(wait_until=wait_until, timeout=0)
        except PlaywrightError as e:
            raise NavigationError(f"reload failed: {e}") from e

    async def wait_for_load_state(self, state: str) -> None:
        await self._page.wait_for_load_state(state, timeout=0)

    async def wait_for_response(self, url: str) -> int:
        response = await self._page.wait_for_event(
            "response", lambda r: url in r.url, timeout=0
        )
        return response.status

    async def title(self) -> str:
        return await self._page.title()

    async def screenshot(self, full_page: bool = False) -> bytes:
        return await self._page.screenshot(full_page=full_page)


class BrowserSession:
    """
    One launched browser handing out an isolated context per test.

    Usage:
        async with BrowserSession(BrowserOptions(headless=False)) as session:
            async with session.new_page() as driver:
                page = Page(driver, config)
    """

    def __init__(self, options: BrowserOptions | None = None):
        self.options = options or BrowserOptions.from_settings()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def browser(self) -> Browser:
        if self._browser is None:
            raise RuntimeError("Browser not initialized. Use 'async with' context.")
        return self._browser

    async def __aenter__(self) -> "BrowserSession":
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._cleanup()

    async def _initialize(self) -> None:
        """Start Playwright and launch the browser."""
        log = logger.bind(browser=self.options.browser_type.value)
        log.info("initializing_browser")

        self._playwright = await async_playwright().start()
        self._browser = await self._launch()

        log.info("browser_initialized")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _launch(self) -> Browser:
        """Launch the configured browser, retrying transient launch failures."""
        launcher = getattr(self._playwright, self.options.browser_type.value)
        return await launcher.launch(
            headless=self.options.headless,
            slow_mo=self.options.slow_mo,
        )

    async def _cleanup(self) -> None:
        """Clean up browser resources."""
        logger.info("cleaning_up_browser")

        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

        self._browser = None
        self._playwright = None

    @asynccontextmanager
    async def new_page(self) -> AsyncGenerator[PlaywrightPage, None]:
        """Open a fresh context and page; closed when the block exits."""
        context_options = {
            "viewport": {
                "width": self.options.viewport_width,
                "height": self.options.viewport_height,
            },
            "locale": self.options.locale,
            "timezone_id": self.options.timezone,
        }

        if self.options.user_agent:
            context_options["user_agent"] = self.options.user_agent

        if self.options.record_video:
            context_options["record_video_dir"] = self.options.video_dir

        context = await self.browser.new_context(**context_options)
        context.set_default_timeout(0)
        context.set_default_navigation_timeout(0)
        try:
            page = await context.new_page()
            yield PlaywrightPage(page)
        finally:
            await context.close()


@asynccontextmanager
async def create_browser(
    options: BrowserOptions | None = None,
) -> AsyncGenerator[BrowserSession, None]:
    """
    Convenience context manager for creating a browser session.

    Usage:
        async with create_browser() as session:
            result = await TestExecutor(session).run(suite)
    """
    session = BrowserSession(options)
    try:
        await session._initialize()
        yield session
    finally:
        await session._cleanup()
