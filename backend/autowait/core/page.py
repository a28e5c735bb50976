"""
Page facade.

Owns the per-page default timeouts (set_default_timeout,
set_default_navigation_timeout), navigation, hard waits, and the factories
that start locator chains.
"""

import asyncio
import time

import structlog

from autowait.core.actionability import ActionabilityWaiter
from autowait.core.driver import PageDriver
from autowait.core.errors import NavigationError, TimeoutExceededError
from autowait.core.locator import Locator, WaitForState
from autowait.core.selectors import TextMatcher
from autowait.core.timeouts import (
    Deadline,
    TimeoutConfig,
    TimeoutScope,
    bounded,
    resolve_timeout,
)

logger = structlog.get_logger()

LoadState = str  # "load" | "domcontentloaded" | "networkidle" | "commit"


class Page:
    """
    One page of the application under test.

    Usage:
        page = Page(driver, TimeoutConfig(expect_timeout=10000))
        page.set_default_timeout(3000)
        await page.goto("https://uitestingplayground.com/ajax")
        await page.get_by_text("Button triggering AJAX request").click()
    """

    def __init__(self, driver: PageDriver, config: TimeoutConfig | None = None):
        self._driver = driver
        self.config = config or TimeoutConfig()
        self._default_timeout: int | None = None
        self._default_navigation_timeout: int | None = None
        self.waiter = ActionabilityWaiter(self.config.polling_interval)

    @property
    def driver(self) -> PageDriver:
        return self._driver

    @property
    def url(self) -> str:
        return self._driver.url

    @property
    def polling_interval(self) -> int:
        return self.config.polling_interval

    # -- timeouts -------------------------------------------------------------

    def set_default_timeout(self, timeout: int) -> None:
        """Default action timeout for this page, in milliseconds (0 = none)."""
        if timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")
        self._default_timeout = timeout

    def set_default_navigation_timeout(self, timeout: int) -> None:
        """Default navigation timeout for this page, in milliseconds (0 = none)."""
        if timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")
        self._default_navigation_timeout = timeout

    def action_deadline(self, timeout: int | None = None) -> Deadline:
        return Deadline.start(
            TimeoutScope.ACTION,
            resolve_timeout(timeout, self._default_timeout, self.config.action_timeout),
        )

    def navigation_deadline(self, timeout: int | None = None) -> Deadline:
        return Deadline.start(
            TimeoutScope.NAVIGATION,
            resolve_timeout(
                timeout,
                self._default_navigation_timeout,
                self.config.navigation_timeout,
            ),
        )

    def assertion_deadline(self, timeout: int | None = None) -> Deadline:
        return Deadline.start(
            TimeoutScope.ASSERTION,
            resolve_timeout(timeout, self.config.expect_timeout),
        )

    # -- navigation -----------------------------------------------------------

    async def goto(
        self,
        url: str,
        wait_until: LoadState = "load",
        timeout: int | None = None,
    ) -> None:
        """
        Navigate to a URL.

        Args:
            url: Target URL
            wait_until: Load state to wait for (commit, domcontentloaded, load, networkidle)
            timeout: Navigation timeout override for this call only
        """
        await self._navigate(
            f"navigating to {url!r}",
            lambda: self._driver.goto(url, wait_until),
            timeout,
            url=url,
        )

    async def reload(self, wait_until: LoadState = "load", timeout: int | None = None) -> None:
        await self._navigate(
            "reloading", lambda: self._driver.reload(wait_until), timeout, url=self.url
        )

    async def wait_for_load_state(
        self,
        state: LoadState = "load",
        timeout: int | None = None,
    ) -> None:
        await self._navigate(
            f"waiting for load state {state!r}",
            lambda: self._driver.wait_for_load_state(state),
            timeout,
            url=self.url,
        )

    async def _navigate(self, operation: str, call, timeout: int | None, url: str) -> None:
        start = time.time()
        log = logger.bind(url=url, operation=operation)
        deadline = self.navigation_deadline(timeout)

        try:
            async with bounded(deadline, operation):
                await call()
        except TimeoutExceededError as e:
            log.error("navigation_timeout", scope=e.scope.value, timeout_ms=e.timeout_ms)
            raise
        except NavigationError as e:
            log.error("navigation_failed", error=str(e))
            raise

        log.info("navigation_complete", duration_ms=round((time.time() - start) * 1000, 2))

    # -- waits ----------------------------------------------------------------

    async def wait_for_timeout(self, timeout: int) -> None:
        """
        Hard wait. Only the enclosing test and run scopes can cut it short.
        """
        logger.warning("hard_wait", timeout_ms=timeout)
        await asyncio.sleep(timeout / 1000)

    async def wait_for_selector(
        self,
        selector: str,
        state: WaitForState = "visible",
        timeout: int | None = None,
    ) -> Locator:
        """Wait for the first match of `selector` to reach `state`."""
        locator = self.locator(selector).first
        await locator.wait_for(state=state, timeout=timeout)
        return locator

    async def wait_for_response(self, url: str, timeout: int | None = None) -> int:
        """Wait for a response whose URL matches `url`; returns its status."""
        operation = f"waiting for response {url!r}"
        async with bounded(self.action_deadline(timeout), operation):
            status = await self._driver.wait_for_response(url)
        logger.info("response_received", url=url, status=status)
        return status

    # -- page info ------------------------------------------------------------

    async def title(self) -> str:
        return await self._driver.title()

    async def screenshot(self, full_page: bool = False) -> bytes:
        return await self._driver.screenshot(full_page=full_page)

    # -- locators -------------------------------------------------------------

    def locator(
        self,
        selector: str,
        *,
        has_text: TextMatcher | None = None,
        has: Locator | None = None,
        has_not_text: TextMatcher | None = None,
        has_not: Locator | None = None,
    ) -> Locator:
        return Locator(self).locator(
            selector,
            has_text=has_text,
            has=has,
            has_not_text=has_not_text,
            has_not=has_not,
        )

    def get_by_role(
        self, role: str, *, name: TextMatcher | None = None, exact: bool = False
    ) -> Locator:
        return Locator(self).get_by_role(role, name=name, exact=exact)

    def get_by_label(self, text: TextMatcher, *, exact: bool = False) -> Locator:
        return Locator(self).get_by_label(text, exact=exact)

    def get_by_placeholder(self, text: TextMatcher, *, exact: bool = False) -> Locator:
        return Locator(self).get_by_placeholder(text, exact=exact)

    def get_by_text(self, text: TextMatcher, *, exact: bool = False) -> Locator:
        return Locator(self).get_by_text(text, exact=exact)

    def get_by_title(self, text: TextMatcher, *, exact: bool = False) -> Locator:
        return Locator(self).get_by_title(text, exact=exact)

    def get_by_test_id(self, test_id: str) -> Locator:
        return Locator(self).get_by_test_id(test_id)
