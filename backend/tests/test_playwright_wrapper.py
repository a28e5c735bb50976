"""
Playwright adapters against stand-in handles; no browser is launched.
"""

import pytest
from playwright.async_api import Error as PlaywrightError

from autowait.core.errors import ElementDetachedError, NavigationError
from autowait.core.playwright_wrapper import (
    BrowserOptions,
    BrowserSession,
    BrowserType,
    PlaywrightElement,
    PlaywrightPage,
)


class DummyHandle:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def click(self, **kwargs):
        self.calls.append(("click", kwargs))
        if self.error:
            raise self.error

    async def evaluate(self, expression, arg=None):
        if self.error:
            raise self.error
        return True

    async def query_selector_all(self, selector):
        return [DummyHandle(), DummyHandle()]

    async def dispose(self):
        self.calls.append(("dispose", {}))


class DummyNativePage:
    url = "about:blank"

    def __init__(self, error=None):
        self.error = error

    async def goto(self, url, **kwargs):
        if self.error:
            raise self.error
        self.url = url


def test_options_from_settings():
    options = BrowserOptions.from_settings()
    assert options.browser_type is BrowserType.CHROMIUM
    assert options.headless is True


def test_session_requires_initialization():
    with pytest.raises(RuntimeError):
        BrowserSession(BrowserOptions()).browser


@pytest.mark.asyncio
async def test_actions_are_forced_without_engine_timeout():
    handle = DummyHandle()
    await PlaywrightElement(handle).click()
    assert handle.calls == [("click", {"force": True, "timeout": 0})]


@pytest.mark.asyncio
async def test_detached_error_is_mapped():
    handle = DummyHandle(PlaywrightError("Element is not attached to the DOM"))
    with pytest.raises(ElementDetachedError):
        await PlaywrightElement(handle).click()


@pytest.mark.asyncio
async def test_other_errors_propagate():
    handle = DummyHandle(PlaywrightError("Target closed"))
    with pytest.raises(PlaywrightError):
        await PlaywrightElement(handle).click()


@pytest.mark.asyncio
async def test_is_attached_false_when_detached():
    handle = DummyHandle(PlaywrightError("Element is not attached to the DOM"))
    assert await PlaywrightElement(handle).is_attached() is False


@pytest.mark.asyncio
async def test_query_all_wraps_handles():
    children = await PlaywrightElement(DummyHandle()).query_all("li")
    assert len(children) == 2
    assert all(isinstance(c, PlaywrightElement) for c in children)


@pytest.mark.asyncio
async def test_goto_failure_is_navigation_error():
    page = PlaywrightPage(DummyNativePage(PlaywrightError("net::ERR_CONNECTION_REFUSED")))
    with pytest.raises(NavigationError) as exc_info:
        await page.goto("https://example.com:81", "load")
    assert "https://example.com:81" in str(exc_info.value)


@pytest.mark.asyncio
async def test_goto_updates_url():
    native = DummyNativePage()
    page = PlaywrightPage(native)
    await page.goto("https://example.com", "load")
    assert page.url == "https://example.com"


@pytest.mark.asyncio
async def test_dispose_releases_handle():
    handle = DummyHandle()
    await PlaywrightElement(handle).dispose()
    assert handle.calls == [("dispose", {})]
