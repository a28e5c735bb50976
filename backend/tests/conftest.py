"""
Pytest fixtures - an in-memory DOM implementing the driver protocols.

FakeElement children are keyed by the exact selector string a locator step
queries with, so tests build the DOM with the same selector builders the
locators use (text_selector, role_selector, ...).
"""

import asyncio
from contextlib import asynccontextmanager

import pytest

from autowait.core.errors import ElementDetachedError, NavigationError
from autowait.core.page import Page
from autowait.core.selectors import text_selector
from autowait.core.timeouts import TimeoutConfig
from autowait.scenarios.auto_waiting import AJAX_BUTTON_TEXT, AJAX_SUCCESS_TEXT

DEFAULT_BOX = {"x": 10.0, "y": 10.0, "width": 100.0, "height": 20.0}


class FakeElement:
    """One element of the fake DOM."""

    def __init__(
        self,
        text=None,
        *,
        value="",
        attributes=None,
        visible=True,
        enabled=True,
        editable=False,
        checked=False,
        covered=False,
        boxes=None,
        on_click=None,
    ):
        self.text = text
        self.value = value
        self.attributes = dict(attributes or {})
        self.visible = visible
        self.enabled = enabled
        self.editable = editable
        self.checked = checked
        self.covered = covered
        # Successive bounding boxes; the last one repeats once the rest are used
        self.boxes = list(boxes) if boxes else [dict(DEFAULT_BOX)]
        self.on_click = on_click
        self.attached = True
        self.children: dict[str, list["FakeElement"]] = {}
        self.actions: list[tuple] = []
        # handles given out by query_all vs. handles disposed by the caller
        self.handed_out = 0
        self.disposals = 0

    def __repr__(self):
        return f"FakeElement({self.text!r})"

    def add(self, selector, *elements):
        self.children.setdefault(selector, []).extend(elements)
        return self

    def insert_later(self, delay_ms, selector, element):
        """Attach `element` under `selector` after `delay_ms`."""
        loop = asyncio.get_running_loop()
        loop.call_later(delay_ms / 1000, self.add, selector, element)

    def detach(self):
        self.attached = False

    def _guard(self):
        if not self.attached:
            raise ElementDetachedError("Element is not attached to the DOM")

    async def query_all(self, selector):
        self._guard()
        found = [e for e in self.children.get(selector, []) if e.attached]
        for element in found:
            element.handed_out += 1
        return found

    async def is_same_node(self, other):
        return self is other

    async def is_attached(self):
        return self.attached

    async def is_visible(self):
        self._guard()
        return self.visible

    async def is_enabled(self):
        self._guard()
        return self.enabled

    async def is_editable(self):
        self._guard()
        return self.editable and self.enabled

    async def is_checked(self):
        self._guard()
        return self.checked

    async def bounding_box(self):
        self._guard()
        if not self.visible:
            return None
        if len(self.boxes) > 1:
            return self.boxes.pop(0)
        return self.boxes[0]

    async def receives_events(self):
        self._guard()
        return not self.covered

    async def text_content(self):
        self._guard()
        return self.text

    async def input_value(self):
        self._guard()
        return self.value

    async def get_attribute(self, name):
        self._guard()
        return self.attributes.get(name)

    async def click(self):
        self._guard()
        self.actions.append(("click",))
        if self.on_click:
            self.on_click(self)

    async def fill(self, value):
        self._guard()
        self.actions.append(("fill", value))
        self.value = value

    async def type(self, text, delay=0):
        self._guard()
        self.actions.append(("type", text, delay))
        self.value += text

    async def press(self, key):
        self._guard()
        self.actions.append(("press", key))

    async def check(self):
        self._guard()
        self.actions.append(("check",))
        self.checked = True

    async def uncheck(self):
        self._guard()
        self.actions.append(("uncheck",))
        self.checked = False

    async def hover(self):
        self._guard()
        self.actions.append(("hover",))

    async def select_option(self, value):
        self._guard()
        values = [value] if isinstance(value, str) else list(value)
        self.actions.append(("select_option", values))
        self.value = values[0] if values else ""
        return values

    async def dispose(self):
        self.disposals += 1


class BlinkingElement(FakeElement):
    """Reports itself detached on its first `blinks` text reads, then recovers."""

    def __init__(self, *args, blinks=1, **kwargs):
        super().__init__(*args, **kwargs)
        self.blinks = blinks

    async def text_content(self):
        if self.blinks:
            self.blinks -= 1
            raise ElementDetachedError("Element is not attached to the DOM")
        return await super().text_content()


class FakePage:
    """PageDriver over a FakeElement root."""

    def __init__(self, root=None, url="about:blank"):
        self.root = root or FakeElement()
        self.url = url
        self.navigations: list[tuple[str, str]] = []
        self.load_states: list[str] = []
        self.goto_delay_ms = 0
        self.goto_error: str | None = None
        self.idle_delay_ms = 0
        self.response_delay_ms = 0
        self.response_status = 200
        self.closed = False

    async def query_all(self, selector):
        return await self.root.query_all(selector)

    async def goto(self, url, wait_until):
        self.navigations.append((url, wait_until))
        if self.goto_delay_ms:
            await asyncio.sleep(self.goto_delay_ms / 1000)
        if self.goto_error:
            raise NavigationError(self.goto_error)
        self.url = url

    async def reload(self, wait_until):
        await self.goto(self.url, wait_until)

    async def wait_for_load_state(self, state):
        self.load_states.append(state)
        if state == "networkidle" and self.idle_delay_ms:
            await asyncio.sleep(self.idle_delay_ms / 1000)

    async def wait_for_response(self, url):
        await asyncio.sleep(self.response_delay_ms / 1000)
        return self.response_status

    async def title(self):
        return "Fake page"

    async def screenshot(self, full_page=False):
        return b"\x89PNG"


class FakeBrowser:
    """PageSource handing out one FakePage per test."""

    def __init__(self, build=None):
        self.build = build or FakePage
        self.pages: list[FakePage] = []

    @asynccontextmanager
    async def new_page(self):
        driver = self.build()
        self.pages.append(driver)
        try:
            yield driver
        finally:
            driver.closed = True


def ajax_page():
    """The AJAX demo: clicking the button inserts .bg-success 50 ms later."""
    root = FakeElement()

    def load_data(button):
        root.insert_later(50, ".bg-success", FakeElement(AJAX_SUCCESS_TEXT))

    root.add(text_selector(AJAX_BUTTON_TEXT), FakeElement(AJAX_BUTTON_TEXT, on_click=load_data))
    page = FakePage(root)
    page.idle_delay_ms = 100
    return page


def make_page(root=None, **config):
    """A Page over a fresh fake DOM with short default timeouts."""
    options = {"expect_timeout": 300, "test_timeout": 2000, "polling_interval": 5}
    options.update(config)
    return Page(FakePage(root), TimeoutConfig(**options))


@pytest.fixture
def fast_config():
    """Timeouts short enough for unit tests."""
    return TimeoutConfig(
        test_timeout=2000,
        action_timeout=None,
        navigation_timeout=None,
        expect_timeout=300,
        polling_interval=5,
    )


@pytest.fixture
def root():
    return FakeElement()


@pytest.fixture
def page(root, fast_config):
    return Page(FakePage(root), fast_config)
