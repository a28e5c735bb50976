"""
Driver seam.

Locators and pages resolve against these protocols. The Playwright adapters
in playwright_wrapper implement them over a live browser; tests implement
them over an in-memory DOM.

Driver calls never time out on their own. Budgets are enforced by the layer
above them.
"""

from typing import AsyncContextManager, Protocol, TypedDict


class BoundingBox(TypedDict):
    x: float
    y: float
    width: float
    height: float


class ElementHandle(Protocol):
    """A live reference to one DOM element."""

    async def query_all(self, selector: str) -> list["ElementHandle"]: ...

    async def is_same_node(self, other: "ElementHandle") -> bool: ...

    async def is_attached(self) -> bool: ...

    async def is_visible(self) -> bool: ...

    async def is_enabled(self) -> bool: ...

    async def is_editable(self) -> bool: ...

    async def is_checked(self) -> bool: ...

    async def bounding_box(self) -> BoundingBox | None: ...

    async def receives_events(self) -> bool: ...

    async def text_content(self) -> str | None: ...

    async def input_value(self) -> str: ...

    async def get_attribute(self, name: str) -> str | None: ...

    async def click(self) -> None: ...

    async def fill(self, value: str) -> None: ...

    async def type(self, text: str, delay: float = 0) -> None: ...

    async def press(self, key: str) -> None: ...

    async def check(self) -> None: ...

    async def uncheck(self) -> None: ...

    async def hover(self) -> None: ...

    async def select_option(self, value: str | list[str]) -> list[str]: ...

    async def dispose(self) -> None: ...


async def release(handles) -> None:
    """Dispose element handles that are no longer needed."""
    for handle in handles:
        await handle.dispose()


class PageDriver(Protocol):
    """One page inside its own browser context."""

    @property
    def url(self) -> str: ...

    async def query_all(self, selector: str) -> list[ElementHandle]: ...

    async def goto(self, url: str, wait_until: str) -> None: ...

    async def reload(self, wait_until: str) -> None: ...

    async def wait_for_load_state(self, state: str) -> None: ...

    async def wait_for_response(self, url: str) -> int: ...

    async def title(self) -> str: ...

    async def screenshot(self, full_page: bool = False) -> bytes: ...


class PageSource(Protocol):
    """Hands out a fresh page (and browser context) per test."""

    def new_page(self) -> AsyncContextManager[PageDriver]: ...
