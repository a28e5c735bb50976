"""
Locators

A locator is a deferred, re-resolvable query. Building one never touches the
page; every action, read or assertion resolves the whole chain again from the
page root, so a locator always reflects the current DOM.

Chains are built from three kinds of steps:
- query:  a selector resolved inside every current match (locator, get_by_*)
- filter: keeps matches by text or by containing another locator
- nth:    picks one match by position (nth, first, last)

Filters only ever drop candidates, in document order, so
A.filter(X).filter(Y) selects the same elements as a filter on X and Y.
"""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal

import structlog

from autowait.core.actionability import ActionKind, Predicate
from autowait.core.driver import ElementHandle, release
from autowait.core.errors import (
    ElementDetachedError,
    LocatorIndexError,
    StrictModeViolationError,
    TimeoutExceededError,
)
from autowait.core.selectors import (
    TextMatcher,
    contains_text,
    data_testid_selector,
    describe_text,
    label_selector,
    placeholder_selector,
    role_selector,
    text_selector,
    title_selector,
)
from autowait.core.waiting import PollOutcome, poll_until

if TYPE_CHECKING:
    from autowait.core.page import Page

logger = structlog.get_logger()

WaitForState = Literal["attached", "detached", "visible", "hidden"]


@dataclass(frozen=True)
class _Query:
    selector: str
    label: str

    def describe(self) -> str:
        return self.label

    async def apply(self, roots: list, owner: "Locator") -> list[ElementHandle]:
        matches: list[ElementHandle] = []
        try:
            for root in roots:
                for handle in await root.query_all(self.selector):
                    # nested roots see the same descendants; keep the first sighting
                    if len(roots) > 1 and await _seen(matches, handle):
                        await handle.dispose()
                    else:
                        matches.append(handle)
        except BaseException:
            await release(matches)
            raise
        return matches


async def _seen(matches: list[ElementHandle], handle: ElementHandle) -> bool:
    for match in matches:
        if await match.is_same_node(handle):
            return True
    return False


@dataclass(frozen=True)
class _Filter:
    has_text: TextMatcher | None = None
    has: "Locator | None" = None
    has_not_text: TextMatcher | None = None
    has_not: "Locator | None" = None

    def describe(self) -> str:
        parts = []
        if self.has_text is not None:
            parts.append(f"has_text={describe_text(self.has_text)}")
        if self.has is not None:
            parts.append(f"has={self.has}")
        if self.has_not_text is not None:
            parts.append(f"has_not_text={describe_text(self.has_not_text)}")
        if self.has_not is not None:
            parts.append(f"has_not={self.has_not}")
        return f"filter({', '.join(parts)})"

    async def apply(self, roots: list, owner: "Locator") -> list[ElementHandle]:
        return [candidate for candidate in roots if await self._keeps(candidate)]

    async def _keeps(self, candidate: ElementHandle) -> bool:
        if self.has_text is not None or self.has_not_text is not None:
            text = await candidate.text_content()
            if self.has_text is not None and not contains_text(text, self.has_text):
                return False
            if self.has_not_text is not None and contains_text(text, self.has_not_text):
                return False
        if self.has is not None and not await _contains(self.has, candidate):
            return False
        if self.has_not is not None and await _contains(self.has_not, candidate):
            return False
        return True


async def _contains(inner: "Locator", candidate: ElementHandle) -> bool:
    found = await inner._resolve_all([candidate])
    await release(found)
    return bool(found)


@dataclass(frozen=True)
class _Nth:
    index: int
    from_end: bool = False

    def describe(self) -> str:
        if self.from_end:
            return "last"
        return "first" if self.index == 0 else f"nth({self.index})"

    async def apply(self, roots: list, owner: "Locator") -> list[ElementHandle]:
        position = len(roots) - 1 - self.index if self.from_end else self.index
        if not 0 <= position < len(roots):
            raise LocatorIndexError(str(owner), self.index, len(roots))
        return [roots[position]]


class Locator:
    """
    Deferred reference to zero or more elements.

    Usage:
        basic_form = page.locator("nb-card").filter(has_text="Basic form")
        email = basic_form.get_by_role("textbox", name="Email")
        await email.fill("johndoe@example.com")
    """

    def __init__(self, page: "Page", steps: tuple = ()):
        self._page = page
        self._steps = steps

    def __repr__(self) -> str:
        return ".".join(step.describe() for step in self._steps)

    @property
    def page(self) -> "Page":
        return self._page

    # -- building -----------------------------------------------------------

    def _chain(self, *steps) -> "Locator":
        return Locator(self._page, self._steps + steps)

    def _query(
        self,
        selector: str,
        label: str,
        has_text: TextMatcher | None = None,
        has: "Locator | None" = None,
        has_not_text: TextMatcher | None = None,
        has_not: "Locator | None" = None,
    ) -> "Locator":
        steps: tuple = (_Query(selector, label),)
        if any(v is not None for v in (has_text, has, has_not_text, has_not)):
            steps += (_Filter(has_text, has, has_not_text, has_not),)
        return self._chain(*steps)

    def locator(
        self,
        selector: str,
        *,
        has_text: TextMatcher | None = None,
        has: "Locator | None" = None,
        has_not_text: TextMatcher | None = None,
        has_not: "Locator | None" = None,
    ) -> "Locator":
        return self._query(
            selector, f"locator({selector!r})", has_text, has, has_not_text, has_not
        )

    def get_by_role(
        self,
        role: str,
        *,
        name: TextMatcher | None = None,
        exact: bool = False,
    ) -> "Locator":
        label = f"get_by_role({role!r}"
        if name is not None:
            label += f", name={describe_text(name)}"
        return self._query(role_selector(role, name, exact), label + ")")

    def get_by_label(self, text: TextMatcher, *, exact: bool = False) -> "Locator":
        return self._query(
            label_selector(text, exact), f"get_by_label({describe_text(text)})"
        )

    def get_by_placeholder(self, text: TextMatcher, *, exact: bool = False) -> "Locator":
        return self._query(
            placeholder_selector(text, exact),
            f"get_by_placeholder({describe_text(text)})",
        )

    def get_by_text(self, text: TextMatcher, *, exact: bool = False) -> "Locator":
        return self._query(
            text_selector(text, exact), f"get_by_text({describe_text(text)})"
        )

    def get_by_title(self, text: TextMatcher, *, exact: bool = False) -> "Locator":
        return self._query(
            title_selector(text, exact), f"get_by_title({describe_text(text)})"
        )

    def get_by_test_id(self, test_id: str) -> "Locator":
        return self._query(data_testid_selector(test_id), f"get_by_test_id({test_id!r})")

    def filter(
        self,
        *,
        has_text: TextMatcher | None = None,
        has: "Locator | None" = None,
        has_not_text: TextMatcher | None = None,
        has_not: "Locator | None" = None,
    ) -> "Locator":
        return self._chain(_Filter(has_text, has, has_not_text, has_not))

    def nth(self, index: int) -> "Locator":
        return self._chain(_Nth(index))

    @property
    def first(self) -> "Locator":
        return self._chain(_Nth(0))

    @property
    def last(self) -> "Locator":
        return self._chain(_Nth(0, from_end=True))

    # -- resolution ---------------------------------------------------------

    async def _resolve_all(self, roots: list | None = None) -> list[ElementHandle]:
        """
        Resolve the chain. Handles produced along the way and not returned are
        disposed; the caller owns (and must release) the returned handles.
        """
        initial = roots if roots is not None else [self._page.driver]
        current = initial
        for step in self._steps:
            kept: list = []
            try:
                kept = await step.apply(current, self)
            finally:
                if current is not initial:
                    await release([h for h in current if not any(h is k for k in kept)])
            current = kept
        return current

    async def _resolve_one(self) -> ElementHandle | None:
        handles = await self._resolve_all()
        if len(handles) > 1:
            await release(handles)
            raise StrictModeViolationError(str(self), len(handles))
        return handles[0] if handles else None

    # -- snapshot reads (no waiting) ----------------------------------------

    async def count(self) -> int:
        handles = await self._resolve_all()
        await release(handles)
        return len(handles)

    async def all(self) -> list["Locator"]:
        return [self.nth(i) for i in range(await self.count())]

    async def all_text_contents(self) -> list[str]:
        handles = await self._resolve_all()
        try:
            return [await h.text_content() or "" for h in handles]
        finally:
            await release(handles)

    async def is_visible(self) -> bool:
        handle = await self._resolve_one()
        if handle is None:
            return False
        try:
            return await handle.is_visible()
        finally:
            await handle.dispose()

    async def is_hidden(self) -> bool:
        return not await self.is_visible()

    # -- waiting reads (attached only) --------------------------------------

    async def text_content(self, timeout: int | None = None) -> str | None:
        return await self._act(
            ActionKind.READ, "reading text content of", lambda h: h.text_content(), timeout
        )

    async def input_value(self, timeout: int | None = None) -> str:
        return await self._act(
            ActionKind.READ, "reading input value of", lambda h: h.input_value(), timeout
        )

    async def get_attribute(self, name: str, timeout: int | None = None) -> str | None:
        return await self._act(
            ActionKind.READ,
            f"reading attribute {name!r} of",
            lambda h: h.get_attribute(name),
            timeout,
        )

    async def is_enabled(self, timeout: int | None = None) -> bool:
        return await self._act(
            ActionKind.READ, "reading enabled state of", lambda h: h.is_enabled(), timeout
        )

    async def is_checked(self, timeout: int | None = None) -> bool:
        return await self._act(
            ActionKind.READ, "reading checked state of", lambda h: h.is_checked(), timeout
        )

    # -- actions -------------------------------------------------------------

    async def click(self, timeout: int | None = None) -> None:
        await self._act(ActionKind.CLICK, "clicking", lambda h: h.click(), timeout)

    async def fill(self, value: str, timeout: int | None = None) -> None:
        await self._act(ActionKind.FILL, "filling", lambda h: h.fill(value), timeout)

    async def clear(self, timeout: int | None = None) -> None:
        await self._act(ActionKind.CLEAR, "clearing", lambda h: h.fill(""), timeout)

    async def type(self, text: str, delay: float = 0, timeout: int | None = None) -> None:
        """Type text key by key, `delay` milliseconds apart."""
        await self._act(
            ActionKind.TYPE, "typing into", lambda h: h.type(text, delay=delay), timeout
        )

    async def press(self, key: str, timeout: int | None = None) -> None:
        await self._act(ActionKind.PRESS, f"pressing {key!r} on", lambda h: h.press(key), timeout)

    async def check(self, timeout: int | None = None) -> None:
        await self._act(ActionKind.CHECK, "checking", lambda h: h.check(), timeout)

    async def uncheck(self, timeout: int | None = None) -> None:
        await self._act(ActionKind.UNCHECK, "unchecking", lambda h: h.uncheck(), timeout)

    async def hover(self, timeout: int | None = None) -> None:
        await self._act(ActionKind.HOVER, "hovering", lambda h: h.hover(), timeout)

    async def select_option(
        self, value: str | list[str], timeout: int | None = None
    ) -> list[str]:
        return await self._act(
            ActionKind.SELECT, "selecting option in", lambda h: h.select_option(value), timeout
        )

    async def wait_for(
        self,
        state: WaitForState = "visible",
        timeout: int | None = None,
    ) -> None:
        """Wait until the locator reaches `state` (attached/detached/visible/hidden)."""
        if state not in ("attached", "detached", "visible", "hidden"):
            raise ValueError(f"unknown wait_for state: {state!r}")

        async def check() -> PollOutcome:
            detail = None
            try:
                handle = await self._resolve_one()
            except LocatorIndexError as e:
                handle, detail = None, str(e)
            except ElementDetachedError:
                return PollOutcome(done=False, predicate=Predicate.ATTACHED)

            try:
                return await reached(handle, detail)
            except ElementDetachedError:
                return PollOutcome(done=False, predicate=Predicate.ATTACHED)
            finally:
                if handle is not None:
                    await handle.dispose()

        async def reached(handle: ElementHandle | None, detail: str | None) -> PollOutcome:
            match state:
                case "attached":
                    return PollOutcome(
                        done=handle is not None, predicate=Predicate.ATTACHED, detail=detail
                    )
                case "detached":
                    return PollOutcome(done=handle is None, detail="element is still attached")
                case "visible":
                    if handle is None:
                        return PollOutcome(done=False, predicate=Predicate.ATTACHED, detail=detail)
                    return PollOutcome(
                        done=await handle.is_visible(), predicate=Predicate.VISIBLE
                    )
                case "hidden":
                    hidden = handle is None or not await handle.is_visible()
                    return PollOutcome(done=hidden, detail="element is still visible")

        start = time.time()
        deadline = self._page.action_deadline(timeout)
        await poll_until(
            check,
            deadline,
            self._page.polling_interval,
            f"waiting for {self} to be {state}",
        )
        logger.debug(
            "wait_for_complete",
            locator=str(self),
            state=state,
            duration_ms=round((time.time() - start) * 1000, 2),
        )

    async def _act(
        self,
        action: ActionKind,
        verb: str,
        run: Callable[[ElementHandle], Awaitable[Any]],
        timeout: int | None,
    ) -> Any:
        start = time.time()
        log = logger.bind(action=action.value, locator=str(self))
        deadline = self._page.action_deadline(timeout)

        try:
            value = await self._page.waiter.perform(
                self._resolve_one, action, deadline, f"{verb} {self}", run
            )
        except TimeoutExceededError as e:
            log.error(
                "action_timeout",
                scope=e.scope.value,
                predicate=e.predicate.value if e.predicate else None,
            )
            raise

        duration_ms = (time.time() - start) * 1000
        if action is ActionKind.READ:
            log.debug("read_complete", duration_ms=round(duration_ms, 2))
        else:
            log.info("action_complete", duration_ms=round(duration_ms, 2))
        return value
