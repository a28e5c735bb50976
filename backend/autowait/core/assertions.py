"""
Assertions

    expect(locator)        -> auto-waiting matchers, polled until they hold or
                              the assertion timeout (default 5000 ms) runs out
    expect(value)          -> static matchers, evaluated once, no timeout
    expect.soft(...)       -> same matchers, but a mismatch is recorded on the
                              running test instead of stopping it

An enclosing test or run scope that expires during a soft assertion still
aborts the test.
"""

import re
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Awaitable, Callable, Iterator

import structlog

from autowait.core.actionability import Predicate
from autowait.core.driver import release
from autowait.core.errors import (
    ElementDetachedError,
    ExpectationError,
    LocatorIndexError,
    TimeoutExceededError,
)
from autowait.core.locator import Locator
from autowait.core.selectors import TextMatcher, describe_text, text_matches
from autowait.core.timeouts import TimeoutScope
from autowait.core.waiting import PollOutcome, poll_until

logger = structlog.get_logger()

_soft_failures: ContextVar[list[ExpectationError] | None] = ContextVar(
    "soft_failures", default=None
)


@contextmanager
def collect_soft_failures() -> Iterator[list[ExpectationError]]:
    """Collect soft assertion failures raised inside the block."""
    failures: list[ExpectationError] = []
    token = _soft_failures.set(failures)
    try:
        yield failures
    finally:
        _soft_failures.reset(token)


def _report(failure: ExpectationError, soft: bool) -> None:
    if soft:
        failures = _soft_failures.get()
        if failures is not None:
            logger.warning("soft_assertion_failed", error=failure.message)
            failures.append(failure)
            return
    raise failure


def _describe(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_describe(v) for v in value) + "]"
    if isinstance(value, (str, re.Pattern)):
        return describe_text(value)
    return repr(value)


class LocatorAssertions:
    """Auto-waiting matchers on a locator."""

    def __init__(
        self,
        locator: Locator,
        *,
        soft: bool = False,
        negate: bool = False,
        message: str | None = None,
    ):
        self._locator = locator
        self._soft = soft
        self._negate = negate
        self._message = message

    @property
    def not_(self) -> "LocatorAssertions":
        return LocatorAssertions(
            self._locator, soft=self._soft, negate=not self._negate, message=self._message
        )

    @asynccontextmanager
    async def _single(self) -> AsyncIterator[tuple[Any, str | None]]:
        try:
            handle, detail = await self._locator._resolve_one(), None
        except LocatorIndexError as e:
            handle, detail = None, str(e)
        try:
            yield handle, detail
        finally:
            if handle is not None:
                await handle.dispose()

    @asynccontextmanager
    async def _all(self) -> AsyncIterator[tuple[list, str | None]]:
        try:
            handles, detail = await self._locator._resolve_all(), None
        except LocatorIndexError as e:
            handles, detail = [], str(e)
        try:
            yield handles, detail
        finally:
            await release(handles)

    async def _expect(
        self,
        matcher: str,
        expected: Any,
        probe: Callable[[], Awaitable[PollOutcome]],
        timeout: int | None,
    ) -> None:
        page = self._locator.page
        deadline = page.assertion_deadline(timeout)
        name = f"expect({self._locator}){'.not_' if self._negate else ''}.{matcher}"
        operation = f"expecting {name}({_describe(expected)})"
        last = PollOutcome(done=False)

        async def check() -> PollOutcome:
            nonlocal last
            try:
                last = await probe()
            except ElementDetachedError:
                logger.debug("element_detached_during_assertion", assertion=name)
                return PollOutcome(done=False, predicate=Predicate.ATTACHED)
            if self._negate:
                return PollOutcome(done=not last.done, value=last.value)
            return last

        try:
            await poll_until(check, deadline, page.polling_interval, operation)
        except TimeoutExceededError as exc:
            if exc.scope is not TimeoutScope.ASSERTION:
                raise
            message = f"{name}({_describe(expected)}) failed: {exc}\nactual: {last.value!r}"
            if self._message:
                message = f"{self._message}\n{message}"
            _report(
                ExpectationError(
                    message,
                    expected=expected,
                    actual=last.value,
                    scope=exc.scope,
                    timeout_ms=exc.timeout_ms,
                    predicate=exc.predicate,
                ),
                self._soft,
            )
            return

        logger.debug("assertion_passed", assertion=name)

    async def _single_value(
        self,
        read: Callable[[Any], Awaitable[Any]],
        matches: Callable[[Any], bool],
    ) -> PollOutcome:
        async with self._single() as (handle, detail):
            if handle is None:
                return PollOutcome(done=False, predicate=Predicate.ATTACHED, detail=detail)
            actual = await read(handle)
        return PollOutcome(done=matches(actual), value=actual)

    # -- text ------------------------------------------------------------------

    async def to_have_text(
        self,
        expected: TextMatcher | list[TextMatcher],
        *,
        ignore_case: bool = False,
        timeout: int | None = None,
    ) -> None:
        await self._text("to_have_text", expected, False, ignore_case, timeout)

    async def to_contain_text(
        self,
        expected: TextMatcher | list[TextMatcher],
        *,
        ignore_case: bool = False,
        timeout: int | None = None,
    ) -> None:
        await self._text("to_contain_text", expected, True, ignore_case, timeout)

    async def _text(self, matcher, expected, substring, ignore_case, timeout) -> None:
        def match_one(actual: str | None, want: TextMatcher) -> bool:
            return text_matches(actual, want, substring=substring, ignore_case=ignore_case)

        if isinstance(expected, list):
            async def probe() -> PollOutcome:
                async with self._all() as (handles, detail):
                    if not handles and expected:
                        return PollOutcome(
                            done=False, value=[], predicate=Predicate.ATTACHED, detail=detail
                        )
                    texts = [await h.text_content() for h in handles]
                done = len(texts) == len(expected) and all(
                    match_one(t, e) for t, e in zip(texts, expected)
                )
                return PollOutcome(done=done, value=texts)
        else:
            async def probe() -> PollOutcome:
                return await self._single_value(
                    lambda h: h.text_content(), lambda t: match_one(t, expected)
                )

        await self._expect(matcher, expected, probe, timeout)

    # -- values and attributes ----------------------------------------------------

    async def to_have_value(self, value: TextMatcher, *, timeout: int | None = None) -> None:
        def matches(actual: str) -> bool:
            if isinstance(value, re.Pattern):
                return value.search(actual) is not None
            return actual == value

        await self._expect(
            "to_have_value",
            value,
            lambda: self._single_value(lambda h: h.input_value(), matches),
            timeout,
        )

    async def to_have_attribute(
        self, name: str, value: TextMatcher, *, timeout: int | None = None
    ) -> None:
        def matches(actual: str | None) -> bool:
            if actual is None:
                return False
            if isinstance(value, re.Pattern):
                return value.search(actual) is not None
            return actual == value

        await self._expect(
            "to_have_attribute",
            [name, value],
            lambda: self._single_value(lambda h: h.get_attribute(name), matches),
            timeout,
        )

    async def to_have_class(self, expected: TextMatcher, *, timeout: int | None = None) -> None:
        """A string must equal the whole class attribute; a pattern is searched."""
        await self._expect(
            "to_have_class",
            expected,
            lambda: self._single_value(
                lambda h: h.get_attribute("class"),
                lambda actual: text_matches(actual, expected),
            ),
            timeout,
        )

    async def to_have_count(self, count: int, *, timeout: int | None = None) -> None:
        async def probe() -> PollOutcome:
            async with self._all() as (handles, _):
                found = len(handles)
            return PollOutcome(done=found == count, value=found)

        await self._expect("to_have_count", count, probe, timeout)

    # -- states --------------------------------------------------------------------

    async def _state(self, matcher: str, read, timeout: int | None, predicate: Predicate | None):
        async def probe() -> PollOutcome:
            async with self._single() as (handle, detail):
                if handle is None:
                    return PollOutcome(done=False, predicate=Predicate.ATTACHED, detail=detail)
                value = await read(handle)
            return PollOutcome(done=bool(value), value=value, predicate=None if value else predicate)

        await self._expect(matcher, True, probe, timeout)

    async def to_be_visible(self, *, timeout: int | None = None) -> None:
        await self._state("to_be_visible", lambda h: h.is_visible(), timeout, Predicate.VISIBLE)

    async def to_be_enabled(self, *, timeout: int | None = None) -> None:
        await self._state("to_be_enabled", lambda h: h.is_enabled(), timeout, Predicate.ENABLED)

    async def to_be_editable(self, *, timeout: int | None = None) -> None:
        await self._state("to_be_editable", lambda h: h.is_editable(), timeout, Predicate.EDITABLE)

    async def to_be_checked(self, *, timeout: int | None = None) -> None:
        await self._state("to_be_checked", lambda h: h.is_checked(), timeout, None)

    async def to_be_attached(self, *, timeout: int | None = None) -> None:
        async def probe() -> PollOutcome:
            async with self._single() as (handle, detail):
                return PollOutcome(
                    done=handle is not None, predicate=Predicate.ATTACHED, detail=detail
                )

        await self._expect("to_be_attached", True, probe, timeout)

    async def to_be_hidden(self, *, timeout: int | None = None) -> None:
        async def probe() -> PollOutcome:
            async with self._single() as (handle, _):
                hidden = handle is None or not await handle.is_visible()
            return PollOutcome(done=hidden, value=not hidden)

        await self._expect("to_be_hidden", True, probe, timeout)

    async def to_be_disabled(self, *, timeout: int | None = None) -> None:
        async def probe() -> PollOutcome:
            async with self._single() as (handle, detail):
                if handle is None:
                    return PollOutcome(done=False, predicate=Predicate.ATTACHED, detail=detail)
                return PollOutcome(done=not await handle.is_enabled())

        await self._expect("to_be_disabled", True, probe, timeout)

    async def to_be_detached(self, *, timeout: int | None = None) -> None:
        async def probe() -> PollOutcome:
            async with self._single() as (handle, _):
                return PollOutcome(done=handle is None)

        await self._expect("to_be_detached", True, probe, timeout)


class ValueAssertions:
    """Static matchers on a plain value. Evaluated once, synchronously."""

    def __init__(
        self,
        actual: Any,
        *,
        soft: bool = False,
        negate: bool = False,
        message: str | None = None,
    ):
        self._actual = actual
        self._soft = soft
        self._negate = negate
        self._message = message

    @property
    def not_(self) -> "ValueAssertions":
        return ValueAssertions(
            self._actual, soft=self._soft, negate=not self._negate, message=self._message
        )

    def _check(self, matcher: str, expected: Any, passed: bool) -> None:
        if passed != self._negate:
            return
        name = f"expect({self._actual!r}){'.not_' if self._negate else ''}.{matcher}"
        message = f"{name}({_describe(expected)}) failed"
        if self._message:
            message = f"{self._message}\n{message}"
        _report(ExpectationError(message, expected=expected, actual=self._actual), self._soft)

    def to_be(self, expected: Any) -> None:
        if isinstance(expected, (str, int, float, bool)) or expected is None:
            passed = type(self._actual) is type(expected) and self._actual == expected
        else:
            passed = self._actual is expected
        self._check("to_be", expected, passed)

    def to_equal(self, expected: Any) -> None:
        self._check("to_equal", expected, self._actual == expected)

    def to_contain(self, item: Any) -> None:
        try:
            passed = item in self._actual
        except TypeError:
            passed = False
        self._check("to_contain", item, passed)

    def to_match(self, pattern: str | re.Pattern) -> None:
        passed = isinstance(self._actual, str) and re.search(pattern, self._actual) is not None
        self._check("to_match", pattern, passed)

    def to_have_length(self, length: int) -> None:
        try:
            passed = len(self._actual) == length
        except TypeError:
            passed = False
        self._check("to_have_length", length, passed)

    def to_be_truthy(self) -> None:
        self._check("to_be_truthy", True, bool(self._actual))

    def to_be_none(self) -> None:
        self._check("to_be_none", None, self._actual is None)

    def to_be_greater_than(self, other: Any) -> None:
        self._check("to_be_greater_than", other, self._actual > other)


class Expect:
    """
    Entry point for assertions.

    Usage:
        await expect(locator).to_have_text("Submit")
        await expect.soft(locator).to_have_text("Submittt")
        expect(value).to_equal(5)
    """

    def __call__(self, actual: Any, message: str | None = None):
        return self._make(actual, soft=False, message=message)

    def soft(self, actual: Any, message: str | None = None):
        return self._make(actual, soft=True, message=message)

    @staticmethod
    def _make(actual: Any, soft: bool, message: str | None):
        if isinstance(actual, Locator):
            return LocatorAssertions(actual, soft=soft, message=message)
        return ValueAssertions(actual, soft=soft, message=message)


expect = Expect()
