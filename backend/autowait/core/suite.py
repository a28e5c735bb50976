"""
Suite declarations.

A suite groups async test functions with before_each/after_each hooks and
per-suite timeout overrides. Test functions and hooks ask for what they need
by parameter name:

    page       -> autowait.core.page.Page for this test
    test_info  -> TestInfo (title, set_timeout)

Usage:
    suite = Suite("auto-waiting")

    @suite.before_each
    async def open_page(page):
        await page.goto(settings.ajax_demo_url)

    @suite.test("Auto-waiting demonstration on AJAX page")
    async def auto_waiting(page):
        await expect(page.locator(".bg-success")).to_have_text("...")
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from autowait.core.timeouts import Deadline

TestFunction = Callable[..., Awaitable[None]]

FIXTURE_NAMES = frozenset({"page", "test_info"})


@dataclass
class TestCase:
    """One declared test."""

    __test__ = False

    title: str
    fn: TestFunction
    timeout: int | None = None
    tags: tuple[str, ...] = ()
    expect_failure: bool = False

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "timeout": self.timeout,
            "tags": list(self.tags),
            "expect_failure": self.expect_failure,
        }


@dataclass
class TestInfo:
    """Handle on the running test, like Playwright's testInfo."""

    __test__ = False

    title: str
    suite: str
    timeout: int | None
    _deadline: Deadline | None = field(default=None, repr=False)

    def set_timeout(self, timeout: int) -> None:
        """Replace this test's budget; measured from when the test started."""
        self.timeout = timeout
        if self._deadline is not None:
            self._deadline.reset(timeout)


def _check_signature(fn: Callable) -> None:
    unknown = set(inspect.signature(fn).parameters) - FIXTURE_NAMES
    if unknown:
        raise TypeError(
            f"{fn.__name__}() asks for unknown fixtures: {', '.join(sorted(unknown))}"
        )
    if not inspect.iscoroutinefunction(fn):
        raise TypeError(f"{fn.__name__}() must be an async function")


async def call_with_fixtures(fn: Callable, fixtures: dict[str, Any]) -> None:
    params = inspect.signature(fn).parameters
    await fn(**{name: fixtures[name] for name in params})


class Suite:
    """A named group of tests sharing hooks and timeout overrides."""

    def __init__(self, name: str, description: str = "", tags: tuple[str, ...] = ()):
        self.name = name
        self.description = description
        self.tags = tags
        self.tests: list[TestCase] = []
        self.before_each_hooks: list[TestFunction] = []
        self.after_each_hooks: list[TestFunction] = []
        self.overrides: dict[str, int | None] = {}

    def __repr__(self) -> str:
        return f"Suite({self.name!r}, tests={len(self.tests)})"

    def use(self, **overrides: int | None) -> "Suite":
        """
        Override timeouts for every test in the suite.

        Accepts the TimeoutConfig field names (test_timeout, action_timeout,
        navigation_timeout, expect_timeout, polling_interval).
        """
        allowed = {
            "test_timeout",
            "action_timeout",
            "navigation_timeout",
            "expect_timeout",
            "polling_interval",
        }
        unknown = set(overrides) - allowed
        if unknown:
            raise TypeError(f"unknown suite overrides: {', '.join(sorted(unknown))}")
        self.overrides.update(overrides)
        return self

    def before_each(self, fn: TestFunction) -> TestFunction:
        _check_signature(fn)
        self.before_each_hooks.append(fn)
        return fn

    def after_each(self, fn: TestFunction) -> TestFunction:
        _check_signature(fn)
        self.after_each_hooks.append(fn)
        return fn

    def test(
        self,
        title: str,
        *,
        timeout: int | None = None,
        tags: tuple[str, ...] = (),
        expect_failure: bool = False,
    ) -> Callable[[TestFunction], TestFunction]:
        """
        Register a test.

        Args:
            title: Test title, unique within the suite
            timeout: Per-test timeout in milliseconds
            tags: Tags for filtering
            expect_failure: The test is expected to fail or time out
        """

        def register(fn: TestFunction) -> TestFunction:
            _check_signature(fn)
            if any(t.title == title for t in self.tests):
                raise ValueError(f"duplicate test title in suite {self.name!r}: {title!r}")
            self.tests.append(
                TestCase(
                    title=title,
                    fn=fn,
                    timeout=timeout,
                    tags=tuple(tags),
                    expect_failure=expect_failure,
                )
            )
            return fn

        return register

    def select(self, grep: str | None = None, tag: str | None = None) -> list[TestCase]:
        """Tests whose title contains `grep` (case-insensitive) and carry `tag`."""
        selected = self.tests
        if grep:
            selected = [t for t in selected if grep.lower() in t.title.lower()]
        if tag:
            selected = [t for t in selected if tag in t.tags]
        return selected

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "tags": list(self.tags),
            "overrides": dict(self.overrides),
            "tests": [t.to_dict() for t in self.tests],
        }
