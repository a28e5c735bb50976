"""
Exception hierarchy for the automation layer.

Every failure raised by locators, pages and assertions derives from
AutomationError, except ExpectationError which is an AssertionError so that
plain test code treats it like any other failed assertion.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from autowait.core.actionability import Predicate
    from autowait.core.timeouts import TimeoutScope


class AutomationError(Exception):
    """Base class for automation failures."""


class TimeoutExceededError(AutomationError):
    """Raised when the governing timeout scope of an operation expires."""

    def __init__(
        self,
        scope: "TimeoutScope",
        timeout_ms: int | None,
        *,
        predicate: "Predicate | None" = None,
        operation: str | None = None,
        detail: str | None = None,
    ):
        self.scope = scope
        self.timeout_ms = timeout_ms
        self.predicate = predicate
        self.operation = operation
        self.detail = detail
        super().__init__(self._format())

    def _format(self) -> str:
        message = f"{self.scope.label} timeout of {self.timeout_ms}ms exceeded"
        if self.operation:
            message += f" while {self.operation}"
        if self.predicate is not None:
            message += f": element is not {self.predicate.value}"
        if self.detail:
            message += f" ({self.detail})"
        return message


class StrictModeViolationError(AutomationError):
    """Raised when a single-element operation resolves to several elements."""

    def __init__(self, locator: str, count: int):
        self.locator = locator
        self.count = count
        super().__init__(
            f"strict mode violation: {locator} resolved to {count} elements"
        )


class LocatorIndexError(AutomationError, IndexError):
    """Raised when nth(i) points past the current match set."""

    def __init__(self, locator: str, index: int, count: int):
        self.locator = locator
        self.index = index
        self.count = count
        super().__init__(
            f"{locator}: index {index} out of range for {count} matches"
        )


class ElementDetachedError(AutomationError):
    """Raised by drivers when an element left the DOM mid-operation."""


class NavigationError(AutomationError):
    """Raised when a navigation fails for a reason other than a timeout."""


class ExpectationError(AssertionError):
    """
    A failed expectation.

    Auto-waiting assertions also carry the scope and budget that ran out and
    the first actionability predicate that was still unsatisfied.
    """

    def __init__(
        self,
        message: str,
        *,
        expected: Any = None,
        actual: Any = None,
        scope: "TimeoutScope | None" = None,
        timeout_ms: int | None = None,
        predicate: "Predicate | None" = None,
    ):
        super().__init__(message)
        self.message = message
        self.expected = expected
        self.actual = actual
        self.scope = scope
        self.timeout_ms = timeout_ms
        self.predicate = predicate

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "expected": _jsonable(self.expected),
            "actual": _jsonable(self.actual),
            "scope": self.scope.value if self.scope else None,
            "timeout_ms": self.timeout_ms,
            "predicate": self.predicate.value if self.predicate else None,
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return repr(value)
