"""
Timeout Hierarchy

Five independent scopes govern how long anything may take:

    run        -> whole suite run          (default: unbounded)
    test       -> one test incl. hooks     (default: 30000 ms)
    action     -> click/fill/reads/...     (default: unbounded)
    navigation -> goto/reload/load states  (default: unbounded)
    assertion  -> one auto-waiting expect  (default: 5000 ms)

Run and test scopes are pushed onto a context-local stack and enforced by
cancellation. Action, navigation and assertion deadlines are started per call;
the deadline that actually governs a call is the earliest of its own and every
enclosing one, so an expiring outer scope is reported under its own name.
"""

import asyncio
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import AsyncGenerator

import structlog

from autowait.core.errors import TimeoutExceededError

logger = structlog.get_logger()


class TimeoutScope(str, Enum):
    """Timeout scopes, broadest first."""

    RUN = "run"
    TEST = "test"
    ACTION = "action"
    NAVIGATION = "navigation"
    ASSERTION = "assertion"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class TimeoutConfig:
    """Ambient timeout defaults, in milliseconds. None or 0 means unbounded."""

    global_timeout: int | None = None
    test_timeout: int | None = 30000
    action_timeout: int | None = None
    navigation_timeout: int | None = None
    expect_timeout: int | None = 5000
    polling_interval: int = 100

    def __post_init__(self):
        for name in (
            "global_timeout",
            "test_timeout",
            "action_timeout",
            "navigation_timeout",
            "expect_timeout",
        ):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.polling_interval <= 0:
            raise ValueError("polling_interval must be positive")

    @classmethod
    def from_settings(cls, settings) -> "TimeoutConfig":
        return cls(
            global_timeout=settings.global_timeout,
            test_timeout=settings.test_timeout,
            action_timeout=settings.action_timeout,
            navigation_timeout=settings.navigation_timeout,
            expect_timeout=settings.expect_timeout,
            polling_interval=settings.polling_interval,
        )

    def merged(self, **overrides: int | None) -> "TimeoutConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def resolve_timeout(*candidates: int | None) -> int | None:
    """
    Pick the first configured value, most specific first.

    Returns None for an unbounded budget.
    """
    for value in candidates:
        if value is None:
            continue
        if value < 0:
            raise ValueError(f"timeout must be >= 0, got {value}")
        return value or None
    return None


def _now() -> float:
    return asyncio.get_running_loop().time()


@dataclass(eq=False)
class Deadline:
    """A started timeout budget for one scope."""

    scope: TimeoutScope
    timeout_ms: int | None
    started_at: float
    _timer: asyncio.Timeout | None = field(default=None, repr=False)

    @classmethod
    def start(cls, scope: TimeoutScope, timeout_ms: int | None) -> "Deadline":
        return cls(scope=scope, timeout_ms=timeout_ms or None, started_at=_now())

    @property
    def expires_at(self) -> float | None:
        if self.timeout_ms is None:
            return None
        return self.started_at + self.timeout_ms / 1000

    def remaining(self) -> float | None:
        """Seconds left, or None when unbounded."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - _now())

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and _now() >= self.expires_at

    def reset(self, timeout_ms: int | None) -> None:
        """Change the budget, still measured from when the scope started."""
        if timeout_ms is not None and timeout_ms < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout_ms}")
        self.timeout_ms = timeout_ms or None
        if self._timer is not None:
            self._timer.reschedule(self.expires_at)
        logger.debug("deadline_reset", scope=self.scope.value, timeout_ms=self.timeout_ms)


_active_deadlines: ContextVar[tuple[Deadline, ...]] = ContextVar(
    "active_deadlines", default=()
)


def active_deadlines() -> tuple[Deadline, ...]:
    """Enclosing scope deadlines, outermost first."""
    return _active_deadlines.get()


def governing_deadline(own: Deadline) -> Deadline:
    """
    Earliest-expiring deadline among the enclosing scopes and `own`.

    Ties go to the outer scope.
    """
    bounded = [
        d for d in (*_active_deadlines.get(), own) if d.expires_at is not None
    ]
    if not bounded:
        return own
    return min(bounded, key=lambda d: d.expires_at)


@asynccontextmanager
async def timeout_scope(
    scope: TimeoutScope,
    timeout_ms: int | None,
) -> AsyncGenerator[Deadline, None]:
    """
    Enforce a run or test scope around a block.

    Usage:
        async with timeout_scope(TimeoutScope.TEST, 30000) as deadline:
            ...
            deadline.reset(5000)  # like test.setTimeout()
    """
    deadline = Deadline.start(scope, timeout_ms)
    timer = asyncio.timeout_at(deadline.expires_at)
    deadline._timer = timer
    token = _active_deadlines.set(_active_deadlines.get() + (deadline,))

    try:
        async with timer:
            yield deadline
    except TimeoutError as exc:
        if not timer.expired():
            raise
        logger.warning("scope_timeout", scope=scope.value, timeout_ms=deadline.timeout_ms)
        raise TimeoutExceededError(scope, deadline.timeout_ms) from exc
    finally:
        deadline._timer = None
        _active_deadlines.reset(token)


@asynccontextmanager
async def bounded(deadline: Deadline, operation: str) -> AsyncGenerator[Deadline, None]:
    """
    Cancel the block when the governing deadline of `deadline` expires.

    Used for single engine calls (navigation, actions) that do not poll.
    """
    governing = governing_deadline(deadline)
    if governing.expires_at is None:
        yield governing
        return

    timer = asyncio.timeout_at(governing.expires_at)
    try:
        async with timer:
            yield governing
    except TimeoutError as exc:
        if not timer.expired():
            raise
        raise TimeoutExceededError(
            governing.scope, governing.timeout_ms, operation=operation
        ) from exc
