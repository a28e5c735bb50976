"""
Auto-waiting primitive.

Everything that waits (actionability, wait_for, locator assertions) is a
check polled at a fixed interval until it reports done or the governing
deadline expires.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import structlog

from autowait.core.errors import TimeoutExceededError
from autowait.core.timeouts import Deadline, governing_deadline

if TYPE_CHECKING:
    from autowait.core.actionability import Predicate

logger = structlog.get_logger()


@dataclass
class PollOutcome:
    """What one poll observed."""

    done: bool
    value: Any = None
    predicate: "Predicate | None" = None
    detail: str | None = None


async def poll_until(
    check: Callable[[], Awaitable[PollOutcome]],
    deadline: Deadline,
    interval_ms: int,
    operation: str,
) -> PollOutcome:
    """
    Run `check` until it reports done.

    The check always runs at least once, even on an expired budget. On expiry
    the error carries the predicate and detail of the last poll.
    """
    polls = 0
    while True:
        governing = governing_deadline(deadline)
        outcome = await check()
        polls += 1
        if outcome.done:
            return outcome

        if governing.expired:
            logger.info(
                "poll_timeout",
                operation=operation,
                scope=governing.scope.value,
                polls=polls,
                predicate=outcome.predicate.value if outcome.predicate else None,
            )
            raise TimeoutExceededError(
                governing.scope,
                governing.timeout_ms,
                predicate=outcome.predicate,
                operation=operation,
                detail=outcome.detail,
            )

        delay = interval_ms / 1000
        remaining = governing.remaining()
        if remaining is not None:
            delay = min(delay, remaining)
        await asyncio.sleep(delay)
