"""
Actionability Protocol

Before an interactive action runs, the target must be observed in a single
poll satisfying every predicate the action requires:

    attached -> visible -> stable -> receives events -> enabled -> editable

- attached:        the locator resolves to an element in the DOM
- visible:         non-empty box, not hidden
- stable:          same box on two consecutive polls
- receives events: the element is the hit target at its own center
- enabled:         not disabled
- editable:        text inputs only, not readonly

Reads (text_content, input_value, get_attribute) only require attached.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import structlog

from autowait.core.driver import BoundingBox, ElementHandle
from autowait.core.errors import ElementDetachedError, LocatorIndexError
from autowait.core.timeouts import Deadline, bounded
from autowait.core.waiting import PollOutcome, poll_until

logger = structlog.get_logger()


class Predicate(str, Enum):
    """Actionability predicates, in evaluation order."""

    ATTACHED = "attached"
    VISIBLE = "visible"
    STABLE = "stable"
    RECEIVES_EVENTS = "receives events"
    ENABLED = "enabled"
    EDITABLE = "editable"


PREDICATE_ORDER: tuple[Predicate, ...] = tuple(Predicate)


class ActionKind(str, Enum):
    """Interactions that go through the actionability protocol."""

    CLICK = "click"
    CHECK = "check"
    UNCHECK = "uncheck"
    HOVER = "hover"
    FILL = "fill"
    TYPE = "type"
    CLEAR = "clear"
    SELECT = "select_option"
    PRESS = "press"
    READ = "read"


_POINTER = frozenset(
    {
        Predicate.ATTACHED,
        Predicate.VISIBLE,
        Predicate.STABLE,
        Predicate.RECEIVES_EVENTS,
        Predicate.ENABLED,
    }
)

REQUIRED_PREDICATES: dict[ActionKind, frozenset[Predicate]] = {
    ActionKind.CLICK: _POINTER,
    ActionKind.CHECK: _POINTER,
    ActionKind.UNCHECK: _POINTER,
    ActionKind.HOVER: _POINTER - {Predicate.ENABLED},
    ActionKind.FILL: _POINTER | {Predicate.EDITABLE},
    ActionKind.TYPE: _POINTER | {Predicate.EDITABLE},
    ActionKind.CLEAR: _POINTER | {Predicate.EDITABLE},
    ActionKind.SELECT: frozenset(
        {Predicate.ATTACHED, Predicate.VISIBLE, Predicate.ENABLED}
    ),
    ActionKind.PRESS: frozenset({Predicate.ATTACHED}),
    ActionKind.READ: frozenset({Predicate.ATTACHED}),
}


@dataclass(frozen=True)
class ElementState:
    """One probe of an element. Unprobed predicates stay None."""

    attached: bool
    visible: bool | None = None
    box: BoundingBox | None = None
    receives_events: bool | None = None
    enabled: bool | None = None
    editable: bool | None = None

    def holds(self, predicate: Predicate, stable: bool) -> bool:
        match predicate:
            case Predicate.ATTACHED:
                return self.attached
            case Predicate.VISIBLE:
                return bool(self.visible)
            case Predicate.STABLE:
                return stable
            case Predicate.RECEIVES_EVENTS:
                return bool(self.receives_events)
            case Predicate.ENABLED:
                return bool(self.enabled)
            case Predicate.EDITABLE:
                return bool(self.editable)


def first_unsatisfied(
    state: ElementState,
    required: frozenset[Predicate],
    stable: bool,
) -> Predicate | None:
    for predicate in PREDICATE_ORDER:
        if predicate in required and not state.holds(predicate, stable):
            return predicate
    return None


async def probe(handle: ElementHandle, required: frozenset[Predicate]) -> ElementState:
    """
    Probe the predicates `required` needs, stopping at the first failing one.
    """
    if not await handle.is_attached():
        return ElementState(attached=False)
    if required == {Predicate.ATTACHED}:
        return ElementState(attached=True)

    needs_box = bool(required & {Predicate.VISIBLE, Predicate.STABLE})
    visible = await handle.is_visible()
    box = await handle.bounding_box() if needs_box and visible else None
    if not visible:
        return ElementState(attached=True, visible=False)

    receives_events = None
    if Predicate.RECEIVES_EVENTS in required:
        receives_events = await handle.receives_events()
    enabled = await handle.is_enabled() if Predicate.ENABLED in required else None
    editable = await handle.is_editable() if Predicate.EDITABLE in required else None

    return ElementState(
        attached=True,
        visible=True,
        box=box,
        receives_events=receives_events,
        enabled=enabled,
        editable=editable,
    )


def _has_area(box: BoundingBox | None) -> bool:
    return box is not None and box["width"] > 0 and box["height"] > 0


Resolver = Callable[[], Awaitable[ElementHandle | None]]


class ActionabilityWaiter:
    """
    Polls a locator until its element is actionable, then performs the action.

    Usage:
        waiter = ActionabilityWaiter(polling_interval=100)
        await waiter.perform(resolve, ActionKind.CLICK, deadline,
                             "clicking locator('#submit')",
                             lambda handle: handle.click())
    """

    def __init__(self, polling_interval: int = 100):
        self.polling_interval = polling_interval

    async def perform(
        self,
        resolve: Resolver,
        action: ActionKind,
        deadline: Deadline,
        operation: str,
        run: Callable[[ElementHandle], Awaitable[Any]],
    ) -> Any:
        required = REQUIRED_PREDICATES[action]
        previous: tuple[ElementHandle, BoundingBox | None] | None = None
        log = logger.bind(operation=operation, action=action.value)

        async def forget() -> None:
            nonlocal previous
            if previous is not None:
                await previous[0].dispose()
                previous = None

        async def check() -> PollOutcome:
            nonlocal previous

            try:
                handle = await resolve()
            except LocatorIndexError as e:
                await forget()
                return PollOutcome(done=False, predicate=Predicate.ATTACHED, detail=str(e))
            except ElementDetachedError:
                log.debug("element_detached_during_resolve")
                await forget()
                return PollOutcome(done=False, predicate=Predicate.ATTACHED)

            if handle is None:
                await forget()
                return PollOutcome(done=False, predicate=Predicate.ATTACHED)

            try:
                state = await probe(handle, required)
            except ElementDetachedError:
                await handle.dispose()
                await forget()
                return PollOutcome(done=False, predicate=Predicate.ATTACHED)

            stable = False
            if Predicate.STABLE in required and _has_area(state.box) and previous:
                last_handle, last_box = previous
                try:
                    stable = last_box == state.box and await handle.is_same_node(last_handle)
                except ElementDetachedError:
                    stable = False
            await forget()
            previous = (handle, state.box)

            missing = first_unsatisfied(state, required, stable)
            if missing is not None:
                return PollOutcome(done=False, predicate=missing)

            try:
                async with bounded(deadline, operation):
                    value = await run(handle)
            except ElementDetachedError:
                log.debug("element_detached_during_action")
                await forget()
                return PollOutcome(done=False, predicate=Predicate.ATTACHED)
            return PollOutcome(done=True, value=value)

        try:
            outcome = await poll_until(check, deadline, self.polling_interval, operation)
        finally:
            await forget()
        log.debug("action_performed")
        return outcome.value
