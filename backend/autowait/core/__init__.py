"""
Core automation components.
"""

from autowait.core.actionability import ActionKind, Predicate
from autowait.core.assertions import expect
from autowait.core.errors import (
    AutomationError,
    ExpectationError,
    LocatorIndexError,
    StrictModeViolationError,
    TimeoutExceededError,
)
from autowait.core.executor import ExecutionStatus, RunResult, TestExecutor, TestResult
from autowait.core.locator import Locator
from autowait.core.page import Page
from autowait.core.suite import Suite, TestInfo
from autowait.core.timeouts import TimeoutConfig, TimeoutScope

__all__ = [
    "ActionKind",
    "AutomationError",
    "ExecutionStatus",
    "ExpectationError",
    "Locator",
    "LocatorIndexError",
    "Page",
    "Predicate",
    "RunResult",
    "StrictModeViolationError",
    "Suite",
    "TestExecutor",
    "TestInfo",
    "TestResult",
    "TimeoutConfig",
    "TimeoutExceededError",
    "TimeoutScope",
    "expect",
]
