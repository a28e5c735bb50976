"""
Test Execution Engine

This module runs suites:
1. Opens the run scope (global timeout) around the whole run
2. Runs each test on its own page and browser context, up to `workers` at once
3. Opens the test scope around hooks and body, collecting soft failures
4. Classifies outcomes and builds the run report
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

import structlog

from autowait.core.assertions import collect_soft_failures
from autowait.core.driver import PageSource
from autowait.core.errors import AutomationError, ExpectationError, TimeoutExceededError
from autowait.core.page import Page
from autowait.core.suite import Suite, TestCase, TestInfo, call_with_fixtures
from autowait.core.timeouts import (
    TimeoutConfig,
    TimeoutScope,
    resolve_timeout,
    timeout_scope,
)

logger = structlog.get_logger()


class ExecutionStatus(str, Enum):
    """Test execution status."""

    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def describe_config(config: TimeoutConfig, workers: int) -> dict[str, Any]:
    """The effective settings of a run, as reported with its results."""
    return {
        "global_timeout": config.global_timeout,
        "test_timeout": config.test_timeout,
        "action_timeout": config.action_timeout,
        "navigation_timeout": config.navigation_timeout,
        "expect_timeout": config.expect_timeout,
        "workers": workers,
    }


@dataclass
class TestResult:
    """Result of a single test."""

    __test__ = False

    test_id: str
    title: str
    suite: str
    status: ExecutionStatus
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float = 0
    error_message: str | None = None
    error_type: str | None = None
    failed_scope: TimeoutScope | None = None
    unsatisfied_predicate: str | None = None
    soft_failures: list[ExpectationError] = field(default_factory=list)
    expect_failure: bool = False
    page_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "test_id": self.test_id,
            "title": self.title,
            "suite": self.suite,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
            "error_type": self.error_type,
            "failed_scope": self.failed_scope.value if self.failed_scope else None,
            "unsatisfied_predicate": self.unsatisfied_predicate,
            "soft_failures": [f.to_dict() for f in self.soft_failures],
            "expect_failure": self.expect_failure,
            "page_url": self.page_url,
            "metadata": self.metadata,
        }


@dataclass
class RunResult:
    """Result of running one suite."""

    run_id: str
    suite: str
    status: ExecutionStatus
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float = 0
    test_results: list[TestResult] = field(default_factory=list)
    error_message: str | None = None
    config: dict[str, Any] = field(default_factory=dict)

    def _count(self, status: ExecutionStatus) -> int:
        return sum(1 for r in self.test_results if r.status == status)

    @classmethod
    def errored(cls, suite: str, message: str, config: dict[str, Any]) -> "RunResult":
        """A run that never got to its tests, e.g. because the browser failed to launch."""
        now = _utcnow()
        return cls(
            run_id=str(uuid.uuid4()),
            suite=suite,
            status=ExecutionStatus.ERROR,
            started_at=now,
            completed_at=now,
            error_message=message,
            config=config,
        )

    @property
    def passed(self) -> int:
        return self._count(ExecutionStatus.PASSED)

    @property
    def failed(self) -> int:
        return self._count(ExecutionStatus.FAILED)

    @property
    def timed_out(self) -> int:
        return self._count(ExecutionStatus.TIMED_OUT)

    @property
    def skipped(self) -> int:
        return self._count(ExecutionStatus.SKIPPED)

    @property
    def total(self) -> int:
        return len(self.test_results)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "suite": self.suite,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "passed": self.passed,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "skipped": self.skipped,
            "total": self.total,
            "test_results": [r.to_dict() for r in self.test_results],
            "error_message": self.error_message,
            "config": self.config,
        }


class TestExecutor:
    """
    Runs suites against pages handed out by a PageSource.

    Usage:
        async with create_browser(options) as session:
            executor = TestExecutor(session, TimeoutConfig.from_settings(settings))
            result = await executor.run(get_suite("timeouts"))
    """

    __test__ = False

    def __init__(
        self,
        pages: PageSource,
        config: TimeoutConfig | None = None,
        workers: int = 1,
        on_test_complete: Callable[[TestResult], None] | None = None,
    ):
        """
        Initialize test executor.

        Args:
            pages: Source of one fresh page per test
            config: Ambient timeout configuration
            workers: Maximum number of tests running at once
            on_test_complete: Callback for real-time test updates
        """
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.pages = pages
        self.config = config or TimeoutConfig()
        self.workers = workers
        self.on_test_complete = on_test_complete

    async def run(
        self,
        suite: Suite,
        grep: str | None = None,
        tag: str | None = None,
        overrides: dict[str, int | None] | None = None,
    ) -> RunResult:
        """
        Run the selected tests of a suite.

        Args:
            suite: Suite to run
            grep: Only run tests whose title contains this text
            tag: Only run tests carrying this tag
            overrides: Timeout overrides for this run, applied over the suite's
        """
        config = self.config.merged(**suite.overrides).merged(**(overrides or {}))
        cases = suite.select(grep, tag)
        started_at = _utcnow()

        run = RunResult(
            run_id=str(uuid.uuid4()),
            suite=suite.name,
            status=ExecutionStatus.RUNNING,
            started_at=started_at,
            config=describe_config(config, self.workers),
        )
        log = logger.bind(run_id=run.run_id, suite=suite.name)
        log.info("run_started", test_count=len(cases), workers=self.workers)

        results: dict[str, TestResult] = {}
        started: set[str] = set()
        semaphore = asyncio.Semaphore(self.workers)

        async def worker(case: TestCase) -> None:
            async with semaphore:
                started.add(case.title)
                result = await self._execute_test(suite, case, config)
                results[case.title] = result
                if self.on_test_complete:
                    self.on_test_complete(result)

        try:
            async with timeout_scope(TimeoutScope.RUN, config.global_timeout):
                await asyncio.gather(*(worker(case) for case in cases))
        except TimeoutExceededError as e:
            log.warning("global_timeout_exceeded", timeout_ms=e.timeout_ms)
            run.error_message = str(e)
            for case in cases:
                if case.title in results:
                    continue
                now = _utcnow()
                results[case.title] = TestResult(
                    test_id=str(uuid.uuid4()),
                    title=case.title,
                    suite=suite.name,
                    status=ExecutionStatus.TIMED_OUT
                    if case.title in started
                    else ExecutionStatus.SKIPPED,
                    started_at=now,
                    completed_at=now,
                    error_message=str(e),
                    error_type=type(e).__name__,
                    failed_scope=TimeoutScope.RUN,
                    expect_failure=case.expect_failure,
                )

        run.test_results = [results[case.title] for case in cases]
        run.completed_at = _utcnow()
        run.duration_ms = (run.completed_at - started_at).total_seconds() * 1000

        if run.error_message:
            run.status = ExecutionStatus.TIMED_OUT
        elif not cases:
            run.status = ExecutionStatus.SKIPPED
        elif all(r.status == ExecutionStatus.PASSED for r in run.test_results):
            run.status = ExecutionStatus.PASSED
        else:
            run.status = ExecutionStatus.FAILED

        log.info(
            "run_completed",
            status=run.status.value,
            duration_ms=round(run.duration_ms, 2),
            passed=run.passed,
            failed=run.failed,
            timed_out=run.timed_out,
            skipped=run.skipped,
        )
        return run

    async def _execute_test(
        self,
        suite: Suite,
        case: TestCase,
        config: TimeoutConfig,
    ) -> TestResult:
        """Execute a single test on its own page."""
        started_at = _utcnow()
        log = logger.bind(suite=suite.name, test=case.title)
        log.info("test_execution_started")

        result = TestResult(
            test_id=str(uuid.uuid4()),
            title=case.title,
            suite=suite.name,
            status=ExecutionStatus.RUNNING,
            started_at=started_at,
            expect_failure=case.expect_failure,
        )
        info = TestInfo(
            title=case.title,
            suite=suite.name,
            timeout=resolve_timeout(case.timeout, config.test_timeout),
        )

        try:
            async with self.pages.new_page() as driver:
                page = Page(driver, config)
                fixtures = {"page": page, "test_info": info}
                with collect_soft_failures() as soft_failures:
                    try:
                        await self._run_body(suite, case, info, fixtures)
                    finally:
                        result.soft_failures = list(soft_failures)
                        result.page_url = driver.url

        except TimeoutExceededError as e:
            self._record_failure(result, e)
            result.status = (
                ExecutionStatus.TIMED_OUT
                if e.scope in (TimeoutScope.TEST, TimeoutScope.RUN)
                else ExecutionStatus.FAILED
            )
            result.failed_scope = e.scope
            result.unsatisfied_predicate = e.predicate.value if e.predicate else None
            log.warning("test_timeout", scope=e.scope.value, error=str(e))

        except ExpectationError as e:
            self._record_failure(result, e)
            result.status = ExecutionStatus.FAILED
            result.failed_scope = e.scope
            result.unsatisfied_predicate = e.predicate.value if e.predicate else None
            log.warning("assertion_failed", error=e.message)

        except AutomationError as e:
            self._record_failure(result, e)
            result.status = ExecutionStatus.FAILED
            log.warning("automation_error", error=str(e))

        except Exception as e:
            log.exception("test_execution_error", error=str(e))
            self._record_failure(result, e)
            result.status = ExecutionStatus.ERROR

        else:
            result.status = (
                ExecutionStatus.FAILED if result.soft_failures else ExecutionStatus.PASSED
            )
            if result.soft_failures:
                result.error_message = (
                    f"{len(result.soft_failures)} soft assertion(s) failed"
                )

        if case.expect_failure:
            self._invert_expected_failure(result)

        result.completed_at = _utcnow()
        result.duration_ms = (result.completed_at - started_at).total_seconds() * 1000

        log.info(
            "test_execution_completed",
            status=result.status.value,
            duration_ms=round(result.duration_ms, 2),
            soft_failures=len(result.soft_failures),
        )
        return result

    async def _run_body(
        self,
        suite: Suite,
        case: TestCase,
        info: TestInfo,
        fixtures: dict[str, Any],
    ) -> None:
        async with timeout_scope(TimeoutScope.TEST, info.timeout) as deadline:
            info._deadline = deadline
            try:
                for hook in suite.before_each_hooks:
                    await call_with_fixtures(hook, fixtures)
                await call_with_fixtures(case.fn, fixtures)
            finally:
                for hook in suite.after_each_hooks:
                    await call_with_fixtures(hook, fixtures)
        info._deadline = None

    @staticmethod
    def _record_failure(result: TestResult, error: BaseException) -> None:
        result.error_message = str(error)
        result.error_type = type(error).__name__

    @staticmethod
    def _invert_expected_failure(result: TestResult) -> None:
        """A test marked expect_failure passes by failing."""
        if result.status in (ExecutionStatus.FAILED, ExecutionStatus.TIMED_OUT):
            result.metadata["expected_failure_status"] = result.status.value
            result.status = ExecutionStatus.PASSED
        elif result.status == ExecutionStatus.PASSED:
            result.status = ExecutionStatus.FAILED
            result.error_message = "Expected to fail, but passed"
