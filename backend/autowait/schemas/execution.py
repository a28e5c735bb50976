"""
Pydantic schemas for suite and execution API endpoints.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """Test execution status."""

    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"
    ERROR = "error"


class TestCaseSchema(BaseModel):
    """A declared test."""

    __test__ = False

    title: str
    timeout: int | None = None
    tags: list[str] = Field(default_factory=list)
    expect_failure: bool = False


class SuiteSchema(BaseModel):
    """A registered suite."""

    name: str
    description: str
    tags: list[str]
    overrides: dict[str, int | None]
    tests: list[TestCaseSchema]


class TimeoutOverrides(BaseModel):
    """Per-run timeout overrides in milliseconds. 0 disables a scope."""

    global_timeout: int | None = Field(None, ge=0, description="Run-wide budget")
    test_timeout: int | None = Field(None, ge=0, description="Per-test budget")
    action_timeout: int | None = Field(None, ge=0, description="Per-action budget")
    navigation_timeout: int | None = Field(None, ge=0, description="Per-navigation budget")
    expect_timeout: int | None = Field(None, ge=0, description="Per-assertion budget")


class SuiteRunRequest(BaseModel):
    """Request to run a suite."""

    suite: str = Field(..., description="Registered suite name")
    grep: str | None = Field(None, description="Only run tests whose title contains this")
    tag: str | None = Field(None, description="Only run tests carrying this tag")
    browser: str = Field(default="chromium", description="Browser type")
    headless: bool = Field(default=True, description="Run in headless mode")
    workers: int | None = Field(None, ge=1, le=16, description="Tests running at once")
    timeouts: TimeoutOverrides = Field(default_factory=TimeoutOverrides)

    model_config = {"json_schema_extra": {"example": {
        "suite": "timeouts",
        "grep": "Expect",
        "browser": "chromium",
        "headless": True,
        "workers": 1,
        "timeouts": {"expect_timeout": 10000}
    }}}


class SoftFailureSchema(BaseModel):
    """A recorded soft assertion failure."""

    message: str
    expected: Any = None
    actual: Any = None
    scope: str | None = None
    timeout_ms: int | None = None
    predicate: str | None = None


class TestResultSchema(BaseModel):
    """Result of a single test."""

    __test__ = False

    test_id: str
    title: str
    status: ExecutionStatus
    duration_ms: float
    error_message: str | None = None
    error_type: str | None = None
    failed_scope: str | None = None
    unsatisfied_predicate: str | None = None
    soft_failures: list[SoftFailureSchema] = Field(default_factory=list)
    expect_failure: bool = False
    page_url: str | None = None


class RunResponse(BaseModel):
    """Response for a suite run."""

    run_id: str
    suite: str
    status: ExecutionStatus
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float
    passed: int
    failed: int
    timed_out: int
    skipped: int
    total: int
    test_results: list[TestResultSchema]
    error_message: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)
