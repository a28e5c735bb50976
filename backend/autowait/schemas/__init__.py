"""
Pydantic schemas for API request/response.
"""

from autowait.schemas.execution import (
    RunResponse,
    SoftFailureSchema,
    SuiteRunRequest,
    SuiteSchema,
    TestCaseSchema,
    TestResultSchema,
    TimeoutOverrides,
)

__all__ = [
    "RunResponse",
    "SoftFailureSchema",
    "SuiteRunRequest",
    "SuiteSchema",
    "TestCaseSchema",
    "TestResultSchema",
    "TimeoutOverrides",
]
