"""
Suite execution endpoints.
"""

from contextlib import AsyncExitStack
from typing import Any, AsyncContextManager, Callable

import structlog
from fastapi import APIRouter, Depends, HTTPException

from autowait.config import settings
from autowait.core.driver import PageSource
from autowait.core.executor import RunResult, TestExecutor, describe_config
from autowait.core.playwright_wrapper import BrowserOptions, BrowserType, create_browser
from autowait.core.timeouts import TimeoutConfig
from autowait.scenarios import SUITES
from autowait.schemas.execution import RunResponse, SuiteRunRequest

logger = structlog.get_logger()

router = APIRouter()

SessionFactory = Callable[[BrowserOptions], AsyncContextManager[PageSource]]

# In-memory execution history (replace with database in production)
_execution_history: dict[str, dict[str, Any]] = {}


def get_session_factory() -> SessionFactory:
    """Browser sessions for runs; overridden in tests."""
    return create_browser


def _result_to_response(result: dict[str, Any]) -> RunResponse:
    """Convert a stored run result to API response."""
    return RunResponse(**result)


@router.post("/run", response_model=RunResponse)
async def run_suite(
    request: SuiteRunRequest,
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """
    Run a registered suite and return its results.

    Timeout overrides apply to this run only and win over the configured
    defaults and suite-level overrides.
    """
    if request.suite not in SUITES:
        raise HTTPException(status_code=404, detail=f"Suite {request.suite} not found")
    try:
        browser_type = BrowserType(request.browser)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unsupported browser: {request.browser}")

    suite = SUITES[request.suite]
    overrides = request.timeouts.model_dump()
    config = TimeoutConfig.from_settings(settings)

    options = BrowserOptions(
        browser_type=browser_type,
        headless=request.headless,
        slow_mo=settings.playwright_slow_mo,
    )

    workers = request.workers or settings.workers
    logger.info("run_requested", suite=suite.name, grep=request.grep, workers=workers)

    async with AsyncExitStack() as stack:
        try:
            session = await stack.enter_async_context(session_factory(options))
        except Exception as e:
            logger.exception(
                "browser_launch_failed", browser=browser_type.value, error=str(e)
            )
            effective = config.merged(**suite.overrides).merged(**overrides)
            result = RunResult.errored(
                suite.name,
                f"Browser launch failed: {e}",
                describe_config(effective, workers),
            )
        else:
            executor = TestExecutor(session, config, workers=workers)
            result = await executor.run(
                suite, grep=request.grep, tag=request.tag, overrides=overrides
            )

    stored = result.to_dict()
    _execution_history[result.run_id] = stored
    return _result_to_response(stored)


@router.get("/history", response_model=list[RunResponse])
async def list_runs(limit: int = 20):
    """
    Get execution history, newest first.
    """
    runs = sorted(
        _execution_history.values(), key=lambda r: r["started_at"], reverse=True
    )
    return [_result_to_response(r) for r in runs[:limit]]


@router.get("/{run_id}", response_model=RunResponse)
async def get_run(run_id: str):
    """
    Get details of a specific run.
    """
    if run_id not in _execution_history:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return _result_to_response(_execution_history[run_id])
