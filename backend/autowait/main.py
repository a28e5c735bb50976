"""
autowait - FastAPI Application

Runs the locator, auto-waiting and timeout suites on demand and keeps their
results.
"""

import logging

import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from autowait import __version__
from autowait.config import settings
from autowait.api import api_router
from autowait.core.timeouts import TimeoutConfig
from autowait.scenarios import SUITES, validate_suites


def configure_logging():
    """Configure structured logging."""
    logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: refuse to serve a broken suite registry, then log what is served
    Shutdown: nothing to release, browsers live only for one run
    """
    logger = structlog.get_logger()

    config = TimeoutConfig.from_settings(settings)
    test_counts = validate_suites(config)

    logger.info(
        "application_starting",
        version=__version__,
        environment=settings.app_env,
        suites=test_counts,
        test_timeout=config.test_timeout,
        expect_timeout=config.expect_timeout,
        workers=settings.workers,
    )

    yield

    logger.info("application_shutting_down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    configure_logging()

    app = FastAPI(
        title="autowait",
        description="""
## Locator, auto-waiting and timeout suites

- **Locators**: selectors, user-facing queries, chaining, has/has_text filters, nth
- **Auto-waiting**: actionability checks polled until the element is ready
- **Timeouts**: run, test, action, navigation and assertion scopes

### Quick Start

1. **List suites**:
   ```
   GET /api/v1/suites
   ```

2. **Run one**:
   ```
   POST /api/v1/execution/run
   {
     "suite": "timeouts",
     "timeouts": { "expect_timeout": 10000 }
   }
   ```

3. **View results**:
   ```
   GET /api/v1/execution/history
   ```
        """,
        version=__version__,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": "autowait",
            "version": __version__,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "api": "/api/v1",
            "suites": list(SUITES),
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger = structlog.get_logger()
        logger.exception("unhandled_exception", error=str(exc))

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.is_development else "An error occurred",
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "autowait.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
