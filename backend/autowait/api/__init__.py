"""
API routes package.
"""

from fastapi import APIRouter

from autowait.api.routes import execution, health, suites

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(suites.router, prefix="/suites", tags=["Suites"])
api_router.include_router(execution.router, prefix="/execution", tags=["Execution"])
