"""
Suite listing endpoints.
"""

from fastapi import APIRouter, HTTPException

from autowait.scenarios import SUITES, list_suites
from autowait.schemas.execution import SuiteSchema

router = APIRouter()


@router.get("", response_model=list[SuiteSchema])
async def get_suites():
    """
    List registered suites and their tests.
    """
    return [SuiteSchema(**suite.to_dict()) for suite in list_suites()]


@router.get("/{name}", response_model=SuiteSchema)
async def get_suite_detail(name: str):
    """
    Get one suite by name.
    """
    if name not in SUITES:
        raise HTTPException(status_code=404, detail=f"Suite {name} not found")
    return SuiteSchema(**SUITES[name].to_dict())
