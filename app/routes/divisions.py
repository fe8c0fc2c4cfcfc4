"""
Division listing for the join-team form's division picker.
"""

from typing import List

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool

from app.models.division import DivisionSummary
from app.services.storage import get_repositories

router = APIRouter(prefix="/api/divisions", tags=["Divisions"])


@router.get("", response_model=List[DivisionSummary])
async def list_divisions():
    """Names and codes only; boundaries and officer contacts stay private."""
    divisions = await run_in_threadpool(get_repositories().divisions.list_all)
    return [DivisionSummary(id=d.id, name=d.name, code=d.code) for d in divisions]
