"""Retention management routes."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..dependencies import RetentionSweeperDep

router = APIRouter(prefix="/storage", tags=["storage"])


class KindBreakdown(BaseModel):
    resource_kind: str
    attempted: int
    expired: int
    deleted: int
    missing: int = 0
    failed: int
    listing_error: Optional[str] = None


class SweepResponse(BaseModel):
    """Retention sweep outcome."""
    started_at: str
    elapsed_seconds: float
    attempted: int
    expired: int
    deleted: int
    missing: int = 0
    failed: int
    kinds: List[KindBreakdown]
    failures: List[Dict[str, Any]]


class RetentionStatus(BaseModel):
    """Sweeper state and configuration."""
    state: str
    running: bool
    window: Dict[str, int]
    last_report: Optional[SweepResponse] = None


@router.get("/retention", response_model=RetentionStatus)
async def retention_status(sweeper: RetentionSweeperDep) -> RetentionStatus:
    """Current sweeper state, retention window and last sweep report."""
    return RetentionStatus(**sweeper.status())


@router.post("/retention/sweep", response_model=SweepResponse)
async def run_retention_sweep(sweeper: RetentionSweeperDep) -> SweepResponse:
    """
    Run a sweep now.

    Per-object failures are reported in the body, not as an error status.
    Returns 409 if a sweep is already in progress.
    """
    report = await sweeper.run_sweep()
    if report is None:
        raise HTTPException(status_code=409, detail="Retention sweep already in progress")
    return SweepResponse(**report.to_dict())
