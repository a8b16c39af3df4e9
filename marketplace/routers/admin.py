"""
Admin Report Endpoints for the Contractor Marketplace
GET /admin/best-profession?start&end        - top-earning contractor profession
GET /admin/best-clients?start&end&limit     - clients who paid the most
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.schemas import BestClientResponse, BestProfessionResponse, ErrorResponse
from marketplace.auth import current_profile
from marketplace.domain.models import ProfileContext
from marketplace.services import reports

router = APIRouter(prefix="/admin", tags=["admin"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse, "description": "No paid jobs in the window"},
    500: {"model": ErrorResponse},
}


@router.get("/best-profession", response_model=BestProfessionResponse, responses=_ERRORS)
async def best_profession(
    start: Optional[str] = Query(None, description="ISO-8601 date or datetime"),
    end: Optional[str] = Query(None, description="ISO-8601 date or datetime, inclusive"),
    profile: ProfileContext = Depends(current_profile),
):
    window = reports.parse_window(start, end)
    best = await asyncio.to_thread(reports.best_profession, *window)
    return BestProfessionResponse(profession=best.key, total_earned=best.total)


@router.get("/best-clients", response_model=List[BestClientResponse], responses=_ERRORS)
async def best_clients(
    start: Optional[str] = Query(None, description="ISO-8601 date or datetime"),
    end: Optional[str] = Query(None, description="ISO-8601 date or datetime, inclusive"),
    limit: Optional[str] = Query(None, description="Number of clients, default 2"),
    profile: ProfileContext = Depends(current_profile),
):
    window = reports.parse_window(start, end)
    count = reports.parse_limit(limit)
    rows = await asyncio.to_thread(reports.best_clients, *window, count)
    return [BestClientResponse(id=r.key, full_name=r.label, paid=r.total) for r in rows]
