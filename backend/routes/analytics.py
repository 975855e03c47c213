"""
Routes for travel analytics and the yearly recap.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, Response

from backend.auth import CurrentUser, get_current_user
from backend.db import Database
from backend.dependencies import get_db
from backend.schemas import AnalyticsResponse, YearInTravelResponse
from backend.services import analytics

router = APIRouter()


@router.get("", response_model=AnalyticsResponse)
def get_analytics(
    scope: str = Query(default="personal"),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return analytics.get_analytics(db, user, scope)


@router.get("/export")
def export_analytics(
    scope: str = Query(default="personal"),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    report = analytics.get_analytics(db, user, scope)
    return Response(
        content=analytics.export_csv(report),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="remvana-analytics-{scope}.csv"'
        },
    )


@router.get("/year/{year}", response_model=YearInTravelResponse)
def year_in_travel(
    year: int = Path(..., ge=1900, le=2100),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return analytics.year_in_travel(db, user, year)
