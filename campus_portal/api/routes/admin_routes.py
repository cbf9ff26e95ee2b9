"""
Admin Routes (admin only)

GET /admin/dashboard - Headline numbers across users, placements and trainings
GET /admin/analytics/users - Registration analytics for a period
GET /admin/analytics/placements - Placement analytics for a period
GET /admin/analytics/trainings - Training analytics for a period
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from campus_portal.api.deps import get_analytics_service, get_placement_service
from campus_portal.core.policy import authorize, require_role
from campus_portal.schemas.schemas import (
    AnalyticsPeriod, ApiResponse, Department, Industry, PlacementStatus, UserRole
)
from campus_portal.services.analytics_service import AnalyticsService
from campus_portal.services.placement_service import PlacementService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(authorize(require_role(UserRole.admin)))],
)


@router.get("/dashboard", response_model=ApiResponse, response_model_exclude_none=True)
def dashboard(analytics: AnalyticsService = Depends(get_analytics_service)):
    return ApiResponse(data=analytics.dashboard())


@router.get("/analytics/users", response_model=ApiResponse, response_model_exclude_none=True)
def user_analytics(
    period: AnalyticsPeriod = Query(AnalyticsPeriod.month),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return ApiResponse(data=analytics.user_analytics(period.value))


@router.get("/analytics/placements", response_model=ApiResponse, response_model_exclude_none=True)
def placement_analytics(
    period: AnalyticsPeriod = Query(AnalyticsPeriod.month),
    status: Optional[PlacementStatus] = Query(None),
    industry: Optional[Industry] = Query(None),
    department: Optional[Department] = Query(None),
    year: Optional[int] = Query(None, ge=1, le=4),
    analytics: AnalyticsService = Depends(get_analytics_service),
    placements: PlacementService = Depends(get_placement_service),
):
    filters = placements.build_filter(
        status=status.value if status else None,
        industry=industry.value if industry else None,
        department=department.value if department else None,
        year=year,
    )
    return ApiResponse(data=analytics.placement_analytics(period.value, filters))


@router.get("/analytics/trainings", response_model=ApiResponse, response_model_exclude_none=True)
def training_analytics(
    period: AnalyticsPeriod = Query(AnalyticsPeriod.month),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return ApiResponse(data=analytics.training_analytics(period.value))
