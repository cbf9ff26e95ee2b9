"""
Placement Routes

GET /placements - List placement records with filters, pagination and stats
GET /placements/stats/overview - Placement statistics
GET /placements/student/{student_id} - Records of one student (self or admin)
GET /placements/{id} - Get one record
POST /placements - Create record (students for themselves, staff on a student's behalf)
PUT /placements/{id} - Update record (owner, admin or placement officer)
DELETE /placements/{id} - Delete record (owner or admin)
POST /placements/{id}/verify - Verify record (placement officer or admin)
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from campus_portal.api.deps import get_analytics_service, get_page, get_placement_service
from campus_portal.core.auth import Identity, get_current_identity
from campus_portal.core.policy import (
    PolicyContext, any_of, authorize, enforce, path_param, placement_owner,
    require_privileged_role, require_self_or_admin
)
from campus_portal.db.mongodb import get_database
from campus_portal.schemas.schemas import (
    ApiResponse, Department, Industry, PlacementCreate, PlacementStatus, PlacementUpdate, UserRole
)
from campus_portal.services.analytics_service import AnalyticsService
from campus_portal.services.mongo_service import Page
from campus_portal.services.placement_service import PlacementService

router = APIRouter(prefix="/placements", tags=["Placements"])

owner_or_admin = require_self_or_admin(
    placement_owner(), "Access denied. You can only modify your own placement records."
)
placement_officer = require_privileged_role(UserRole.placement_officer)


def _filed_for(ctx: PolicyContext) -> Optional[str]:
    return ctx.body.student or ctx.identity.id


@router.get("", response_model=ApiResponse, response_model_exclude_none=True)
def list_placements(
    status: Optional[PlacementStatus] = Query(None),
    industry: Optional[Industry] = Query(None),
    company: Optional[str] = Query(None, max_length=100),
    department: Optional[Department] = Query(None),
    year: Optional[int] = Query(None, ge=1, le=4),
    is_verified: Optional[bool] = Query(None),
    min_ctc: Optional[float] = Query(None, ge=0),
    max_ctc: Optional[float] = Query(None, ge=0),
    sort_by: Literal["created_at", "package.ctc", "timeline.applied_date"] = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    page: Page = Depends(get_page),
    service: PlacementService = Depends(get_placement_service),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """List placement records. Public."""
    query = service.build_filter(
        status=status.value if status else None,
        industry=industry.value if industry else None,
        company=company,
        department=department.value if department else None,
        year=year,
        is_verified=is_verified,
        min_ctc=min_ctc,
        max_ctc=max_ctc,
    )
    placements, pagination = service.list(query, page, sort_by=sort_by, descending=order == "desc")
    return ApiResponse(data={
        "placements": placements,
        "pagination": pagination,
        "stats": analytics.placement_summary(query),
    })


@router.get("/stats/overview", response_model=ApiResponse, response_model_exclude_none=True)
def placement_stats(analytics: AnalyticsService = Depends(get_analytics_service)):
    return ApiResponse(data=analytics.placement_overview())


@router.get("/student/{student_id}", response_model=ApiResponse, response_model_exclude_none=True)
def student_placements(
    student_id: str,
    identity: Identity = Depends(authorize(require_self_or_admin(path_param("student_id")))),
    service: PlacementService = Depends(get_placement_service),
):
    return ApiResponse(data={"placements": service.for_student(student_id)})


@router.get("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def get_placement(id: str, service: PlacementService = Depends(get_placement_service)):
    return ApiResponse(data={"placement": service.get(id)})


@router.post("", response_model=ApiResponse, response_model_exclude_none=True, status_code=201)
def create_placement(
    request: PlacementCreate,
    identity: Identity = Depends(get_current_identity),
    db: Database = Depends(get_database),
    service: PlacementService = Depends(get_placement_service),
):
    """Create a placement record. Staff may set "student" to file for someone else."""
    enforce(
        PolicyContext(identity, db, body=request),
        any_of(
            require_self_or_admin(_filed_for, "Access denied. You can only create your own placement records."),
            placement_officer,
        ),
    )
    placement = service.create(request, identity)
    return ApiResponse(message="Placement record created successfully", data={"placement": placement})


@router.put("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def update_placement(
    id: str,
    request: PlacementUpdate,
    identity: Identity = Depends(authorize(any_of(owner_or_admin, placement_officer))),
    service: PlacementService = Depends(get_placement_service),
):
    placement = service.update(id, request, identity)
    return ApiResponse(message="Placement record updated successfully", data={"placement": placement})


@router.delete("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def delete_placement(
    id: str,
    identity: Identity = Depends(authorize(owner_or_admin)),
    service: PlacementService = Depends(get_placement_service),
):
    service.delete(id, identity)
    return ApiResponse(message="Placement record deleted successfully")


@router.post("/{id}/verify", response_model=ApiResponse, response_model_exclude_none=True)
def verify_placement(
    id: str,
    identity: Identity = Depends(authorize(placement_officer)),
    service: PlacementService = Depends(get_placement_service),
):
    placement = service.verify(id, identity)
    return ApiResponse(message="Placement record verified successfully", data={"placement": placement})
