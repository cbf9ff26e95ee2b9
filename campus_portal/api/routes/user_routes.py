"""
User Routes

GET /users - List users with filters (admin)
GET /users/stats/overview - User statistics (admin)
GET /users/students/department/{department} - Students of a department (faculty, placement officer, admin)
GET /users/students/year/{year} - Students of a year (faculty, placement officer, admin)
GET /users/{id} - Get profile (self or admin)
PUT /users/{id} - Update profile (self or admin)
DELETE /users/{id} - Delete user (admin, never self)
PUT /users/{id}/status - Activate/deactivate (admin, never self)
PUT /users/{id}/role - Change role (admin, never self)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from campus_portal.api.deps import get_analytics_service, get_page, get_user_service
from campus_portal.core.auth import Identity
from campus_portal.core.policy import (
    authorize, forbid_self, path_param, require_role, require_self_or_admin
)
from campus_portal.schemas.schemas import (
    ApiResponse, Department, UserRole, UserRoleUpdate, UserStatusUpdate, UserUpdate
)
from campus_portal.services.analytics_service import AnalyticsService
from campus_portal.services.mongo_service import Page
from campus_portal.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

admin_only = require_role(UserRole.admin)
staff_only = require_role(UserRole.faculty, UserRole.placement_officer)
self_or_admin = require_self_or_admin(path_param("id"))


@router.get("", response_model=ApiResponse, response_model_exclude_none=True)
def list_users(
    role: Optional[UserRole] = Query(None),
    department: Optional[Department] = Query(None),
    year: Optional[int] = Query(None, ge=1, le=4),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: Page = Depends(get_page),
    identity: Identity = Depends(authorize(admin_only)),
    service: UserService = Depends(get_user_service),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """List all users with filters, pagination and role counts."""
    query = service.build_filter(
        role=role.value if role else None,
        department=department.value if department else None,
        year=year,
        is_active=is_active,
        search=search,
    )
    users, pagination = service.list(query, page)
    return ApiResponse(data={
        "users": users,
        "pagination": pagination,
        "stats": analytics.users_by_role(query),
    })


@router.get("/stats/overview", response_model=ApiResponse, response_model_exclude_none=True)
def user_stats(
    identity: Identity = Depends(authorize(admin_only)),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return ApiResponse(data=analytics.user_overview())


@router.get("/students/department/{department}", response_model=ApiResponse, response_model_exclude_none=True)
def students_by_department(
    department: Department,
    year: Optional[int] = Query(None, ge=1, le=4),
    page: Page = Depends(get_page),
    identity: Identity = Depends(authorize(staff_only)),
    service: UserService = Depends(get_user_service),
):
    students, pagination = service.list_students(page, department=department.value, year=year)
    return ApiResponse(data={"students": students, "pagination": pagination})


@router.get("/students/year/{year}", response_model=ApiResponse, response_model_exclude_none=True)
def students_by_year(
    year: int = Path(..., ge=1, le=4),
    department: Optional[Department] = Query(None),
    page: Page = Depends(get_page),
    identity: Identity = Depends(authorize(staff_only)),
    service: UserService = Depends(get_user_service),
):
    students, pagination = service.list_students(
        page, department=department.value if department else None, year=year
    )
    return ApiResponse(data={"students": students, "pagination": pagination})


@router.get("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def get_user(
    id: str,
    identity: Identity = Depends(authorize(self_or_admin)),
    service: UserService = Depends(get_user_service),
):
    return ApiResponse(data={"user": service.get(id)})


@router.put("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def update_user(
    id: str,
    request: UserUpdate,
    identity: Identity = Depends(authorize(self_or_admin)),
    service: UserService = Depends(get_user_service),
):
    user = service.update_profile(id, request)
    logger.info(f"Profile {id} updated by {identity.email}")
    return ApiResponse(message="User updated successfully", data={"user": user})


@router.delete("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def delete_user(
    id: str,
    identity: Identity = Depends(authorize(
        admin_only,
        forbid_self(path_param("id"), "You cannot delete your own account"),
    )),
    service: UserService = Depends(get_user_service),
):
    service.delete(id)
    logger.info(f"User {id} deleted by {identity.email}")
    return ApiResponse(message="User deleted successfully")


@router.put("/{id}/status", response_model=ApiResponse, response_model_exclude_none=True)
def update_user_status(
    id: str,
    request: UserStatusUpdate,
    identity: Identity = Depends(authorize(
        admin_only,
        forbid_self(path_param("id"), "You cannot change your own account status"),
    )),
    service: UserService = Depends(get_user_service),
):
    user = service.set_status(id, request.is_active)
    state = "activated" if request.is_active else "deactivated"
    logger.info(f"User {id} {state} by {identity.email}")
    return ApiResponse(message=f"User {state} successfully", data={"user": user})


@router.put("/{id}/role", response_model=ApiResponse, response_model_exclude_none=True)
def update_user_role(
    id: str,
    request: UserRoleUpdate,
    identity: Identity = Depends(authorize(
        admin_only,
        forbid_self(path_param("id"), "You cannot change your own role"),
    )),
    service: UserService = Depends(get_user_service),
):
    user = service.set_role(id, request.role)
    logger.info(f"User {id} role changed to {request.role} by {identity.email}")
    return ApiResponse(message="User role updated successfully", data={"user": user})
