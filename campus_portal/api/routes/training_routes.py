"""
Training Routes

GET /training - List training programs with filters
GET /training/featured - Featured programs
GET /training/{id} - Get one program
POST /training - Create program (faculty or admin)
PUT /training/{id} - Update program (creator or admin)
DELETE /training/{id} - Delete program without enrollments (creator or admin)
POST /training/{id}/enroll - Enroll a student (the student themselves, or admin)
PUT /training/{id}/progress - Record progress (the enrolled student, the creator or admin)
POST /training/{id}/feedback - Submit feedback once (enrolled student)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from campus_portal.api.deps import get_page, get_training_service, get_user_service
from campus_portal.core.auth import Identity, get_current_identity
from campus_portal.core.errors import NotFoundError
from campus_portal.core.policy import (
    PolicyContext, any_of, authorize, enforce, require_role, require_self_or_admin, training_creator
)
from campus_portal.db.mongodb import get_database
from campus_portal.schemas.schemas import (
    ApiResponse, EnrollRequest, FeedbackCreate, ProgressUpdate, TrainingCategory, TrainingCreate,
    TrainingLevel, TrainingStatus, TrainingType, TrainingUpdate, UserRole
)
from campus_portal.services.mongo_service import Page, to_object_id
from campus_portal.services.training_service import TrainingService
from campus_portal.services.user_service import UserService

router = APIRouter(prefix="/training", tags=["Training"])

faculty_only = require_role(UserRole.faculty)
creator_or_admin = require_self_or_admin(
    training_creator(), "Access denied. You can only modify training programs you created."
)


@router.get("", response_model=ApiResponse, response_model_exclude_none=True)
def list_trainings(
    category: Optional[TrainingCategory] = Query(None),
    level: Optional[TrainingLevel] = Query(None),
    type: Optional[TrainingType] = Query(None),
    status: Optional[TrainingStatus] = Query(None),
    is_featured: Optional[bool] = Query(None),
    page: Page = Depends(get_page),
    service: TrainingService = Depends(get_training_service),
):
    """List training programs. Public."""
    trainings, pagination = service.list(
        page,
        category=category.value if category else None,
        level=level.value if level else None,
        type=type.value if type else None,
        status=status.value if status else None,
        is_featured=is_featured,
    )
    return ApiResponse(data={"trainings": trainings, "pagination": pagination})


@router.get("/featured", response_model=ApiResponse, response_model_exclude_none=True)
def featured_trainings(
    limit: int = Query(6, ge=1, le=20),
    service: TrainingService = Depends(get_training_service),
):
    return ApiResponse(data={"trainings": service.featured(limit)})


@router.get("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def get_training(id: str, service: TrainingService = Depends(get_training_service)):
    return ApiResponse(data={"training": service.get(id)})


@router.post("", response_model=ApiResponse, response_model_exclude_none=True, status_code=201)
def create_training(
    request: TrainingCreate,
    identity: Identity = Depends(authorize(faculty_only)),
    service: TrainingService = Depends(get_training_service),
):
    training = service.create(request, identity)
    return ApiResponse(message="Training program created successfully", data={"training": training})


@router.put("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def update_training(
    id: str,
    request: TrainingUpdate,
    identity: Identity = Depends(authorize(faculty_only, creator_or_admin)),
    service: TrainingService = Depends(get_training_service),
):
    training = service.update(id, request, identity)
    return ApiResponse(message="Training program updated successfully", data={"training": training})


@router.delete("/{id}", response_model=ApiResponse, response_model_exclude_none=True)
def delete_training(
    id: str,
    identity: Identity = Depends(authorize(faculty_only, creator_or_admin)),
    service: TrainingService = Depends(get_training_service),
):
    service.delete(id, identity)
    return ApiResponse(message="Training program deleted successfully")


@router.post("/{id}/enroll", response_model=ApiResponse, response_model_exclude_none=True)
def enroll(
    id: str,
    request: EnrollRequest,
    identity: Identity = Depends(get_current_identity),
    db: Database = Depends(get_database),
    users: UserService = Depends(get_user_service),
    service: TrainingService = Depends(get_training_service),
):
    """
    Enroll the student identified by student_id.

    Students may only enroll themselves; admins may enroll any student.
    """
    student = users.find_student(request.student_id.strip())
    enforce(
        PolicyContext(identity, db, {"id": id}, body=request),
        require_self_or_admin(
            lambda ctx: str(student["_id"]) if student else None,
            "Access denied. You can only enroll yourself.",
        ),
    )
    if student is None:
        raise NotFoundError("Student not found")

    enrollment = service.enroll(id, student["_id"])
    return ApiResponse(message="Successfully enrolled in training program", data={"enrollment": enrollment})


@router.put("/{id}/progress", response_model=ApiResponse, response_model_exclude_none=True)
def update_progress(
    id: str,
    request: ProgressUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Database = Depends(get_database),
    service: TrainingService = Depends(get_training_service),
):
    """
    Record progress on an enrollment.

    Without "student" the caller's own enrollment is updated. Admins and the
    program's creator may name another student.
    """
    target = request.student or identity.id
    enforce(
        PolicyContext(identity, db, {"id": id}, body=request),
        any_of(
            require_self_or_admin(
                lambda ctx: target,
                "Access denied. You can only update your own progress.",
            ),
            creator_or_admin,
        ),
    )
    enrollment = service.record_progress(
        id, to_object_id(target, "Student"), request.progress, request.status
    )
    return ApiResponse(message="Progress updated successfully", data={"enrollment": enrollment})


@router.post("/{id}/feedback", response_model=ApiResponse, response_model_exclude_none=True)
def submit_feedback(
    id: str,
    request: FeedbackCreate,
    identity: Identity = Depends(get_current_identity),
    service: TrainingService = Depends(get_training_service),
):
    feedback = service.submit_feedback(id, identity.object_id, request)
    return ApiResponse(message="Feedback submitted successfully", data={"feedback": feedback})
