"""
Authentication Routes

POST /auth/register - Register new user (role-specific fields)
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
PUT /auth/password - Change own password
"""

from fastapi import APIRouter, Depends

from campus_portal.api.deps import get_app_settings, get_user_service
from campus_portal.core.auth import Identity, get_current_identity
from campus_portal.core.config import Settings
from campus_portal.core.security import create_access_token
from campus_portal.schemas.schemas import ApiResponse, LoginRequest, PasswordChange, RegisterRequest
from campus_portal.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_for(user: dict, settings: Settings) -> str:
    return create_access_token(data={"sub": user["id"], "role": user["role"]}, settings=settings)


@router.post("/register", response_model=ApiResponse, response_model_exclude_none=True, status_code=201)
def register(
    request: RegisterRequest,
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Register a new user account.

    Students must send student_id, department and year; faculty must send
    department. Returns a token so the client is logged in straight away.
    """
    user = service.register(request, allow_privileged=settings.allow_privileged_registration)
    return ApiResponse(
        message="User registered successfully",
        data={"token": _token_for(user, settings), "user": user},
    )


@router.post("/login", response_model=ApiResponse, response_model_exclude_none=True)
def login(
    request: LoginRequest,
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    user = service.authenticate_credentials(request.email, request.password)
    return ApiResponse(
        message="Login successful",
        data={"token": _token_for(user, settings), "user": user},
    )


@router.get("/me", response_model=ApiResponse, response_model_exclude_none=True)
def get_me(
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
):
    """Get current authenticated user's info."""
    return ApiResponse(data={"user": service.get(identity.id)})


@router.put("/password", response_model=ApiResponse, response_model_exclude_none=True)
def change_password(
    request: PasswordChange,
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
):
    service.change_password(identity.id, request)
    return ApiResponse(message="Password updated successfully")
