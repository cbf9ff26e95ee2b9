"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from campus_portal.api.routes.auth_routes import router as auth_router
from campus_portal.api.routes.user_routes import router as user_router
from campus_portal.api.routes.placement_routes import router as placement_router
from campus_portal.api.routes.training_routes import router as training_router
from campus_portal.api.routes.admin_routes import router as admin_router
from campus_portal.api.routes.chatbot_routes import router as chatbot_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(placement_router)
api_router.include_router(training_router)
api_router.include_router(admin_router)
api_router.include_router(chatbot_router)
