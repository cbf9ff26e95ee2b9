"""
Shared FastAPI dependencies: services bound to the app's database,
settings, the chatbot capability and pagination.
"""

from fastapi import Depends, Query, Request
from pymongo.database import Database

from campus_portal.core.config import Settings
from campus_portal.db.mongodb import get_database
from campus_portal.services.analytics_service import AnalyticsService
from campus_portal.services.chatbot_client import Chatbot
from campus_portal.services.mongo_service import Page
from campus_portal.services.placement_service import PlacementService
from campus_portal.services.training_service import TrainingService
from campus_portal.services.user_service import UserService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_chatbot(request: Request) -> Chatbot:
    return request.app.state.chatbot


def get_page(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> Page:
    return Page(page=page, limit=limit)


def get_user_service(
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
) -> UserService:
    return UserService(db, settings.bcrypt_rounds)


def get_placement_service(db: Database = Depends(get_database)) -> PlacementService:
    return PlacementService(db)


def get_training_service(db: Database = Depends(get_database)) -> TrainingService:
    return TrainingService(db)


def get_analytics_service(request: Request, db: Database = Depends(get_database)) -> AnalyticsService:
    clock = getattr(request.app.state, "clock", None)
    return AnalyticsService(db, clock) if clock else AnalyticsService(db)
