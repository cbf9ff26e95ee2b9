"""
Campus Placement Portal - Main Application

FastAPI backend with:
- MongoDB for users, placement records and training programs
- JWT authentication with role-based and ownership authorization
- Aggregation-based analytics for the admin dashboard
- OpenAI-compatible chatbot for career guidance

Run: uvicorn campus_portal.main:app --reload
"""

import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database
from pymongo.errors import PyMongoError

from campus_portal import __version__
from campus_portal.api.routes import api_router
from campus_portal.core.config import Settings, get_settings
from campus_portal.core.errors import register_exception_handlers
from campus_portal.core.logging_config import setup_logging
from campus_portal.db.mongodb import create_mongo_client, init_mongo_indexes, test_mongo_connection
from campus_portal.services.chatbot_client import Available, Chatbot, build_chatbot

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    chatbot: Optional[Chatbot] = None,
    clock: Optional[Callable] = None,
) -> FastAPI:
    """
    Build the application.

    The app owns its Mongo client and chatbot capability; tests pass their
    own database, chatbot and clock.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Campus Placement Portal",
        description="""
    Placement and training portal for a college placement cell.

    ## Features
    - **Authentication**: JWT-based auth for students, faculty, placement officers and admins
    - **Users**: Profiles, department/year directories, admin account management
    - **Placements**: Placement records with selection rounds and officer verification
    - **Training**: Programs with capacity-checked enrollment, progress, certificates and feedback
    - **Analytics**: Dashboard and period analytics built on MongoDB aggregations
    - **Chatbot**: Career guidance assistant
    """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    mongo_client = None
    if database is None:
        mongo_client = create_mongo_client(settings)
        database = mongo_client[settings.mongodb_db]

    app.state.settings = settings
    app.state.mongo_client = mongo_client
    app.state.db = database
    app.state.chatbot = chatbot if chatbot is not None else build_chatbot(settings)
    if clock is not None:
        app.state.clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, development=settings.is_development)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    @app.on_event("startup")
    async def startup_event():
        """Initialize MongoDB indexes on startup."""
        try:
            init_mongo_indexes(app.state.db)
        except PyMongoError as e:
            logger.warning(f"MongoDB index initialization failed: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.mongo_client is not None:
            app.state.mongo_client.close()

    @app.get("/health", tags=["Health"])
    def health_check():
        """Detailed health check."""
        mongo_ok = app.state.mongo_client is None or test_mongo_connection(app.state.mongo_client)
        return {
            "status": "healthy" if mongo_ok else "degraded",
            "mongodb": "connected" if mongo_ok else "disconnected",
            "chatbot": "configured" if isinstance(app.state.chatbot, Available) else "disabled",
            "environment": settings.environment,
        }

    logger.info(f"Campus Placement Portal {__version__} ready ({settings.environment})")
    return app


app = create_app()
