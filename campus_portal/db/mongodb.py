"""
MongoDB Connection Utility

MongoDB stores every portal entity:
- users: identities (students, faculty, admins, placement officers)
- placements: one placement record per student application
- trainings: training programs with embedded enrollments and feedback

The client is created once by the application factory and kept on
app.state; request handlers reach the database through get_database().
"""
import logging

from fastapi import Request
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from campus_portal.core.config import Settings

logger = logging.getLogger(__name__)

# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "placements": "placements",
    "trainings": "trainings",
}


def create_mongo_client(settings: Settings) -> MongoClient:
    """Create a MongoDB client (connection pooling handled internally by pymongo)."""
    return MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=5000)


def get_database(request: Request) -> Database:
    """FastAPI dependency - the database owned by the running app."""
    return request.app.state.db


def test_mongo_connection(client: MongoClient) -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        # ping command checks connection
        client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"MongoDB connection failed: {e}")
        return False


def init_mongo_indexes(db: Database) -> None:
    """
    Create indexes for uniqueness and query performance.
    Call this once during app startup.
    """
    users = db[COLLECTIONS["users"]]
    users.create_index("email", unique=True)
    # Sparse so that identities without a student_id never collide
    users.create_index("student_id", unique=True, sparse=True)
    users.create_index([("role", ASCENDING), ("department", ASCENDING), ("year", ASCENDING)])

    placements = db[COLLECTIONS["placements"]]
    placements.create_index("student")
    placements.create_index([("company.name", ASCENDING), ("status", ASCENDING)])
    placements.create_index([("package.ctc", DESCENDING)])
    placements.create_index("created_at")

    trainings = db[COLLECTIONS["trainings"]]
    trainings.create_index([("category", ASCENDING), ("level", ASCENDING), ("status", ASCENDING)])
    trainings.create_index("schedule.start_date")
    trainings.create_index("enrollments.student")

    logger.info("MongoDB indexes created successfully")
