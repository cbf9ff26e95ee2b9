"""
Database module - MongoDB connection.
"""
from campus_portal.db.mongodb import COLLECTIONS, get_database, test_mongo_connection

__all__ = [
    "COLLECTIONS",
    "get_database",
    "test_mongo_connection",
]
