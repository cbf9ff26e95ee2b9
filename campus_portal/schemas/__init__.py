"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in schemas.py: enums, the response envelope and the
request bodies for auth, users, placements, training and the chatbot.
"""
