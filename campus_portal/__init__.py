"""
Campus Placement Portal
Placement and training portal for a college placement cell.

Architecture:
- MongoDB: users, placement records, training programs (with embedded enrollments)
- FastAPI: REST API with JWT auth, role-based and ownership authorization
- OpenAI-compatible API: career guidance chatbot only
"""

__version__ = "1.0.0"
