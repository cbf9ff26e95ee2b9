"""
Tests for the error envelope on unexpected failures.
"""

from fastapi.testclient import TestClient

from campus_portal.main import create_app
from campus_portal.services.chatbot_client import Unavailable


def failing_client(app):
    @app.get("/api/boom")
    def boom():
        raise RuntimeError("kaboom")

    return TestClient(app, raise_server_exceptions=False)


def test_unhandled_error_renders_envelope(app):
    response = failing_client(app).get("/api/boom")

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"success": False, "message": "kaboom"}
    assert "Traceback" not in response.text


def test_unhandled_error_message_hidden_in_production(settings, db):
    production = settings.model_copy(update={"environment": "production"})
    app = create_app(settings=production, database=db, chatbot=Unavailable("disabled in tests"))

    response = failing_client(app).get("/api/boom")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}
