"""
Tests for the chatbot routes with the backend disabled, stubbed or failing.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from openai import APIConnectionError, APIError

from campus_portal.main import create_app
from campus_portal.services.chatbot_client import (
    FALLBACK_MESSAGE, FALLBACK_NOTE, SYSTEM_PROMPTS, Available, ChatbotClient
)

REQUEST = httpx.Request("POST", "https://chat.example.test/v1/chat/completions")


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def openai_stub():
    return MagicMock()


@pytest.fixture
def live_client(settings, db, openai_stub):
    chatbot = Available(ChatbotClient(openai_stub, model="test-model"))
    return TestClient(create_app(settings=settings, database=db, chatbot=chatbot))


def test_disabled_chatbot_returns_fallback(client):
    response = client.post("/api/chatbot/chat", json={"message": "How do I prepare for interviews?"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["message"] == FALLBACK_MESSAGE
    assert data["note"] == FALLBACK_NOTE
    assert data["context"] == "general"
    assert data["timestamp"]


def test_reply_uses_context_prompt(live_client, openai_stub):
    openai_stub.chat.completions.create.return_value = completion("  Start with GATE previous papers. ")

    response = live_client.post(
        "/api/chatbot/chat", json={"message": "Should I take GATE?", "context": "higher-studies"}
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["message"] == "Start with GATE previous papers."
    assert data["context"] == "higher-studies"
    assert "note" not in data

    kwargs = openai_stub.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][0]["content"] == SYSTEM_PROMPTS["higher-studies"]
    assert kwargs["messages"][1]["content"] == "Should I take GATE?"


def test_unreachable_backend_falls_back(live_client, openai_stub):
    openai_stub.chat.completions.create.side_effect = APIConnectionError(request=REQUEST)

    response = live_client.post("/api/chatbot/chat", json={"message": "Hello"})
    assert response.status_code == 200
    assert response.json()["data"]["message"] == FALLBACK_MESSAGE


def test_backend_error_is_dependency_failure(live_client, openai_stub):
    openai_stub.chat.completions.create.side_effect = APIError("quota exceeded", REQUEST, body=None)

    response = live_client.post("/api/chatbot/chat", json={"message": "Hello"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to get response from chatbot"}


def test_message_validation(client):
    assert client.post("/api/chatbot/chat", json={"message": "   "}).status_code == 400
    assert client.post("/api/chatbot/chat", json={"message": "x" * 1001}).status_code == 400
    assert client.post("/api/chatbot/chat", json={"message": "hi", "context": "sports"}).status_code == 400


def test_health(client, live_client):
    disabled = client.get("/api/chatbot/health").json()
    assert disabled["data"]["configured"] is False
    assert "Career guidance" in disabled["data"]["features"]

    assert live_client.get("/api/chatbot/health").json()["data"]["configured"] is True
