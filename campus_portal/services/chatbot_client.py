"""
Chatbot client - career guidance over an OpenAI-compatible chat API.

The client is built once by the application factory and handed to routes
as a capability:
- Available(client): an API key is configured
- Unavailable(reason): no key; every chat gets the static fallback reply
"""
import logging
from dataclasses import dataclass
from typing import Union

from openai import APIConnectionError, APIError, APITimeoutError, OpenAI

from campus_portal.core.config import Settings
from campus_portal.core.errors import DependencyError
from campus_portal.schemas.schemas import ChatContext

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I'm currently unavailable. Please contact the placement office for "
    "assistance with your career guidance needs."
)
FALLBACK_NOTE = "Chatbot service is temporarily disabled"

CAREER_PROMPT = """You are a career guidance assistant for engineering students at an Indian college.
Help with placement preparation, resumes, interviews, company research and career paths.
Keep answers practical, encouraging and under 200 words."""

TRAINING_PROMPT = """You are a training advisor for engineering students.
Recommend skills, courses, certifications and study plans that improve placement readiness.
Keep answers practical and under 200 words."""

HIGHER_STUDIES_PROMPT = """You are a higher-studies counsellor for engineering students.
Help with choosing programs (MS, MTech, MBA), entrance exams (GRE, GATE, CAT, IELTS, TOEFL),
universities, scholarships and application timelines. Keep answers under 200 words."""

SYSTEM_PROMPTS = {
    ChatContext.general.value: CAREER_PROMPT,
    ChatContext.placement.value: CAREER_PROMPT,
    ChatContext.training.value: TRAINING_PROMPT,
    ChatContext.higher_studies.value: HIGHER_STUDIES_PROMPT,
}

FEATURES = [
    "Career guidance",
    "Placement preparation",
    "Training recommendations",
    "Higher studies counselling",
]


class ChatbotClient:
    """
    Wrapper for the chat completion API.
    """

    def __init__(self, client: OpenAI, model: str):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatbotClient":
        client = OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.openai_timeout,
        )
        return cls(client, settings.openai_model)

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 500) -> str:
        """
        Internal method to call the chat API.
        Returns raw text response.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content}
            ],
            max_tokens=max_tokens,
            temperature=0.7
        )
        return response.choices[0].message.content or ""

    def reply(self, message: str, context: str) -> str:
        system_prompt = SYSTEM_PROMPTS.get(context, CAREER_PROMPT)
        return self._call_api(system_prompt, message).strip()

    def test_connection(self) -> bool:
        """Test if the chat API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except APIError as e:
            logger.warning(f"Chatbot connection failed: {e}")
            return False


@dataclass(frozen=True)
class Available:
    client: ChatbotClient


@dataclass(frozen=True)
class Unavailable:
    reason: str


Chatbot = Union[Available, Unavailable]


def build_chatbot(settings: Settings) -> Chatbot:
    if not settings.chatbot_configured:
        logger.info("Chatbot disabled: OPENAI_API_KEY is not set")
        return Unavailable("OPENAI_API_KEY is not configured")
    return Available(ChatbotClient.from_settings(settings))


def fallback_reply(context: str, timestamp) -> dict:
    return {
        "message": FALLBACK_MESSAGE,
        "context": context,
        "timestamp": timestamp,
        "note": FALLBACK_NOTE,
    }


def chat(chatbot: Chatbot, message: str, context: str, timestamp) -> dict:
    """
    Answer a chat message.

    Unreachable backends degrade to the fallback reply; any other API
    failure is a DependencyError.
    """
    if isinstance(chatbot, Unavailable):
        return fallback_reply(context, timestamp)

    try:
        answer = chatbot.client.reply(message, context)
    except (APIConnectionError, APITimeoutError) as e:
        logger.warning(f"Chatbot backend unreachable: {e}")
        return fallback_reply(context, timestamp)
    except APIError as e:
        logger.error(f"Chatbot backend error: {e}")
        raise DependencyError("Failed to get response from chatbot")

    return {"message": answer, "context": context, "timestamp": timestamp}
