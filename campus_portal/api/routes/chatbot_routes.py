"""
Chatbot Routes

POST /chatbot/chat - Ask the career guidance assistant
GET /chatbot/health - Whether the assistant is configured
"""

import logging

from fastapi import APIRouter, Depends

from campus_portal.api.deps import get_chatbot
from campus_portal.schemas.schemas import ApiResponse, ChatRequest
from campus_portal.services.chatbot_client import FEATURES, Available, Chatbot, chat
from campus_portal.services.mongo_service import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chatbot", tags=["Chatbot"])


@router.post("/chat", response_model=ApiResponse, response_model_exclude_none=True)
def chat_message(request: ChatRequest, chatbot: Chatbot = Depends(get_chatbot)):
    reply = chat(chatbot, request.message, request.context, utcnow())
    return ApiResponse(data=reply)


@router.get("/health", response_model=ApiResponse, response_model_exclude_none=True)
def chatbot_health(chatbot: Chatbot = Depends(get_chatbot)):
    configured = isinstance(chatbot, Available)
    return ApiResponse(
        message="Chatbot service is running" if configured else "Chatbot service is disabled",
        data={"configured": configured, "features": FEATURES},
    )
