import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from meeting_relay.services.chat_service import ChatService


class ChatHistoryMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    chat_history: list[ChatHistoryMessage] = Field(default_factory=list, alias="chatHistory")
    session_data: list[dict] = Field(default_factory=list, alias="sessionData")
    transcripts: list[dict] = Field(default_factory=list)


def create_chat_router(chat_service: ChatService) -> APIRouter:
    router = APIRouter(tags=["chat"])
    logger = logging.getLogger("relay.api.chat")

    @router.post("/api/chat")
    def chat(payload: ChatRequest) -> StreamingResponse:
        if not chat_service.available:
            logger.error("Chat requested but OPENAI_API_KEY is not configured")
            raise HTTPException(status_code=500, detail="OpenAI API key not configured")
        if not payload.message.strip():
            raise HTTPException(status_code=400, detail="Message is required")

        messages = chat_service.build_messages(
            payload.message,
            [m.model_dump() for m in payload.chat_history],
            payload.session_data,
            payload.transcripts,
        )
        logger.info(
            "Chat request: history=%d sessions=%d transcripts=%d",
            len(payload.chat_history),
            len(payload.session_data),
            len(payload.transcripts),
        )
        return StreamingResponse(
            chat_service.stream_reply(messages),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    return router
