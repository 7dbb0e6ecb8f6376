"""Chat service for AI questions about relayed sessions and transcripts."""

import json
import logging
from typing import Generator, Optional

from meeting_relay.config import ConfigurationError
from meeting_relay.services.llm import ChatProvider, LLMProviderError

SYSTEM_PROMPT = (
    "You are a helpful assistant analyzing meeting session data and transcripts. "
    "You have access to the following data:{context}\n\n"
    "Use this data to answer questions accurately. If the data doesn't contain "
    "information to answer a question, say so politely."
)


class ChatService:
    """Builds a grounded prompt from client-supplied data and streams the answer.

    The client sends the sessions and transcripts it is looking at; nothing is
    read from the record store here.
    """

    def __init__(
        self,
        provider: Optional[ChatProvider],
        *,
        temperature: float = 0.7,
        max_tokens: int = 300,
    ) -> None:
        self._provider = provider
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = logging.getLogger("relay.chat")

    @property
    def available(self) -> bool:
        return self._provider is not None

    @staticmethod
    def _transcript_line(transcript: dict) -> Optional[str]:
        data = transcript.get("data")
        if not isinstance(data, dict):
            return None
        speaker = data.get("speaker_name") or "Unknown"
        transcription = data.get("transcription")
        text = ""
        if isinstance(transcription, dict):
            text = transcription.get("transcript") or ""
        text = text or data.get("transcript") or ""
        if not text:
            return None
        return f"- {speaker}: {text}"

    def build_context(self, sessions: list[dict], transcripts: list[dict]) -> str:
        context = ""
        if sessions:
            context += "\n\nSession Data:\n"
            for session in sessions:
                context += f"- Session ID: {session.get('id')}\n"
                context += f"  Status: {session.get('status')}\n"
                context += f"  Created: {session.get('created_at')}\n"
        if transcripts:
            context += "\n\nTranscript Data:\n"
            for transcript in transcripts:
                line = self._transcript_line(transcript)
                if line:
                    context += f"{line}\n"
        return context

    def build_messages(
        self,
        message: str,
        chat_history: list[dict],
        sessions: list[dict],
        transcripts: list[dict],
    ) -> list[dict]:
        messages = [
            {
                "role": "system",
                "content": SYSTEM_PROMPT.format(context=self.build_context(sessions, transcripts)),
            }
        ]
        for entry in chat_history:
            messages.append({"role": entry.get("role"), "content": entry.get("content")})
        messages.append({"role": "user", "content": message})
        return messages

    def stream_reply(self, messages: list[dict]) -> Generator[str, None, None]:
        """Yield SSE frames for the assistant's answer, ending with ``[DONE]``."""
        if self._provider is None:
            raise ConfigurationError("Missing required setting: OPENAI_API_KEY")

        self._logger.debug("Chat prompt: %s", json.dumps(messages, indent=2))
        try:
            for token in self._provider.stream_chat(
                messages, temperature=self._temperature, max_tokens=self._max_tokens
            ):
                yield f"data: {json.dumps({'content': token})}\n\n"
        except LLMProviderError as exc:
            self._logger.error("Chat stream failed: %s", exc)
            yield f"data: {json.dumps({'error': 'Stream error'})}\n\n"
            return
        except Exception:
            self._logger.exception("Chat stream error")
            yield f"data: {json.dumps({'error': 'Stream error'})}\n\n"
            return
        yield "data: [DONE]\n\n"
