from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generator


class LLMProviderError(RuntimeError):
    pass


class ChatProvider(ABC):
    """A chat-completions backend that can stream its answer."""

    def __init__(self, logger_name: str = "relay.llm") -> None:
        self._logger = logging.getLogger(logger_name)

    @abstractmethod
    def stream_chat(
        self,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: int = 300,
        timeout: int = 120,
    ) -> Generator[str, None, None]:
        """Stream a reply to ``messages``, yielding tokens as they arrive.

        Args:
            messages: Chat messages as ``{"role", "content"}`` dicts
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Upper bound on generated tokens
            timeout: Request timeout in seconds

        Raises:
            LLMProviderError: the backend could not be reached or refused
        """
        raise NotImplementedError
