from meeting_relay.services.llm.base import ChatProvider, LLMProviderError
from meeting_relay.services.llm.openai_provider import OpenAIProvider

__all__ = [
    "ChatProvider",
    "LLMProviderError",
    "OpenAIProvider",
]
