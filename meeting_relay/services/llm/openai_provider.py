from __future__ import annotations

import json
from typing import Generator

import requests

from meeting_relay.services.llm.base import ChatProvider, LLMProviderError


class OpenAIProvider(ChatProvider):
    """Chat provider for OpenAI and OpenAI-compatible APIs."""

    def __init__(
        self, api_key: str, model: str, base_url: str = "https://api.openai.com"
    ) -> None:
        super().__init__(logger_name="relay.llm.openai")
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")

    def stream_chat(
        self,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: int = 300,
        timeout: int = 120,
    ) -> Generator[str, None, None]:
        request_body = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True,
        }

        try:
            response = requests.post(
                f"{self._base_url}/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=timeout,
                stream=True,
            )
        except requests.RequestException as exc:
            raise LLMProviderError("Failed to reach OpenAI") from exc

        if response.status_code != 200:
            raise LLMProviderError(f"OpenAI error: {response.status_code}")

        try:
            for line in response.iter_lines():
                if not line:
                    continue
                line_str = line.decode("utf-8") if isinstance(line, bytes) else line
                if not line_str.startswith("data: "):
                    continue
                data_str = line_str[6:]
                if data_str == "[DONE]":
                    break
                try:
                    data = json.loads(data_str)
                except json.JSONDecodeError:
                    continue
                choices = data.get("choices") or [{}]
                if content := choices[0].get("delta", {}).get("content"):
                    yield content
        except requests.RequestException as exc:
            raise LLMProviderError("OpenAI stream interrupted") from exc
        finally:
            response.close()
