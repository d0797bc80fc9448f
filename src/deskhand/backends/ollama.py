"""Locally reachable Ollama backend."""

from __future__ import annotations

from typing import Any

from deskhand.backends.base import HttpBackend, MalformedPayloadError, PreparedRequest
from deskhand.config import BackendConfig


class OllamaBackend(HttpBackend):
    name = "ollama"
    label = "Ollama"

    def build_request(self, prompt: str, settings: BackendConfig) -> PreparedRequest:
        return PreparedRequest(
            url=settings.api_url,
            payload={"model": settings.model, "prompt": prompt, "stream": False},
        )

    def extract_text(self, data: dict[str, Any]) -> str:
        text = data.get("response")
        if not isinstance(text, str):
            raise MalformedPayloadError("missing response field")
        return text
