"""Hosted Gemini backend."""

from __future__ import annotations

from typing import Any

from deskhand.backends.base import HttpBackend, MalformedPayloadError, PreparedRequest
from deskhand.config import BackendConfig

TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 2048


class GeminiBackend(HttpBackend):
    name = "gemini"
    label = "Gemini"
    requires_api_key = True

    def build_request(self, prompt: str, settings: BackendConfig) -> PreparedRequest:
        return PreparedRequest(
            url=settings.api_url,
            payload={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": TEMPERATURE, "maxOutputTokens": MAX_OUTPUT_TOKENS},
            },
            params={"key": settings.api_key or ""},
        )

    def extract_text(self, data: dict[str, Any]) -> str:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
        if not isinstance(text, str):
            raise MalformedPayloadError("candidate text is not a string")
        return text
