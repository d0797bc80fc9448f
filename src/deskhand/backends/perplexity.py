"""Perplexity research backend."""

from __future__ import annotations

from typing import Any

from loguru import logger

from deskhand.backends.base import (
    GenerationResult,
    HttpBackend,
    MalformedPayloadError,
    PreparedRequest,
    ResearchBackend,
)
from deskhand.config import BackendConfig

MAX_TOKENS = 1500


class PerplexityBackend(HttpBackend, ResearchBackend):
    name = "perplexity"
    label = "Perplexity"
    requires_api_key = True

    async def research(self, topic: str) -> GenerationResult:
        logger.info("backend.research topic={!r} model={}", topic, self.settings.model)
        return await self._complete(topic)

    def build_request(self, prompt: str, settings: BackendConfig) -> PreparedRequest:
        return PreparedRequest(
            url=settings.api_url,
            payload={
                "model": settings.model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": MAX_TOKENS,
            },
            headers={"Authorization": f"Bearer {settings.api_key}"},
        )

    def extract_text(self, data: dict[str, Any]) -> str:
        text = data["choices"][0]["message"]["content"]
        if not isinstance(text, str):
            raise MalformedPayloadError("message content is not a string")
        return text
