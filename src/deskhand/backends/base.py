"""Text-generation backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from deskhand.config import BackendConfig, ProviderConfigStore
from deskhand.errors import ApiKeyNotConfiguredError

# No timeout: a hung provider keeps only its own task pending.
DEFAULT_TIMEOUT_SECONDS: float | None = None


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation call.

    Failures carry a human-readable diagnostic in ``text``; callers check
    ``success`` before treating ``text`` as content.
    """

    success: bool
    text: str

    @classmethod
    def ok(cls, text: str) -> GenerationResult:
        return cls(success=True, text=text)

    @classmethod
    def failure(cls, text: str) -> GenerationResult:
        return cls(success=False, text=text)


class TextBackend(ABC):
    """Pluggable text-generation capability.

    Contract:
    - generate() never raises; transport, status and payload problems come
      back as ``GenerationResult(success=False, ...)``.
    """

    name: str = "base"

    @abstractmethod
    async def generate(self, prompt: str) -> GenerationResult:
        """Produce a completion for the prompt."""


class ResearchBackend(TextBackend):
    """Backend that can also answer open-ended research questions at length."""

    @abstractmethod
    async def research(self, topic: str) -> GenerationResult:
        """Produce a long-form answer for the topic."""


class MalformedPayloadError(ValueError):
    """Raised by payload extractors when the provider response lacks text."""


@dataclass(frozen=True)
class PreparedRequest:
    url: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


class HttpBackend(TextBackend):
    """Shared request/response handling for HTTP JSON providers."""

    label: str = "Base"
    requires_api_key: bool = False

    def __init__(
        self,
        config: ProviderConfigStore,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._config = config
        self._client = client
        self._timeout_seconds = timeout_seconds

    @property
    def settings(self) -> BackendConfig:
        return self._config.get(self.name)

    async def generate(self, prompt: str) -> GenerationResult:
        return await self._complete(prompt)

    @abstractmethod
    def build_request(self, prompt: str, settings: BackendConfig) -> PreparedRequest:
        """Translate a prompt into the provider's request shape."""

    @abstractmethod
    def extract_text(self, data: dict[str, Any]) -> str:
        """Pull the generated text out of a successful response body."""

    def extract_error(self, data: Any) -> str | None:
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
        return None

    def _check_configured(self, settings: BackendConfig) -> None:
        if self.requires_api_key and not settings.api_key:
            raise ApiKeyNotConfiguredError(f"{self.label} API key not configured")

    async def _complete(self, prompt: str) -> GenerationResult:
        settings = self.settings
        try:
            self._check_configured(settings)
        except ApiKeyNotConfiguredError as exc:
            return GenerationResult.failure(str(exc))

        logger.info("backend.call.start provider={} chars={}", self.name, len(prompt))
        try:
            response = await self._send(self.build_request(prompt, settings))
        except (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError) as exc:
            # ValueError covers header values httpx cannot encode, e.g. a key pasted with a zero-width space
            logger.warning("backend.call.error provider={} error={!r}", self.name, exc)
            return GenerationResult.failure(f"Error calling {self.label} API: {str(exc) or repr(exc)}")

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            detail = self.extract_error(data) or f"Error calling {self.label} API (HTTP {response.status_code})"
            logger.warning("backend.call.status provider={} status={}", self.name, response.status_code)
            return GenerationResult.failure(detail)

        if not isinstance(data, dict):
            return GenerationResult.failure(f"{self.label} API returned a malformed payload")
        try:
            text = self.extract_text(data)
        except (MalformedPayloadError, KeyError, IndexError, TypeError):
            return GenerationResult.failure(f"{self.label} API returned a malformed payload")

        logger.info("backend.call.end provider={} chars={}", self.name, len(text))
        return GenerationResult.ok(text)

    async def _send(self, request: PreparedRequest) -> httpx.Response:
        if self._client is not None:
            return await self._post(self._client, request)
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await self._post(client, request)

    @staticmethod
    async def _post(client: httpx.AsyncClient, request: PreparedRequest) -> httpx.Response:
        return await client.post(
            request.url,
            json=request.payload,
            headers={"Content-Type": "application/json", **request.headers},
            params=request.params or None,
        )
