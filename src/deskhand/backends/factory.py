"""Backend selection by provider name."""

from __future__ import annotations

import httpx

from deskhand.backends.base import DEFAULT_TIMEOUT_SECONDS, HttpBackend, ResearchBackend
from deskhand.backends.gemini import GeminiBackend
from deskhand.backends.ollama import OllamaBackend
from deskhand.backends.perplexity import PerplexityBackend
from deskhand.config import ProviderConfigStore
from deskhand.errors import UnknownProviderError

_BACKENDS: dict[str, type[HttpBackend]] = {
    "gemini": GeminiBackend,
    "ollama": OllamaBackend,
    "perplexity": PerplexityBackend,
}
RESEARCH_PROVIDER = "perplexity"


def make_backend(
    name: str,
    config: ProviderConfigStore,
    *,
    client: httpx.AsyncClient | None = None,
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
) -> HttpBackend:
    """Build the backend registered under ``name``; unknown names raise."""
    key = (name or "").strip().lower()
    backend_cls = _BACKENDS.get(key)
    if backend_cls is None:
        raise UnknownProviderError(name)
    return backend_cls(config, client=client, timeout_seconds=timeout_seconds)


def make_research_backend(
    config: ProviderConfigStore,
    *,
    client: httpx.AsyncClient | None = None,
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
) -> ResearchBackend:
    backend = make_backend(RESEARCH_PROVIDER, config, client=client, timeout_seconds=timeout_seconds)
    if not isinstance(backend, ResearchBackend):
        raise UnknownProviderError(RESEARCH_PROVIDER)
    return backend
