"""Configuration management for deskhand."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-pro:generateContent"
DEFAULT_OLLAMA_API_URL = "http://localhost:11434/api/generate"
DEFAULT_PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
PROVIDER_NAMES = ("gemini", "ollama", "perplexity")


def _default_workspace() -> Path:
    return Path.home() / "AI_Assistant_Workspace"


class BackendConfig(BaseModel):
    """Credential, endpoint and model for one text-generation provider."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = None
    api_url: str
    model: str | None = None


class ProviderSettings(BaseModel):
    """Immutable snapshot of every provider's configuration."""

    model_config = ConfigDict(frozen=True)

    gemini: BackendConfig
    ollama: BackendConfig
    perplexity: BackendConfig

    def get(self, provider: str) -> BackendConfig:
        if provider not in PROVIDER_NAMES:
            raise KeyError(provider)
        return getattr(self, provider)


class ProviderConfigStore:
    """Runtime-mutable provider configuration with copy-on-write updates.

    Readers take a snapshot; an update builds a new snapshot and swaps the
    reference, so a reader never observes a half-applied change.
    """

    def __init__(self, initial: ProviderSettings) -> None:
        self._current = initial

    def snapshot(self) -> ProviderSettings:
        return self._current

    def get(self, provider: str) -> BackendConfig:
        return self._current.get(provider)

    def update(self, provider: str, **changes: Any) -> BackendConfig:
        """Replace fields of one provider; empty values are ignored."""
        current = self._current
        base = current.get(provider)
        accepted = {key: value for key, value in changes.items() if key in BackendConfig.model_fields and value}
        if not accepted:
            return base
        updated = base.model_copy(update=accepted)
        self._current = current.model_copy(update={provider: updated})
        logger.info("config.update provider={} fields={}", provider, sorted(accepted))
        return updated

    def public_view(self) -> dict[str, dict[str, str | None]]:
        """Render the configuration with credentials masked."""
        snapshot = self._current
        view: dict[str, dict[str, str | None]] = {}
        for name in PROVIDER_NAMES:
            config = snapshot.get(name)
            view[name] = {
                "apiKey": "configured" if config.api_key else "not configured",
                "apiUrl": config.api_url,
                "model": config.model,
            }
        return view


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DESKHAND_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Control panel bind address")
    port: int = Field(default=3001, description="Control panel and WebSocket port")
    workspace_dir: Path = Field(default_factory=_default_workspace, description="Directory receiving artifacts")

    # Behaviour
    default_provider: str = Field(default="gemini", description="Backend used when a chat message names none")
    request_timeout_seconds: float | None = Field(default=None, description="Optional HTTP timeout for backend calls")
    log_level: str = Field(default="INFO", description="Log level")

    # Providers
    gemini_api_key: str | None = Field(default=None, description="Gemini API key")
    gemini_api_url: str = Field(default=DEFAULT_GEMINI_API_URL, description="Gemini generateContent endpoint")
    ollama_api_url: str = Field(default=DEFAULT_OLLAMA_API_URL, description="Ollama generate endpoint")
    ollama_model: str = Field(default="llama2", description="Ollama model name")
    perplexity_api_key: str | None = Field(default=None, description="Perplexity API key")
    perplexity_api_url: str = Field(default=DEFAULT_PERPLEXITY_API_URL, description="Perplexity chat endpoint")
    perplexity_model: str = Field(default="sonar-deep-research", description="Perplexity research model")

    def resolve_workspace(self) -> Path:
        return self.workspace_dir.expanduser().resolve()

    def provider_settings(self) -> ProviderSettings:
        return ProviderSettings(
            gemini=BackendConfig(api_key=self.gemini_api_key, api_url=self.gemini_api_url),
            ollama=BackendConfig(api_url=self.ollama_api_url, model=self.ollama_model),
            perplexity=BackendConfig(
                api_key=self.perplexity_api_key,
                api_url=self.perplexity_api_url,
                model=self.perplexity_model,
            ),
        )


def get_settings(workspace_dir: Path | None = None) -> Settings:
    """Get application settings.

    Args:
        workspace_dir: Optional workspace directory override

    Returns:
        Settings instance
    """
    if workspace_dir is None:
        return Settings()
    return Settings(workspace_dir=workspace_dir)
