"""Explicitly passed collaborators for one running agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler

from deskhand.backends import ResearchBackend, TextBackend, make_backend, make_research_backend
from deskhand.config import ProviderConfigStore, Settings
from deskhand.launcher import Launcher
from deskhand.notify import Notifier
from deskhand.pipeline import ArtifactPipeline
from deskhand.store import ArtifactStore, WorkspaceStore


@dataclass
class AgentContext:
    """Everything operations and sessions need, passed in rather than global."""

    settings: Settings
    config: ProviderConfigStore
    store: ArtifactStore
    notifier: Notifier
    launcher: Launcher
    scheduler: BaseScheduler
    http_client: httpx.AsyncClient | None = None
    pipeline: ArtifactPipeline = field(init=False)

    def __post_init__(self) -> None:
        self.pipeline = ArtifactPipeline(self.store, self.notifier)

    @property
    def workspace(self) -> Path:
        return self.store.root

    def backend(self, name: str | None = None) -> TextBackend:
        """Resolve a backend by provider name; unknown names raise."""
        return make_backend(
            name or self.settings.default_provider,
            self.config,
            client=self.http_client,
            timeout_seconds=self.settings.request_timeout_seconds,
        )

    def research_backend(self) -> ResearchBackend:
        return make_research_backend(
            self.config,
            client=self.http_client,
            timeout_seconds=self.settings.request_timeout_seconds,
        )


def build_context(settings: Settings) -> AgentContext:
    return AgentContext(
        settings=settings,
        config=ProviderConfigStore(settings.provider_settings()),
        store=WorkspaceStore(settings.resolve_workspace()),
        notifier=Notifier(),
        launcher=Launcher(),
        scheduler=AsyncIOScheduler(),
    )
