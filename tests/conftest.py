from __future__ import annotations

import asyncio
import builtins
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from deskhand.config import ProviderConfigStore, Settings
from deskhand.context import AgentContext
from deskhand.notify import Notification, Notifier
from deskhand.store import ArtifactStore, FileEntry, WorkspaceStore

ARTIFACT_REPLY = "FILE_TYPE: outline\nFILENAME: plan\nCONTENT:\nHello"
CHAT_REPLY = "Here is a short plan for your week."
RESEARCH_REPLY = "Quantum error correction protects logical qubits."


@dataclass
class FakeProviders:
    """Answers Gemini, Ollama and Perplexity requests from memory."""

    artifact_text: str = ARTIFACT_REPLY
    chat_text: str = CHAT_REPLY
    research_text: str = RESEARCH_REPLY
    status_code: int = 200
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": {"message": "upstream unavailable"}})

        body = json.loads(request.content)
        host = request.url.host
        if host == "api.perplexity.ai":
            return httpx.Response(200, json={"choices": [{"message": {"content": self.research_text}}]})
        if host == "localhost":
            return httpx.Response(200, json={"response": self._reply(body["prompt"])})
        prompt = body["contents"][0]["parts"][0]["text"]
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": self._reply(prompt)}]}}]})

    def _reply(self, prompt: str) -> str:
        return self.artifact_text if "FILE_TYPE:" in prompt else self.chat_text


@dataclass
class FakeLauncher:
    opened: list[str] = field(default_factory=list)
    error: Exception | None = None
    gate: asyncio.Event | None = None

    async def open(self, target: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.opened.append(target)


class RecordingStore:
    """In-memory store that remembers every write."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self.writes: list[tuple[str, str]] = []

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str | Path) -> Path:
        return self._root / path

    async def write(self, path: str | Path, content: str) -> Path:
        self.writes.append((str(path), content))
        return self.resolve(path)

    async def read(self, path: str | Path) -> str:
        for name, content in reversed(self.writes):
            if name == str(path):
                return content
        raise FileNotFoundError(str(path))

    async def list(self, directory: str | Path = ".") -> builtins.list[FileEntry]:
        return []

    async def ensure_dir(self, path: str | Path = ".") -> Path:
        return self.resolve(path)


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def notifications() -> list[Notification]:
    return []


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def make_context(
    workspace: Path,
    providers: FakeProviders,
    launcher: FakeLauncher,
    notifications: list[Notification],
) -> Callable[..., AgentContext]:
    def _make(
        *,
        store: ArtifactStore | None = None,
        gemini_api_key: str | None = "gemini-test-key",
        perplexity_api_key: str | None = "pplx-test-key",
    ) -> AgentContext:
        settings = Settings(
            _env_file=None,
            workspace_dir=workspace,
            default_provider="gemini",
            gemini_api_key=gemini_api_key,
            perplexity_api_key=perplexity_api_key,
        )
        notifier = Notifier()
        notifier.connect(notifications.append)
        return AgentContext(
            settings=settings,
            config=ProviderConfigStore(settings.provider_settings()),
            store=store or WorkspaceStore(workspace),
            notifier=notifier,
            launcher=launcher,
            scheduler=AsyncIOScheduler(),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(providers.handler)),
        )

    return _make


@pytest.fixture
def context(make_context: Callable[..., AgentContext]) -> AgentContext:
    return make_context()


@pytest.fixture
def recording_store(workspace: Path) -> RecordingStore:
    return RecordingStore(workspace)
