"""Generate → parse → persist → notify flows shared by chat and commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from deskhand.backends import ResearchBackend, TextBackend
from deskhand.errors import GenerationFailedError
from deskhand.notify import APP_TITLE, Notifier
from deskhand.parser import ArtifactDescriptor, build_file_prompt, parse_artifact, preview
from deskhand.store import ArtifactStore
from deskhand.utils import local_timestamp, millis, slugify


@dataclass(frozen=True)
class ArtifactRecord:
    """An artifact after it has been written to the workspace."""

    descriptor: ArtifactDescriptor
    path: Path

    @property
    def preview(self) -> str:
        return preview(self.descriptor.content)

    def file_details(self) -> dict[str, Any]:
        return {
            "type": self.descriptor.file_type,
            "name": self.descriptor.filename,
            "path": str(self.path),
            "preview": self.preview,
        }


@dataclass(frozen=True)
class ResearchRecord:
    topic: str
    content: str
    filename: str
    path: Path | None

    def file_details(self) -> dict[str, Any]:
        return {
            "type": "research",
            "name": self.filename,
            "path": str(self.path) if self.path is not None else None,
            "preview": preview(self.content),
        }


def research_filename(topic: str) -> str:
    return f"research_{slugify(topic)}_{millis()}.md"


def render_research(topic: str, content: str) -> str:
    return f"# Research: {topic}\n\n_Conducted on {local_timestamp()}_\n\n{content}"


class ArtifactPipeline:
    """Turn backend output into files inside the workspace."""

    def __init__(self, store: ArtifactStore, notifier: Notifier) -> None:
        self._store = store
        self._notifier = notifier

    async def create_from_request(self, request: str, backend: TextBackend) -> ArtifactRecord:
        result = await backend.generate(build_file_prompt(request))
        if not result.success:
            raise GenerationFailedError(result.text)

        descriptor = parse_artifact(result.text)
        path = await self._store.write(descriptor.filename, descriptor.content)
        logger.info("pipeline.artifact type={} name={} path={}", descriptor.file_type, descriptor.filename, path)
        self._notifier.notify(
            APP_TITLE,
            f"Created {descriptor.file_type} file: {descriptor.filename}\nLocation: {path}",
        )
        return ArtifactRecord(descriptor=descriptor, path=path)

    async def research(self, topic: str, backend: ResearchBackend, *, save: bool = True) -> ResearchRecord:
        result = await backend.research(topic)
        if not result.success:
            raise GenerationFailedError(result.text)

        filename = research_filename(topic)
        path: Path | None = None
        if save:
            path = await self._store.write(filename, render_research(topic, result.text))

        location = f"\nResults saved to: {path}" if path is not None else ""
        self._notifier.notify(APP_TITLE, f"Completed research on: {topic}{location}")
        return ResearchRecord(topic=topic, content=result.text, filename=filename, path=path)
