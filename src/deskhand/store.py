"""Workspace-confined artifact storage."""

from __future__ import annotations

import builtins
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

import aiofiles
import aiofiles.os
from loguru import logger

from deskhand.errors import WorkspaceEscapeError


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: Path
    size: int
    is_directory: bool
    modified: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path),
            "size": self.size,
            "isDirectory": self.is_directory,
            "modified": self.modified.isoformat(),
        }


class ArtifactStore(Protocol):
    """Persistence capability used by operations and pipelines."""

    @property
    def root(self) -> Path: ...

    def resolve(self, path: str | Path) -> Path: ...

    async def write(self, path: str | Path, content: str) -> Path: ...

    async def read(self, path: str | Path) -> str: ...

    async def list(self, directory: str | Path = ".") -> builtins.list[FileEntry]: ...

    async def ensure_dir(self, path: str | Path = ".") -> Path: ...


class WorkspaceStore:
    """Filesystem store rooted at the workspace directory.

    Every path is resolved against the root and rejected when it lands outside
    of it. Filesystem errors propagate unchanged.
    """

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str | Path) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self._root / candidate
        resolved = candidate.resolve()
        if not resolved.is_relative_to(self._root):
            raise WorkspaceEscapeError(str(path))
        return resolved

    async def write(self, path: str | Path, content: str) -> Path:
        target = self.resolve(path)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        async with aiofiles.open(target, "w", encoding="utf-8") as handle:
            await handle.write(content)
        logger.info("store.write path={} chars={}", target, len(content))
        return target

    async def read(self, path: str | Path) -> str:
        target = self.resolve(path)
        async with aiofiles.open(target, encoding="utf-8") as handle:
            return await handle.read()

    async def list(self, directory: str | Path = ".") -> builtins.list[FileEntry]:
        base = self.resolve(directory)
        entries: list[FileEntry] = []
        for name in sorted(await aiofiles.os.listdir(base)):
            entry_path = base / name
            stat = await aiofiles.os.stat(entry_path)
            entries.append(
                FileEntry(
                    name=name,
                    path=entry_path,
                    size=stat.st_size,
                    is_directory=await aiofiles.os.path.isdir(entry_path),
                    modified=datetime.fromtimestamp(stat.st_mtime, UTC),
                )
            )
        return entries

    async def ensure_dir(self, path: str | Path = ".") -> Path:
        target = self.resolve(path)
        await aiofiles.os.makedirs(target, exist_ok=True)
        return target
