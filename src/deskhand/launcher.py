"""Open applications, files and URLs with the platform opener."""

from __future__ import annotations

import asyncio
import shutil
import sys
from urllib import parse as urllib_parse

from loguru import logger

from deskhand.errors import LaunchError

SEARCH_URL = "https://www.google.com/search?q={query}"


def search_url(query: str) -> str:
    return SEARCH_URL.format(query=urllib_parse.quote_plus(query))


def opener_command(target: str, platform: str | None = None) -> list[str]:
    """Build the command line that opens ``target`` on the given platform."""
    platform = platform or sys.platform
    if platform == "darwin":
        return ["open", target]
    if platform == "win32":
        return ["cmd", "/c", "start", "", target]
    return ["xdg-open", target]


class Launcher:
    """Asynchronous wrapper around ``open`` / ``xdg-open`` / ``start``."""

    async def open(self, target: str) -> None:
        target = target.strip()
        if not target:
            raise LaunchError("nothing to open")

        command = opener_command(target)
        if shutil.which(command[0]) is None:
            raise LaunchError(f"opener not available: {command[0]}")

        logger.info("launcher.open target={}", target)
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
        if process.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise LaunchError(f"could not open {target}: {detail or f'exit={process.returncode}'}")
