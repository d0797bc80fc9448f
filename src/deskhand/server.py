"""FastAPI control panel and WebSocket endpoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from deskhand.config import PROVIDER_NAMES
from deskhand.context import AgentContext
from deskhand.errors import LaunchError, WorkspaceEscapeError
from deskhand.operations import build_router
from deskhand.session import Session


class ProviderUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(default=None, alias="apiKey")
    api_url: str | None = Field(default=None, alias="apiUrl")
    model: str | None = None


class ConfigUpdate(BaseModel):
    gemini: ProviderUpdate | None = None
    ollama: ProviderUpdate | None = None
    perplexity: ProviderUpdate | None = None


def create_app(context: AgentContext) -> FastAPI:
    """Build the HTTP/WebSocket application around one agent context."""

    router = build_router(context)
    sessions: set[Session] = set()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await context.store.ensure_dir()
        if not context.scheduler.running:
            context.scheduler.start()
        logger.info("server.start workspace={}", context.workspace)
        try:
            yield
        finally:
            for session in list(sessions):
                session.close()
            if context.scheduler.running:
                context.scheduler.shutdown(wait=False)
            logger.info("server.stop")

    app = FastAPI(title="deskhand", lifespan=lifespan)
    app.state.context = context
    app.state.router = router

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        session = Session(websocket.send_json, context, router)
        sessions.add(session)
        await session.open()
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000))
                raw = frame.get("text")
                session.receive(raw if raw is not None else frame.get("bytes") or b"")
        except WebSocketDisconnect:
            logger.info("ws.disconnect session={}", session.id)
        finally:
            session.close()
            sessions.discard(session)

    @app.get("/status")
    async def status() -> dict[str, object]:
        return {"status": "running", "connected": bool(sessions), "workspace": str(context.workspace)}

    @app.get("/api/config")
    async def get_config() -> dict[str, dict[str, str | None]]:
        return context.config.public_view()

    @app.post("/api/config")
    async def update_config(update: ConfigUpdate) -> dict[str, bool]:
        for name in PROVIDER_NAMES:
            changes = getattr(update, name)
            if changes is None:
                continue
            context.config.update(name, **changes.model_dump(exclude_none=True))
        return {"success": True}

    @app.get("/files")
    async def list_files() -> dict[str, object]:
        try:
            entries = await context.store.list()
        except OSError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"files": [entry.to_dict() for entry in entries]}

    @app.get("/file/{filename:path}")
    async def read_file(filename: str) -> dict[str, str]:
        try:
            content = await context.store.read(filename)
        except WorkspaceEscapeError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except FileNotFoundError as exc:
            raise HTTPException(status_code=404, detail=f"file not found: {filename}") from exc
        except (OSError, UnicodeError) as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"content": content}

    @app.get("/open-workspace")
    async def open_workspace() -> dict[str, bool]:
        try:
            await context.launcher.open(str(context.workspace))
        except LaunchError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"success": True}

    @app.get("/open-file/{filename:path}")
    async def open_file(filename: str) -> dict[str, bool]:
        try:
            path = context.store.resolve(filename)
            await context.launcher.open(str(path))
        except WorkspaceEscapeError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except LaunchError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"success": True}

    return app
