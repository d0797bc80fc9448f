"""One duplex channel multiplexing many concurrent tasks."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from deskhand import protocol
from deskhand.context import AgentContext
from deskhand.errors import EnvelopeError, GenerationFailedError
from deskhand.protocol import ChatMessage, CommandMessage, OpenFileMessage, ResearchMessage
from deskhand.router import CommandRouter

SendEvent = Callable[[dict[str, Any]], Awaitable[None]]


class Session:
    """Process channel messages concurrently and tag every reply.

    Each inbound frame runs as its own asyncio task with no queue or limit.
    Replies carry a ``type`` and, for commands, the originating ``taskId``;
    replies from different tasks may arrive in any order.
    """

    def __init__(
        self,
        send: SendEvent,
        context: AgentContext,
        router: CommandRouter,
        *,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex[:8]
        self._send = send
        self._context = context
        self._router = router
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False
        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "chat": self._handle_chat,
            "research": self._handle_research,
            "open_file": self._handle_open_file,
            "command": self._handle_command,
        }
        missing = protocol.ENVELOPE_TYPES - self._handlers.keys()
        if missing:
            raise RuntimeError(f"no session handler for message types: {sorted(missing)}")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def outstanding(self) -> int:
        return len(self._tasks)

    async def open(self) -> None:
        logger.info("session.open id={}", self.id)
        await self._emit(protocol.welcome())

    def receive(self, raw: str | bytes) -> asyncio.Task[None]:
        """Schedule one inbound frame and return immediately."""
        task = asyncio.create_task(self._process(raw))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Stop emitting; tasks still in flight finish but their replies are dropped."""
        if self._closed:
            return
        self._closed = True
        logger.info("session.close id={} abandoned={}", self.id, len(self._tasks))

    async def _process(self, raw: str | bytes) -> None:
        with logger.contextualize(session=self.id):
            try:
                message = protocol.parse_envelope(raw)
            except EnvelopeError as exc:
                logger.warning("session.envelope.error error={}", exc)
                await self._emit(protocol.error(str(exc)))
                return

            try:
                await self._handlers[message.type](message)
            except Exception as exc:
                logger.exception("session.message.error type={}", message.type)
                await self._emit(protocol.error(str(exc) or exc.__class__.__name__))

    async def _handle_chat(self, message: ChatMessage) -> None:
        backend = self._context.backend(message.provider)
        await self._emit(protocol.typing())
        try:
            reply = await backend.generate(message.message)
            if not reply.success:
                raise GenerationFailedError(reply.text)
            await self._emit(protocol.chat_response(reply.text))

            record = await self._context.pipeline.create_from_request(message.message, backend)
        except Exception as exc:
            logger.exception("session.chat.error provider={}", backend.name)
            await self._emit(
                protocol.chat_response(
                    f"I'm sorry, I encountered an error while processing your request: {exc!s}. "
                    "Please check if the API keys are configured correctly."
                )
            )
            return

        descriptor = record.descriptor
        await self._emit(
            protocol.file_created(
                f"I've created a {descriptor.file_type} file called \"{descriptor.filename}\" for you based on "
                f"your request. The file is saved at: {record.path}",
                record.file_details(),
            )
        )

    async def _handle_research(self, message: ResearchMessage) -> None:
        await self._emit(protocol.typing())
        try:
            record = await self._context.pipeline.research(message.topic, self._context.research_backend())
        except Exception as exc:
            logger.exception("session.research.error topic={!r}", message.topic)
            await self._emit(
                protocol.chat_response(f"I'm sorry, I couldn't complete research on \"{message.topic}\": {exc!s}")
            )
            return

        await self._emit(
            protocol.research_completed(
                f"I've completed research on \"{message.topic}\". The results are saved at: {record.path}",
                record.file_details(),
            )
        )

    async def _handle_open_file(self, message: OpenFileMessage) -> None:
        try:
            path = self._context.store.resolve(message.filename)
            await self._context.launcher.open(str(path))
        except Exception as exc:
            logger.warning("session.open_file.error filename={!r} error={}", message.filename, exc)
            await self._emit(protocol.chat_response(f"I couldn't open the file: {exc!s}"))
            return
        await self._emit(protocol.chat_response(f"I've opened \"{message.filename}\" for you."))

    async def _handle_command(self, message: CommandMessage) -> None:
        result = await self._router.dispatch(message.to_task())
        await self._emit(protocol.command_result(result, workspace=str(self._context.workspace)))

    async def _emit(self, event: dict[str, Any]) -> None:
        if self._closed:
            logger.debug("session.emit.dropped id={} type={}", self.id, event.get("type"))
            return
        try:
            await self._send(event)
        except Exception as exc:
            logger.warning("session.emit.error id={} type={} error={!r}", self.id, event.get("type"), exc)
            self.close()
