"""Channel message envelopes: inbound parsing and outbound event builders."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from deskhand.errors import EnvelopeError, describe_validation_error
from deskhand.router import Task
from deskhand.utils import utc_timestamp

WELCOME_TEXT = "Connected to AI Desktop Assistant. How can I help you today?"
TYPING_TEXT = "Thinking..."


class Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatMessage(Envelope):
    type: Literal["chat"]
    message: str
    provider: str | None = None


class ResearchMessage(Envelope):
    type: Literal["research"]
    topic: str = Field(..., min_length=1)


class OpenFileMessage(Envelope):
    type: Literal["open_file"]
    filename: str = Field(..., min_length=1)


class CommandMessage(Envelope):
    type: Literal["command"]
    command: str = Field(default="", validation_alias=AliasChoices("command", "verb"))
    params: Any = None
    # Opaque correlation value, echoed back as received.
    task_id: Any = Field(default=None, validation_alias=AliasChoices("taskId", "task_id"))

    def to_task(self) -> Task:
        params = self.params if self.params is not None else {}
        return Task(verb=self.command, params=params, correlation_id=self.task_id)


InboundMessage = Annotated[
    ChatMessage | ResearchMessage | OpenFileMessage | CommandMessage,
    Field(discriminator="type"),
]
ENVELOPE_TYPES = frozenset({"chat", "research", "open_file", "command"})

_INBOUND = TypeAdapter(InboundMessage)


def parse_envelope(raw: str | bytes) -> ChatMessage | ResearchMessage | OpenFileMessage | CommandMessage:
    """Decode one channel frame.

    A ``type`` outside the envelope kinds is read as a bare command verb
    (``{"type": "create_file", "params": {...}, "taskId": "..."}``).
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise EnvelopeError(f"malformed message: {exc!s}") from exc
    if not isinstance(data, dict):
        raise EnvelopeError("malformed message: expected a JSON object")

    kind = data.get("type")
    if not isinstance(kind, str) or not kind.strip():
        raise EnvelopeError("malformed message: missing type")
    if kind not in ENVELOPE_TYPES:
        data = {"type": "command", "command": kind, "params": data.get("params"), "taskId": data.get("taskId")}

    try:
        return _INBOUND.validate_python(data)
    except ValidationError as exc:
        raise EnvelopeError(f"invalid {kind} message: {describe_validation_error(exc)}") from exc


def welcome() -> dict[str, Any]:
    return {"type": "welcome", "message": WELCOME_TEXT}


def typing() -> dict[str, Any]:
    return {"type": "typing", "message": TYPING_TEXT}


def chat_response(message: str) -> dict[str, Any]:
    return {"type": "chat_response", "message": message}


def file_created(message: str, file_details: dict[str, Any]) -> dict[str, Any]:
    return {"type": "file_created", "message": message, "fileDetails": file_details}


def research_completed(message: str, file_details: dict[str, Any]) -> dict[str, Any]:
    return {"type": "research_completed", "message": message, "fileDetails": file_details}


def command_result(result: dict[str, Any], *, workspace: str) -> dict[str, Any]:
    return {**result, "type": "command_result", "workspace": workspace, "timestamp": utc_timestamp()}


def error(message: str) -> dict[str, Any]:
    return {"type": "error", "error": message}
