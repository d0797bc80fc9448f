"""Command routing: verb registry and isolated dispatch."""

from __future__ import annotations

import builtins
import json
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from deskhand.errors import describe_validation_error

INVALID_COMMAND = "Invalid command type"

PARAM_PREVIEW_CHARS = 40

OperationHandler = Callable[[Any], Awaitable[Mapping[str, Any]]]


def summarize_params(params: Any, width: int = PARAM_PREVIEW_CHARS) -> str:
    """Render task params as ``name=<json>`` pairs, each value clipped to ``width``."""
    if not isinstance(params, Mapping):
        return f"<{type(params).__name__}>"
    rendered: list[str] = []
    for name, value in params.items():
        text = json.dumps(value, ensure_ascii=False, default=str)
        if len(text) > width:
            text = text[: max(width - 3, 0)] + "..."
        rendered.append(f"{name}={text}")
    return ", ".join(rendered)


@dataclass(frozen=True)
class Task:
    """One verb + params unit of work and the caller's correlation id."""

    verb: str
    params: Any = field(default_factory=dict)
    correlation_id: Any = None


@dataclass(frozen=True)
class OperationDescriptor:
    """Operation metadata and runtime handle."""

    name: str
    short_description: str
    model: type[BaseModel]
    handler: OperationHandler


class OperationRegistry:
    """Closed set of verbs the router accepts."""

    def __init__(self) -> None:
        self._operations: dict[str, OperationDescriptor] = {}

    def register(
        self,
        *,
        name: str,
        short_description: str,
        model: type[BaseModel],
    ) -> Callable[[OperationHandler], OperationHandler]:
        def decorator(handler: OperationHandler) -> OperationHandler:
            if name in self._operations:
                raise ValueError(f"Duplicate operation name: {name}")
            self._operations[name] = OperationDescriptor(
                name=name,
                short_description=short_description,
                model=model,
                handler=handler,
            )
            return handler

        return decorator

    def has(self, name: str) -> bool:
        return name in self._operations

    def get(self, name: str) -> OperationDescriptor | None:
        return self._operations.get(name)

    def descriptors(self) -> builtins.list[OperationDescriptor]:
        return sorted(self._operations.values(), key=lambda item: item.name)

    def names(self) -> builtins.list[str]:
        return sorted(self._operations)


class CommandRouter:
    """Validate a task, run its operation, and normalize the outcome.

    A failing operation never raises out of ``dispatch``; the error is reported
    in the result and the correlation id is always echoed as ``taskId``.
    """

    def __init__(self, registry: OperationRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    async def dispatch(self, task: Task) -> dict[str, Any]:
        descriptor = self._registry.get(task.verb) if task.verb else None
        if descriptor is None:
            logger.warning("command.unknown verb={!r} task={}", task.verb, task.correlation_id)
            return self._finish({"success": False, "error": INVALID_COMMAND}, task)

        try:
            params = descriptor.model.model_validate(task.params if task.params is not None else {})
        except ValidationError as exc:
            error = f"invalid parameters: {describe_validation_error(exc)}"
            logger.warning("command.invalid verb={} task={} error={}", task.verb, task.correlation_id, error)
            return self._finish({"success": False, "error": error}, task)

        self._log_call(task)
        start = time.monotonic()
        try:
            result: Mapping[str, Any] = await descriptor.handler(params)
        except Exception as exc:
            logger.exception("command.error verb={} task={}", task.verb, task.correlation_id)
            result = {"success": False, "error": str(exc) or exc.__class__.__name__}
        finally:
            duration = time.monotonic() - start
            elapsed_ms = duration * 1000
            logger.info("command.end verb={} task={} duration={:.3f}ms", task.verb, task.correlation_id, elapsed_ms)
        return self._finish(result, task)

    @staticmethod
    def _finish(result: Mapping[str, Any], task: Task) -> dict[str, Any]:
        payload = dict(result)
        payload["success"] = bool(payload.get("success", "error" not in payload))
        payload["taskId"] = task.correlation_id
        return payload

    @staticmethod
    def _log_call(task: Task) -> None:
        summary = summarize_params(task.params)
        logger.info("command.start verb={} task={} {{ {} }}", task.verb, task.correlation_id, summary)
