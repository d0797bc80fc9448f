"""Application-level exception types for deskhand."""

from __future__ import annotations

from pydantic import ValidationError


class DeskhandError(Exception):
    """Base exception for deskhand."""


class ConfigurationError(DeskhandError):
    """Base exception for configuration and startup validation errors."""


class UnknownProviderError(ConfigurationError):
    """Raised when a backend is requested under an unrecognized provider name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown AI provider: {name}")
        self.name = name


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""


class TaskValidationError(DeskhandError):
    """Base exception for rejected task input."""


class WorkspaceEscapeError(TaskValidationError):
    """Raised when a path resolves outside the workspace root."""

    def __init__(self, path: str) -> None:
        super().__init__(f"path escapes workspace: {path}")
        self.path = path


class EnvelopeError(DeskhandError):
    """Raised when an inbound channel message cannot be understood."""


class GenerationFailedError(DeskhandError):
    """Raised by pipelines when a backend reports an unsuccessful generation."""


class LaunchError(DeskhandError):
    """Raised when an application, file or URL cannot be opened."""


def describe_validation_error(exc: ValidationError) -> str:
    """Render pydantic validation errors as one short line."""
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "value"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "invalid input"
