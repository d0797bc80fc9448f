"""deskhand - desktop actions and AI-generated files for a remote assistant UI."""

from deskhand.backends import GenerationResult, TextBackend, make_backend
from deskhand.context import AgentContext, build_context
from deskhand.parser import ArtifactDescriptor, parse_artifact
from deskhand.router import CommandRouter, Task
from deskhand.session import Session

__version__ = "0.1.0"

__all__ = [
    "AgentContext",
    "ArtifactDescriptor",
    "CommandRouter",
    "GenerationResult",
    "Session",
    "Task",
    "TextBackend",
    "build_context",
    "make_backend",
    "parse_artifact",
]
