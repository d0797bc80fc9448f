"""Text-generation backends."""

from deskhand.backends.base import GenerationResult, HttpBackend, ResearchBackend, TextBackend
from deskhand.backends.factory import make_backend, make_research_backend
from deskhand.backends.gemini import GeminiBackend
from deskhand.backends.ollama import OllamaBackend
from deskhand.backends.perplexity import PerplexityBackend

__all__ = [
    "GeminiBackend",
    "GenerationResult",
    "HttpBackend",
    "OllamaBackend",
    "PerplexityBackend",
    "ResearchBackend",
    "TextBackend",
    "make_backend",
    "make_research_backend",
]
