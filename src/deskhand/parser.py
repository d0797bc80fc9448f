"""Extract artifact descriptors from semi-structured model output."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from deskhand.utils import millis

DEFAULT_FILE_TYPE = "text"
DEFAULT_EXTENSION = ".txt"
PREVIEW_CHARS = 200

_FILE_TYPE_RE = re.compile(r"FILE_TYPE:[ \t]*(.*)")
_FILENAME_RE = re.compile(r"FILENAME:[ \t]*(.*)")
_CONTENT_RE = re.compile(r"CONTENT:(.*)", re.DOTALL)

FILE_PROMPT_TEMPLATE = """\
You are an AI assistant that helps users by creating files on their desktop.

USER REQUEST: {request}

Based on this request, please:
1. Determine what kind of file to create (article, outline, plan, etc.)
2. Generate appropriate content
3. Suggest a suitable filename
4. Format your response as follows:

FILE_TYPE: [type of file]
FILENAME: [suggested filename]
CONTENT:
[generated content]

Keep your explanations brief and focus on delivering a high-quality file.
"""


@dataclass(frozen=True)
class ArtifactDescriptor:
    """A named, typed content blob ready to be persisted."""

    file_type: str
    filename: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"fileType": self.file_type, "filename": self.filename, "content": self.content}


def build_file_prompt(request: str) -> str:
    """Wrap a user request in the instruction that asks for labeled sections."""
    return FILE_PROMPT_TEMPLATE.format(request=request)


def default_filename() -> str:
    return f"document_{millis()}{DEFAULT_EXTENSION}"


def ensure_extension(filename: str) -> str:
    if "." in filename:
        return filename
    return filename + DEFAULT_EXTENSION


def parse_artifact(text: Any) -> ArtifactDescriptor:
    """Parse ``FILE_TYPE`` / ``FILENAME`` / ``CONTENT`` sections.

    Never raises. Missing or empty labels fall back to defaults, and text with
    no ``CONTENT:`` label is used as the content in full.
    """
    raw = text if isinstance(text, str) else ("" if text is None else str(text))

    file_type = _label_value(_FILE_TYPE_RE, raw) or DEFAULT_FILE_TYPE
    filename = ensure_extension(_label_value(_FILENAME_RE, raw) or default_filename())

    content_match = _CONTENT_RE.search(raw)
    content = content_match.group(1).strip() if content_match else raw

    return ArtifactDescriptor(file_type=file_type, filename=filename, content=content)


def preview(content: str, *, limit: int = PREVIEW_CHARS) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "..."


def _label_value(pattern: re.Pattern[str], raw: str) -> str:
    match = pattern.search(raw)
    if match is None:
        return ""
    return match.group(1).strip()
