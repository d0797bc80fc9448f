"""Small naming and time helpers shared by operations and pipelines."""

from __future__ import annotations

import re
import time
from datetime import UTC, datetime

_SLUG_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def slugify(text: str) -> str:
    """Replace every non-alphanumeric character with ``_`` and lowercase."""
    return _SLUG_RE.sub("_", text).lower()


def millis() -> int:
    return int(time.time() * 1000)


def local_timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
