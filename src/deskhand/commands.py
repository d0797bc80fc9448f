"""Verb parameters given on the command line."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

_STRUCTURED_PREFIXES = ("[", "{")


@dataclass(frozen=True)
class VerbArguments:
    params: dict[str, Any]
    stray: list[str]


def decode_value(raw: str) -> Any:
    """Decode JSON arrays and objects.

    Scalars stay strings: the verb's input model coerces them to the field
    type, so ``filename=1.50`` keeps its text while ``sections=3`` still
    validates as an int.
    """
    if not raw.startswith(_STRUCTURED_PREFIXES):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_verb_arguments(tokens: Sequence[str]) -> VerbArguments:
    """Collect ``name=value``, ``--name=value``, ``--name value`` and bare ``--flag`` tokens."""
    params: dict[str, Any] = {}
    stray: list[str] = []
    pending: str | None = None

    for token in tokens:
        is_option = token.startswith("--")
        if pending is not None:
            params[pending] = True if is_option else decode_value(token)
            pending = None
            if not is_option:
                continue

        name, sep, value = token.removeprefix("--").partition("=")
        if not name:
            stray.append(token)
        elif sep:
            params[name] = decode_value(value)
        elif is_option:
            pending = name
        else:
            stray.append(token)

    if pending is not None:
        params[pending] = True
    return VerbArguments(params=params, stray=stray)
