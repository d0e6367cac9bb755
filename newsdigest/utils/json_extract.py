"""Lenient JSON extraction from free-text oracle responses."""

import json
import re
from typing import Optional, Union

# Tried in order after a plain json.loads; group 1 is the candidate when present.
_CANDIDATES = [
    re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```"),
    re.compile(r"\{[\s\S]*\}"),
    re.compile(r"\[[\s\S]*\]"),
]


def extract_json(text: Optional[str]) -> Optional[Union[dict, list]]:
    """
    Parse the JSON payload out of an oracle answer.

    Accepts bare JSON, a fenced code block, or an object/array surrounded
    by prose. Returns None when nothing parses.
    """
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for pattern in _CANDIDATES:
        match = pattern.search(text)
        if match is None:
            continue
        candidate = match.group(1) if pattern.groups else match.group(0)
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    return None


def extract_json_object(text: Optional[str]) -> Optional[dict]:
    data = extract_json(text)
    return data if isinstance(data, dict) else None
