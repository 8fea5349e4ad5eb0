"""Pull structured JSON out of free-text model responses."""

from __future__ import annotations

import json
import re
from typing import Any

_QUOTED_RE = re.compile(r'"([^"]+)"')


def extract_json_array(content: str) -> list[Any]:
    """Parse the JSON array embedded in a model response.

    Tries, in order: the whole text, a ```json fenced block, and the
    substring between the first "[" and the last "]".

    Raises:
        json.JSONDecodeError: No JSON array could be parsed
    """
    if not content or not content.strip():
        raise json.JSONDecodeError("Empty content", content or "", 0)

    candidates = [content.strip()]
    fence = _extract_fenced_json(content)
    if fence:
        candidates.append(fence)
    start = content.find("[")
    end = content.rfind("]")
    if start != -1 and end > start:
        candidates.append(content[start : end + 1])

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, list):
            return value
    raise json.JSONDecodeError("No JSON array found", content, 0)


def extract_quoted_strings(content: str) -> list[str]:
    """Fallback heuristic: every double-quoted substring in the response."""
    return _QUOTED_RE.findall(content or "")


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```"):
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
