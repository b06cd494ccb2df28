"""
Extract structured output from model text.

Every component that reads model output goes through these two helpers:

- ``strip_code_fences``: remove a wrapping triple-backtick fence with any
  language tag (``json``, ``html``, ``css``, ``js``, ``tsx`` ...).
- ``extract_json``: direct parse, then fenced parse, then first-``{`` to
  last-``}`` scan. Returns ``None`` when nothing parses; callers decide
  the fallback.
"""

from __future__ import annotations

import json
import re
from typing import Any

# ```lang\n ... \n``` anywhere in the text
_CODE_FENCE_RE = re.compile(r"```[\w.+-]*[ \t]*\n?(.*?)\n?[ \t]*```", re.DOTALL)

# Unterminated opening fence (model hit its token limit)
_OPEN_FENCE_RE = re.compile(r"^```[\w.+-]*[ \t]*\n?", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the trimmed text."""
    text = text.strip()
    match = _CODE_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    if text.startswith("```"):
        return _OPEN_FENCE_RE.sub("", text, count=1).strip()
    return text


def extract_json(text: str) -> dict[str, Any] | None:
    """Parse a JSON object out of model text, or return ``None``."""
    text = text.strip()
    if not text:
        return None

    for candidate in _candidates(text):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _candidates(text: str):
    yield text

    match = _CODE_FENCE_RE.search(text)
    if match:
        yield match.group(1).strip()

    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        yield text[start:end]
