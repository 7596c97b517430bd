"""
Best-effort JSON recovery for free-text model output.

Three stages, tried in order:
  1. strict parse of the whole text
  2. the body of the first ```json (or bare ```) fenced block
  3. the span between the first '{' and the last '}'
"""
import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class JSONRecoveryError(ValueError):
    pass


def parse_strict(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_fenced(text: str) -> Optional[Any]:
    match = _FENCE_RE.search(text or "")
    if not match:
        return None
    return parse_strict(match.group(1).strip())


def parse_brace_span(text: str) -> Optional[Any]:
    text = text or ""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return parse_strict(text[start:end + 1])


def recover_json(text: str) -> Any:
    for stage in (parse_strict, parse_fenced, parse_brace_span):
        data = stage(text)
        if data is not None:
            return data
    raise JSONRecoveryError("Failed to parse JSON response")
