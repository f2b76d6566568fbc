#!filepath: src/jobscrabber_app/llm/normalizer.py
from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Optional

from jobscrabber_app.llm.errors import UnparseableResponseError

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}", "]"}


class ScanState(str, Enum):
    """Lexical state of the balance scanner."""

    SEARCHING = "searching"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


def transition(state: ScanState, ch: str) -> ScanState:
    """Next lexical state after reading ``ch``.

    Only quotes and backslashes move the state; nesting is tracked by the
    caller, and only while SEARCHING.
    """
    if state is ScanState.ESCAPED:
        return ScanState.IN_STRING
    if state is ScanState.IN_STRING:
        if ch == "\\":
            return ScanState.ESCAPED
        if ch == '"':
            return ScanState.SEARCHING
        return ScanState.IN_STRING
    if ch == '"':
        return ScanState.IN_STRING
    return ScanState.SEARCHING


def strip_code_fence(text: str) -> str:
    """Inner content of the first fenced block, or the text unchanged."""
    m = _FENCE_RE.search(text)
    return m.group(1) if m else text


def find_json_span(text: str) -> Optional[tuple[int, int]]:
    """Locate the first balanced JSON object or array.

    Whichever of ``{`` or ``[`` appears first decides the shape.

    Args:
        text: Working text.

    Returns:
        tuple[int, int] | None: ``(start, end)`` slice bounds, or None when no
        opener exists or the brackets never balance.

    Raises:
        ValueError: On a closer that does not match the innermost opener.
    """
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)

    state = ScanState.SEARCHING
    expected: list[str] = []
    for i in range(start, len(text)):
        ch = text[i]
        if state is ScanState.SEARCHING:
            if ch in _OPENERS:
                expected.append(_OPENERS[ch])
            elif ch in _CLOSERS:
                if not expected or expected[-1] != ch:
                    raise ValueError(f"unexpected {ch!r} at offset {i}")
                expected.pop()
                if not expected:
                    return start, i + 1
        state = transition(state, ch)
    return None


def extract_json(raw_text: str) -> Any:
    """Pull one JSON object or array out of an LLM completion.

    Handles markdown fences, prose before the value and trailing commentary,
    including commentary that contains braces of its own.

    Args:
        raw_text: Completion text.

    Returns:
        Any: The parsed dict or list.

    Raises:
        UnparseableResponseError: When no balanced value is found or it does
            not parse. Carries the raw text.
    """
    text = str(raw_text or "").strip()
    working = strip_code_fence(text)

    try:
        span = find_json_span(working)
    except ValueError as e:
        raise UnparseableResponseError(str(e), raw_text=text) from e
    if span is None:
        raise UnparseableResponseError(
            "no balanced JSON object or array found", raw_text=text
        )

    candidate = working[span[0] : span[1]]
    try:
        # strict=False accepts raw newlines inside strings, common in LLM output
        return json.loads(candidate, strict=False)
    except json.JSONDecodeError as e:
        raise UnparseableResponseError(str(e), raw_text=text) from e
