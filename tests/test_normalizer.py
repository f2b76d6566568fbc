#!filepath: tests/test_normalizer.py
from __future__ import annotations

import pytest

from jobscrabber_app.llm.errors import UnparseableResponseError
from jobscrabber_app.llm.normalizer import (
    ScanState,
    extract_json,
    find_json_span,
    transition,
)


def test_fenced_block_with_prose_around() -> None:
    text = (
        "Here's the data:\n```json\n{\"a\":1,\"b\":[1,2,3]}\n```\n"
        "Let me know if you need more."
    )
    assert extract_json(text) == {"a": 1, "b": [1, 2, 3]}


def test_untagged_fence() -> None:
    assert extract_json("```\n[1, 2]\n```") == [1, 2]


def test_brace_inside_string_does_not_desync() -> None:
    text = '{"msg": "use a { here"} trailing junk {not json}'
    assert extract_json(text) == {"msg": "use a { here"}


def test_escaped_quote_inside_string() -> None:
    text = 'Result: {"q": "she said \\"}\\" loudly", "n": 2} thanks!'
    assert extract_json(text) == {"q": 'she said "}" loudly', "n": 2}


def test_escaped_backslash_before_closing_quote() -> None:
    text = '{"path": "C:\\\\"} done'
    assert extract_json(text) == {"path": "C:\\"}


def test_array_chosen_when_bracket_comes_first() -> None:
    text = 'Items: [{"a": 1}, {"b": 2}] and {"c": 3}'
    assert extract_json(text) == [{"a": 1}, {"b": 2}]


def test_object_chosen_when_brace_comes_first() -> None:
    assert extract_json('{"list": [1, 2]} [3]') == {"list": [1, 2]}


def test_trailing_commentary_with_braces() -> None:
    text = '{"ok": true}\nNote: the {ok} field means success.'
    assert extract_json(text) == {"ok": True}


def test_raw_newline_inside_string_is_tolerated() -> None:
    text = '{"summary": "line one\nline two"}'
    assert extract_json(text) == {"summary": "line one\nline two"}


def test_no_json_raises_with_raw_text() -> None:
    with pytest.raises(UnparseableResponseError) as ei:
        extract_json("Sorry, I cannot help with that.")
    assert ei.value.raw_text == "Sorry, I cannot help with that."


def test_unbalanced_raises() -> None:
    with pytest.raises(UnparseableResponseError):
        extract_json('{"a": [1, 2}')


def test_invalid_json_in_balanced_span_raises() -> None:
    with pytest.raises(UnparseableResponseError) as ei:
        extract_json("{not json}")
    assert "{not json}" in ei.value.raw_text


def test_empty_input_raises() -> None:
    with pytest.raises(UnparseableResponseError):
        extract_json("")


def test_span_bounds() -> None:
    text = 'xx {"a": "}"} yy'
    assert find_json_span(text) == (3, 13)
    assert find_json_span("no brackets") is None
    assert find_json_span('{"open": 1') is None


def test_mismatched_closer() -> None:
    with pytest.raises(ValueError):
        find_json_span("[1, 2}")


@pytest.mark.parametrize(
    ("state", "ch", "expected"),
    [
        (ScanState.SEARCHING, '"', ScanState.IN_STRING),
        (ScanState.SEARCHING, "{", ScanState.SEARCHING),
        (ScanState.SEARCHING, "\\", ScanState.SEARCHING),
        (ScanState.IN_STRING, '"', ScanState.SEARCHING),
        (ScanState.IN_STRING, "\\", ScanState.ESCAPED),
        (ScanState.IN_STRING, "{", ScanState.IN_STRING),
        (ScanState.ESCAPED, '"', ScanState.IN_STRING),
        (ScanState.ESCAPED, "\\", ScanState.IN_STRING),
    ],
)
def test_transitions(state: ScanState, ch: str, expected: ScanState) -> None:
    assert transition(state, ch) is expected
