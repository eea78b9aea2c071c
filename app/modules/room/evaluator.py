"""Output normalisation and positional test evaluation.

Judge stdout is split into one token per test case and compared, as text,
against the serialized expected output after stripping all whitespace. No
parsing or deep equality is attempted.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from app.modules.room.models import OpaqueValue, Question, TestCase


_WHITESPACE = re.compile(r"\s+")

# return types whose printed form is a bracketed list
COLLECTION_TYPE_MARKERS = ("vector", "ListNode", "List", "[]")


def normalize_output(output: str) -> str:
    """Drop carriage returns, collapse whitespace runs to one space, trim."""
    return _WHITESPACE.sub(" ", output.replace("\r", "")).strip()


def normalize_structural(output: str) -> str:
    """Remove every whitespace character, so pretty and compact forms match."""
    return _WHITESPACE.sub("", output)


def is_collection_type(return_type: Optional[str]) -> bool:
    if not return_type:
        return False
    return any(marker in return_type for marker in COLLECTION_TYPE_MARKERS)


def split_output(
    stdout: str,
    return_type: Optional[str] = None,
    *,
    delimiter: Optional[str] = None,
) -> list[str]:
    """Split combined judge stdout into one token per test case.

    When ``delimiter`` is given and present in the output, each delimited
    chunk is one test case's output. Otherwise tokens are whitespace
    separated; for collection-like return types only tokens containing an
    opening bracket are kept.
    """
    raw = stdout or ""
    if delimiter and delimiter in raw:
        chunks = [normalize_output(chunk) for chunk in raw.split(delimiter)]
        # a leading or trailing delimiter leaves one empty chunk behind
        if chunks and not chunks[-1]:
            chunks.pop()
        if chunks and not chunks[0]:
            chunks.pop(0)
        return chunks

    tokens = [t for t in normalize_output(raw).split(" ") if t]
    if is_collection_type(return_type):
        return [t for t in tokens if "[" in t]
    return tokens


def evaluate(
    stdout: str,
    test_cases: Sequence[TestCase],
    return_type: Optional[str] = None,
    *,
    delimiter: Optional[str] = None,
) -> list[TestCase]:
    """Mark each test case passed or failed from the judge output.

    Test case ``i`` is compared with output token ``i``; missing tokens
    compare as the empty string and therefore fail.
    """
    tokens = split_output(stdout, return_type, delimiter=delimiter)
    results: list[TestCase] = []
    for index, tc in enumerate(test_cases):
        actual = tokens[index] if index < len(tokens) else ""
        expected = normalize_structural(_as_value(tc.expected_output).serialize())
        passed = normalize_structural(actual) == expected
        results.append(tc.model_copy(update={"passed": passed}))
    return results


def evaluate_question(
    stdout: str, question: Question, *, delimiter: Optional[str] = None
) -> list[TestCase]:
    return evaluate(
        stdout, question.test_cases, question.return_type, delimiter=delimiter
    )


def fail_all(test_cases: Sequence[TestCase]) -> list[TestCase]:
    return [tc.model_copy(update={"passed": False}) for tc in test_cases]


def _as_value(value: object) -> OpaqueValue:
    if isinstance(value, OpaqueValue):
        return value
    return OpaqueValue(value)
