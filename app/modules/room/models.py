"""Pydantic models for the coding room: questions, participants and results.

Inbound gateway payloads use camelCase keys (``testCases``, ``joinTime``);
the models accept either spelling and dump camelCase when ``by_alias`` is
requested. Test-case inputs and outputs are kept as opaque JSON-like values
and only ever compared through the evaluator.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator
from pydantic.alias_generators import to_camel


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Difficulty"]:
        # accept "easy" / "EASY" as well as the canonical spelling
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None

    @property
    def rank(self) -> int:
        return _DIFFICULTY_RANK[self]


_DIFFICULTY_RANK = {Difficulty.EASY: 0, Difficulty.MEDIUM: 1, Difficulty.HARD: 2}


class Language(str, Enum):
    CPP = "cpp"
    C = "c"
    JAVA = "java"
    PYTHON = "python"
    JAVASCRIPT = "javascript"

    @property
    def judge_id(self) -> int:
        return LANGUAGE_IDS[self]

    @property
    def comment_prompt(self) -> str:
        if self is Language.PYTHON:
            return "# Write your solution here"
        return "// Write your solution here"


# Judge language ids (one numeric id per supported source language)
LANGUAGE_IDS: dict[Language, int] = {
    Language.CPP: 54,
    Language.C: 50,
    Language.JAVA: 62,
    Language.PYTHON: 71,
    Language.JAVASCRIPT: 63,
}


class OpaqueValue(RootModel[Any]):
    """A structurally arbitrary JSON-like value (test input / expected output).

    Never inspected structurally; ``serialize`` renders it the way a JSON
    encoder in the browser would, which is what expected outputs are
    compared against.
    """

    def serialize(self) -> str:
        return json.dumps(_js_numbers(self.root), separators=(",", ":"), ensure_ascii=False)


def _js_numbers(value: Any) -> Any:
    # integral floats print without a fractional part in JSON.stringify
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, list):
        return [_js_numbers(v) for v in value]
    if isinstance(value, dict):
        return {k: _js_numbers(v) for k, v in value.items()}
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class TestCase(_CamelModel):
    """One (input, expected output) pair; ``passed`` is unset until a run."""

    __test__ = False  # keep pytest from collecting this class

    id: int = 0
    input: OpaqueValue = Field(default_factory=lambda: OpaqueValue(None))
    expected_output: OpaqueValue = Field(default_factory=lambda: OpaqueValue(None))
    passed: Optional[bool] = None


class Parameter(_CamelModel):
    name: str
    type: str


class FunctionMetadata(_CamelModel):
    function_name: str
    return_type: str = ""
    parameters: list[Parameter] = Field(default_factory=list)
    signature: Optional[str] = None


class Question(_CamelModel):
    """A coding problem as pushed by the gateway. Immutable for the session."""

    id: str = Field(alias="_id")
    title: str
    description: str = ""
    difficulty: Difficulty
    constraints: Optional[list[str]] = None
    example_input: Any = None
    example_output: Any = None
    test_cases: list[TestCase] = Field(default_factory=list)
    function_metadata: Optional[FunctionMetadata] = None

    @field_validator("id", mode="before")
    @classmethod
    def _unwrap_object_id(cls, v: Any) -> Any:
        if isinstance(v, dict) and "$oid" in v:
            return v["$oid"]
        return v

    @field_validator("test_cases", mode="before")
    @classmethod
    def _number_test_cases(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        numbered = []
        for idx, tc in enumerate(v):
            if isinstance(tc, dict):
                tc = {**tc, "id": idx}
            numbered.append(tc)
        return numbered

    @classmethod
    def placeholder(cls, raw: Any, position: int) -> "Question":
        """Stand-in for an entry that failed validation.

        Keeps whatever id, title and difficulty can be salvaged so the entry
        still occupies its slot; with no test cases every run on it is a
        data error.
        """
        data = raw if isinstance(raw, dict) else {}
        qid = data.get("_id", data.get("id"))
        if isinstance(qid, dict):
            qid = qid.get("$oid")
        try:
            difficulty = Difficulty(data.get("difficulty"))
        except ValueError:
            difficulty = Difficulty.EASY
        title = data.get("title")
        return cls(
            _id=str(qid) if qid else f"question-{position}",
            title=title if isinstance(title, str) and title else "Unavailable question",
            difficulty=difficulty,
        )

    @property
    def example(self) -> str:
        return (
            f"Input: {OpaqueValue(self.example_input).serialize()}\n"
            f"Output: {OpaqueValue(self.example_output).serialize()}"
        )

    @property
    def return_type(self) -> str:
        return self.function_metadata.return_type if self.function_metadata else ""

    def boilerplate(self, language: Language) -> str:
        signature = self.function_metadata.signature if self.function_metadata else None
        if signature:
            return f"{signature}\n{language.comment_prompt}"
        return language.comment_prompt


class ParticipantStatus(str, Enum):
    IDLE = "idle"
    CODING = "coding"
    WORKING = "working"
    SUBMITTED = "submitted"


class Participant(BaseModel):
    """A room member as last pushed by the gateway.

    ``score`` is the authoritative value and is only written from gateway
    pushes. ``local_estimate`` is the optimistic value computed on this
    client at submission time. ``time_spent`` is local display state.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    status: ParticipantStatus = ParticipantStatus.IDLE
    score: int = 0
    join_time: Optional[int] = None  # epoch milliseconds
    time_spent: str = "00:00"
    scores_per_question: dict[str, int] = Field(default_factory=dict)
    local_estimate: Optional[int] = None

    @field_validator("score", mode="before")
    @classmethod
    def _null_score(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("scores_per_question", mode="before")
    @classmethod
    def _null_scores(cls, v: Any) -> Any:
        return {} if v is None else v

    def elapsed_seconds(self, now_ms: float) -> int:
        if not self.join_time:
            return 0
        return max(0, int((now_ms - self.join_time) // 1000))

    def elapsed_minutes(self, now_ms: float) -> int:
        return self.elapsed_seconds(now_ms) // 60


class ScoreSubmission(BaseModel):
    """The tuple fed to scoring, locally and by the remote authority."""

    difficulty: Difficulty
    passed: int
    total: int
    wrong_attempts: int = 0
    elapsed_minutes: int = 0


class ExecutionOutcome(str, Enum):
    ACCEPTED = "accepted"
    COMPILE_ERROR = "compile_error"
    RUNTIME_ERROR = "runtime_error"
    JUDGE_ERROR = "judge_error"
    NETWORK_ERROR = "network_error"
    DATA_ERROR = "data_error"

    @property
    def counts_as_attempt(self) -> bool:
        """Whether the judge actually evaluated the code."""
        return self not in (ExecutionOutcome.NETWORK_ERROR, ExecutionOutcome.DATA_ERROR)


class ExecutionResult(BaseModel):
    outcome: ExecutionOutcome
    question_id: str
    test_results: list[TestCase] = Field(default_factory=list)
    message: Optional[str] = None
    stdout: Optional[str] = None

    @property
    def all_passed(self) -> bool:
        return bool(self.test_results) and all(tc.passed for tc in self.test_results)

    @property
    def passed_count(self) -> int:
        return sum(1 for tc in self.test_results if tc.passed)


class ScoreUpdate(BaseModel):
    id: str
    score: int
