"""Client for the external code-execution (judge) service.

The judge compiles and runs the submitted source against the question's
hidden tests and returns combined stdout plus a status. Status id 3 means the
program ran to completion; its stdout is then evaluated per test case. Every
other outcome, including the request itself failing, marks all test cases
failed and is reported through :class:`ExecutionResult` rather than raised.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.logging import get_logger
from app.modules.room.evaluator import evaluate_question, fail_all, normalize_output
from app.modules.room.models import (
    ExecutionOutcome,
    ExecutionResult,
    Language,
    Question,
)


logger = get_logger(__name__)

STATUS_ACCEPTED = 3


class JudgeAdapter:
    def __init__(
        self,
        compile_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        case_delimiter: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.compile_url = compile_url or settings.judge.compile_url
        self.timeout = timeout if timeout is not None else settings.judge.timeout_sec
        self.case_delimiter = (
            case_delimiter if case_delimiter is not None else settings.judge.case_delimiter
        )
        self._client = client

    async def submit(
        self, source_code: str, language: Language, question: Question
    ) -> ExecutionResult:
        if not question.test_cases:
            logger.warning("Question %s has no test cases; run failed", question.id)
            return ExecutionResult(
                outcome=ExecutionOutcome.DATA_ERROR,
                question_id=question.id,
                message="This question has no test cases and cannot be evaluated.",
            )

        body = {
            "source_code": source_code,
            "language_id": language.judge_id,
            "questionId": question.id,
            "stdin": "",
        }
        try:
            data = await self._post(body)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Judge request failed for question %s: %s", question.id, e)
            return ExecutionResult(
                outcome=ExecutionOutcome.NETWORK_ERROR,
                question_id=question.id,
                test_results=fail_all(question.test_cases),
                message="Failed to execute code. Please check your connection and try again.",
            )
        return self.interpret(data, question)

    def interpret(self, data: Any, question: Question) -> ExecutionResult:
        """Map a raw judge response onto per-test-case results."""
        if not isinstance(data, dict):
            data = {}
        status = data.get("status") or {}
        status_id = status.get("id") if isinstance(status, dict) else None

        if status_id == STATUS_ACCEPTED:
            stdout = data.get("stdout") or ""
            results = evaluate_question(
                stdout, question, delimiter=self.case_delimiter
            )
            logger.info(
                "Question %s ran: %d/%d test cases passed",
                question.id,
                sum(1 for r in results if r.passed),
                len(results),
            )
            return ExecutionResult(
                outcome=ExecutionOutcome.ACCEPTED,
                question_id=question.id,
                test_results=results,
                stdout=normalize_output(stdout),
            )

        if data.get("compile_output"):
            outcome = ExecutionOutcome.COMPILE_ERROR
            message = f"Compilation Error: {data['compile_output']}"
        elif data.get("stderr"):
            outcome = ExecutionOutcome.RUNTIME_ERROR
            message = f"Runtime Error: {data['stderr']}"
        elif isinstance(status, dict) and status.get("description"):
            outcome = ExecutionOutcome.JUDGE_ERROR
            message = f"Error: {status['description']}"
        else:
            outcome = ExecutionOutcome.JUDGE_ERROR
            message = "Code execution failed."
        logger.info("Question %s failed on the judge: %s", question.id, outcome.value)
        return ExecutionResult(
            outcome=outcome,
            question_id=question.id,
            test_results=fail_all(question.test_cases),
            message=message,
        )

    async def _post(self, body: dict) -> Any:
        if self._client is not None:
            response = await self._client.post(self.compile_url, json=body)
            response.raise_for_status()
            return response.json()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.compile_url, json=body)
            response.raise_for_status()
            return response.json()
