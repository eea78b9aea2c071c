import pytest

from app.modules.room.models import ExecutionOutcome, Language, Question

from conftest import accepted, make_judge, question_payload


@pytest.fixture()
def question():
    return Question.model_validate(question_payload("q-1"))


@pytest.fixture()
def judge(judge_stub):
    return make_judge(judge_stub)


async def test_accepted_run_is_evaluated(judge, judge_stub, question):
    judge_stub.response = accepted("0\n2\n4\n6\n9\n")
    result = await judge.submit("code", Language.CPP, question)
    assert result.outcome == ExecutionOutcome.ACCEPTED
    assert [tc.passed for tc in result.test_results] == [True, True, True, True, False]
    assert result.passed_count == 4
    assert not result.all_passed


async def test_request_body(judge, judge_stub, question):
    await judge.submit("print(1)", Language.PYTHON, question)
    assert judge_stub.requests == [
        {"source_code": "print(1)", "language_id": 71, "questionId": "q-1", "stdin": ""}
    ]


async def test_compile_error(judge, judge_stub, question):
    judge_stub.response = {
        "status": {"id": 6, "description": "Compilation Error"},
        "compile_output": "expected ';'",
        "stderr": "ignored",
    }
    result = await judge.submit("code", Language.C, question)
    assert result.outcome == ExecutionOutcome.COMPILE_ERROR
    assert result.message == "Compilation Error: expected ';'"
    assert [tc.passed for tc in result.test_results] == [False] * 5


async def test_runtime_error(judge, judge_stub, question):
    judge_stub.response = {"status": {"id": 11}, "stderr": "Segmentation fault"}
    result = await judge.submit("code", Language.CPP, question)
    assert result.outcome == ExecutionOutcome.RUNTIME_ERROR
    assert result.message == "Runtime Error: Segmentation fault"
    assert not any(tc.passed for tc in result.test_results)


async def test_status_description_error(judge, judge_stub, question):
    judge_stub.response = {"status": {"id": 5, "description": "Time Limit Exceeded"}}
    result = await judge.submit("code", Language.JAVA, question)
    assert result.outcome == ExecutionOutcome.JUDGE_ERROR
    assert result.message == "Error: Time Limit Exceeded"


async def test_unreachable_judge_is_network_error(judge, judge_stub, question):
    judge_stub.fail = True
    result = await judge.submit("code", Language.CPP, question)
    assert result.outcome == ExecutionOutcome.NETWORK_ERROR
    assert not result.outcome.counts_as_attempt
    assert [tc.passed for tc in result.test_results] == [False] * 5


async def test_http_error_status_is_network_error(judge, judge_stub, question):
    judge_stub.status_code = 502
    result = await judge.submit("code", Language.CPP, question)
    assert result.outcome == ExecutionOutcome.NETWORK_ERROR


async def test_question_without_test_cases_fails_deterministically(judge, judge_stub):
    question = Question.model_validate(question_payload("empty", cases=0))
    result = await judge.submit("code", Language.CPP, question)
    assert result.outcome == ExecutionOutcome.DATA_ERROR
    assert result.test_results == []
    assert judge_stub.requests == []


def test_interpret_garbage_response(judge, question):
    result = judge.interpret(["not", "a", "dict"], question)
    assert result.outcome == ExecutionOutcome.JUDGE_ERROR
    assert result.outcome.counts_as_attempt
