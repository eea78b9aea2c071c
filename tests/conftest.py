import asyncio
import json
from typing import Any, Callable, Optional

import httpx
import pytest

from app.modules.room.errors import ConnectivityError
from app.modules.room.gateway import Gateway
from app.modules.room.judge import JudgeAdapter
from app.modules.room.session import RoomSession


JUDGE_URL = "http://judge.test/api/compile"


class FakeGateway(Gateway):
    """In-memory gateway: records emits, lets tests push inbound events."""

    def __init__(self, sid: str = "sock-alice") -> None:
        self._sid: Optional[str] = sid
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.connected = False
        self.fail_emits = False

    @property
    def sid(self) -> Optional[str]:
        return self._sid

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event] = handler

    async def connect(self) -> None:
        self.connected = True

    async def emit(self, event: str, payload: Any) -> None:
        if self.fail_emits:
            raise ConnectivityError()
        self.emitted.append((event, payload))

    async def disconnect(self) -> None:
        self.connected = False

    def push(self, event: str, *args: Any) -> None:
        self.handlers[event](*args)

    def sent(self, event: str) -> list[Any]:
        return [payload for name, payload in self.emitted if name == event]


class JudgeStub:
    """httpx MockTransport handler standing in for the judge service."""

    def __init__(self) -> None:
        self.response: Any = accepted("0 2 4 6 8")
        self.status_code = 200
        self.fail = False
        self.gate: Optional[asyncio.Event] = None
        self.requests: list[dict] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise httpx.ConnectError("judge unreachable", request=request)
        return httpx.Response(self.status_code, json=self.response)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def accepted(stdout: str) -> dict:
    return {"status": {"id": 3, "description": "Accepted"}, "stdout": stdout}


def question_payload(
    qid: str,
    difficulty: str = "Easy",
    *,
    cases: int = 5,
    return_type: str = "int",
    signature: Optional[str] = "int solve(int x)",
    expected: Optional[list] = None,
) -> dict:
    outputs = expected if expected is not None else [i * 2 for i in range(cases)]
    return {
        "_id": qid,
        "title": f"Problem {qid}",
        "description": "Double the input.",
        "difficulty": difficulty,
        "exampleInput": 1,
        "exampleOutput": 2,
        "testCases": [
            {"input": i, "expectedOutput": out} for i, out in enumerate(outputs)
        ],
        "functionMetadata": {
            "functionName": "solve",
            "returnType": return_type,
            "parameters": [{"name": "x", "type": "int"}],
            "signature": signature,
        },
    }


def make_judge(stub: JudgeStub) -> JudgeAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    return JudgeAdapter(JUDGE_URL, client=client, case_delimiter="")


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def judge_stub() -> JudgeStub:
    return JudgeStub()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
async def session(gateway, judge_stub, clock):
    room = RoomSession(
        "room-1",
        "alice",
        gateway=gateway,
        judge=make_judge(judge_stub),
        tick_interval=3600,
        typing_delay=0.05,
        idle_delay=0.3,
        clock=clock,
    )
    await room.join()
    yield room
    await room.leave()


@pytest.fixture()
async def started(session, gateway):
    """A session that has received an Easy, a Medium and a Hard question."""
    gateway.push(
        "room-questions",
        [
            question_payload("q-hard", "Hard"),
            question_payload("q-easy", "Easy"),
            question_payload("q-medium", "Medium"),
        ],
    )
    return session
