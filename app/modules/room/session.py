"""Room session controller.

One :class:`RoomSession` is built per room join and torn down on leave. It is
the only writer of the session state (question list, current index, timers,
completion set, cached test results) and reconciles three sources of change:

- the one-second tick loop for the current question's clock,
- local user actions (edits, navigation, run, submit) and presence debounces,
- pushes from the gateway (questions, participant snapshots, scores).

Everything runs on one asyncio loop, so handlers never interleave except at
``await`` points (the judge call and gateway emits). Operations either apply
fully or raise a :class:`RoomError` leaving state untouched.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from app.core.config import settings
from app.core.logging import get_logger
from app.modules.room import gateway as events
from app.modules.room.errors import (
    ConnectivityError,
    ExecutionInProgress,
    NavigationDenied,
    QuestionLocked,
    SessionClosed,
    SessionNotReady,
    SubmissionRejected,
    UnsupportedLanguage,
)
from app.modules.room.gateway import Gateway, SocketIOGateway
from app.modules.room.judge import JudgeAdapter
from app.modules.room.models import (
    ExecutionResult,
    Language,
    Participant,
    ParticipantStatus,
    Question,
    ScoreSubmission,
    ScoreUpdate,
    TestCase,
)
from app.modules.room.navigation import (
    can_advance,
    can_go_back,
    next_index,
    previous_index,
)
from app.modules.room.presence import PresenceTracker
from app.modules.room.scoring import score_submission
from app.modules.room.timers import TimerEngine, format_seconds


logger = get_logger(__name__)

Clock = Callable[[], float]


class SubmissionReceipt(BaseModel):
    question_index: int
    submission: ScoreSubmission
    local_score: int


class SessionSnapshot(BaseModel):
    room_id: str
    username: str
    status: ParticipantStatus
    language: Language
    code: str
    current_index: int
    total_questions: int
    question: Optional[Question] = None
    remaining_seconds: Optional[int] = None
    remaining_display: Optional[str] = None
    completed: list[int] = Field(default_factory=list)
    can_advance: bool = False
    can_go_back: bool = False
    is_running: bool = False
    test_results: list[TestCase] = Field(default_factory=list)
    last_message: Optional[str] = None
    wrong_attempts: int = 0
    local_scores: dict[int, int] = Field(default_factory=dict)
    participants: list[Participant] = Field(default_factory=list)
    notifications: list[str] = Field(default_factory=list)
    connection_error: Optional[str] = None


class RoomSession:
    def __init__(
        self,
        room_id: str,
        username: str,
        *,
        gateway: Gateway,
        judge: JudgeAdapter,
        language: Language | str | None = None,
        tick_interval: Optional[float] = None,
        typing_delay: Optional[float] = None,
        idle_delay: Optional[float] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.room_id = room_id
        self.username = username
        self.gateway = gateway
        self.judge = judge
        self.language = Language(language or settings.room.default_language)
        self.tick_interval = (
            tick_interval if tick_interval is not None else settings.room.tick_interval_sec
        )
        self._clock = clock or time.time

        # session state
        self.questions: list[Question] = []
        self.current_index: int = 0
        self.timers = TimerEngine()
        self.completed: set[int] = set()
        self.test_results: list[TestCase] = []
        self.last_result: Optional[ExecutionResult] = None
        self.code: str = self.language.comment_prompt
        self.wrong_attempts: dict[int, int] = {}
        self.local_scores: dict[int, int] = {}
        self.is_running = False

        # mirrored room state
        self.participants: list[Participant] = []
        self.notifications: deque[str] = deque(maxlen=20)
        self.connection_error: Optional[str] = None

        self.presence = PresenceTracker(
            self._publish_status,
            typing_delay=(
                typing_delay if typing_delay is not None else settings.room.typing_idle_sec
            ),
            idle_delay=(
                idle_delay if idle_delay is not None else settings.room.activity_idle_sec
            ),
        )

        # runtime
        self._joined = False
        self._closed = False
        self._submitting = False
        self._announced_sid: Optional[str] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()
        self._log_extra = {"room": room_id, "participant": username}

    @classmethod
    def from_settings(
        cls,
        room_id: str,
        username: str,
        *,
        gateway: Optional[Gateway] = None,
        judge: Optional[JudgeAdapter] = None,
    ) -> "RoomSession":
        return cls(
            room_id,
            username,
            gateway=gateway or SocketIOGateway(),
            judge=judge or JudgeAdapter(),
        )

    # Properties ---------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def initialized(self) -> bool:
        return bool(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def remaining_seconds(self) -> Optional[int]:
        return self.timers.remaining(self.current_index)

    @property
    def local_participant(self) -> Optional[Participant]:
        sid = self.gateway.sid
        if not sid:
            return None
        return next((p for p in self.participants if p.id == sid), None)

    @property
    def leaderboard(self) -> list[Participant]:
        return sorted(self.participants, key=lambda p: p.score, reverse=True)

    # Lifecycle ----------------------------------------------------------
    async def join(self) -> None:
        """Connect, announce ourselves and start the clock."""
        if self._closed:
            raise SessionClosed()
        if self._joined:
            return
        self._register_handlers()
        await self.gateway.connect()
        try:
            await self._announce()
        except ConnectivityError:
            await self.gateway.disconnect()
            raise
        self._joined = True
        self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info("Joined room", extra=self._log_extra)

    async def leave(self) -> None:
        """Cancel every timer, tell the room and close the connection."""
        if self._closed:
            return
        self._closed = True
        self.presence.close()
        if self._tick_task and not self._tick_task.done():
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()

        if not self._joined:
            return
        try:
            await self.gateway.emit(
                events.LEAVE_ROOM, {"roomId": self.room_id, "username": self.username}
            )
        except ConnectivityError as e:
            logger.warning("leave-room not delivered: %s", e, extra=self._log_extra)
        finally:
            await self.gateway.disconnect()
        logger.info("Left room", extra=self._log_extra)

    def _register_handlers(self) -> None:
        self.gateway.on(events.ROOM_QUESTIONS, self.handle_room_questions)
        self.gateway.on(events.PARTICIPANTS_UPDATE, self.handle_participants_update)
        self.gateway.on(events.SCORE_UPDATED, self.handle_score_updated)
        self.gateway.on(events.USER_JOINED, self.handle_user_joined)
        self.gateway.on(events.USER_LEFT, self.handle_user_left)
        self.gateway.on(events.CONNECT, self.handle_connect)
        self.gateway.on(events.CONNECT_ERROR, self.handle_connect_error)
        self.gateway.on(events.DISCONNECT, self.handle_disconnect)

    async def _announce(self) -> None:
        await self.gateway.emit(
            events.JOIN_ROOM, {"roomId": self.room_id, "username": self.username}
        )
        self._announced_sid = self.gateway.sid

    async def _tick_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.tick_interval)
                self.tick()
        except asyncio.CancelledError:
            return

    def tick(self) -> None:
        """One clock second: count down the current question, refresh elapsed times."""
        if self._closed:
            return
        self._refresh_elapsed()
        if not self.questions:
            return
        self.timers.tick(self.current_index, self.completed)

    def _refresh_elapsed(self) -> None:
        now_ms = self._clock() * 1000
        for p in self.participants:
            p.time_spent = (
                format_seconds(p.elapsed_seconds(now_ms)) if p.join_time else "00:00"
            )

    # Gateway pushes -----------------------------------------------------
    def handle_room_questions(self, payload: Any) -> None:
        if self._closed:
            return
        if self.questions:
            # a resend must not wipe timers or the completion set
            logger.warning(
                "Ignoring room-questions; session already initialized",
                extra=self._log_extra,
            )
            return
        if not isinstance(payload, list):
            logger.warning("Malformed room-questions payload", extra=self._log_extra)
            return
        parsed: list[Question] = []
        for position, raw in enumerate(payload):
            try:
                parsed.append(Question.model_validate(raw))
            except ValidationError as e:
                # the slot must survive so indices keep matching the room's
                logger.warning(
                    "Malformed question at position %d kept as unavailable: %s",
                    position,
                    e.errors()[:1],
                    extra=self._log_extra,
                )
                parsed.append(Question.placeholder(raw, position))
        if not parsed:
            return
        # sorted() is stable, so ties keep their pushed order
        self.questions = sorted(parsed, key=lambda q: q.difficulty.rank)
        self._enter_question(0)
        logger.info("Received %d questions", len(self.questions), extra=self._log_extra)

    def handle_participants_update(self, payload: Any) -> None:
        if self._closed:
            return
        if not isinstance(payload, list):
            logger.warning("Malformed participants-update payload", extra=self._log_extra)
            return
        previous = {p.id: p for p in self.participants}
        updated: list[Participant] = []
        for raw in payload:
            try:
                incoming = Participant.model_validate(raw)
            except ValidationError:
                logger.warning("Skipping malformed participant entry", extra=self._log_extra)
                continue
            prior = previous.get(incoming.id)
            updated.append(
                incoming.model_copy(
                    update={
                        "time_spent": prior.time_spent if prior else "00:00",
                        "local_estimate": prior.local_estimate if prior else None,
                    }
                )
            )
        self.participants = updated

    def handle_score_updated(self, payload: Any) -> None:
        if self._closed:
            return
        if not isinstance(payload, list):
            logger.warning("Malformed score-updated payload", extra=self._log_extra)
            return
        scores: dict[str, int] = {}
        for raw in payload:
            try:
                update = ScoreUpdate.model_validate(raw)
            except ValidationError:
                logger.warning("Skipping malformed score entry", extra=self._log_extra)
                continue
            scores[update.id] = update.score
        self.participants = [
            p.model_copy(update={"score": scores[p.id]}) if p.id in scores else p
            for p in self.participants
        ]

    def handle_user_joined(self, username: Any) -> None:
        if not self._closed:
            self._notify(f"{username} joined the room")

    def handle_user_left(self, username: Any) -> None:
        if not self._closed:
            self._notify(f"{username} left the room")

    def handle_connect(self, *args: Any) -> None:
        if self._closed:
            return
        self.connection_error = None
        # a reconnect is a new connection and needs its own join-room
        if self._joined and self.gateway.sid != self._announced_sid:
            self._fire_and_forget(self._announce())

    def handle_connect_error(self, *args: Any) -> None:
        if self._closed:
            return
        logger.error("Socket connection error: %s", args, extra=self._log_extra)
        self.connection_error = (
            "Failed to connect to real-time service. Some features may not work."
        )
        self._notify("Connection issues detected. Trying to reconnect...")

    def handle_disconnect(self, *args: Any) -> None:
        if self._closed:
            return
        reason = args[0] if args else None
        logger.warning("Socket disconnected: %s", reason, extra=self._log_extra)
        if reason == events.SERVER_DISCONNECT:
            self._fire_and_forget(self._reconnect())

    async def _reconnect(self) -> None:
        # join-room is re-sent by handle_connect once the new sid is up
        await self.gateway.connect()

    # Navigation ---------------------------------------------------------
    def handle_next(self) -> Question:
        self._ensure_ready()
        try:
            index = next_index(
                self.current_index, len(self.questions), self.timers, self.completed
            )
        except NavigationDenied as e:
            logger.info("Next denied: %s", e.message, extra=self._log_extra)
            raise
        self._enter_question(index)
        return self.questions[index]

    def handle_previous(self) -> Question:
        self._ensure_ready()
        try:
            index = previous_index(self.current_index, self.completed)
        except NavigationDenied as e:
            logger.info("Previous denied: %s", e.message, extra=self._log_extra)
            raise
        self._enter_question(index)
        return self.questions[index]

    def _enter_question(self, index: int) -> None:
        question = self.questions[index]
        self.current_index = index
        done = index in self.completed
        if done:
            self.timers.freeze(index)
        else:
            self.timers.start(index, question.difficulty)
        self.test_results = []
        self.last_result = None
        self.code = question.boilerplate(self.language)
        self.presence.question_changed(completed=done)

    # Editing ------------------------------------------------------------
    def edit_code(self, code: str) -> None:
        self._ensure_ready()
        if self.current_index in self.completed:
            raise QuestionLocked()
        self.code = code
        self.presence.code_edited()

    def record_activity(self) -> None:
        self._ensure_open()
        self.presence.activity()

    def select_language(self, language: Language | str) -> None:
        self._ensure_open()
        try:
            selected = Language(language)
        except ValueError:
            raise UnsupportedLanguage(f"Unsupported language: {language}") from None
        self.language = selected
        question = self.current_question
        self.code = question.boilerplate(selected) if question else selected.comment_prompt
        self.test_results = []
        self.last_result = None

    # Run & submit -------------------------------------------------------
    async def run_code(self) -> ExecutionResult:
        self._ensure_ready()
        index = self.current_index
        if index in self.completed:
            raise QuestionLocked()
        if self.is_running:
            raise ExecutionInProgress()
        question = self.questions[index]

        self.is_running = True
        try:
            result = await self.judge.submit(self.code, self.language, question)
        finally:
            self.is_running = False

        if self._closed:
            return result
        if self.current_index != index or index in self.completed:
            logger.info(
                "Discarding results for question %d; no longer current",
                index,
                extra=self._log_extra,
            )
            return result
        self.test_results = list(result.test_results)
        self.last_result = result
        if result.outcome.counts_as_attempt and not result.all_passed:
            self.wrong_attempts[index] = self.wrong_attempts.get(index, 0) + 1
        return result

    async def submit_code(self) -> SubmissionReceipt:
        self._ensure_ready()
        index = self.current_index
        if index in self.completed:
            raise QuestionLocked()
        if self._submitting:
            raise SubmissionRejected("Your submission is already being sent.")
        if self.is_running:
            raise SubmissionRejected("Wait for the current run to finish before submitting.")
        results = list(self.test_results)
        if not results or not all(tc.passed for tc in results):
            raise SubmissionRejected()

        question = self.questions[index]
        submission = ScoreSubmission(
            difficulty=question.difficulty,
            passed=sum(1 for tc in results if tc.passed),
            total=len(results),
            wrong_attempts=self.wrong_attempts.get(index, 0),
            elapsed_minutes=self._local_elapsed_minutes(),
        )
        local_score = score_submission(submission)
        logger.info(
            "Submitting question %d (local estimate %d)",
            index,
            local_score,
            extra=self._log_extra,
        )

        self._submitting = True
        try:
            await self.gateway.emit(
                events.UPDATE_SCORE,
                {
                    "roomId": self.room_id,
                    "questionIndex": index,
                    "passedTestCases": submission.passed,
                    "wrongAttempts": submission.wrong_attempts,
                    "elapsedMinutes": submission.elapsed_minutes,
                },
            )
        finally:
            self._submitting = False

        self.completed.add(index)
        self.timers.freeze(index)
        self.local_scores[index] = local_score
        me = self.local_participant
        if me is not None:
            me.local_estimate = sum(self.local_scores.values())
        if self.current_index == index:
            self.presence.mark_submitted()
        return SubmissionReceipt(
            question_index=index, submission=submission, local_score=local_score
        )

    def _local_elapsed_minutes(self) -> int:
        me = self.local_participant
        if me is None:
            return 0
        return me.elapsed_minutes(self._clock() * 1000)

    # Snapshot -----------------------------------------------------------
    def snapshot(self) -> SessionSnapshot:
        remaining = self.remaining_seconds if self.questions else None
        return SessionSnapshot(
            room_id=self.room_id,
            username=self.username,
            status=self.presence.status,
            language=self.language,
            code=self.code,
            current_index=self.current_index,
            total_questions=len(self.questions),
            question=self.current_question,
            remaining_seconds=remaining,
            remaining_display=format_seconds(remaining) if remaining is not None else None,
            completed=sorted(self.completed),
            can_advance=bool(self.questions)
            and can_advance(self.current_index, self.timers, self.completed),
            can_go_back=bool(self.questions)
            and can_go_back(self.current_index, self.completed),
            is_running=self.is_running,
            test_results=list(self.test_results),
            last_message=self.last_result.message if self.last_result else None,
            wrong_attempts=self.wrong_attempts.get(self.current_index, 0),
            local_scores=dict(self.local_scores),
            participants=self.leaderboard,
            notifications=list(self.notifications),
            connection_error=self.connection_error,
        )

    # Helpers ------------------------------------------------------------
    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosed()

    def _ensure_ready(self) -> None:
        self._ensure_open()
        if not self.questions:
            raise SessionNotReady()

    def _notify(self, message: str) -> None:
        logger.info(message, extra=self._log_extra)
        self.notifications.append(message)

    def _publish_status(self, status: ParticipantStatus) -> None:
        if self._closed or not self._joined:
            return
        self._fire_and_forget(
            self.gateway.emit(
                events.UPDATE_STATUS,
                {"roomId": self.room_id, "username": self.username, "status": status.value},
            )
        )

    def _fire_and_forget(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background emit failed: %s", exc, extra=self._log_extra)


class SessionManager:
    """Live sessions keyed by (room, username), owned by the hosting app."""

    def __init__(
        self,
        factory: Optional[Callable[[str, str], RoomSession]] = None,
    ) -> None:
        self._factory = factory or (lambda room_id, username: RoomSession.from_settings(room_id, username))
        self.sessions: dict[tuple[str, str], RoomSession] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    async def open(self, room_id: str, username: str) -> RoomSession:
        key = (room_id, username)
        lock = self._locks.setdefault(key, asyncio.Lock())
        # concurrent joins for one key must share a single connected session
        async with lock:
            existing = self.sessions.get(key)
            if existing and not existing.closed:
                return existing
            session = self._factory(room_id, username)
            await session.join()
            self.sessions[key] = session
            return session

    def get(self, room_id: str, username: str) -> Optional[RoomSession]:
        return self.sessions.get((room_id, username))

    async def close(self, room_id: str, username: str) -> bool:
        session = self.sessions.pop((room_id, username), None)
        if not session:
            return False
        await session.leave()
        return True

    async def close_all(self) -> None:
        for key in list(self.sessions.keys()):
            session = self.sessions.pop(key)
            try:
                await session.leave()
            except Exception as e:  # noqa: BLE001
                logger.warning("Failed to close session %s: %s", key, e)
