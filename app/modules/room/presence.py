"""Local presence state machine.

Raw activity signals (code edits, pointer moves, scrolls) become a coarse
status that is published to the gateway::

    edit                      -> coding    (immediately)
    2s without edits          -> working
    other activity when idle  -> working
    10s without any activity  -> idle
    successful submission     -> submitted (locked until the next open question)
    open question after that  -> idle

Each delayed transition is owned by a :class:`Debouncer`, which holds at most
one scheduled callback at a time: restarting it cancels the pending one.
The tracker only ever writes the local status outward; it never reads
participant records back.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from app.core.logging import get_logger
from app.modules.room.models import ParticipantStatus


logger = get_logger(__name__)

StatusPublisher = Callable[[ParticipantStatus], None]


class Debouncer:
    """A single cancellable delayed callback."""

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def restart(self) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class PresenceTracker:
    def __init__(
        self,
        publish: StatusPublisher,
        *,
        typing_delay: float = 2.0,
        idle_delay: float = 10.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._publish = publish
        self.status = ParticipantStatus.IDLE
        self.locked = False
        self._closed = False
        self._typing = Debouncer(typing_delay, self._on_typing_pause, loop=loop)
        self._idle = Debouncer(idle_delay, self._on_inactive, loop=loop)

    # Signals ------------------------------------------------------------
    def code_edited(self) -> None:
        if self._closed or self.locked:
            return
        if self.status != ParticipantStatus.CODING:
            self._transition(ParticipantStatus.CODING)
        self._typing.restart()
        # an edit is activity too; keep the idle clock from firing mid-typing
        self._idle.restart()

    def activity(self) -> None:
        if self._closed or self.locked:
            return
        if self.status not in (ParticipantStatus.CODING, ParticipantStatus.WORKING):
            self._transition(ParticipantStatus.WORKING)
        self._idle.restart()

    def mark_submitted(self) -> None:
        if self._closed:
            return
        self._cancel_timers()
        self.locked = True
        self._transition(ParticipantStatus.SUBMITTED)

    def question_changed(self, completed: bool) -> None:
        """Re-arm the cycle when the newly current question is still open."""
        if self._closed:
            return
        self._cancel_timers()
        self.locked = completed
        if not completed and self.status == ParticipantStatus.SUBMITTED:
            self._transition(ParticipantStatus.IDLE)

    def close(self) -> None:
        self._cancel_timers()
        self._closed = True

    # Debounced transitions ----------------------------------------------
    def _on_typing_pause(self) -> None:
        if self._closed or self.locked:
            return
        if self.status == ParticipantStatus.CODING:
            self._transition(ParticipantStatus.WORKING)

    def _on_inactive(self) -> None:
        if self._closed or self.locked:
            return
        if self.status != ParticipantStatus.IDLE:
            self._transition(ParticipantStatus.IDLE)

    def _cancel_timers(self) -> None:
        self._typing.cancel()
        self._idle.cancel()

    def _transition(self, status: ParticipantStatus) -> None:
        logger.debug("presence %s -> %s", self.status.value, status.value)
        self.status = status
        self._publish(status)
