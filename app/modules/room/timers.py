"""Per-question countdown state.

Remaining seconds live in a plain mapping keyed by question index. A clock
is created the first time its question becomes current and is never reset;
ticking only ever moves it toward zero. Scheduling the ticks is the
session's job.
"""

from __future__ import annotations

from typing import AbstractSet, Optional

from app.modules.room.models import Difficulty


DURATION_SECONDS: dict[Difficulty, int] = {
    Difficulty.EASY: 20 * 60,
    Difficulty.MEDIUM: 40 * 60,
    Difficulty.HARD: 90 * 60,
}


def duration_for(difficulty: Difficulty | str) -> int:
    return DURATION_SECONDS[Difficulty(difficulty)]


class TimerEngine:
    def __init__(self) -> None:
        self._remaining: dict[int, int] = {}

    def start(self, index: int, difficulty: Difficulty | str) -> int:
        """Start the clock for ``index`` unless it already exists."""
        if index not in self._remaining:
            self._remaining[index] = duration_for(difficulty)
        return self._remaining[index]

    def tick(self, index: int, completed: AbstractSet[int] = frozenset()) -> int:
        """Take one second off ``index``; no-op once completed or expired."""
        remaining = self._remaining.get(index)
        if remaining is None:
            return 0
        if index in completed or remaining <= 0:
            return remaining
        self._remaining[index] = remaining - 1
        return self._remaining[index]

    def freeze(self, index: int) -> None:
        self._remaining[index] = 0

    def remaining(self, index: int) -> Optional[int]:
        return self._remaining.get(index)

    def is_expired(self, index: int) -> bool:
        return self._remaining.get(index, 0) == 0

    def snapshot(self) -> dict[int, int]:
        return dict(self._remaining)


def format_seconds(seconds: int) -> str:
    """``mm:ss`` display form."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
