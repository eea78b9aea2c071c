"""Adjacent-step navigation rules between questions."""

from __future__ import annotations

from typing import AbstractSet

from app.modules.room.errors import CannotAdvance, CannotGoBack, NoAdjacentQuestion
from app.modules.room.timers import TimerEngine


def can_advance(index: int, timers: TimerEngine, completed: AbstractSet[int]) -> bool:
    """Moving forward needs the clock run out or the question submitted."""
    return timers.is_expired(index) or index in completed


def can_go_back(index: int, completed: AbstractSet[int]) -> bool:
    """Only an unsubmitted previous question may be revisited."""
    return index > 0 and (index - 1) not in completed


def next_index(
    index: int, total: int, timers: TimerEngine, completed: AbstractSet[int]
) -> int:
    if not can_advance(index, timers, completed):
        raise CannotAdvance()
    if index + 1 >= total:
        raise NoAdjacentQuestion("This is the last question.")
    return index + 1


def previous_index(index: int, completed: AbstractSet[int]) -> int:
    if index <= 0:
        raise CannotGoBack("This is the first question.")
    if not can_go_back(index, completed):
        raise CannotGoBack()
    return index - 1
