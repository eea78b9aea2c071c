import pytest

from app.modules.room.errors import CannotAdvance, CannotGoBack, NoAdjacentQuestion
from app.modules.room.navigation import can_advance, can_go_back, next_index, previous_index
from app.modules.room.timers import TimerEngine


@pytest.fixture()
def timers():
    t = TimerEngine()
    t.start(0, "Easy")
    return t


def test_cannot_advance_while_clock_runs(timers):
    assert not can_advance(0, timers, set())
    with pytest.raises(CannotAdvance):
        next_index(0, 3, timers, set())


def test_advance_after_expiry(timers):
    timers.freeze(0)
    assert next_index(0, 3, timers, set()) == 1


def test_advance_after_completion(timers):
    assert next_index(0, 3, timers, {0}) == 1


def test_no_question_past_the_last(timers):
    with pytest.raises(NoAdjacentQuestion):
        next_index(0, 1, timers, {0})


def test_back_to_open_question():
    assert can_go_back(2, {0})
    assert previous_index(2, {0}) == 1


def test_back_to_completed_question_rejected():
    assert not can_go_back(1, {0})
    with pytest.raises(CannotGoBack) as exc:
        previous_index(1, {0})
    assert exc.value.message == "You cannot go back to completed questions."


def test_back_from_first_rejected():
    assert not can_go_back(0, set())
    with pytest.raises(CannotGoBack):
        previous_index(0, set())


def test_denials_carry_distinct_messages():
    assert CannotAdvance().message != CannotGoBack().message
