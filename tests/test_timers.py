from app.modules.room.models import Difficulty
from app.modules.room.timers import DURATION_SECONDS, TimerEngine, duration_for, format_seconds


def test_durations_by_difficulty():
    assert duration_for("Easy") == 1200
    assert duration_for("medium") == 2400
    assert duration_for(Difficulty.HARD) == 5400


def test_start_is_idempotent():
    timers = TimerEngine()
    assert timers.start(0, "Easy") == 1200
    timers.tick(0)
    timers.tick(0)
    assert timers.start(0, "Easy") == 1198
    assert timers.remaining(0) == 1198


def test_tick_unstarted_is_noop():
    timers = TimerEngine()
    assert timers.tick(3) == 0
    assert timers.remaining(3) is None


def test_tick_floors_at_zero():
    timers = TimerEngine()
    timers.start(0, "Easy")
    for _ in range(1300):
        timers.tick(0)
    assert timers.remaining(0) == 0
    assert timers.is_expired(0)


def test_tick_skips_completed():
    timers = TimerEngine()
    timers.start(1, "Medium")
    assert timers.tick(1, completed={1}) == 2400


def test_freeze_zeroes():
    timers = TimerEngine()
    timers.start(0, "Hard")
    timers.freeze(0)
    assert timers.remaining(0) == 0
    assert timers.tick(0) == 0


def test_remaining_stays_in_range():
    timers = TimerEngine()
    for index, level in enumerate(Difficulty):
        timers.start(index, level)
    for step in range(6000):
        for index, level in enumerate(Difficulty):
            value = timers.tick(index, completed={2} if step > 100 else set())
            assert 0 <= value <= DURATION_SECONDS[level]


def test_snapshot_is_a_copy():
    timers = TimerEngine()
    timers.start(0, "Easy")
    snap = timers.snapshot()
    snap[0] = 5
    assert timers.remaining(0) == 1200


def test_format_seconds():
    assert format_seconds(0) == "00:00"
    assert format_seconds(1200) == "20:00"
    assert format_seconds(61) == "01:01"
    assert format_seconds(-3) == "00:00"
