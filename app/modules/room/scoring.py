"""Per-question scoring.

The score decays multiplicatively with elapsed time (down to half the base
score at the difficulty's time limit) and with wrong attempts (10% each).
The value computed here is an estimate only; the gateway computes the
authoritative score from the same submitted tuple.
"""

from __future__ import annotations

import math

from app.modules.room.models import Difficulty, ScoreSubmission


BASE_SCORES: dict[Difficulty, int] = {
    Difficulty.EASY: 100,
    Difficulty.MEDIUM: 200,
    Difficulty.HARD: 400,
}

# minutes
TIME_LIMITS: dict[Difficulty, int] = {
    Difficulty.EASY: 20,
    Difficulty.MEDIUM: 40,
    Difficulty.HARD: 90,
}

WRONG_ATTEMPT_PENALTY = 0.1
MAX_TIME_PENALTY = 0.5


def calculate_score(
    difficulty: Difficulty | str,
    passed: int,
    total: int,
    wrong_attempts: int = 0,
    elapsed_minutes: float = 0,
) -> int:
    """Return the score for one question, an int in ``[0, base(difficulty)]``."""
    level = Difficulty(difficulty)
    base = BASE_SCORES[level]

    completion = 0.0
    if total > 0:
        completion = min(1.0, max(0, passed) / total)

    time_ratio = min(1.0, max(0.0, elapsed_minutes) / TIME_LIMITS[level])
    time_bonus = 1 - time_ratio * MAX_TIME_PENALTY

    attempt_factor = max(0.0, 1 - max(0, wrong_attempts) * WRONG_ATTEMPT_PENALTY)

    raw = base * completion * time_bonus * attempt_factor
    # half-up rounding, not banker's rounding
    return max(0, math.floor(raw + 0.5))


def score_submission(submission: ScoreSubmission) -> int:
    return calculate_score(
        submission.difficulty,
        submission.passed,
        submission.total,
        submission.wrong_attempts,
        submission.elapsed_minutes,
    )
