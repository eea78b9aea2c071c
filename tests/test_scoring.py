import pytest

from app.modules.room.models import Difficulty, ScoreSubmission
from app.modules.room.scoring import BASE_SCORES, calculate_score, score_submission


def test_reference_examples():
    assert calculate_score("easy", 5, 5, 0, 0) == 100
    assert calculate_score("easy", 5, 5, 0, 20) == 50
    assert calculate_score("hard", 0, 5, 0, 0) == 0
    assert calculate_score("medium", 3, 6, 2, 10) == round(200 * 0.5 * (1 - (10 / 40) * 0.5) * 0.8)


def test_accepts_enum_and_any_case():
    assert calculate_score(Difficulty.HARD, 4, 4) == 400
    assert calculate_score("Medium", 2, 2) == 200
    assert calculate_score("HARD", 2, 2, 0, 90) == 200


def test_is_deterministic():
    args = ("medium", 4, 7, 3, 13)
    assert calculate_score(*args) == calculate_score(*args)


def test_zero_total_scores_zero():
    assert calculate_score("easy", 0, 0, 0, 0) == 0


def test_rounds_half_up():
    # 100 * 1/8 == 12.5 exactly
    assert calculate_score("easy", 1, 8) == 13


def test_time_bonus_floors_at_half_past_the_limit():
    assert calculate_score("medium", 1, 1, 0, 40) == 100
    assert calculate_score("medium", 1, 1, 0, 400) == 100


def test_ten_or_more_wrong_attempts_score_zero():
    assert calculate_score("hard", 5, 5, 10, 0) == 0
    assert calculate_score("hard", 5, 5, 25, 0) == 0


@pytest.mark.parametrize("difficulty", ["easy", "medium", "hard"])
def test_non_increasing_in_wrong_attempts_and_time(difficulty):
    by_attempts = [calculate_score(difficulty, 3, 4, w, 5) for w in range(15)]
    assert by_attempts == sorted(by_attempts, reverse=True)

    by_minutes = [calculate_score(difficulty, 3, 4, 1, m) for m in range(0, 120, 3)]
    assert by_minutes == sorted(by_minutes, reverse=True)


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_always_within_zero_and_base(difficulty):
    base = BASE_SCORES[difficulty]
    for passed in range(0, 6):
        for wrong in (0, 3, 12):
            for minutes in (-5, 0, 10, 200):
                value = calculate_score(difficulty, passed, 5, wrong, minutes)
                assert 0 <= value <= base


def test_score_submission_uses_same_tuple():
    sub = ScoreSubmission(
        difficulty=Difficulty.EASY, passed=5, total=5, wrong_attempts=1, elapsed_minutes=4
    )
    assert score_submission(sub) == calculate_score("easy", 5, 5, 1, 4)
