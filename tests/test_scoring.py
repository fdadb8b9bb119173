import pytest

from app.db.types import validate_answer_map
from app.domain.quiz.scoring import percent, score_answers


@pytest.mark.parametrize("correct,total,expected", [
    (4, 5, 80),
    (0, 5, 0),
    (5, 5, 100),
    (1, 8, 13),   # 12.5 -> 13
    (2, 3, 67),
    (1, 3, 33),
    (0, 0, 0),
])
def test_percent_rounds_half_up(correct, total, expected):
    assert percent(correct, total) == expected


def test_score_answers_pass_threshold_is_inclusive():
    result = score_answers([1, 2, 2, 1, 1], {0: 1, 1: 2, 2: 2, 3: 0, 4: 0}, passing_score=60)
    assert (result.correct, result.total, result.score, result.passed) == (3, 5, 60, True)


def test_score_answers_missing_answers_count_as_wrong():
    result = score_answers([0, 1], {0: 0}, passing_score=70)
    assert result.correct == 1
    assert result.score == 50
    assert result.passed is False


def test_validate_answer_map_normalizes_json_keys():
    assert validate_answer_map({"0": "1", "3": 2}) == {0: 1, 3: 2}
    assert validate_answer_map(None) == {}


@pytest.mark.parametrize("bad", [{"0": -1}, {"x": 1}, {0: True}, [1, 2]])
def test_validate_answer_map_rejects_garbage(bad):
    with pytest.raises(ValueError):
        validate_answer_map(bad)
