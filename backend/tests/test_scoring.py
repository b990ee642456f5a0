import math

import pytest

from quizroom.services.games.scoring import score


@pytest.mark.parametrize('base_points', [1, 7, 20, 33, 100])
def test_time_decay_tiers(base_points):
    assert score(0, base_points, True) == base_points
    assert score(5, base_points, True) == base_points
    assert score(10, base_points, True) == math.floor(base_points * 0.75)
    assert score(10.01, base_points, True) == math.floor(base_points * 0.5)
    assert score(59, base_points, True) == math.floor(base_points * 0.5)


@pytest.mark.parametrize('elapsed', [0, 3, 5, 7.5, 10, 30])
def test_incorrect_answers_score_zero(elapsed):
    assert score(elapsed, 100, False) == 0


def test_partial_points_are_floored():
    assert score(6, 15, True) == 11
    assert score(11, 15, True) == 7
    assert score(11, 1, True) == 0
