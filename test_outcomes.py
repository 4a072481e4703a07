"""Tests for outcome sampling and rating bands."""

import random

import pytest

from impact_synth.models import OutcomeType
from impact_synth.outcomes import (
    describe_band, enforce_rating, in_band, outcome_distribution, outcome_for_draw,
    rating_band, sample_outcome, sample_rating, score_from_text
)


@pytest.mark.parametrize("draw,expected", [
    (1, OutcomeType.POSITIVE),
    (70, OutcomeType.POSITIVE),
    (71, OutcomeType.NEUTRAL),
    (90, OutcomeType.NEUTRAL),
    (91, OutcomeType.NEGATIVE),
    (100, OutcomeType.NEGATIVE),
])
def test_outcome_for_draw_boundaries(draw, expected):
    assert outcome_for_draw(draw) == expected


@pytest.mark.parametrize("draw", [0, 101, -5])
def test_outcome_for_draw_rejects_out_of_range(draw):
    with pytest.raises(ValueError):
        outcome_for_draw(draw)


def test_distribution_converges():
    print("Testing outcome distribution...")
    frequencies = outcome_distribution(10000, random.Random(42))
    assert abs(frequencies["positive"] - 0.70) < 0.03
    assert abs(frequencies["neutral"] - 0.20) < 0.03
    assert abs(frequencies["negative"] - 0.10) < 0.03
    assert sum(frequencies.values()) == pytest.approx(1.0)
    print(f"  ✓ {frequencies}")


def test_sample_outcome_is_reproducible_with_seed():
    first = [sample_outcome(random.Random(99)) for _ in range(5)]
    second = [sample_outcome(random.Random(99)) for _ in range(5)]
    assert first == second


def test_rating_bands():
    assert rating_band(OutcomeType.POSITIVE) == (4, 5)
    assert rating_band(OutcomeType.NEUTRAL) == (3, 3)
    assert rating_band(OutcomeType.NEGATIVE) == (1, 2)
    assert describe_band(OutcomeType.NEUTRAL) == "exactly 3"
    assert describe_band(OutcomeType.POSITIVE) == "between 4 and 5"


@pytest.mark.parametrize("outcome", list(OutcomeType))
def test_sampled_ratings_stay_in_band(outcome):
    rng = random.Random(3)
    low, high = rating_band(outcome)
    for _ in range(200):
        assert low <= sample_rating(outcome, rng) <= high


def test_in_band_rejects_non_integers():
    assert in_band(4, OutcomeType.POSITIVE)
    assert not in_band(3, OutcomeType.POSITIVE)
    assert not in_band(True, OutcomeType.NEGATIVE)
    assert not in_band("5", OutcomeType.POSITIVE)
    assert not in_band(None, OutcomeType.NEUTRAL)


def test_enforce_rating_keeps_valid_and_coerces():
    assert enforce_rating(5, OutcomeType.POSITIVE) == 5
    assert enforce_rating("2", OutcomeType.NEGATIVE) == 2
    assert enforce_rating(3.0, OutcomeType.NEUTRAL) == 3


@pytest.mark.parametrize("outcome,bad", [
    (OutcomeType.POSITIVE, 2),
    (OutcomeType.NEUTRAL, 5),
    (OutcomeType.NEGATIVE, 4),
    (OutcomeType.NEGATIVE, None),
    (OutcomeType.POSITIVE, "great"),
])
def test_enforce_rating_resamples_out_of_band(outcome, bad):
    rating = enforce_rating(bad, outcome, random.Random(1))
    assert in_band(rating, outcome)


def test_score_from_text():
    assert score_from_text("An excellent experience") == 5
    assert score_from_text("Pretty helpful overall") == 4
    assert score_from_text("It was okay") == 3
    assert score_from_text("Rather disappointing") == 2
    assert score_from_text("A total waste of time") == 1
    assert score_from_text("") == 4
