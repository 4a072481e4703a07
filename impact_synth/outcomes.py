"""Outcome sampling and the rating bands tied to each outcome."""

import random
from typing import Any, Dict, Optional, Tuple

from .config import OUTCOME_THRESHOLDS, RATING_BANDS
from .models import OutcomeType

# Checked in order, first hit wins
SENTIMENT_KEYWORDS = [
    (5, ["excellent", "amazing", "outstanding", "wonderful"]),
    (4, ["good", "helpful", "positive", "recommend"]),
    (3, ["okay", "average", "neutral", "mixed"]),
    (2, ["disappointing", "mediocre", "lacking"]),
    (1, ["terrible", "awful", "waste", "poor"]),
]
DEFAULT_SENTIMENT_SCORE = 4


def outcome_for_draw(value: int) -> OutcomeType:
    """Map a draw in 1..100 onto an outcome (1-70 positive, 71-90 neutral, 91-100 negative)."""
    if not 1 <= value <= 100:
        raise ValueError(f"Outcome draw must be within 1..100, got {value}")
    for upper, label in OUTCOME_THRESHOLDS:
        if value <= upper:
            return OutcomeType(label)
    raise ValueError(f"No outcome threshold covers {value}")


def sample_outcome(rng: Optional[random.Random] = None) -> OutcomeType:
    """Draw one outcome label. Call once per session."""
    rng = rng or random
    return outcome_for_draw(rng.randint(1, 100))


def rating_band(outcome: OutcomeType) -> Tuple[int, int]:
    """Inclusive (low, high) rating range for an outcome."""
    return RATING_BANDS[outcome.value]


def describe_band(outcome: OutcomeType) -> str:
    low, high = rating_band(outcome)
    if low == high:
        return f"exactly {low}"
    return f"between {low} and {high}"


def sample_rating(outcome: OutcomeType, rng: Optional[random.Random] = None) -> int:
    """Sample a rating inside the outcome's band."""
    rng = rng or random
    low, high = rating_band(outcome)
    return rng.randint(low, high)


def in_band(rating: Any, outcome: OutcomeType) -> bool:
    if isinstance(rating, bool) or not isinstance(rating, int):
        return False
    low, high = rating_band(outcome)
    return low <= rating <= high


def enforce_rating(rating: Any, outcome: OutcomeType, rng: Optional[random.Random] = None) -> int:
    """Keep a generated rating when it is in band, otherwise resample from the band."""
    if isinstance(rating, str) and rating.strip().isdigit():
        rating = int(rating.strip())
    if isinstance(rating, float) and rating.is_integer():
        rating = int(rating)
    if in_band(rating, outcome):
        return rating
    return sample_rating(outcome, rng)


def score_from_text(text: str) -> int:
    """Keyword sentiment score (1-5) for reviews that carry no usable rating."""
    lowered = (text or "").lower()
    for score, keywords in SENTIMENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return score
    return DEFAULT_SENTIMENT_SCORE


def outcome_distribution(trials: int, rng: Optional[random.Random] = None) -> Dict[str, float]:
    """Empirical frequency of each outcome over a number of draws."""
    if trials < 1:
        raise ValueError("trials must be at least 1")
    counts = {outcome.value: 0 for outcome in OutcomeType}
    for _ in range(trials):
        counts[sample_outcome(rng).value] += 1
    return {label: count / trials for label, count in counts.items()}
