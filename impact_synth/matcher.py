"""Resolve generated answers back onto canonical questions."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from .models import GeneratedResponse, Question

logger = logging.getLogger(__name__)


class MatchStrategy(Enum):
    """How a response was resolved, in precedence order."""
    TEXT = "text"
    ID = "id"
    ORDER = "order"
    POSITION = "position"


@dataclass(frozen=True)
class MatchResult:
    """A resolved question paired with the raw answer."""
    question: Question
    answer: Any
    strategy: MatchStrategy


def numeric_reference(value: Any) -> Optional[int]:
    """Interpret a question reference as an integer, if it is one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def match_by_text(questions: List[Question], text: Optional[str]) -> Optional[Question]:
    """First question whose text contains, or is contained in, the given text (case-insensitive)."""
    if not text:
        return None
    needle = text.lower()
    for question in questions:
        haystack = question.text.lower()
        if haystack in needle or needle in haystack:
            return question
    return None


def match_by_id(questions: List[Question], reference: Optional[int]) -> Optional[Question]:
    if reference is None:
        return None
    return next((q for q in questions if q.id == reference), None)


def match_by_order(questions: List[Question], reference: Optional[int]) -> Optional[Question]:
    if reference is None:
        return None
    return next((q for q in questions if q.order == reference), None)


def match_by_position(questions: List[Question], position: int) -> Optional[Question]:
    """Wrap the batch position around the question list."""
    if not questions:
        return None
    return questions[position % len(questions)]


def resolve_question(
    questions: List[Question],
    response: GeneratedResponse,
    position: int
) -> Optional[MatchResult]:
    """
    Resolve one response against an ordered question list.

    Strategies run in strict order and the first hit wins: text similarity,
    id equality, order equality, then position within the batch modulo the
    number of questions. Only an empty question list yields None.
    """
    reference = numeric_reference(response.question_id)
    strategies: List[Tuple[MatchStrategy, Callable[[], Optional[Question]]]] = [
        (MatchStrategy.TEXT, lambda: match_by_text(questions, response.question_text)),
        (MatchStrategy.ID, lambda: match_by_id(questions, reference)),
        (MatchStrategy.ORDER, lambda: match_by_order(questions, reference)),
        (MatchStrategy.POSITION, lambda: match_by_position(questions, position)),
    ]
    for strategy, attempt in strategies:
        question = attempt()
        if question is not None:
            return MatchResult(question=question, answer=response.answer, strategy=strategy)
    return None


def match_responses(
    questions: List[Question],
    responses: List[GeneratedResponse]
) -> List[MatchResult]:
    """
    Resolve a batch of responses, one result per response.

    Questions are not claimed: two responses may resolve to the same question.
    Such collisions are logged so they can be spotted in the generation log.
    """
    if not questions:
        logger.warning("No questions to match %d responses against", len(responses))
        return []

    results = []
    seen = {}
    for position, response in enumerate(responses):
        result = resolve_question(questions, response, position)
        if result is None:
            continue
        logger.debug(
            "Matched response %d to question %d by %s",
            position, result.question.id, result.strategy.value
        )
        if result.question.id in seen:
            logger.warning(
                "Responses %d and %d both resolved to question %d (%s match)",
                seen[result.question.id], position, result.question.id, result.strategy.value
            )
        else:
            seen[result.question.id] = position
        results.append(result)
    return results
