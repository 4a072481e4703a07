"""Tests for resolving generated answers onto canonical questions."""

import pytest

from impact_synth.matcher import (
    MatchStrategy, match_by_id, match_by_order, match_by_position, match_by_text,
    match_responses, numeric_reference, resolve_question
)
from impact_synth.models import GeneratedResponse, Question


@pytest.fixture
def questions():
    return [
        Question(id=10, order=1, text="Why now?"),
        Question(id=11, order=2, text="Biggest challenge?"),
    ]


def test_direct_id_match(questions):
    result = resolve_question(questions, GeneratedResponse(question_id=10, answer="x"), 0)
    assert result.question == questions[0]
    assert result.strategy == MatchStrategy.ID
    assert result.answer == "x"


def test_order_match_when_no_id_matches(questions):
    result = resolve_question(questions, GeneratedResponse(question_id=2, answer="y"), 0)
    assert result.question == questions[1]
    assert result.strategy == MatchStrategy.ORDER


def test_text_match(questions):
    result = resolve_question(questions, GeneratedResponse(question_text="biggest challenge", answer="z"), 0)
    assert result.question == questions[1]
    assert result.strategy == MatchStrategy.TEXT


def test_positional_fallback(questions):
    result = resolve_question(questions, GeneratedResponse(answer="w"), 5)
    assert result.question == questions[1]
    assert result.strategy == MatchStrategy.POSITION


def test_text_takes_precedence_over_id(questions):
    response = GeneratedResponse(question_id=10, question_text="Biggest challenge?", answer="a")
    assert resolve_question(questions, response, 0).question == questions[1]


def test_unknown_reference_falls_through_to_position(questions):
    response = GeneratedResponse(question_id=99, question_text="unrelated wording", answer="b")
    result = resolve_question(questions, response, 2)
    assert result.question == questions[0]
    assert result.strategy == MatchStrategy.POSITION


def test_numeric_reference():
    assert numeric_reference(3) == 3
    assert numeric_reference(3.0) == 3
    assert numeric_reference(" 12 ") == 12
    assert numeric_reference(2.5) is None
    assert numeric_reference("q3") is None
    assert numeric_reference(True) is None
    assert numeric_reference(None) is None


def test_string_ids_are_accepted(questions):
    result = resolve_question(questions, GeneratedResponse(question_id="11", answer="c"), 0)
    assert result.question == questions[1]
    assert result.strategy == MatchStrategy.ID


def test_single_strategies(questions):
    assert match_by_text(questions, "") is None
    assert match_by_text(questions, "WHY NOW? I'll explain") == questions[0]
    assert match_by_id(questions, None) is None
    assert match_by_id(questions, 1) is None
    assert match_by_order(questions, 1) == questions[0]
    assert match_by_position([], 3) is None


def test_empty_question_list_yields_nothing():
    assert resolve_question([], GeneratedResponse(answer="x"), 0) is None
    assert match_responses([], [GeneratedResponse(answer="x")]) == []


def test_match_responses_keeps_one_result_per_response(questions, caplog):
    responses = [GeneratedResponse(answer="one"), GeneratedResponse(answer="two"), GeneratedResponse(answer="three")]
    results = match_responses(questions, responses)

    assert [r.question.id for r in results] == [10, 11, 10]
    assert [r.answer for r in results] == ["one", "two", "three"]
    # Position 2 wraps onto question 10 again; the collision is reported
    assert "both resolved to question 10" in caplog.text
