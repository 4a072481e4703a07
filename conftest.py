"""Shared fixtures: a scripted completion service and a seeded in-memory database."""

import random

import pytest

from impact_synth.database import init_db, make_engine, make_session_factory
from impact_synth.exceptions import ServiceError
from impact_synth.repository import ProgramRepository
from impact_synth.seed import seed
from impact_synth.writer import SessionWriter


PROFILE_REPLY = {
    "name": "Oriana Vasquez-Thorne",
    "age": 52,
    "jobTitle": "Senior Pastor",
    "yearsInJob": 8,
    "income": 68000,
    "maritalStatus": "Married",
    "numberOfChildren": 3,
    "currentChallenges": ["Chronic exhaustion", "Isolation from peers"],
    "hopefulOutcomes": ["Restore a sustainable rhythm", "Build a peer support network"],
}

REVIEW_REPLY = {
    "rating": 5,
    "text": "A helpful program that gave me room to breathe.",
    "fullReview": "I came in exhausted and isolated. The coaching was helpful and I would recommend it.",
    "impact": "I lead from rest now instead of exhaustion.",
}


def _responses(count, prefix):
    return {"responses": [
        {"questionId": order, "response": f"{prefix} answer {order}"}
        for order in range(1, count + 1)
    ]}


def default_reply(system, prompt):
    """A well-formed reply for whichever generator is asking."""
    if "profiles" in system:
        return dict(PROFILE_REPLY)
    if "milestone reflections" in system:
        return {"reflections": [
            {"milestoneId": order, "reflection": f"Reflection on milestone {order}."}
            for order in range(1, 4)
        ]}
    if "reviews" in system:
        return dict(REVIEW_REPLY)
    if "# Pre-Survey" in prompt:
        return _responses(14, "pre")
    if "# Post-Survey" in prompt:
        return _responses(13, "post")
    return _responses(6, "application")


class FakeCompletionService:
    """
    Stands in for CompletionService.query_json.

    replies may be a callable (system, prompt) -> payload or a list of payloads
    consumed in order. A payload that is an exception instance is raised.
    """

    def __init__(self, replies=default_reply):
        self.replies = replies if callable(replies) else list(replies)
        self.calls = []

    async def query_json(self, system, prompt):
        self.calls.append((system, prompt))
        if callable(self.replies):
            reply = self.replies(system, prompt)
        elif self.replies:
            reply = self.replies.pop(0)
        else:
            reply = ServiceError("No scripted reply left")
        if isinstance(reply, Exception):
            raise reply
        return reply


class FailingCompletionService(FakeCompletionService):
    """Every call fails like a timed-out request."""

    def __init__(self):
        super().__init__(lambda system, prompt: ServiceError("Request timed out"))


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    return seed(db, reset=False)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def repository(db, catalog, rng):
    return ProgramRepository(db, rng=rng)


@pytest.fixture
def writer(db, repository):
    return SessionWriter(db, repository)


@pytest.fixture
def llm():
    return FakeCompletionService()


@pytest.fixture
def failing_llm():
    return FailingCompletionService()
