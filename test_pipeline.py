"""Tests for the repository, assembler, writer, batch orchestrator and bundle storage."""

import json

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import PROFILE_REPLY
from impact_synth.batch import run_batch
from impact_synth.database import (
    ApplicationDB, MilestoneDB, MilestoneReflectionDB, ProgramDB,
    RatingDB, ReviewDB, SessionDB, SurveyResponseDB, UserDB
)
from impact_synth.exceptions import NotFoundError, PersistenceError
from impact_synth.models import (
    BeneficiaryProfile, GeneratedReflection, GeneratedResponse, GeneratedReview,
    OutcomeType, SessionBundle, SurveyType
)
from impact_synth.sessions import assemble_session
from impact_synth.storage import bundle_filename, load_session_bundle, save_session_bundle
from impact_synth.writer import SessionWriter, review_score


PROFILE = BeneficiaryProfile.from_dict(PROFILE_REPLY)


# ============ Repository ============

def test_repository_reads_seeded_catalog(repository, catalog):
    program_id = catalog["program_ids"][0]
    program = repository.require_program(program_id)
    assert program.name.startswith("Care & Coaching")

    milestones = repository.get_milestones(program_id)
    assert [m.order for m in milestones] == [1, 2, 3]
    assert milestones[0].reflection_prompt.startswith("How was your first")

    questions = repository.get_application_questions(program_id)
    assert [q.order for q in questions] == [1, 2, 3, 4, 5, 6]

    pre = repository.get_survey(program_id, SurveyType.PRE)
    post = repository.get_survey(program_id, SurveyType.POST)
    assert pre.title == "Flourishing Pulse"
    assert len(pre.questions) == 14
    assert post.id == catalog["post_survey_id"]
    assert len(post.questions) == 13

    assert repository.program_in_fund(program_id, catalog["fund_id"])
    assert repository.random_fund_id_for_program(program_id) == catalog["fund_id"]


def test_repository_missing_lookups(repository):
    assert repository.get_program(9999) is None
    assert repository.get_survey(9999, SurveyType.PRE) is None
    assert repository.get_milestones(9999) == []
    with pytest.raises(NotFoundError):
        repository.require_program(9999)
    with pytest.raises(NotFoundError):
        repository.require_fund(9999)


# ============ Assembler ============

async def test_assemble_full_session(repository, catalog, llm, rng):
    program_id = catalog["program_ids"][0]
    bundle = await assemble_session(program_id, PROFILE, repository, llm, rng=rng)

    assert bundle.program_id == program_id
    assert bundle.fund_id == catalog["fund_id"]
    assert bundle.pre_survey_id == catalog["pre_survey_id"]
    assert bundle.post_survey_id == catalog["post_survey_id"]
    assert len(bundle.application_responses) == 6
    assert len(bundle.pre_survey_responses) == 14
    assert len(bundle.post_survey_responses) == 13
    assert len(bundle.milestone_reflections) == 3

    low, high = {"positive": (4, 5), "neutral": (3, 3), "negative": (1, 2)}[bundle.outcome.value]
    assert low <= bundle.review.rating <= high
    # profile is not generated here: application, pre, reflections, post, review
    assert len(llm.calls) == 5


async def test_assembler_skips_missing_sections(db, repository, catalog, llm, rng):
    program = ProgramDB(name="Bare Program", description="No surveys, milestones or questions.")
    db.add(program)
    db.commit()

    bundle = await assemble_session(program.id, PROFILE, repository, llm, rng=rng)

    assert bundle.application_responses == []
    assert bundle.pre_survey_responses == []
    assert bundle.post_survey_responses == []
    assert bundle.milestone_reflections == []
    assert bundle.fund_id is None
    assert bundle.review is not None
    # Only the review generator ran
    assert len(llm.calls) == 1


async def test_assembler_survives_failing_service(repository, catalog, failing_llm, rng):
    bundle = await assemble_session(catalog["program_ids"][1], PROFILE, repository, failing_llm, rng=rng)
    assert bundle.application_responses == []
    assert bundle.milestone_reflections == []
    assert bundle.review is None


async def test_assembler_rejects_unknown_program(repository, llm):
    with pytest.raises(NotFoundError):
        await assemble_session(9999, PROFILE, repository, llm)
    assert llm.calls == []


# ============ Writer ============

def _bundle(catalog, **kwargs):
    bundle = SessionBundle(
        profile=PROFILE,
        program_id=catalog["program_ids"][0],
        fund_id=catalog["fund_id"],
        outcome=OutcomeType.POSITIVE,
        pre_survey_id=catalog["pre_survey_id"],
        post_survey_id=catalog["post_survey_id"],
    )
    for key, value in kwargs.items():
        setattr(bundle, key, value)
    return bundle


def test_write_complete_session(db, writer, catalog):
    print("Testing session writer...")
    bundle = _bundle(
        catalog,
        application_responses=[GeneratedResponse(question_id=1, answer="Jordan Reyes")],
        pre_survey_responses=[GeneratedResponse(question_id=1, answer=6), GeneratedResponse(question_id=13, answer=["Meaning and Purpose"])],
        milestone_reflections=[GeneratedReflection(milestone_id=1, reflection="Helpful.")],
        post_survey_responses=[GeneratedResponse(question_text="feeling happier in general", answer="A lot")],
        review=GeneratedReview(rating=5, summary="Great", full_text="It was excellent.", impact="Big"),
    )
    session_id = writer.write(bundle)

    session = db.get(SessionDB, session_id)
    assert session.status == "COMPLETED"
    assert session.fund_id == catalog["fund_id"]
    outcome_data = json.loads(session.outcome_data)
    assert outcome_data["outcomeType"] == "positive"
    assert outcome_data["beneficiaryProfile"]["name"] == PROFILE.name

    user = db.get(UserDB, session.user_id)
    assert user.name == PROFILE.name
    assert bundle.user_id == user.id

    application = db.query(ApplicationDB).filter_by(session_id=session_id).one()
    assert [qr.answer for qr in application.question_responses] == ["Jordan Reyes"]

    surveys = {r.survey_id: r for r in db.query(SurveyResponseDB).filter_by(session_id=session_id)}
    pre = surveys[catalog["pre_survey_id"]]
    assert sorted(qr.answer for qr in pre.question_responses) == sorted(["6", '["Meaning and Purpose"]'])
    post = surveys[catalog["post_survey_id"]]
    assert post.question_responses[0].answer == "A lot"
    assert pre.completed_at < post.completed_at

    assert db.query(MilestoneReflectionDB).filter_by(session_id=session_id).count() == 1
    assert db.query(RatingDB).filter_by(session_id=session_id).one().score == 5
    assert db.query(ReviewDB).filter_by(session_id=session_id).one().content == "It was excellent."
    print(f"  ✓ session {session_id} written")


def test_duplicate_reflections_keep_first(db, writer, catalog):
    milestone = db.query(MilestoneDB).filter_by(program_id=catalog["program_ids"][0], order=2).one()
    bundle = _bundle(catalog, milestone_reflections=[
        GeneratedReflection(milestone_id=milestone.id, reflection="first"),
        GeneratedReflection(milestone_id=milestone.id, reflection="second"),
        GeneratedReflection(milestone_id=str(milestone.id), reflection="third"),
    ])
    session_id = writer.write(bundle)

    rows = db.query(MilestoneReflectionDB).filter_by(session_id=session_id).all()
    assert len(rows) == 1
    assert rows[0].content == "first"
    assert rows[0].milestone_id == milestone.id


def test_unresolvable_reflection_is_skipped(db, writer, catalog):
    bundle = _bundle(catalog, milestone_reflections=[GeneratedReflection(milestone_id="later", reflection="x")])
    session_id = writer.write(bundle)
    assert db.query(MilestoneReflectionDB).filter_by(session_id=session_id).count() == 0


def test_empty_sections_write_no_rows(db, writer, catalog):
    session_id = writer.write(_bundle(catalog))
    assert db.query(ApplicationDB).filter_by(session_id=session_id).count() == 0
    assert db.query(SurveyResponseDB).filter_by(session_id=session_id).count() == 0
    assert db.query(RatingDB).filter_by(session_id=session_id).count() == 0


def test_missing_survey_id_is_looked_up(db, writer, catalog):
    bundle = _bundle(catalog, pre_survey_id=None, pre_survey_responses=[GeneratedResponse(question_id=1, answer=7)])
    session_id = writer.write(bundle)
    response = db.query(SurveyResponseDB).filter_by(session_id=session_id).one()
    assert response.survey_id == catalog["pre_survey_id"]


def test_write_reuses_existing_user(db, writer, catalog):
    user = writer.create_user(PROFILE)
    session_id = writer.write(_bundle(catalog, user_id=user.id))
    assert db.get(SessionDB, session_id).user_id == user.id
    assert db.query(UserDB).count() == 1


def test_write_rejects_unknown_user(writer, catalog):
    with pytest.raises(PersistenceError):
        writer.write(_bundle(catalog, user_id=424242))


def test_review_score_falls_back_to_sentiment():
    assert review_score(GeneratedReview(rating=2)) == 2
    assert review_score(GeneratedReview(rating=None, full_text="A terrible waste")) == 1
    assert review_score(GeneratedReview(rating=9, summary="Mixed feelings")) == 3


def _fail_reviews(monkeypatch, writer):
    def broken_add_review(session, review):
        raise SQLAlchemyError("disk full")
    monkeypatch.setattr(writer, "_add_review", broken_add_review)


def test_partial_write_keeps_earlier_rows(db, writer, catalog, monkeypatch):
    _fail_reviews(monkeypatch, writer)
    bundle = _bundle(
        catalog,
        application_responses=[GeneratedResponse(question_id=1, answer="x")],
        review=GeneratedReview(rating=4, summary="ok"),
    )
    session_id = writer.write(bundle)

    assert db.get(SessionDB, session_id) is not None
    assert db.query(ApplicationDB).filter_by(session_id=session_id).count() == 1
    assert db.query(ReviewDB).count() == 0


def test_atomic_write_rolls_back_everything(db, repository, catalog, monkeypatch):
    writer = SessionWriter(db, repository, atomic=True)
    _fail_reviews(monkeypatch, writer)
    bundle = _bundle(
        catalog,
        application_responses=[GeneratedResponse(question_id=1, answer="x")],
        review=GeneratedReview(rating=4, summary="ok"),
    )
    with pytest.raises(PersistenceError):
        writer.write(bundle)

    assert db.query(SessionDB).count() == 0
    assert db.query(ApplicationDB).count() == 0
    assert db.query(UserDB).count() == 0


# ============ Batch ============

async def test_batch_rejects_unknown_program_before_generation(repository, writer, llm):
    with pytest.raises(NotFoundError):
        await run_batch(3, repository, writer, llm, program_id=9999)
    assert llm.calls == []


async def test_batch_rejects_unknown_fund(repository, writer, catalog, llm):
    with pytest.raises(NotFoundError):
        await run_batch(1, repository, writer, llm, program_id=catalog["program_ids"][0], fund_id=9999)
    assert llm.calls == []


async def test_batch_creates_one_session_per_iteration(db, repository, writer, catalog, llm, rng):
    print("Testing batch of 3...")
    program_id = catalog["program_ids"][2]
    result = await run_batch(3, repository, writer, llm, program_id=program_id, rng=rng)

    assert result.succeeded == 3
    assert result.failed == 0
    assert db.query(SessionDB).filter_by(program_id=program_id).count() == 3
    assert db.query(UserDB).count() == 3
    assert len(set(result.session_ids)) == 3
    print(f"  ✓ sessions {result.session_ids}")


async def test_batch_random_program(db, repository, writer, catalog, llm, rng):
    result = await run_batch(2, repository, writer, llm, rng=rng)
    assert result.succeeded == 2
    assert all(r.program_id in catalog["program_ids"] for r in result.results)


async def test_batch_continues_after_failed_iteration(db, repository, writer, catalog, llm, rng, monkeypatch):
    original_write = writer.write
    calls = []

    def flaky_write(bundle, fund_id=None):
        calls.append(bundle.id)
        if len(calls) == 1:
            raise PersistenceError("Failed to create session: locked")
        return original_write(bundle, fund_id)

    monkeypatch.setattr(writer, "write", flaky_write)
    result = await run_batch(3, repository, writer, llm, program_id=catalog["program_ids"][0], rng=rng)

    assert result.failed == 1
    assert result.succeeded == 2
    assert "locked" in result.results[0].error
    assert db.query(SessionDB).count() == 2
    # The failed iteration's user row was committed and is still reported
    assert result.results[0].user_id is not None
    assert db.get(UserDB, result.results[0].user_id) is not None


async def test_failed_iteration_reports_partial_session(db, repository, writer, catalog, llm, rng, monkeypatch):
    def broken_add_application(bundle, session):
        raise RuntimeError("bad application payload")
    monkeypatch.setattr(writer, "_add_application", broken_add_application)

    result = await run_batch(1, repository, writer, llm, program_id=catalog["program_ids"][0], rng=rng)

    item = result.results[0]
    assert result.failed == 1
    assert "bad application payload" in item.error
    assert item.session_id is not None
    assert db.get(SessionDB, item.session_id).user_id == item.user_id


async def test_atomic_batch_leaves_no_orphan_user(db, repository, catalog, llm, rng, tmp_path):
    blocked = tmp_path / "not-a-directory"
    blocked.write_text("occupied")
    atomic_writer = SessionWriter(db, repository, atomic=True)

    failed = await run_batch(
        1, repository, atomic_writer, llm, program_id=catalog["program_ids"][0],
        save_json=True, output_dir=str(blocked), rng=rng
    )
    assert failed.failed == 1
    assert failed.results[0].user_id is None

    done = await run_batch(1, repository, SessionWriter(db, repository), llm, rng=rng)
    assert done.succeeded == 1
    assert db.query(UserDB).count() == 1
    assert db.query(SessionDB).count() == 1


def test_atomic_write_rolls_back_on_any_error(db, repository, catalog, monkeypatch):
    writer = SessionWriter(db, repository, atomic=True)

    def broken_add_application(bundle, session):
        raise ValueError("unexpected answer shape")
    monkeypatch.setattr(writer, "_add_application", broken_add_application)

    with pytest.raises(ValueError):
        writer.write(_bundle(catalog, application_responses=[GeneratedResponse(question_id=1, answer="x")]))
    db.commit()

    assert db.query(SessionDB).count() == 0
    assert db.query(UserDB).count() == 0


async def test_batch_with_failing_service_still_persists(db, repository, writer, catalog, failing_llm, rng):
    result = await run_batch(1, repository, writer, failing_llm, program_id=catalog["program_ids"][0], rng=rng)
    assert result.succeeded == 1
    assert result.results[0].user_name == "John Smith"


async def test_batch_saves_bundles_named_by_user(repository, writer, catalog, llm, rng, tmp_path):
    result = await run_batch(
        2, repository, writer, llm, program_id=catalog["program_ids"][0],
        save_json=True, output_dir=str(tmp_path), rng=rng
    )
    names = sorted(p.name for p in tmp_path.iterdir())
    assert names == sorted(f"synthetic-session-user-{r.user_id}.json" for r in result.results)


# ============ Storage ============

def test_bundle_file_round_trip(catalog, tmp_path):
    bundle = _bundle(
        catalog,
        outcome=OutcomeType.NEUTRAL,
        application_responses=[GeneratedResponse(question_id=3, question_text="Years?", answer="5-10 years")],
        milestone_reflections=[GeneratedReflection(milestone_id=2, reflection="Some progress.")],
        review=GeneratedReview(rating=3, summary="Mixed", full_text="Mixed feelings.", impact="Some"),
    )
    assert bundle_filename(bundle) == f"synthetic-session-{bundle.id}.json"
    bundle.user_id = 17

    path = save_session_bundle(bundle, str(tmp_path))
    assert path.endswith("synthetic-session-user-17.json")

    loaded = load_session_bundle(path)
    assert loaded.id == bundle.id
    assert loaded.outcome == OutcomeType.NEUTRAL
    assert loaded.profile == bundle.profile
    assert loaded.application_responses[0].question_text == "Years?"
    assert loaded.milestone_reflections[0].milestone_id == 2
    assert loaded.review.rating == 3
    assert loaded.created_at == bundle.created_at
