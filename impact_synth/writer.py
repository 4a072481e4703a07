"""Persist session bundles into the relational store."""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import (
    PRE_SURVEY_OFFSET_DAYS, REFLECTION_OFFSET_DAYS,
    POST_SURVEY_OFFSET_DAYS, SESSION_COMPLETED_OFFSET_DAYS
)
from .database import (
    UserDB, SessionDB, ApplicationDB, SurveyResponseDB, QuestionResponseDB,
    MilestoneReflectionDB, RatingDB, ReviewDB
)
from .exceptions import PersistenceError
from .matcher import match_responses, numeric_reference, match_by_id, match_by_order
from .models import (
    BeneficiaryProfile, GeneratedResponse, GeneratedReflection, GeneratedReview,
    MilestoneInfo, Question, SessionBundle, SurveyType
)
from .outcomes import score_from_text
from .repository import ProgramRepository

logger = logging.getLogger(__name__)


def _answer_text(answer: Any) -> str:
    if isinstance(answer, str):
        return answer
    return json.dumps(answer)


def review_score(review: GeneratedReview) -> int:
    """The review's own 1-5 rating, or a keyword sentiment score when it has none."""
    rating = numeric_reference(review.rating)
    if rating is not None and 1 <= rating <= 5:
        return rating
    return score_from_text(review.full_text or review.summary)


def resolve_milestone(milestones: List[MilestoneInfo], reference: Any) -> Optional[MilestoneInfo]:
    """Find a milestone by id, then by order."""
    number = numeric_reference(reference)
    as_questions = [Question(id=m.id, order=m.order, text=m.title) for m in milestones]
    match = match_by_id(as_questions, number) or match_by_order(as_questions, number)
    if match is None:
        return None
    return next(m for m in milestones if m.id == match.id)


class SessionWriter:
    """
    Writes a SessionBundle as User, Session, Application, SurveyResponse,
    QuestionResponse, MilestoneReflection, Rating and Review rows.

    By default every step commits on its own, so a failure part-way leaves the
    rows written so far in place. With atomic=True the steps are flushed and
    committed once at the end, and any failure rolls the whole session back.
    """

    def __init__(
        self,
        db: Session,
        repository: ProgramRepository,
        atomic: bool = False,
        now: Optional[Callable[[], datetime]] = None
    ):
        self.db = db
        self.repository = repository
        self.atomic = atomic
        self.now = now or datetime.utcnow
        # Session row of the latest write, kept even when a later step fails
        self.last_session_id: Optional[int] = None

    def _days_ago(self, days: int) -> datetime:
        return self.now() - timedelta(days=days)

    def discard(self):
        """Roll back anything flushed but not yet committed."""
        self.db.rollback()

    def _step(self, description: str, action: Callable[[], Any]) -> Any:
        """Run one write step, committing (or flushing when atomic)."""
        try:
            result = action()
            if self.atomic:
                self.db.flush()
            else:
                self.db.commit()
            return result
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to {description}: {e}") from e

    # ============ Users ============

    def create_user(self, profile: BeneficiaryProfile) -> UserDB:
        """Create a User row from a profile."""
        def add():
            user = UserDB(
                name=profile.name or "User",
                age=profile.age,
                job_title=profile.job_title,
                years_in_job=profile.years_in_job,
                income=profile.income,
                marital_status=profile.marital_status,
                number_of_children=profile.number_of_children,
                current_challenges=list(profile.current_challenges),
                hopeful_outcomes=list(profile.hopeful_outcomes),
            )
            self.db.add(user)
            return user

        user = self._step("create user", add)
        logger.info("Created user with ID %s (%s)", user.id, user.name)
        return user

    # ============ Sessions ============

    def write(self, bundle: SessionBundle, fund_id: Optional[int] = None) -> int:
        """
        Persist a bundle and return the new session id.

        Args:
            bundle: The generated session
            fund_id: Overrides the bundle's fund when given

        Raises:
            PersistenceError: a write failed; earlier rows stay unless atomic
        """
        self.last_session_id = None
        try:
            return self._write(bundle, fund_id or bundle.fund_id)
        except Exception:
            if self.atomic:
                self.discard()
            raise

    def _write(self, bundle: SessionBundle, fund_id: Optional[int]) -> int:
        if bundle.user_id is not None:
            user = self.db.get(UserDB, bundle.user_id)
            if user is None:
                raise PersistenceError(f"User with ID {bundle.user_id} does not exist")
        else:
            user = self.create_user(bundle.profile)
            bundle.user_id = user.id

        logger.info("Creating session for user %s in program %s...", user.id, bundle.program_id)
        session = self._step("create session", lambda: self._add_session(bundle, user, fund_id))
        self.last_session_id = session.id
        logger.info("Created session with ID %s", session.id)

        if bundle.application_responses:
            self._step("create application", lambda: self._add_application(bundle, session))

        if bundle.pre_survey_responses:
            self._step(
                "create pre-survey response",
                lambda: self._add_survey_response(
                    bundle, session, SurveyType.PRE, bundle.pre_survey_id,
                    bundle.pre_survey_responses, PRE_SURVEY_OFFSET_DAYS
                )
            )

        if bundle.milestone_reflections:
            self._step(
                "create milestone reflections",
                lambda: self._add_reflections(bundle, session, bundle.milestone_reflections)
            )

        if bundle.post_survey_responses:
            self._step(
                "create post-survey response",
                lambda: self._add_survey_response(
                    bundle, session, SurveyType.POST, bundle.post_survey_id,
                    bundle.post_survey_responses, POST_SURVEY_OFFSET_DAYS
                )
            )

        if bundle.review:
            try:
                self._step("create rating and review", lambda: self._add_review(session, bundle.review))
            except PersistenceError as e:
                if self.atomic:
                    raise
                logger.error("Error creating rating or review: %s", e)

        if self.atomic:
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                raise PersistenceError(f"Failed to commit session: {e}") from e

        logger.info("Successfully created complete session in database with ID %s", session.id)
        return session.id

    def _add_session(self, bundle: SessionBundle, user: UserDB, fund_id: Optional[int]) -> SessionDB:
        completed_at = self._days_ago(SESSION_COMPLETED_OFFSET_DAYS)
        session = SessionDB(
            status="COMPLETED",
            program_id=bundle.program_id,
            fund_id=fund_id,
            user_id=user.id,
            outcome_data=json.dumps({
                "completedAt": completed_at.isoformat(),
                "outcomeType": bundle.outcome.value,
                "beneficiaryProfile": bundle.profile.to_dict(),
                "beneficiaryName": user.name,
                "bundleId": bundle.id,
            }),
        )
        self.db.add(session)
        self.db.flush()
        return session

    def _add_question_responses(
        self,
        questions: List[Question],
        responses: List[GeneratedResponse],
        **owner
    ) -> int:
        matches = match_responses(questions, responses)
        for match in matches:
            self.db.add(QuestionResponseDB(
                question_id=match.question.id,
                answer=_answer_text(match.answer),
                **owner
            ))
        return len(matches)

    def _add_application(self, bundle: SessionBundle, session: SessionDB) -> ApplicationDB:
        application = ApplicationDB(
            session_id=session.id,
            user_id=session.user_id,
            responses=[r.to_dict() for r in bundle.application_responses],
            status="approved",
        )
        self.db.add(application)
        self.db.flush()
        logger.info("Created application with ID %s", application.id)

        questions = self.repository.get_application_questions(bundle.program_id)
        if not questions:
            logger.info("No application questions found for program %s", bundle.program_id)
            return application

        count = self._add_question_responses(
            questions, bundle.application_responses, application_id=application.id
        )
        logger.info("Created %d application question responses", count)
        return application

    def _add_survey_response(
        self,
        bundle: SessionBundle,
        session: SessionDB,
        survey_type: SurveyType,
        survey_id: Optional[int],
        responses: List[GeneratedResponse],
        offset_days: int
    ) -> Optional[SurveyResponseDB]:
        if survey_id is None:
            survey = self.repository.get_survey(bundle.program_id, survey_type)
            if survey is None:
                logger.warning(
                    "No %s survey for program %s, dropping %d responses",
                    survey_type.value, bundle.program_id, len(responses)
                )
                return None
            survey_id = survey.id

        survey_response = SurveyResponseDB(
            survey_id=survey_id,
            session_id=session.id,
            user_id=session.user_id,
            completed_at=self._days_ago(offset_days),
        )
        self.db.add(survey_response)
        self.db.flush()

        questions = self.repository.get_questions(survey_id)
        count = self._add_question_responses(
            questions, responses, survey_response_id=survey_response.id
        )
        logger.info(
            "Created %s-survey response with ID %s (%d answers)",
            survey_type.value.lower(), survey_response.id, count
        )
        return survey_response

    def _add_reflections(
        self,
        bundle: SessionBundle,
        session: SessionDB,
        reflections: List[GeneratedReflection]
    ) -> int:
        milestones = self.repository.get_milestones(bundle.program_id)
        processed = set()
        created = 0

        for reflection in reflections:
            milestone = resolve_milestone(milestones, reflection.milestone_id)
            if milestone is None:
                logger.warning("No milestone matches reference %r, skipping reflection", reflection.milestone_id)
                continue
            if milestone.id in processed:
                logger.warning("Skipping duplicate milestone reflection for milestone ID %s", milestone.id)
                continue
            processed.add(milestone.id)

            self.db.add(MilestoneReflectionDB(
                milestone_id=milestone.id,
                session_id=session.id,
                user_id=session.user_id,
                content=reflection.reflection,
                completed_at=self._days_ago(REFLECTION_OFFSET_DAYS),
            ))
            created += 1

        logger.info("Created %d milestone reflections", created)
        return created

    def _add_review(self, session: SessionDB, review: GeneratedReview) -> ReviewDB:
        score = review_score(review)
        logger.info("Creating rating with score: %d", score)
        self.db.add(RatingDB(session_id=session.id, user_id=session.user_id, score=score))

        record = ReviewDB(
            session_id=session.id,
            user_id=session.user_id,
            content=review.full_text or review.summary,
            summary=review.summary,
            impact=review.impact,
        )
        self.db.add(record)
        return record
