"""Read-only lookups of funds, programs, milestones and surveys."""

import random
from typing import List, Optional

from sqlalchemy.orm import Session

from .database import FundDB, ProgramDB, MilestoneDB, SurveyDB, QuestionDB
from .exceptions import NotFoundError
from .models import (
    ProgramContext, MilestoneInfo, SurveyInfo, Question, SurveyType
)


def _to_question(row: QuestionDB) -> Question:
    return Question(id=row.id, order=row.order, text=row.text, type=row.type or "TEXT")


class ProgramRepository:
    """Program catalog lookups over an injected database session."""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    # ============ Funds ============

    def get_fund(self, fund_id: int) -> Optional[FundDB]:
        return self.db.get(FundDB, fund_id)

    def fund_exists(self, fund_id: int) -> bool:
        return self.get_fund(fund_id) is not None

    def require_fund(self, fund_id: int) -> FundDB:
        fund = self.get_fund(fund_id)
        if fund is None:
            raise NotFoundError(f"Fund with ID {fund_id} not found")
        return fund

    # ============ Programs ============

    def get_program(self, program_id: int) -> Optional[ProgramContext]:
        """Look up a program, or None when it does not exist."""
        row = self.db.get(ProgramDB, program_id)
        if row is None:
            return None
        return ProgramContext(id=row.id, name=row.name, description=row.description or "")

    def require_program(self, program_id: int) -> ProgramContext:
        program = self.get_program(program_id)
        if program is None:
            raise NotFoundError(f"Program with ID {program_id} not found")
        return program

    def list_program_ids(self) -> List[int]:
        return [row.id for row in self.db.query(ProgramDB.id).order_by(ProgramDB.id).all()]

    def random_program_id(self) -> int:
        """Pick any program; raises NotFoundError on an empty catalog."""
        program_ids = self.list_program_ids()
        if not program_ids:
            raise NotFoundError("No programs found in the database")
        return self.rng.choice(program_ids)

    def fund_ids_for_program(self, program_id: int) -> List[int]:
        row = self.db.get(ProgramDB, program_id)
        if row is None:
            return []
        return sorted(f.id for f in row.funds)

    def program_in_fund(self, program_id: int, fund_id: int) -> bool:
        return fund_id in self.fund_ids_for_program(program_id)

    def random_fund_id_for_program(self, program_id: int) -> Optional[int]:
        """Pick a fund that sponsors the program, or None when no fund does."""
        fund_ids = self.fund_ids_for_program(program_id)
        return self.rng.choice(fund_ids) if fund_ids else None

    # ============ Milestones ============

    def get_milestones(self, program_id: int) -> List[MilestoneInfo]:
        rows = (
            self.db.query(MilestoneDB)
            .filter(MilestoneDB.program_id == program_id)
            .order_by(MilestoneDB.order, MilestoneDB.id)
            .all()
        )
        return [
            MilestoneInfo(
                id=row.id,
                order=row.order,
                title=row.title,
                description=row.description or "",
                reflection_prompt=row.reflection_prompt,
            )
            for row in rows
        ]

    # ============ Questions & Surveys ============

    def get_application_questions(self, program_id: int) -> List[Question]:
        rows = (
            self.db.query(QuestionDB)
            .filter(QuestionDB.program_id == program_id, QuestionDB.context == "APPLICATION")
            .order_by(QuestionDB.order, QuestionDB.id)
            .all()
        )
        return [_to_question(row) for row in rows]

    def get_questions(self, survey_id: int) -> List[Question]:
        rows = (
            self.db.query(QuestionDB)
            .filter(QuestionDB.survey_id == survey_id)
            .order_by(QuestionDB.order, QuestionDB.id)
            .all()
        )
        return [_to_question(row) for row in rows]

    def get_survey(self, program_id: int, survey_type: SurveyType) -> Optional[SurveyInfo]:
        """The program's first survey of the given type, with its questions."""
        row = (
            self.db.query(SurveyDB)
            .filter(
                SurveyDB.type == survey_type.value,
                SurveyDB.programs.any(ProgramDB.id == program_id),
            )
            .order_by(SurveyDB.id)
            .first()
        )
        if row is None:
            return None
        return SurveyInfo(
            id=row.id,
            type=survey_type,
            title=row.title,
            questions=self.get_questions(row.id),
        )
