"""SQLAlchemy database models for the Impact Fund Dashboard."""

import logging
from datetime import datetime
from pathlib import Path

from sqlalchemy import (
    create_engine, Column, String, Float, Integer, Boolean,
    DateTime, Text, ForeignKey, JSON, Table
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str = DATABASE_URL):
    """Create an engine with settings appropriate to the backend."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        database = make_url(url).database
        if database:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)


def make_session_factory(engine):
    """Create a session factory bound to engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _iso(value):
    return value.isoformat() if value else None


# ============ Association Tables ============

fund_programs = Table(
    "fund_programs",
    Base.metadata,
    Column("fund_id", Integer, ForeignKey("funds.id"), primary_key=True),
    Column("program_id", Integer, ForeignKey("programs.id"), primary_key=True),
)

program_surveys = Table(
    "program_surveys",
    Base.metadata,
    Column("program_id", Integer, ForeignKey("programs.id"), primary_key=True),
    Column("survey_id", Integer, ForeignKey("surveys.id"), primary_key=True),
)


# ============ Catalog ============

class FundDB(Base):
    """A philanthropic fund that sponsors programs."""
    __tablename__ = "funds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    total_amount = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)

    programs = relationship("ProgramDB", secondary=fund_programs, back_populates="funds")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "total_amount": self.total_amount,
            "created_at": _iso(self.created_at),
        }


class ProgramDB(Base):
    """A program beneficiaries apply to and work through."""
    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    funds = relationship("FundDB", secondary=fund_programs, back_populates="programs")
    surveys = relationship("SurveyDB", secondary=program_surveys, back_populates="programs")
    milestones = relationship("MilestoneDB", back_populates="program", order_by="MilestoneDB.order")
    questions = relationship("QuestionDB", back_populates="program", order_by="QuestionDB.order")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "fund_ids": [f.id for f in self.funds],
            "created_at": _iso(self.created_at),
        }


class MilestoneDB(Base):
    """A checkpoint within a program."""
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    program_id = Column(Integer, ForeignKey("programs.id"), nullable=False)
    order = Column(Integer, default=1)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    payment_amount = Column(Float, nullable=True)
    reflection_prompt = Column(Text, nullable=True)

    program = relationship("ProgramDB", back_populates="milestones")


class SurveyDB(Base):
    """A pre- or post-program survey, shared between programs."""
    __tablename__ = "surveys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    type = Column(String(10), nullable=False)  # PRE, POST

    programs = relationship("ProgramDB", secondary=program_surveys, back_populates="surveys")
    questions = relationship("QuestionDB", back_populates="survey", order_by="QuestionDB.order")


class QuestionDB(Base):
    """An application question (program) or survey question (survey)."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    type = Column(String(30), default="TEXT")
    options = Column(JSON, default=list)
    required = Column(Boolean, default=True)
    order = Column(Integer, default=1)
    context = Column(String(20), default="SURVEY")  # APPLICATION, SURVEY

    program_id = Column(Integer, ForeignKey("programs.id"), nullable=True)
    survey_id = Column(Integer, ForeignKey("surveys.id"), nullable=True)

    program = relationship("ProgramDB", back_populates="questions")
    survey = relationship("SurveyDB", back_populates="questions")


# ============ Participation ============

class UserDB(Base):
    """A (synthetic) beneficiary."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    job_title = Column(String(255), nullable=True)
    years_in_job = Column(Integer, nullable=True)
    income = Column(Integer, nullable=True)
    marital_status = Column(String(20), nullable=True)
    number_of_children = Column(Integer, nullable=True)
    current_challenges = Column(JSON, default=list)
    hopeful_outcomes = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "job_title": self.job_title,
            "years_in_job": self.years_in_job,
            "income": self.income,
            "marital_status": self.marital_status,
            "number_of_children": self.number_of_children,
            "current_challenges": self.current_challenges or [],
            "hopeful_outcomes": self.hopeful_outcomes or [],
            "created_at": _iso(self.created_at),
        }


class SessionDB(Base):
    """One beneficiary's participation in a program."""
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(String(20), default="PENDING")
    program_id = Column(Integer, ForeignKey("programs.id"), nullable=False)
    fund_id = Column(Integer, ForeignKey("funds.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    outcome_data = Column(Text, nullable=True)  # opaque JSON blob
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserDB")
    program = relationship("ProgramDB")
    application = relationship("ApplicationDB", back_populates="session", uselist=False)
    survey_responses = relationship("SurveyResponseDB", back_populates="session")
    milestone_reflections = relationship("MilestoneReflectionDB", back_populates="session")
    rating = relationship("RatingDB", back_populates="session", uselist=False)
    review = relationship("ReviewDB", back_populates="session", uselist=False)

    def to_dict(self):
        return {
            "id": self.id,
            "status": self.status,
            "program_id": self.program_id,
            "fund_id": self.fund_id,
            "user_id": self.user_id,
            "outcome_data": self.outcome_data,
            "created_at": _iso(self.created_at),
        }


class ApplicationDB(Base):
    """A beneficiary's application to a program."""
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    responses = Column(JSON, default=list)  # raw generated responses
    status = Column(String(20), default="approved")
    created_at = Column(DateTime, default=datetime.utcnow)

    session = relationship("SessionDB", back_populates="application")
    question_responses = relationship("QuestionResponseDB", back_populates="application")


class SurveyResponseDB(Base):
    """A completed survey within a session."""
    __tablename__ = "survey_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(Integer, ForeignKey("surveys.id"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    completed_at = Column(DateTime, nullable=True)

    session = relationship("SessionDB", back_populates="survey_responses")
    question_responses = relationship("QuestionResponseDB", back_populates="survey_response")


class QuestionResponseDB(Base):
    """One answer to one question, on an application or a survey response."""
    __tablename__ = "question_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=True)
    survey_response_id = Column(Integer, ForeignKey("survey_responses.id"), nullable=True)
    answer = Column(Text, default="")

    application = relationship("ApplicationDB", back_populates="question_responses")
    survey_response = relationship("SurveyResponseDB", back_populates="question_responses")


class MilestoneReflectionDB(Base):
    """A beneficiary's reflection on a milestone."""
    __tablename__ = "milestone_reflections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    milestone_id = Column(Integer, ForeignKey("milestones.id"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, default="")
    completed_at = Column(DateTime, nullable=True)

    session = relationship("SessionDB", back_populates="milestone_reflections")


class RatingDB(Base):
    """A 1-5 rating of a session."""
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    score = Column(Integer, nullable=False)

    session = relationship("SessionDB", back_populates="rating")


class ReviewDB(Base):
    """A written review of a session."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, default="")
    summary = Column(Text, default="")
    impact = Column(Text, default="")

    session = relationship("SessionDB", back_populates="review")


# ============ Database Initialization ============

def init_db(engine):
    """Initialize the database, creating all tables."""
    Base.metadata.create_all(bind=engine)
    url = str(engine.url)
    logger.info("Database initialized: %s", url.split("@")[-1] if "@" in url else url)
