"""Data models for the session synthesis pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional
from enum import Enum
import uuid


class OutcomeType(Enum):
    """Outcome label that sets the tone and rating band for one session."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class SurveyType(Enum):
    """When a survey is taken relative to the program."""
    PRE = "PRE"
    POST = "POST"


class FallbackPolicy(Enum):
    """What a content generator returns when generation fails."""
    EMPTY = "empty"
    FIXED = "fixed"


def _first(data: Dict[str, Any], *keys, default=None):
    """Return the first present, non-None value among keys."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _string_list(value: Any) -> List[str]:
    """A list of strings; a lone string becomes a one-item list."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


@dataclass(frozen=True)
class BeneficiaryProfile:
    """A synthetic program participant."""
    name: str
    age: Optional[int] = None
    job_title: Optional[str] = None
    years_in_job: Optional[int] = None
    income: Optional[int] = None
    marital_status: Optional[str] = None
    number_of_children: Optional[int] = None
    current_challenges: List[str] = field(default_factory=list)
    hopeful_outcomes: List[str] = field(default_factory=list)

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0] if self.name else ""

    @property
    def last_name(self) -> str:
        return " ".join(self.name.split(" ")[1:]) if self.name else ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BeneficiaryProfile":
        """Build a profile from generated JSON (camelCase) or stored JSON (snake_case)."""
        name = _first(data, "name")
        if not name and data.get("firstName"):
            name = f"{data['firstName']} {data.get('lastName', '')}".strip()
        return cls(
            name=str(name) if name else "Anonymous User",
            age=_first(data, "age"),
            job_title=_first(data, "jobTitle", "job_title"),
            years_in_job=_first(data, "yearsInJob", "years_in_job"),
            income=_first(data, "income"),
            marital_status=_first(data, "maritalStatus", "marital_status"),
            number_of_children=_first(data, "numberOfChildren", "number_of_children"),
            current_challenges=_string_list(_first(data, "currentChallenges", "current_challenges")),
            hopeful_outcomes=_string_list(_first(data, "hopefulOutcomes", "hopeful_outcomes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "name": self.name,
            "age": self.age,
            "job_title": self.job_title,
            "years_in_job": self.years_in_job,
            "income": self.income,
            "marital_status": self.marital_status,
            "number_of_children": self.number_of_children,
            "current_challenges": list(self.current_challenges),
            "hopeful_outcomes": list(self.hopeful_outcomes),
        }


@dataclass(frozen=True)
class Question:
    """A canonical application or survey question."""
    id: int
    order: int
    text: str
    type: str = "TEXT"


@dataclass(frozen=True)
class ProgramContext:
    """The parts of a program that generation prompts need."""
    id: int
    name: str
    description: str = ""


@dataclass(frozen=True)
class MilestoneInfo:
    """A program milestone and its reflection prompt."""
    id: int
    order: int
    title: str
    description: str = ""
    reflection_prompt: Optional[str] = None


@dataclass(frozen=True)
class SurveyInfo:
    """A survey with its ordered questions."""
    id: int
    type: SurveyType
    title: str
    questions: List[Question] = field(default_factory=list)


@dataclass
class GeneratedResponse:
    """A generated answer whose question reference is still unresolved."""
    answer: Any
    question_id: Optional[int] = None
    question_text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedResponse":
        """Accept both the generated (camelCase) and stored (snake_case) shapes."""
        return cls(
            answer=_first(data, "response", "answer", default=""),
            question_id=_first(data, "questionId", "question_id"),
            question_text=_first(data, "questionText", "question_text"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "answer": self.answer,
        }


@dataclass
class GeneratedReflection:
    """A generated reflection on one milestone."""
    milestone_id: Any
    reflection: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedReflection":
        return cls(
            milestone_id=_first(data, "milestoneId", "milestone_id"),
            reflection=_first(data, "reflection", "content", default=""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"milestone_id": self.milestone_id, "reflection": self.reflection}


@dataclass
class GeneratedReview:
    """A generated program review."""
    rating: Optional[int] = None
    summary: str = ""
    full_text: str = ""
    impact: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedReview":
        return cls(
            rating=_first(data, "rating"),
            summary=_first(data, "text", "summary", default=""),
            full_text=_first(data, "fullReview", "full_text", default=""),
            impact=_first(data, "impact", default=""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rating": self.rating,
            "summary": self.summary,
            "full_text": self.full_text,
            "impact": self.impact,
        }


@dataclass
class SessionBundle:
    """All generated content for one synthetic program participation."""
    profile: BeneficiaryProfile
    program_id: int
    fund_id: Optional[int] = None
    outcome: OutcomeType = OutcomeType.POSITIVE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Set once the beneficiary has a User row
    user_id: Optional[int] = None

    pre_survey_id: Optional[int] = None
    post_survey_id: Optional[int] = None

    application_responses: List[GeneratedResponse] = field(default_factory=list)
    pre_survey_responses: List[GeneratedResponse] = field(default_factory=list)
    milestone_reflections: List[GeneratedReflection] = field(default_factory=list)
    post_survey_responses: List[GeneratedResponse] = field(default_factory=list)
    review: Optional[GeneratedReview] = None

    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "profile": self.profile.to_dict(),
            "program_id": self.program_id,
            "fund_id": self.fund_id,
            "outcome": self.outcome.value,
            "user_id": self.user_id,
            "pre_survey_id": self.pre_survey_id,
            "post_survey_id": self.post_survey_id,
            "application_responses": [r.to_dict() for r in self.application_responses],
            "pre_survey_responses": [r.to_dict() for r in self.pre_survey_responses],
            "milestone_reflections": [r.to_dict() for r in self.milestone_reflections],
            "post_survey_responses": [r.to_dict() for r in self.post_survey_responses],
            "review": self.review.to_dict() if self.review else None,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionBundle":
        """Convert dictionary to SessionBundle object."""
        bundle = cls(
            profile=BeneficiaryProfile.from_dict(data.get("profile", {})),
            program_id=data["program_id"],
            fund_id=data.get("fund_id"),
            outcome=OutcomeType(data.get("outcome", "positive")),
            user_id=data.get("user_id"),
            pre_survey_id=data.get("pre_survey_id"),
            post_survey_id=data.get("post_survey_id"),
        )
        if data.get("id"):
            bundle.id = data["id"]

        bundle.application_responses = [
            GeneratedResponse.from_dict(r) for r in data.get("application_responses", [])
        ]
        bundle.pre_survey_responses = [
            GeneratedResponse.from_dict(r) for r in data.get("pre_survey_responses", [])
        ]
        bundle.milestone_reflections = [
            GeneratedReflection.from_dict(r) for r in data.get("milestone_reflections", [])
        ]
        bundle.post_survey_responses = [
            GeneratedResponse.from_dict(r) for r in data.get("post_survey_responses", [])
        ]
        if data.get("review"):
            bundle.review = GeneratedReview.from_dict(data["review"])

        if data.get("created_at"):
            bundle.created_at = datetime.fromisoformat(data["created_at"])

        return bundle
