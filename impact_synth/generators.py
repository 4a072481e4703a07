"""Outcome-conditioned content generators for synthetic sessions."""

import json
import logging
import random
from typing import Any, Dict, List, Optional

from . import fallbacks
from .config import (
    APPLICATION_TONES, PRE_SURVEY_TONES, REFLECTION_TONES, POST_SURVEY_TONES
)
from .exceptions import ServiceError, ParseError
from .llm_client import CompletionService, unwrap_list
from .models import (
    BeneficiaryProfile, ProgramContext, MilestoneInfo, SurveyInfo, Question,
    OutcomeType, FallbackPolicy, GeneratedResponse, GeneratedReflection, GeneratedReview
)
from .outcomes import describe_band, enforce_rating, in_band

logger = logging.getLogger(__name__)

RESPONSES_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates realistic {kind} responses. "
    "You always respond with valid JSON."
)
REFLECTIONS_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates realistic milestone reflections. "
    "You always respond with valid JSON and create reflections with variable lengths as instructed."
)
REVIEW_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates realistic reviews. "
    "You always respond with valid JSON and follow the rating scale instructions exactly."
)

RESPONSES_FORMAT = """Format your response as a JSON object with a "responses" array, where each item has:
- questionId: the ID of the question
- response: the participant's response to that question"""


def _json_block(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def _questions_payload(questions: List[Question]) -> List[Dict[str, Any]]:
    return [{"id": q.id, "order": q.order, "text": q.text, "type": q.type} for q in questions]


def _context_sections(profile: BeneficiaryProfile, program: ProgramContext) -> List[str]:
    return [
        "# Participant Profile",
        _json_block(profile.to_dict()),
        "",
        "# Program",
        f"**{program.name}**",
        program.description,
        "",
    ]


async def _generate_items(
    llm: CompletionService,
    system: str,
    prompt: str,
    keys: List[str]
) -> List[Dict[str, Any]]:
    """Query the model and return the dict items of the reply's list."""
    data = await llm.query_json(system, prompt)
    items = unwrap_list(data, *keys)
    if not items:
        raise ParseError(f"Expected a non-empty list under {keys}, got: {str(data)[:200]}")
    return [item for item in items if isinstance(item, dict)]


# ============ Application ============

def build_application_prompt(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    questions: List[Question],
    outcome: OutcomeType
) -> str:
    sections = ["You are helping to generate realistic application responses for a person applying to a program.", ""]
    sections.extend(_context_sections(profile, program))
    sections.append("# Application Questions")
    sections.append(_json_block(_questions_payload(questions)))
    sections.append("")
    sections.append("# Instructions")
    sections.append(f"""Write thoughtful, detailed answers to every question. The applicant comes across as {APPLICATION_TONES[outcome.value]}. The responses should:
1. Be realistic and thoughtful
2. Reference specific challenges and goals from the profile
3. Show why the person is seeking this program
4. Be written in first person from the applicant's perspective""")
    sections.append("")
    sections.append(RESPONSES_FORMAT)
    return "\n".join(sections)


async def generate_application_responses(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    questions: List[Question],
    outcome: OutcomeType,
    llm: CompletionService,
    policy: FallbackPolicy = FallbackPolicy.EMPTY
) -> List[GeneratedResponse]:
    """Generate application answers; empty (or canned, under FIXED) on failure."""
    logger.info("Generating application responses for %d questions...", len(questions))
    if not questions:
        return []

    try:
        items = await _generate_items(
            llm,
            RESPONSES_SYSTEM_PROMPT.format(kind="application"),
            build_application_prompt(profile, program, questions, outcome),
            ["responses", "answers"]
        )
    except (ServiceError, ParseError) as e:
        logger.error("Error generating application responses: %s", e)
        if policy == FallbackPolicy.FIXED:
            return fallbacks.application_responses(profile, questions)
        return []

    responses = [GeneratedResponse.from_dict(item) for item in items]
    logger.info("Generated %d application responses", len(responses))
    return responses


# ============ Surveys ============

def build_pre_survey_prompt(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    survey: SurveyInfo,
    outcome: OutcomeType
) -> str:
    sections = ["You are helping to generate realistic pre-survey responses for a person starting a program.", ""]
    sections.extend(_context_sections(profile, program))
    sections.append(f"# Pre-Survey: {survey.title}")
    sections.append(_json_block(_questions_payload(survey.questions)))
    sections.append("")
    sections.append("# Instructions")
    sections.append(f"""Answer each question the way this person would BEFORE starting the program. Their starting point is {PRE_SURVEY_TONES[outcome.value]}, consistent with the challenges in the profile.
For numeric scale questions, answer with a number on the question's scale.""")
    sections.append("")
    sections.append(RESPONSES_FORMAT)
    return "\n".join(sections)


def build_post_survey_prompt(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    survey: SurveyInfo,
    outcome: OutcomeType
) -> str:
    sections = ["You are helping to generate realistic post-survey responses for a person who has completed a program.", ""]
    sections.extend(_context_sections(profile, program))
    sections.append(f"# Post-Survey: {survey.title}")
    sections.append(_json_block(_questions_payload(survey.questions)))
    sections.append("")
    sections.append("# Instructions")
    sections.append(f"""Generate {POST_SURVEY_TONES[outcome.value]} responses that reflect the person's experience after completing the program.
For questions that ask for a rating (1-5), provide a numeric response {describe_band(outcome)}.
For open-ended questions, provide a detailed response (2-4 sentences).""")
    sections.append("")
    sections.append(RESPONSES_FORMAT)
    return "\n".join(sections)


async def generate_pre_survey_responses(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    survey: SurveyInfo,
    outcome: OutcomeType,
    llm: CompletionService,
    policy: FallbackPolicy = FallbackPolicy.EMPTY
) -> List[GeneratedResponse]:
    """Generate baseline survey answers; empty (or canned, under FIXED) on failure."""
    logger.info("Generating pre-survey responses for survey %s...", survey.id)
    if not survey.questions:
        logger.info("Pre-survey %s has no questions", survey.id)
        return []

    try:
        items = await _generate_items(
            llm,
            RESPONSES_SYSTEM_PROMPT.format(kind="survey"),
            build_pre_survey_prompt(profile, program, survey, outcome),
            ["responses", "answers"]
        )
    except (ServiceError, ParseError) as e:
        logger.error("Error generating pre-survey responses: %s", e)
        if policy == FallbackPolicy.FIXED:
            return fallbacks.pre_survey_responses(profile, survey.questions)
        return []

    responses = [GeneratedResponse.from_dict(item) for item in items]
    logger.info("Generated %d pre-survey responses", len(responses))
    return responses


async def generate_post_survey_responses(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    survey: SurveyInfo,
    outcome: OutcomeType,
    llm: CompletionService,
    policy: FallbackPolicy = FallbackPolicy.EMPTY,
    rng: Optional[random.Random] = None
) -> List[GeneratedResponse]:
    """Generate outcome-toned survey answers; empty (or canned, under FIXED) on failure."""
    logger.info("Generating post-survey responses for survey %s...", survey.id)
    if not survey.questions:
        logger.info("Post-survey %s has no questions", survey.id)
        return []

    try:
        items = await _generate_items(
            llm,
            RESPONSES_SYSTEM_PROMPT.format(kind="survey"),
            build_post_survey_prompt(profile, program, survey, outcome),
            ["responses", "answers"]
        )
    except (ServiceError, ParseError) as e:
        logger.error("Error generating post-survey responses: %s", e)
        if policy == FallbackPolicy.FIXED:
            return fallbacks.post_survey_responses(survey.questions, outcome, rng)
        return []

    responses = [GeneratedResponse.from_dict(item) for item in items]
    logger.info("Generated %d post-survey responses", len(responses))
    return responses


# ============ Milestones ============

def build_reflections_prompt(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    milestones: List[MilestoneInfo],
    outcome: OutcomeType
) -> str:
    sections = ["You are helping to generate realistic milestone reflections for a person going through a program.", ""]
    sections.extend(_context_sections(profile, program))
    sections.append("# Program Milestones")
    sections.append(_json_block([
        {
            "id": m.id,
            "order": m.order,
            "title": m.title,
            "description": m.description,
            "reflectionPrompt": m.reflection_prompt,
        }
        for m in milestones
    ]))
    sections.append("")
    sections.append("# Instructions")
    sections.append(f"""Generate {REFLECTION_TONES[outcome.value]} reflections for each milestone that show the person's journey through the program. Where a milestone has a reflection prompt, answer it.

IMPORTANT: Create reflections with VARIABLE LENGTH. Some should be a single sentence, others 2-3 sentences, and others 4-5 sentences. Mix them up randomly.

Each reflection should:
1. Reference specific challenges from the profile
2. Show the person's experience with that milestone
3. Be written in first person

Format your response as a JSON object with a "reflections" array, where each item has:
- milestoneId: the ID of the milestone
- reflection: the reflection on that milestone""")
    return "\n".join(sections)


async def generate_milestone_reflections(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    milestones: List[MilestoneInfo],
    outcome: OutcomeType,
    llm: CompletionService,
    policy: FallbackPolicy = FallbackPolicy.EMPTY,
    rng: Optional[random.Random] = None
) -> List[GeneratedReflection]:
    """Generate one reflection per milestone; empty (or canned, under FIXED) on failure."""
    logger.info("Generating milestone reflections for %d milestones...", len(milestones))
    if not milestones:
        return []

    try:
        items = await _generate_items(
            llm,
            REFLECTIONS_SYSTEM_PROMPT,
            build_reflections_prompt(profile, program, milestones, outcome),
            ["reflections"]
        )
    except (ServiceError, ParseError) as e:
        logger.error("Error generating milestone reflections: %s", e)
        if policy == FallbackPolicy.FIXED:
            return fallbacks.milestone_reflections(milestones, outcome, rng)
        return []

    reflections = [
        GeneratedReflection.from_dict(item)
        for item in items
        if item.get("reflection") or item.get("content")
    ]
    logger.info("Generated %d milestone reflections", len(reflections))
    return reflections


# ============ Review ============

def build_review_prompt(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    outcome: OutcomeType
) -> str:
    sections = ["You are helping to generate a realistic review from a person who has completed a program.", ""]
    sections.extend(_context_sections(profile, program))
    sections.append("# Instructions")
    sections.append(f"""Please generate a {outcome.value} review of the person's experience with the program. The review should:
1. Reference the specific challenges the person was facing before the program
2. Describe ways the program helped or didn't help address those challenges
3. Mention improvements or lack thereof in their work and personal life
4. Include emotional elements about how they feel about the experience
5. End with a recommendation or warning for others in similar situations

Format your response as a JSON object with these fields:
- rating: an integer {describe_band(outcome)}
- text: a short summary (1-2 sentences)
- fullReview: the detailed review (at least 250 words)
- impact: a one-sentence statement about the impact of the program""")
    return "\n".join(sections)


async def generate_review(
    profile: BeneficiaryProfile,
    program: ProgramContext,
    outcome: OutcomeType,
    llm: CompletionService,
    policy: FallbackPolicy = FallbackPolicy.EMPTY,
    rng: Optional[random.Random] = None
) -> Optional[GeneratedReview]:
    """
    Generate a program review whose rating lies in the outcome's band.

    Returns None on failure (or a canned review under FIXED). A generated
    rating outside the band is replaced by one sampled from the band.
    """
    logger.info("Generating review...")

    try:
        data = await llm.query_json(REVIEW_SYSTEM_PROMPT, build_review_prompt(profile, program, outcome))
        if not isinstance(data, dict):
            raise ParseError(f"Expected a review object, got: {str(data)[:200]}")
    except (ServiceError, ParseError) as e:
        logger.error("Error generating review: %s", e)
        if policy == FallbackPolicy.FIXED:
            return fallbacks.review(outcome, rng)
        return None

    review = GeneratedReview.from_dict(data)
    rating = enforce_rating(review.rating, outcome, rng)
    if not in_band(review.rating, outcome):
        logger.warning(
            "Review rating %r is outside the %s band, using %d",
            review.rating, outcome.value, rating
        )
    review.rating = rating
    return review
