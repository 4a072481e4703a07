"""Canned content used by the "fixed" fallback policy."""

import random
from typing import List, Optional

from .models import (
    BeneficiaryProfile, GeneratedResponse, GeneratedReflection, GeneratedReview,
    MilestoneInfo, OutcomeType, Question
)
from .outcomes import sample_rating

RATING_WORDS = ("rate", "rating", "scale")
RATING_TYPES = ("LIKERT", "RATING", "SCALE")

# Short, medium and long reflections per outcome
REFLECTIONS = {
    OutcomeType.POSITIVE: [
        "This milestone was very helpful for my growth.",
        "I found this milestone to be transformative. The insights I gained have already improved my work and family life.",
        "Completing this milestone was a significant turning point in my journey. I've gained valuable tools that have "
        "helped me address my challenges effectively. I feel more confident and better equipped now.",
    ],
    OutcomeType.NEUTRAL: [
        "This milestone had some helpful elements, but also some challenges.",
        "I found parts of this milestone useful, though I'm still working through some of the same issues. "
        "There's been some improvement but not as much as I'd hoped.",
        "This milestone provided some insights, but I'm still struggling to apply the concepts consistently. "
        "While I've seen small improvements in some areas, other challenges remain largely the same. "
        "I'm cautiously optimistic about continued progress.",
    ],
    OutcomeType.NEGATIVE: [
        "I didn't find this milestone particularly helpful for my situation.",
        "This milestone didn't address my specific challenges. I'm still facing the same issues with little improvement.",
        "I found this milestone to be disconnected from my actual needs. The concepts presented were too general and "
        "didn't provide practical solutions to my specific challenges. I'm still struggling with the same issues I had before.",
    ],
}

POST_SURVEY_ANSWERS = {
    OutcomeType.POSITIVE: "The program has been transformative for both my work and personal life. I've gained "
                          "valuable tools and insights that have helped me address my challenges effectively.",
    OutcomeType.NEUTRAL: "The program had some helpful elements, though I'm still working through some of the same "
                         "issues. There's been some improvement but not as much as I'd hoped.",
    OutcomeType.NEGATIVE: "I didn't find the program particularly helpful for my situation. I'm still facing the same "
                          "challenges with little improvement.",
}

REVIEWS = {
    OutcomeType.POSITIVE: (
        "This program transformed how I work and helped me overcome burnout.",
        "When I started this program, I was struggling with burnout and feeling isolated. The program gave me "
        "practical tools to address these challenges and work toward a better balance between my responsibilities "
        "and my own well-being. I'm more effective now and my relationships at work and at home have improved. "
        "I highly recommend this program to anyone facing similar challenges.",
        "Transformed my approach to my work and restored my energy.",
    ),
    OutcomeType.NEUTRAL: (
        "The program had some helpful elements, but didn't fully address my challenges.",
        "I entered this program hoping to find solutions for burnout and the pressures I was under. Some aspects "
        "were helpful, but many of the strategies weren't tailored to my situation. I've made progress in certain "
        "areas but still struggle with the same issues in others. The program might suit people in different "
        "circumstances better.",
        "Provided some useful tools but didn't fully resolve my challenges.",
    ),
    OutcomeType.NEGATIVE: (
        "This program didn't address my needs and left me feeling more frustrated.",
        "I was hopeful that this program would help me with the challenges I was facing, particularly burnout and "
        "conflict. Unfortunately, it felt disconnected from the real issues I deal with. The strategies were too "
        "theoretical and didn't translate to my context. I'm still struggling with the same issues and now feel "
        "even more isolated. I would not recommend this program to others in a similar situation.",
        "Added to my stress rather than alleviating it.",
    ),
}


def is_rating_question(question: Question) -> bool:
    if (question.type or "").upper() in RATING_TYPES:
        return True
    text = (question.text or "").lower()
    return any(word in text for word in RATING_WORDS)


def _first_or(items: List[str], default: str) -> str:
    return items[0] if items else default


def application_responses(
    profile: BeneficiaryProfile,
    questions: List[Question]
) -> List[GeneratedResponse]:
    challenge = _first_or(profile.current_challenges, "the pressures of my role")
    hope = _first_or(profile.hopeful_outcomes, "find a healthier way forward")
    return [
        GeneratedResponse(
            question_id=q.id,
            answer=f"I'm applying because I'm dealing with {challenge.lower()}, and I hope to {hope[:1].lower() + hope[1:]}.",
        )
        for q in questions
    ]


def pre_survey_responses(
    profile: BeneficiaryProfile,
    questions: List[Question]
) -> List[GeneratedResponse]:
    challenge = _first_or(profile.current_challenges, "the pressures of my role")
    return [
        GeneratedResponse(
            question_id=q.id,
            answer=f"Before starting, I was struggling with {challenge.lower()} and needed help.",
        )
        for q in questions
    ]


def milestone_reflections(
    milestones: List[MilestoneInfo],
    outcome: OutcomeType,
    rng: Optional[random.Random] = None
) -> List[GeneratedReflection]:
    rng = rng or random
    return [
        GeneratedReflection(milestone_id=m.id, reflection=rng.choice(REFLECTIONS[outcome]))
        for m in milestones
    ]


def post_survey_responses(
    questions: List[Question],
    outcome: OutcomeType,
    rng: Optional[random.Random] = None
) -> List[GeneratedResponse]:
    responses = []
    for q in questions:
        if is_rating_question(q):
            answer = sample_rating(outcome, rng)
        else:
            answer = POST_SURVEY_ANSWERS[outcome]
        responses.append(GeneratedResponse(question_id=q.id, answer=answer))
    return responses


def review(outcome: OutcomeType, rng: Optional[random.Random] = None) -> GeneratedReview:
    summary, full_text, impact = REVIEWS[outcome]
    return GeneratedReview(
        rating=sample_rating(outcome, rng),
        summary=summary,
        full_text=full_text,
        impact=impact,
    )
