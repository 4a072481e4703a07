"""Synthetic beneficiary profile generation."""

import logging

from .config import FALLBACK_PROFILE, MARITAL_STATUSES
from .exceptions import ServiceError, ParseError
from .llm_client import CompletionService
from .models import BeneficiaryProfile, ProgramContext

logger = logging.getLogger(__name__)

PROFILE_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates realistic profiles of people seeking support. "
    "You always respond with valid JSON that strictly follows the requested structure."
)

PROFILE_PROMPT = """Generate a detailed profile of a person who is seeking support from a program called "{name}".
Program Description: {description}

The profile should be returned as a JSON object with the following structure:
{{
  "name": "Full Name",
  "age": 35,
  "jobTitle": "Job Title",
  "yearsInJob": 5,
  "income": 75000,
  "maritalStatus": "{statuses}",
  "numberOfChildren": 2,
  "currentChallenges": ["Challenge 1", "Challenge 2", "Challenge 3"],
  "hopefulOutcomes": ["Outcome 1", "Outcome 2", "Outcome 3"]
}}

Guidelines:
1. Name: Make up a unique and uncommon full name (don't include "beneficiary" or a job title in the name)
2. Age: Between 30-70
3. Job Title: Should sound like a real job title
4. Years in current job: Between 1-10
5. Income: Between 50,000-200,000 (just the number, no currency symbol)
6. Marital Status: One of {status_list}
7. Number of Children: Integer between 0-5
8. Current Challenges: List 2-3 specific challenges they're facing related to the program description
9. Hopeful Outcomes: List 2-3 specific goals that align with what the program offers

Make the profile realistic, detailed, and specific. Include personal struggles that would be common for people seeking this specific type of program."""


def build_profile_prompt(program: ProgramContext) -> str:
    return PROFILE_PROMPT.format(
        name=program.name,
        description=program.description,
        statuses="|".join(MARITAL_STATUSES),
        status_list=", ".join(f'"{s}"' for s in MARITAL_STATUSES),
    )


def fallback_profile() -> BeneficiaryProfile:
    return BeneficiaryProfile.from_dict(FALLBACK_PROFILE)


async def synthesize_profile(
    program: ProgramContext,
    llm: CompletionService
) -> BeneficiaryProfile:
    """
    Generate a beneficiary profile for a program.

    Never raises for generation problems: a failed call, unparseable output or
    a payload that is not a profile object all yield the fixed fallback profile.

    Args:
        program: Program the beneficiary is seeking support from
        llm: Text-generation service

    Returns:
        BeneficiaryProfile
    """
    logger.info("Generating profile for program: %s", program.name)

    try:
        data = await llm.query_json(PROFILE_SYSTEM_PROMPT, build_profile_prompt(program))
    except (ServiceError, ParseError) as e:
        logger.error("Error generating beneficiary profile: %s", e)
        logger.warning("Using fallback profile")
        return fallback_profile()

    if not isinstance(data, dict) or not (data.get("name") or data.get("firstName")):
        logger.warning("Generated profile has no name, using fallback profile")
        return fallback_profile()

    try:
        profile = BeneficiaryProfile.from_dict(data)
    except (TypeError, ValueError) as e:
        logger.warning("Generated profile is malformed (%s), using fallback profile", e)
        return fallback_profile()
    logger.info("Generated beneficiary profile for %s", profile.name)
    return profile
