"""Session bundle assembly: one outcome, every generator, one aggregate."""

import logging
import random
from typing import Optional

from .generators import (
    generate_application_responses, generate_pre_survey_responses,
    generate_milestone_reflections, generate_post_survey_responses, generate_review
)
from .llm_client import CompletionService
from .models import BeneficiaryProfile, FallbackPolicy, SessionBundle, SurveyType
from .outcomes import sample_outcome
from .repository import ProgramRepository

logger = logging.getLogger(__name__)


async def assemble_session(
    program_id: int,
    profile: BeneficiaryProfile,
    repository: ProgramRepository,
    llm: CompletionService,
    fund_id: Optional[int] = None,
    policy: FallbackPolicy = FallbackPolicy.EMPTY,
    rng: Optional[random.Random] = None
) -> SessionBundle:
    """
    Generate all content for one beneficiary's participation in a program.

    The outcome is sampled once here and threaded through every generator.
    Generators whose prerequisite (application questions, a PRE or POST
    survey, milestones) is missing are not called, and a failing generator
    leaves its section empty rather than aborting the bundle. Generators run
    one after another.

    Args:
        program_id: Program the session belongs to
        profile: The beneficiary
        repository: Program catalog lookups
        llm: Text-generation service
        fund_id: Sponsoring fund; a fund linked to the program when omitted
        policy: What failed generators return
        rng: Random source for outcome and rating draws

    Returns:
        SessionBundle

    Raises:
        NotFoundError: the program does not exist
    """
    program = repository.require_program(program_id)
    logger.info("Creating synthetic session for program %s (%s) and beneficiary %s",
                program.id, program.name, profile.name)

    if fund_id is None:
        fund_id = repository.random_fund_id_for_program(program.id)

    milestones = repository.get_milestones(program.id)
    application_questions = repository.get_application_questions(program.id)
    pre_survey = repository.get_survey(program.id, SurveyType.PRE)
    post_survey = repository.get_survey(program.id, SurveyType.POST)

    for label, survey in (("pre", pre_survey), ("post", post_survey)):
        if survey is None:
            logger.info("No %s-survey found for this program", label)
        else:
            logger.info("Found %s-survey: %s", label, survey.id)

    outcome = sample_outcome(rng)
    logger.info("Selected outcome type: %s", outcome.value)

    bundle = SessionBundle(
        profile=profile,
        program_id=program.id,
        fund_id=fund_id,
        outcome=outcome,
        pre_survey_id=pre_survey.id if pre_survey else None,
        post_survey_id=post_survey.id if post_survey else None,
    )

    if application_questions:
        bundle.application_responses = await generate_application_responses(
            profile, program, application_questions, outcome, llm, policy
        )
    else:
        logger.info("No application questions for this program, skipping application")

    if pre_survey:
        bundle.pre_survey_responses = await generate_pre_survey_responses(
            profile, program, pre_survey, outcome, llm, policy
        )

    if milestones:
        bundle.milestone_reflections = await generate_milestone_reflections(
            profile, program, milestones, outcome, llm, policy, rng
        )
    else:
        logger.info("No milestones for this program, skipping reflections")

    if post_survey:
        bundle.post_survey_responses = await generate_post_survey_responses(
            profile, program, post_survey, outcome, llm, policy, rng
        )

    bundle.review = await generate_review(profile, program, outcome, llm, policy, rng)

    logger.info(
        "Assembled session bundle %s: %d application, %d pre-survey, %d reflections, "
        "%d post-survey responses, review=%s",
        bundle.id,
        len(bundle.application_responses),
        len(bundle.pre_survey_responses),
        len(bundle.milestone_reflections),
        len(bundle.post_survey_responses),
        "yes" if bundle.review else "no",
    )
    return bundle
