"""Batch orchestration: profile, bundle and persistence, N times over."""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import SESSION_OUTPUT_DIR
from .exceptions import NotFoundError
from .llm_client import CompletionService
from .models import FallbackPolicy
from .profiles import synthesize_profile
from .repository import ProgramRepository
from .sessions import assemble_session
from .storage import save_session_bundle
from .writer import SessionWriter

logger = logging.getLogger(__name__)


@dataclass
class IterationResult:
    """What one pass through the pipeline produced."""
    index: int
    program_id: Optional[int] = None
    fund_id: Optional[int] = None
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    session_id: Optional[int] = None
    outcome: Optional[str] = None
    bundle_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.session_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "program_id": self.program_id,
            "fund_id": self.fund_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "session_id": self.session_id,
            "outcome": self.outcome,
            "bundle_path": self.bundle_path,
            "error": self.error,
        }


@dataclass
class BatchResult:
    """Results for every iteration of a batch."""
    results: List[IterationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def session_ids(self) -> List[int]:
        return [r.session_id for r in self.results if r.session_id is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


def validate_targets(
    repository: ProgramRepository,
    program_id: Optional[int] = None,
    fund_id: Optional[int] = None
):
    """
    Check explicit program / fund ids before any generation starts.

    Raises:
        NotFoundError: an explicit id does not exist, or there are no programs
            to choose from
    """
    if program_id is not None:
        repository.require_program(program_id)
    elif not repository.list_program_ids():
        raise NotFoundError("No programs found in the database")

    if fund_id is not None:
        repository.require_fund(fund_id)
        if program_id is not None and not repository.program_in_fund(program_id, fund_id):
            logger.warning("Program %s is not linked to fund %s", program_id, fund_id)


async def run_iteration(
    result: IterationResult,
    repository: ProgramRepository,
    writer: SessionWriter,
    llm: CompletionService,
    program_id: Optional[int] = None,
    fund_id: Optional[int] = None,
    save_json: bool = False,
    output_dir: str = SESSION_OUTPUT_DIR,
    policy: FallbackPolicy = FallbackPolicy.EMPTY,
    rng: Optional[random.Random] = None
) -> IterationResult:
    """
    One profile, one bundle, one persisted session.

    Fills in result as it goes, so a failure leaves the ids of whatever was
    already persisted on it.
    """
    result.program_id = program_id if program_id is not None else repository.random_program_id()
    result.fund_id = fund_id if fund_id is not None else repository.random_fund_id_for_program(result.program_id)
    logger.info("Selected program ID: %s (fund ID: %s)", result.program_id, result.fund_id)

    program = repository.require_program(result.program_id)
    profile = await synthesize_profile(program, llm)
    result.user_name = profile.name

    bundle = await assemble_session(
        result.program_id, profile, repository, llm,
        fund_id=result.fund_id, policy=policy, rng=rng
    )
    result.outcome = bundle.outcome.value

    user = writer.create_user(profile)
    bundle.user_id = result.user_id = user.id

    if save_json:
        result.bundle_path = save_session_bundle(bundle, output_dir)
        logger.info("Session data saved to %s", result.bundle_path)

    try:
        result.session_id = writer.write(bundle)
    finally:
        if result.session_id is None and not writer.atomic:
            result.session_id = writer.last_session_id
    return result


async def run_batch(
    count: int,
    repository: ProgramRepository,
    writer: SessionWriter,
    llm: CompletionService,
    program_id: Optional[int] = None,
    fund_id: Optional[int] = None,
    save_json: bool = False,
    output_dir: str = SESSION_OUTPUT_DIR,
    policy: FallbackPolicy = FallbackPolicy.EMPTY,
    rng: Optional[random.Random] = None
) -> BatchResult:
    """
    Generate and persist count synthetic sessions, one after another.

    Explicit ids are validated first and a NotFoundError aborts the batch
    before anything is generated. After that, a failing iteration is logged
    and recorded in the result, and the remaining iterations still run.

    Args:
        count: Number of sessions to generate
        repository: Program catalog lookups
        writer: Persistence writer
        llm: Text-generation service
        program_id: Pin every session to this program (random per session otherwise)
        fund_id: Pin every session to this fund (a fund of the program otherwise)
        save_json: Also write each bundle to output_dir
        output_dir: Where bundle files go
        policy: What failed generators return
        rng: Random source

    Returns:
        BatchResult
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    validate_targets(repository, program_id, fund_id)

    logger.info("Generating %d beneficiary profiles and sessions...", count)
    batch = BatchResult()

    for i in range(count):
        logger.info("--- Generating profile and session %d of %d ---", i + 1, count)
        result = IterationResult(index=i, program_id=program_id, fund_id=fund_id)
        try:
            await run_iteration(
                result, repository, writer, llm,
                program_id=program_id, fund_id=fund_id, save_json=save_json,
                output_dir=output_dir, policy=policy, rng=rng
            )
            logger.info("Session created successfully with ID %s", result.session_id)
        except Exception as e:
            logger.exception("Error generating session %d of %d: %s", i + 1, count, e)
            result.error = str(e)
            # Nothing uncommitted from a failed iteration may reach the next commit
            writer.discard()
            if writer.atomic:
                result.user_id = result.session_id = None
            elif result.user_id or result.session_id:
                logger.warning(
                    "Iteration %d left user %s / session %s in the database",
                    i + 1, result.user_id, result.session_id
                )
        batch.results.append(result)

    logger.info("Generation summary: %d succeeded, %d failed", batch.succeeded, batch.failed)
    return batch
