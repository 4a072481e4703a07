"""CLI for impact-synth: generate / persist / seed / init-db / distribution commands."""

import asyncio
import json
import logging
import random
from pathlib import Path
from typing import Optional

import typer

from .batch import run_batch
from .config import DATABASE_URL, FALLBACK_POLICY, LOG_LEVEL, SESSION_OUTPUT_DIR
from .database import init_db, make_engine, make_session_factory
from .exceptions import NotFoundError, PersistenceError
from .llm_client import CompletionService
from .models import FallbackPolicy
from .outcomes import outcome_distribution
from .repository import ProgramRepository
from .seed import seed as seed_catalog
from .storage import load_session_bundle
from .writer import SessionWriter

app = typer.Typer(name="impact-synth", help="Synthetic beneficiary sessions for the Impact Fund Dashboard")

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool):
    level = logging.DEBUG if verbose else getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _open_db(database_url: str):
    """Create tables if needed and return a new session."""
    engine = make_engine(database_url)
    init_db(engine)
    return make_session_factory(engine)()


def _parse_id(value: Optional[str], name: str) -> Optional[int]:
    """An explicit id, or None for 'random' / 'null' / omitted."""
    if value is None or value.lower() in ("random", "null", "none", ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise typer.BadParameter(f"{name} must be an integer or 'random', got '{value}'")


def _parse_policy(value: str) -> FallbackPolicy:
    try:
        return FallbackPolicy(value.lower())
    except ValueError:
        raise typer.BadParameter(f"Unknown fallback policy '{value}' (expected 'empty' or 'fixed')")


@app.command()
def generate(
    count: int = typer.Argument(1, min=1, help="Number of sessions to generate"),
    program_id: Optional[str] = typer.Argument(None, help="Program to use ('random' or omitted picks one)"),
    fund_id: Optional[str] = typer.Argument(None, help="Fund to use ('random' or omitted picks one of the program's)"),
    save_json: str = typer.Argument("false", help="'true' also writes each bundle to a JSON file"),
    output_dir: Path = typer.Option(Path(SESSION_OUTPUT_DIR), "--output-dir", help="Where bundle files go"),
    policy: str = typer.Option(FALLBACK_POLICY, "--policy", help="Fallback policy: empty or fixed"),
    atomic: bool = typer.Option(False, "--atomic", help="Write each session in one transaction"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for reproducible draws"),
    database_url: str = typer.Option(DATABASE_URL, "--database-url", help="Database URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Generate synthetic sessions and persist them."""
    _configure_logging(verbose)
    fallback_policy = _parse_policy(policy)
    explicit_program = _parse_id(program_id, "PROGRAM_ID")
    explicit_fund = _parse_id(fund_id, "FUND_ID")
    rng = random.Random(seed)

    db = _open_db(database_url)
    try:
        repository = ProgramRepository(db, rng=rng)
        writer = SessionWriter(db, repository, atomic=atomic)
        llm = CompletionService()

        result = asyncio.run(run_batch(
            count, repository, writer, llm,
            program_id=explicit_program,
            fund_id=explicit_fund,
            save_json=save_json.lower() == "true",
            output_dir=str(output_dir),
            policy=fallback_policy,
            rng=rng,
        ))
    except NotFoundError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)
    finally:
        db.close()

    typer.echo(f"All done! {result.succeeded} sessions created, {result.failed} failed.")
    for item in result.results:
        if item.succeeded:
            typer.echo(f"  session {item.session_id}: {item.user_name} ({item.outcome}) program {item.program_id}")
        else:
            typer.echo(f"  iteration {item.index + 1} failed: {item.error}")


@app.command()
def persist(
    bundle_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved session bundle JSON"),
    fund_id: Optional[int] = typer.Option(None, "--fund-id", help="Override the bundle's fund"),
    atomic: bool = typer.Option(False, "--atomic", help="Write the session in one transaction"),
    database_url: str = typer.Option(DATABASE_URL, "--database-url", help="Database URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Write a previously saved session bundle into the database."""
    _configure_logging(verbose)
    bundle = load_session_bundle(str(bundle_file))
    # The stored user id belongs to whichever database produced the file
    bundle.user_id = None

    db = _open_db(database_url)
    try:
        repository = ProgramRepository(db)
        repository.require_program(bundle.program_id)
        if fund_id is not None:
            repository.require_fund(fund_id)
        session_id = SessionWriter(db, repository, atomic=atomic).write(bundle, fund_id=fund_id)
    except (NotFoundError, PersistenceError) as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)
    finally:
        db.close()

    typer.echo(f"Created session {session_id} for {bundle.profile.name}")


@app.command()
def seed(
    keep: bool = typer.Option(False, "--keep", help="Keep existing rows instead of clearing them"),
    database_url: str = typer.Option(DATABASE_URL, "--database-url", help="Database URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Load the demo fund, programs and surveys."""
    _configure_logging(verbose)
    db = _open_db(database_url)
    try:
        result = seed_catalog(db, reset=not keep)
    finally:
        db.close()
    typer.echo(json.dumps(result, indent=2))


@app.command("init-db")
def init_database(
    database_url: str = typer.Option(DATABASE_URL, "--database-url", help="Database URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Create all tables."""
    _configure_logging(verbose)
    init_db(make_engine(database_url))
    typer.echo("Database tables created")


@app.command()
def distribution(
    trials: int = typer.Option(1000, "--trials", min=1, help="Number of outcome draws"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
) -> None:
    """Sample outcomes and compare the frequencies with the 70/20/10 target."""
    expected = {"positive": 0.70, "neutral": 0.20, "negative": 0.10}
    observed = outcome_distribution(trials, random.Random(seed))
    typer.echo(f"Outcome distribution over {trials} draws:")
    for label, target in expected.items():
        actual = observed.get(label, 0.0)
        typer.echo(f"  {label:<9} {actual:6.1%}  (expected {target:.0%}, diff {actual - target:+.1%})")


def main():
    app()


if __name__ == "__main__":
    main()
