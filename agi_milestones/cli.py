"""CLI entrypoint for running milestone campaigns."""

import datetime
import logging
from typing import Optional

import click

from .campaign import run_campaign
from .core.catalog import DEFAULT_CATALOG, MilestoneCatalog
from .core.errors import MilestoneError
from .core.utils import setup_logging

logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "--organizations",
    default=3,
    type=click.IntRange(min=1),
    help="Number of competing organizations, stances assigned round-robin (default: 3)",
)
@click.option(
    "--rounds",
    default=10,
    type=click.IntRange(min=0),
    help="Number of rounds to simulate (default: 10)",
)
@click.option(
    "--research-points",
    default=5000.0,
    type=click.FloatRange(min=0),
    help="Research points each organization earns per round (default: 5000)",
)
@click.option(
    "--compute-budget",
    default=2_000_000.0,
    type=click.FloatRange(min=0),
    help="Compute budget each organization earns per round (default: 2000000)",
)
@click.option(
    "--challenge-probability",
    default=0.3,
    type=click.FloatRange(0, 1),
    help="Chance per turn that an alignment challenge is presented (default: 0.3)",
)
@click.option(
    "--random-seed",
    envvar="AGI_RANDOM_SEED",
    default=None,
    type=int,
    help="Random seed for reproducibility (or set AGI_RANDOM_SEED env var)",
)
@click.option(
    "--catalog",
    "catalog_path",
    envvar="AGI_CATALOG",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file of milestone requirement overrides (or set AGI_CATALOG env var)",
)
@click.option(
    "--log-file",
    default=f"milestone_transcript_{datetime.datetime.now().replace(microsecond=0).isoformat()}.jsonl",
    type=str,
    help="Save the campaign transcript to this file",
)
@click.option(
    "--output",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the final progression summary to this CSV file",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose logging",
)
def main(
    organizations: int,
    rounds: int,
    research_points: float,
    compute_budget: float,
    challenge_probability: float,
    random_seed: Optional[int],
    catalog_path: Optional[str],
    log_file: str,
    output: Optional[str],
    verbose: bool,
):
    """Run a milestone campaign between competing AI organizations.

    Example:
        python simulate.py --organizations 3 --rounds 12 --random-seed 42
    """
    setup_logging(verbose=verbose, log_file=log_file)
    try:
        catalog = MilestoneCatalog.from_json(catalog_path) if catalog_path else DEFAULT_CATALOG
        summary = run_campaign(
            organizations=organizations,
            rounds=rounds,
            research_points=research_points,
            compute_budget=compute_budget,
            challenge_probability=challenge_probability,
            random_seed=random_seed,
            catalog=catalog,
        )
    except KeyboardInterrupt:
        click.echo("\nCampaign interrupted by user.", err=True)
        raise click.Abort()
    except (MilestoneError, ValueError) as e:
        if verbose:
            logger.exception("Campaign failed")
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    achieved = summary[summary["status"] == "Achieved"]
    click.echo(f"\nCampaign complete: {rounds} rounds, {len(achieved)} milestones achieved")
    for org, count in achieved.groupby("organization_id").size().items():
        click.echo(f"  {org}: {count} achieved")
    if output:
        summary.to_csv(output, index=False)
        click.echo(f"Summary written to {output}")


if __name__ == "__main__":
    main()
