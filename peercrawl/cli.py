"""CLI entry point for the peercrawl tool."""

import dataclasses
import logging
import sys
import time

import click

from peercrawl.config import ConfigError, CrawlerConfig, load_config
from peercrawl.crawler import Crawler
from peercrawl.output import render, write_csv
from peercrawl.resolver import ResolutionError, resolve_network_id
from peercrawl.rpc import RpcClient

logger = logging.getLogger(__name__)

FORMATS = ("table", "json")


@click.command()
@click.option(
    "--seeds",
    "-s",
    required=True,
    help="Comma-separated list of seed node RPC endpoints.",
)
@click.option(
    "--timeout",
    "-t",
    required=True,
    type=click.IntRange(min=1),
    help="Per-request timeout in seconds.",
)
@click.option(
    "--output",
    "-o",
    "output_path",
    required=True,
    type=click.Path(dir_okay=False, writable=True),
    help="Path of the CSV file to write.",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    default="table",
    type=click.Choice(FORMATS, case_sensitive=False),
    show_default=True,
    help="Format of the terminal summary.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to YAML config file (default: ~/.peercrawl/config.yaml).",
)
@click.option(
    "--max-attempts",
    default=None,
    type=click.IntRange(min=1),
    help="Passes over the seed list when resolving the network ID.",
)
@click.option(
    "--retry-delay",
    default=None,
    type=click.FloatRange(min=0),
    help="Seconds to wait between two passes over the seed list.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    seeds: str,
    timeout: int,
    output_path: str,
    output_format: str,
    config_path: str | None,
    max_attempts: int | None,
    retry_delay: float | None,
    verbose: bool,
) -> None:
    """Crawl a blockchain network's peer graph over node RPC endpoints."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    seed_list = parse_seeds(seeds)
    if not seed_list:
        raise click.BadParameter("no seed endpoints given", param_hint="'--seeds'")

    try:
        cfg = load_config(config_path)
    except (ConfigError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    cfg = _apply_overrides(cfg, max_attempts, retry_delay)
    logger.debug("Config loaded: %s", cfg)

    with RpcClient(
        float(timeout),
        status_path=cfg.status_path,
        net_info_path=cfg.net_info_path,
        user_agent=cfg.user_agent,
    ) as client:
        try:
            network_id = resolve_network_id(
                client, seed_list, cfg.max_attempts, cfg.retry_delay
            )
        except ResolutionError as exc:
            click.echo(f"Error: failed to determine network ID: {exc}", err=True)
            sys.exit(1)
        logger.info("Using network ID: %s", network_id)

        t0 = time.monotonic()
        context = Crawler(client).crawl_all(network_id, seed_list)
        context.summary.duration_seconds = time.monotonic() - t0

    try:
        write_csv(context.peers, output_path)
    except OSError as exc:
        click.echo(f"Error: cannot write {output_path}: {exc}", err=True)
        sys.exit(1)

    render(network_id, context, output_format.lower())
    click.echo(f"Output successfully written to {output_path}")


def parse_seeds(seeds: str) -> list[str]:
    """Split a comma-separated seed list, dropping blank entries.

    Entries are stripped of surrounding whitespace and a trailing ``/``
    so ``endpoint + path`` yields a single slash.
    """
    return [s.strip().rstrip("/") for s in seeds.split(",") if s.strip()]


def _apply_overrides(
    cfg: CrawlerConfig,
    max_attempts: int | None,
    retry_delay: float | None,
) -> CrawlerConfig:
    """Return *cfg* with command-line values taking precedence."""
    overrides: dict[str, object] = {}
    if max_attempts is not None:
        overrides["max_attempts"] = max_attempts
    if retry_delay is not None:
        overrides["retry_delay"] = retry_delay
    return dataclasses.replace(cfg, **overrides)
