"""Output: CSV writer, rich table summary, JSON summary, format dispatch."""

import csv
import dataclasses
import json
import logging
import sys
from io import StringIO
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from peercrawl.aggregator import aggregate, aggregate_to_meta
from peercrawl.models import CrawlContext, DiscoveredPeer

logger = logging.getLogger(__name__)

CSV_HEADER = ("ip", "moniker", "version")

# Columns displayed in the peer table.
_PEER_COLUMNS = [
    ("IP", "ip"),
    ("Moniker", "moniker"),
    ("Version", "version"),
    ("Endpoint", "endpoint"),
]

# How many versions to show in the distribution table.
_TOP_N = 10


# ---------------------------------------------------------------------------
# CSV artifact
# ---------------------------------------------------------------------------


def write_csv(peers: list[DiscoveredPeer], path: Path | str) -> None:
    """Write *peers* to *path* as CSV with an ``ip,moniker,version`` header.

    Rows follow discovery order.  A partially written file is left in
    place if writing fails.

    Raises:
        OSError: If the file cannot be created or written.
    """
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(CSV_HEADER)
        for peer in peers:
            writer.writerow(peer.as_row())
    logger.info("Wrote %d peers to %s", len(peers), path)


# ---------------------------------------------------------------------------
# Terminal summary
# ---------------------------------------------------------------------------


def render(
    network_id: str,
    context: CrawlContext,
    fmt: str,
    *,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Dispatch the crawl summary to the appropriate formatter.

    Args:
        network_id: Network that was crawled.
        context: Finished traversal context.
        fmt: Output format, ``"table"`` or ``"json"``.
        file: Writable file object for output (default: ``sys.stdout``).
        width: Explicit console width (default: auto-detect).

    Raises:
        ValueError: If *fmt* is not ``"table"`` or ``"json"``.
    """
    if fmt == "table":
        render_table(network_id, context, file=file, width=width)
    elif fmt == "json":
        render_json(network_id, context, file=file)
    else:
        raise ValueError(f"Unknown output format: {fmt!r}")


def render_table(
    network_id: str,
    context: CrawlContext,
    *,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Render the discovered peers and version distribution as rich tables."""
    out = file or sys.stdout
    console = Console(file=out, highlight=False, width=width)
    peers = context.peers

    table = Table(title=f"{escape(network_id)} — {len(peers)} peers")
    for header, _ in _PEER_COLUMNS:
        table.add_column(header)
    for peer in peers:
        table.add_row(*[_fmt(getattr(peer, attr)) for _, attr in _PEER_COLUMNS])
    console.print(table)

    stats = aggregate(peers)
    if stats.version_distribution:
        t = Table(title="Top versions")
        t.add_column("Version")
        t.add_column("Peers", justify="right")
        for version, count in stats.version_distribution[:_TOP_N]:
            t.add_row(escape(version), str(count))
        console.print(t)

    summary = context.summary
    console.print(
        f"  {len(peers)} peers, {stats.unique_ips} unique IPs, "
        f"{summary.nodes_queried} queried, {summary.nodes_unreachable} unreachable, "
        f"{summary.network_mismatches} network mismatches, "
        f"{summary.malformed_addresses} malformed addresses"
    )


def render_json(
    network_id: str, context: CrawlContext, *, file: object | None = None
) -> None:
    """Render the crawl summary as a JSON object.

    The object has ``network``, ``peers`` (list of peer dicts),
    ``summary`` (crawl counters), and ``stats`` (aggregates).
    """
    out = file or sys.stdout
    payload = _context_to_dict(network_id, context)
    json.dump(payload, out, indent=2, default=str)
    out.write("\n")  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _context_to_dict(network_id: str, context: CrawlContext) -> dict:
    """Convert a ``CrawlContext`` to a plain dict."""
    return {
        "network": network_id,
        "peers": [dataclasses.asdict(p) for p in context.peers],
        "summary": dataclasses.asdict(context.summary),
        "stats": aggregate_to_meta(context.peers),
    }


def _fmt(value: object) -> str:
    """Format a field value for table display.

    ``None`` and empty strings become ``"—"``; peer-supplied text is
    escaped so brackets in a moniker are not read as rich markup.
    """
    if value is None or value == "":
        return "—"
    return escape(str(value))


def render_to_string(
    network_id: str, context: CrawlContext, fmt: str, *, width: int = 200
) -> str:
    """Render to a string instead of stdout; useful for testing."""
    buf = StringIO()
    render(network_id, context, fmt, file=buf, width=width)
    return buf.getvalue()
