"""Aggregator: software version distribution and moniker coverage."""

import logging
from dataclasses import dataclass, field

from peercrawl.models import DiscoveredPeer

logger = logging.getLogger(__name__)


@dataclass
class AggregatedResult:
    """Aggregated statistics computed from a list of discovered peers.

    Attributes:
        version_distribution: ``(version, count)`` pairs sorted by count
            descending, ties broken by version string.
        unique_ips: Number of distinct IPs among the peers.
        unnamed: Number of peers advertising an empty moniker.
        total: Number of peers.
    """

    version_distribution: list[tuple[str, int]] = field(default_factory=list)
    unique_ips: int = 0
    unnamed: int = 0
    total: int = 0


def aggregate(peers: list[DiscoveredPeer]) -> AggregatedResult:
    """Compute aggregate statistics from a list of discovered peers.

    Peers with an empty version string are counted under ``"unknown"``.
    """
    version_counts: dict[str, int] = {}
    unnamed = 0

    for peer in peers:
        version = peer.version or "unknown"
        version_counts[version] = version_counts.get(version, 0) + 1
        if not peer.moniker:
            unnamed += 1

    version_distribution = sorted(
        version_counts.items(), key=lambda item: (-item[1], item[0])
    )

    return AggregatedResult(
        version_distribution=version_distribution,
        unique_ips=len({p.ip for p in peers}),
        unnamed=unnamed,
        total=len(peers),
    )


def aggregate_to_meta(peers: list[DiscoveredPeer]) -> dict:
    """Compute aggregate statistics and return them as a plain dict.

    Convenience wrapper around ``aggregate()`` producing the shape the
    JSON renderer emits under ``"stats"``.
    """
    result = aggregate(peers)
    return {
        "version_distribution": result.version_distribution,
        "unique_ips": result.unique_ips,
        "unnamed": result.unnamed,
        "total": result.total,
    }
