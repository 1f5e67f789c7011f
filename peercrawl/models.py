"""Data models: NodeStatus, PeerRecord, DiscoveredPeer, CrawlContext dataclasses."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass
class NodeStatus:
    """Decoded response of a node's status endpoint.

    Attributes:
        network: Network identifier the node reports (chain id).
    """

    network: str


@dataclass
class PeerRecord:
    """One peer entry as reported by a neighbour's peer-list endpoint.

    Attributes:
        remote_ip: IP address the neighbour observes for this peer.
        moniker: Display name the peer advertises.
        version: Software version string the peer advertises.
        rpc_address: Raw advertised RPC address, e.g.
            ``"tcp://0.0.0.0:26657"``.  The host part is usually a
            placeholder and is replaced by ``remote_ip`` before querying.
        node_id: Protocol-level node identifier, if reported.
    """

    remote_ip: str
    moniker: str
    version: str
    rpc_address: str
    node_id: str | None = None


@dataclass
class DiscoveredPeer:
    """A row of crawl output: a distinct peer endpoint, first sighting.

    Attributes:
        ip: Observed remote IP of the peer.
        moniker: Display name of the peer.
        version: Software version of the peer.
        endpoint: Derived queryable RPC endpoint (the dedup key).
        discovered_from: Endpoint whose peer list first reported this peer.
        node_id: Protocol-level node identifier, if the neighbour reported it.
    """

    ip: str
    moniker: str
    version: str
    endpoint: str
    discovered_from: str
    node_id: str | None = None

    def as_row(self) -> tuple[str, str, str]:
        """Return the ``(ip, moniker, version)`` triple written to CSV."""
        return (self.ip, self.moniker, self.version)


@dataclass
class CrawlSummary:
    """Counters describing what happened during a crawl.

    Attributes:
        nodes_queried: Endpoints whose status was requested.
        nodes_unreachable: Endpoints skipped on a transport or decode error.
        network_mismatches: Endpoints reporting a different network.
        malformed_addresses: Peer entries skipped for a bad RPC address.
        started_at: When the crawl context was created (UTC).
        duration_seconds: Wall-clock duration, filled in by the CLI.
    """

    nodes_queried: int = 0
    nodes_unreachable: int = 0
    network_mismatches: int = 0
    malformed_addresses: int = 0
    started_at: datetime = field(
        default_factory=lambda: datetime.now(UTC),
    )
    duration_seconds: float | None = None


@dataclass
class CrawlContext:
    """Traversal state shared by every crawl started in one invocation.

    Attributes:
        visited: Peer endpoints already recorded.  An endpoint is added
            here before it is explored, never after.
        explored: Endpoints whose status and peer list were already
            requested.  Seeds land here without being recorded as peers.
        peers: Discovered peers in depth-first discovery order.
        summary: Counters for the terminal summary.
    """

    visited: set[str] = field(default_factory=set)
    explored: set[str] = field(default_factory=set)
    peers: list[DiscoveredPeer] = field(default_factory=list)
    summary: CrawlSummary = field(default_factory=CrawlSummary)
