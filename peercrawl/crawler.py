"""Depth-first peer-graph crawl over node RPC endpoints."""

import logging
from collections.abc import Iterable, Iterator

from peercrawl.models import CrawlContext, DiscoveredPeer, PeerRecord
from peercrawl.rpc import RpcClient, RpcError

logger = logging.getLogger(__name__)

# "tcp://0.0.0.0:26657" splits into three parts; anything shorter has no
# scheme or no port and cannot be queried.
_MIN_RPC_ADDRESS_PARTS = 3


class MalformedAddressError(ValueError):
    """Raised when an advertised RPC address has too few ``:`` segments."""


def derive_rpc_endpoint(rpc_address: str, remote_ip: str) -> str:
    """Build the queryable endpoint of a peer.

    The host of the advertised address is usually a placeholder such as
    ``0.0.0.0``, so it is replaced by the IP the neighbour observed.  The
    port is the last ``:``-delimited segment.

    Args:
        rpc_address: Advertised RPC address, e.g. ``"tcp://0.0.0.0:26657"``.
        remote_ip: Observed remote IP of the peer.

    Returns:
        An endpoint such as ``"http://203.0.113.5:26657"``.

    Raises:
        MalformedAddressError: If *rpc_address* has fewer than three
            ``:``-delimited segments.
    """
    parts = rpc_address.split(":")
    if len(parts) < _MIN_RPC_ADDRESS_PARTS:
        raise MalformedAddressError(
            f"Unexpected RPC address format {rpc_address!r} for peer {remote_ip}"
        )
    return f"http://{remote_ip}:{parts[-1]}"


class Crawler:
    """Walks the peer graph reachable from one or more start endpoints.

    The walk visits peers in exactly the order a recursive depth-first
    search would, but keeps pending work on an explicit stack of peer
    iterators so the size of the network is not bounded by the Python
    recursion limit.

    Args:
        client: RPC client used for status and peer-list queries.
    """

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    def crawl_all(
        self,
        network_id: str,
        seeds: Iterable[str],
        context: CrawlContext | None = None,
    ) -> CrawlContext:
        """Crawl from every seed in turn, sharing one traversal context.

        Returns:
            The (possibly newly created) context holding every peer found.
        """
        if context is None:
            context = CrawlContext()
        for seed in seeds:
            self.crawl(network_id, seed, context)
        logger.info(
            "Crawl finished: %d peers discovered, %d nodes queried",
            len(context.peers),
            context.summary.nodes_queried,
        )
        return context

    def crawl(
        self, network_id: str, start: str, context: CrawlContext
    ) -> list[DiscoveredPeer]:
        """Crawl the peer graph reachable from *start*.

        Newly seen peers are appended to ``context.peers``; the same list
        is returned.

        Args:
            network_id: Network every explored node must report.
            start: Endpoint to start from.
            context: Shared traversal state, mutated in place.

        Returns:
            ``context.peers``.
        """
        if start in context.explored:
            logger.info("Skipping %s: already explored", start)
            return context.peers

        stack: list[tuple[str, Iterator[PeerRecord]]] = []
        self._explore(network_id, start, context, stack)

        while stack:
            source, pending = stack[-1]
            peer = next(pending, None)
            if peer is None:
                stack.pop()
                continue

            try:
                endpoint = derive_rpc_endpoint(peer.rpc_address, peer.remote_ip)
            except MalformedAddressError as exc:
                logger.warning("%s (reported by %s)", exc, source)
                context.summary.malformed_addresses += 1
                continue

            if endpoint in context.visited:
                logger.debug("Peer already processed: %s", endpoint)
                continue

            context.visited.add(endpoint)
            context.peers.append(
                DiscoveredPeer(
                    ip=peer.remote_ip,
                    moniker=peer.moniker,
                    version=peer.version,
                    endpoint=endpoint,
                    discovered_from=source,
                    node_id=peer.node_id,
                )
            )
            logger.info("New peer %s (%s) via %s", endpoint, peer.moniker, source)

            if endpoint in context.explored:
                # A seed explored earlier, now reported by a neighbour.
                continue
            self._explore(network_id, endpoint, context, stack)

        return context.peers

    def _explore(
        self,
        network_id: str,
        endpoint: str,
        context: CrawlContext,
        stack: list[tuple[str, Iterator[PeerRecord]]],
    ) -> None:
        """Query one node and push its peers onto *stack*.

        Nothing is pushed when the node is unreachable, undecodable, or
        belongs to another network.
        """
        context.explored.add(endpoint)
        context.summary.nodes_queried += 1

        logger.debug("Querying status for %s", endpoint)
        try:
            status = self.client.get_status(endpoint)
        except RpcError as exc:
            logger.warning("Skipping node, status query failed: %s", exc)
            context.summary.nodes_unreachable += 1
            return

        if status.network != network_id:
            logger.warning(
                "Network mismatch for %s: expected %s, got %s",
                endpoint,
                network_id,
                status.network,
            )
            context.summary.network_mismatches += 1
            return

        logger.debug("Querying peers for %s", endpoint)
        try:
            peers = self.client.get_peers(endpoint)
        except RpcError as exc:
            logger.warning("Skipping node, peer-list query failed: %s", exc)
            context.summary.nodes_unreachable += 1
            return

        logger.debug("Found %d peers for %s", len(peers), endpoint)
        stack.append((endpoint, iter(peers)))
