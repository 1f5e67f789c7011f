"""Network identity resolution against the bootstrap endpoints."""

import logging
import time
from collections.abc import Callable, Sequence

from peercrawl.rpc import RpcClient, RpcError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 10.0


class ResolutionError(Exception):
    """Raised when no bootstrap endpoint reported a network identifier.

    Attributes:
        attempts: Number of full passes made over the bootstrap list.
        last_error: The last per-node failure observed, if any.
    """

    def __init__(self, attempts: int, last_error: RpcError | None) -> None:
        super().__init__(
            "unable to get network ID from any of the provided seed nodes "
            f"after {attempts} attempts: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


def resolve_network_id(
    client: RpcClient,
    seeds: Sequence[str],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Return the network identifier reported by the first reachable seed.

    Seeds are tried in order.  When every seed fails in a pass and passes
    remain, the whole list is retried after *retry_delay* seconds.  The
    first successful answer wins; the remaining seeds are not consulted.

    Args:
        client: RPC client used for the status queries.
        seeds: Bootstrap endpoints, tried in the given order.
        max_attempts: Number of full passes over *seeds*.
        retry_delay: Seconds to wait between two passes.
        sleep: Sleep function, injectable for tests.

    Returns:
        The network identifier string.

    Raises:
        ValueError: If *seeds* is empty or *max_attempts* is below 1.
        ResolutionError: If every pass failed for every seed.
    """
    if not seeds:
        raise ValueError("At least one seed endpoint is required")
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    last_error: RpcError | None = None
    for attempt in range(1, max_attempts + 1):
        for seed in seeds:
            logger.info(
                "Attempt %d: trying to get network ID from seed node %s",
                attempt,
                seed,
            )
            try:
                status = client.get_status(seed)
            except RpcError as exc:
                logger.warning("Failed to get network ID from %s: %s", seed, exc)
                last_error = exc
                continue
            logger.info("Seed %s reports network %s", seed, status.network)
            return status.network

        if attempt < max_attempts:
            logger.warning(
                "All seed nodes failed in attempt %d; retrying in %ss",
                attempt,
                retry_delay,
            )
            sleep(retry_delay)

    raise ResolutionError(max_attempts, last_error) from last_error
