"""Pick a reachable replica by probing randomly drawn candidates."""

import asyncio
import logging
import random
import socket
import threading
from typing import Awaitable, Callable, Optional, Sequence, Set

from ..config import settings
from ..core.model import NoCandidatesError, NoReachableReplicaError, ReplicaEndpoint


logger = logging.getLogger(__name__)


class _LockedRandom:
    """A random.Random shared across request threads behind a lock."""

    def __init__(self, seed=None):
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def choice(self, seq):
        with self._lock:
            return self._rng.choice(seq)


# process-wide source for candidate draws
_RNG = _LockedRandom()


def probe_endpoint(endpoint: ReplicaEndpoint, timeout: float) -> None:
    """Connect to `endpoint` and hang up; raise OSError if unreachable."""
    try:
        sock = socket.create_connection(endpoint.address, timeout=timeout)
    except UnicodeError as e:
        # host names the idna codec rejects can never resolve
        raise OSError(f"Invalid host name {endpoint.host!r}: {e}") from e
    sock.close()


async def probe_endpoint_async(endpoint: ReplicaEndpoint, timeout: float) -> None:
    """Async probe; raise OSError or asyncio.TimeoutError if unreachable."""
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(endpoint.host, endpoint.port), timeout
        )
    except UnicodeError as e:
        raise OSError(f"Invalid host name {endpoint.host!r}: {e}") from e
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        # the connect itself succeeded
        logger.debug("Error while closing probe to %s: %s", endpoint, e)


class ReplicaSelector:
    """Chooses one verified-reachable replica out of a block's candidates.

    Candidates are drawn uniformly at random among those not yet found dead
    in the current call. Each failed probe marks its endpoint dead for the
    rest of the call; nothing carries over between calls.
    """

    def __init__(self, probe_timeout: Optional[float] = None, *,
                 probe: Callable[[ReplicaEndpoint, float], None] = probe_endpoint,
                 probe_async: Callable[[ReplicaEndpoint, float], Awaitable[None]] = probe_endpoint_async,
                 rng=None):
        self.probe_timeout = settings.read_timeout if probe_timeout is None else probe_timeout
        self._probe = probe
        self._probe_async = probe_async
        self._rng = rng if rng is not None else _RNG

    def _draw(self, candidates: Sequence[ReplicaEndpoint],
              dead: Set[ReplicaEndpoint]) -> Optional[ReplicaEndpoint]:
        alive = [c for c in candidates if c not in dead]
        return self._rng.choice(alive) if alive else None

    def _mark_dead(self, chosen, dead, failures, total, err) -> None:
        dead.add(chosen)
        logger.warning("Replica %s unreachable (%d/%d dead): %r", chosen, failures, total, err)

    def _check_candidates(self, candidates: Sequence[ReplicaEndpoint]) -> None:
        if not candidates:
            raise NoCandidatesError("No nodes contain this block")

    def _exhausted(self, total: int) -> NoReachableReplicaError:
        return NoReachableReplicaError(
            f"Could not reach any of {total} replica(s) holding the block. Please try again"
        )

    def select(self, candidates: Sequence[ReplicaEndpoint],
               probe_timeout: Optional[float] = None) -> ReplicaEndpoint:
        """Return a candidate that accepted a probe connection."""
        self._check_candidates(candidates)
        timeout = self.probe_timeout if probe_timeout is None else probe_timeout
        dead: Set[ReplicaEndpoint] = set()
        failures = 0

        while failures < len(candidates):
            chosen = self._draw(candidates, dead)
            if chosen is None:
                break  # only duplicates of dead endpoints left
            try:
                self._probe(chosen, timeout)
            except OSError as e:
                failures += 1
                self._mark_dead(chosen, dead, failures, len(candidates), e)
                continue
            logger.debug("Selected replica %s after %d failed probe(s)", chosen, failures)
            return chosen

        raise self._exhausted(len(candidates))

    async def select_async(self, candidates: Sequence[ReplicaEndpoint],
                           probe_timeout: Optional[float] = None) -> ReplicaEndpoint:
        """Async counterpart of select()."""
        self._check_candidates(candidates)
        timeout = self.probe_timeout if probe_timeout is None else probe_timeout
        dead: Set[ReplicaEndpoint] = set()
        failures = 0

        while failures < len(candidates):
            chosen = self._draw(candidates, dead)
            if chosen is None:
                break
            try:
                await self._probe_async(chosen, timeout)
            except (OSError, asyncio.TimeoutError) as e:
                failures += 1
                self._mark_dead(chosen, dead, failures, len(candidates), e)
                continue
            logger.debug("Selected replica %s after %d failed probe(s)", chosen, failures)
            return chosen

        raise self._exhausted(len(candidates))
