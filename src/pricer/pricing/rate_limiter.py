"""Per-source minimum call gap shared by every caller in a run.

One RateLimiter instance is created at startup and handed to both source
clients and the warm-up pass, so the gap applies to the aggregate outbound
call rate of a provider no matter which lookup triggered the call.
"""

import asyncio
import time
from collections import defaultdict

from pricer.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Suspends callers until a source's minimum gap since its last call has elapsed.

    Each source has its own asyncio.Lock, so callers of one source are
    serialised in arrival order while waiting on that source never delays
    another.

    Args:
        min_gaps: Minimum seconds between calls, keyed by source id.
            Sources without an entry are not throttled.
    """

    def __init__(self, min_gaps: dict[str, float]) -> None:
        self._min_gaps = dict(min_gaps)
        self._last_call: dict[str, float] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def min_gap(self, source: str) -> float:
        return self._min_gaps.get(source, 0.0)

    async def acquire(self, source: str) -> None:
        """Wait out the remaining gap for source, then record the call time."""
        async with self._locks[source]:
            gap = self.min_gap(source)
            last = self._last_call.get(source)
            if last is not None and gap > 0:
                wait = gap - (time.monotonic() - last)
                if wait > 0:
                    logger.debug("rate_limit_wait", source=source, wait_seconds=round(wait, 3))
                    await asyncio.sleep(wait)
            self._last_call[source] = time.monotonic()
