"""Request pacing for catalog API calls.

Each catalog client owns one gate. The gate serializes requests and enforces
a minimum delay since the previous request; it is a plain "time since last
request" check, not a token bucket.
"""

from __future__ import annotations

import asyncio
import time

from catalog_resolver.logging_config import get_logger

logger = get_logger(__name__)


class RequestGate:
    """Minimum inter-request delay for one catalog.

    Attributes:
        min_interval: Seconds that must elapse between two requests
    """

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    def seconds_until_ready(self) -> float:
        """Seconds a request issued now would have to wait."""
        if self._last_request is None:
            return 0.0
        elapsed = time.monotonic() - self._last_request
        return max(0.0, self.min_interval - elapsed)

    async def acquire(self) -> None:
        """Wait until the minimum delay since the previous request has passed."""
        async with self._lock:
            wait_time = self.seconds_until_ready()
            if wait_time > 0:
                logger.debug("Request gate: waiting %.2fs", wait_time)
                await asyncio.sleep(wait_time)
            self._last_request = time.monotonic()

    def reset(self) -> None:
        """Forget the previous request (for testing)."""
        self._last_request = None
