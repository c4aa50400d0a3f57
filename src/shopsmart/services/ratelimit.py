"""Per-client daily request quota, kept as a small hash per client."""

from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Callable

from ..persistence.keys import build_key
from ..persistence.store import RecordStore

logger = logging.getLogger(__name__)

RATE_LIMIT = "ratelimit"
MAX_REQUESTS = 5


def _day(epoch_ms: float) -> dt.date:
    return dt.datetime.fromtimestamp(epoch_ms / 1000, tz=dt.timezone.utc).date()


class RateLimiter:
    def __init__(
        self,
        store: RecordStore,
        max_requests: int = MAX_REQUESTS,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.max_requests = max_requests
        self._clock = clock

    async def hit(self, client: str) -> bool:
        """Count one request for `client`; False once today's quota is used."""
        key = build_key(RATE_LIMIT, client)
        now_ms = int(self._clock() * 1000)
        data = await self.store.get_all(key)

        if data and _day(float(data.get("lastResetTime", 0))) == _day(now_ms):
            count = int(data.get("count", 0))
            if count >= self.max_requests:
                logger.info("rate limit exceeded for %s", client)
                return False
            await self.store.put(key, {"count": str(count + 1)})
            return True

        # first request of the day
        await self.store.put(key, {"count": "1", "lastResetTime": str(now_ms)})
        return True
