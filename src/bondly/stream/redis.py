"""Per-session change notifications over Redis Streams."""

import json
import logging
from typing import AsyncIterator, NamedTuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

STREAM_MAX_LEN = 100
# Matches the retention window of the rows themselves
STREAM_TTL = 86400


class StreamEvent(NamedTuple):
    id: str
    type: str
    data: dict


def stream_key(session_id: str) -> str:
    return f"bondly:session:{session_id}:events"


def _decode(event_id: str, fields: dict) -> StreamEvent | None:
    try:
        return StreamEvent(event_id, fields["type"], json.loads(fields["data"]))
    except (KeyError, ValueError):
        logger.debug("Skipping malformed stream entry %s", event_id)
        return None


class EventStream:
    """
    Change feed with one capped stream per session.

    Writers append after each status change; readers block on XREAD. Delivery
    is best effort: readers that miss an event still catch up by polling the
    database, so publish failures are logged and swallowed while subscribe
    failures are left to the reader.
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._redis: Redis | None = None

    def _client(self) -> Redis:
        if self._redis is None:
            self._redis = Redis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    async def publish(self, session_id: str, event_type: str, data: dict) -> str | None:
        """Append an event; returns its id, or None when Redis is unreachable."""
        key = stream_key(session_id)
        try:
            redis = self._client()
            event_id = await redis.xadd(
                key,
                {"type": event_type, "data": json.dumps(data)},
                maxlen=STREAM_MAX_LEN,
            )
            await redis.expire(key, STREAM_TTL)
        except RedisError as e:
            logger.warning("Could not publish %s for session %s: %s", event_type, session_id, e)
            return None
        return event_id

    async def subscribe(
        self,
        session_id: str,
        last_id: str = "$",
        block_ms: int = 5000,
        event_types: tuple[str, ...] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Follow a session's events, starting after ``last_id``.

        ``"$"`` means only events published from now on. When ``event_types``
        is given, other events are skipped. Runs until the caller stops
        iterating; Redis errors are raised.
        """
        redis = self._client()
        key = stream_key(session_id)
        cursor = last_id

        while True:
            batches = await redis.xread({key: cursor}, block=block_ms, count=100)
            for _key, entries in batches or ():
                for event_id, fields in entries:
                    cursor = event_id
                    event = _decode(event_id, fields)
                    if event is None:
                        continue
                    if event_types is not None and event.type not in event_types:
                        continue
                    yield event

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
