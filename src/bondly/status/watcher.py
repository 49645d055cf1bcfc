"""Push-or-poll readiness watching with a single ready transition."""

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable

from .readiness import Readiness, ReadinessState

logger = logging.getLogger(__name__)


class ReadinessWatcher:
    """
    Watches a session until the viewer's advice is ready.

    Two triggers run side by side: a push subscription (any notification
    prompts a check) and a fixed-interval poll. Whichever sees readiness
    first claims the latch; the other's result is dropped and both are
    cancelled. If the push side fails, polling carries on alone.
    """

    def __init__(
        self,
        check: Callable[[], Awaitable[Readiness]],
        subscribe: Callable[[], AsyncIterator[Any]] | None = None,
        poll_interval: float = 2.0,
    ):
        self._check = check
        self._subscribe = subscribe
        self.poll_interval = poll_interval
        self._ready_claimed = False

    @property
    def ready_claimed(self) -> bool:
        return self._ready_claimed

    async def _probe(self, queue: asyncio.Queue, source: str) -> None:
        readiness = await self._check()
        if readiness.state is ReadinessState.READY:
            # First writer wins; no await between the test and the set
            if self._ready_claimed:
                logger.debug("Readiness already claimed, %s trigger skipped", source)
                return
            self._ready_claimed = True
        await queue.put(readiness)

    async def _poll(self, queue: asyncio.Queue) -> None:
        try:
            while True:
                await self._probe(queue, "poll")
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await queue.put(e)

    async def _push(self, queue: asyncio.Queue) -> None:
        try:
            async for _event in self._subscribe():
                await self._probe(queue, "push")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Push notifications unavailable, polling only: %s", e)

    async def watch(self) -> AsyncIterator[Readiness]:
        """
        Yield each state change, ending with exactly one ``ready``.

        Errors from the status check are raised to the caller. Closing the
        iterator early cancels all background work.
        """
        queue: asyncio.Queue = asyncio.Queue()
        tasks = [asyncio.create_task(self._poll(queue))]
        if self._subscribe is not None:
            tasks.append(asyncio.create_task(self._push(queue)))

        last_state = None
        try:
            while True:
                item = await queue.get()
                if isinstance(item, Exception):
                    raise item
                if item.state is ReadinessState.READY:
                    yield item
                    return
                if item.state is not last_state:
                    last_state = item.state
                    yield item
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
