"""
Per-key coalescing of concurrent computations.

When several coroutines ask for the same key while a computation for it is
already running, they wait for that computation and share its outcome
instead of starting their own.
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    def __init__(self) -> None:
        self._calls: dict[str, asyncio.Future] = {}
        self._generations: dict[str, int] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._calls

    def generation(self, key: str) -> int:
        """Number of times *key* has been forgotten."""
        return self._generations.get(key, 0)

    def forget(self, key: str) -> None:
        """
        Detach the in-flight call for *key*, if any, and bump its generation.

        The detached call still completes for the callers already waiting
        on it, but later callers start a fresh computation.  A computation
        can compare ``generation(key)`` before and after it runs to learn
        that its result was superseded.
        """
        self._calls.pop(key, None)
        self._generations[key] = self.generation(key) + 1

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> tuple[T, bool]:
        """
        Run *fn* unless a call for *key* is already in flight.

        Returns ``(result, shared)`` where *shared* is True when the result
        came from another caller's computation.  Exceptions raised by the
        leader are re-raised in every waiter.  If the leader is cancelled,
        waiters start over and one of them becomes the new leader.
        """
        while True:
            call = self._calls.get(key)
            if call is None:
                break
            try:
                # shield: a cancelled waiter must not cancel the shared call
                return await asyncio.shield(call), True
            except asyncio.CancelledError:
                if not call.cancelled():
                    raise
                logger.debug("single-flight leader for %r was cancelled, retrying", key)

        call = asyncio.get_running_loop().create_future()
        self._calls[key] = call
        try:
            result = await fn()
        except asyncio.CancelledError:
            call.cancel()
            raise
        except Exception as exc:
            call.set_exception(exc)
            # Mark retrieved so an unwaited failure is not reported by asyncio.
            call.exception()
            raise
        else:
            call.set_result(result)
            return result, False
        finally:
            if self._calls.get(key) is call:
                del self._calls[key]
