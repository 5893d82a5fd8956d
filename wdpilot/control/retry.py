from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Generator
from typing import Any, Generic, TypeVar

from tenacity import AsyncRetrying, retry_if_exception, stop_never, wait_none

from wdpilot.wire.errors import NoSuchElementError, RetriesExhaustedError

T = TypeVar("T")

Factory = Callable[[Any], Awaitable[T]]
MissClassifier = Callable[[BaseException], bool]


def is_missing_element(error: BaseException) -> bool:
    return isinstance(error, NoSuchElementError)


class Retry(Generic[T]):
    """
    A command that can be awaited once, or re-issued while it keeps missing.

    ``factory`` is called with the client and must be idempotent: every attempt
    is a fresh call, and nothing but the client is shared between attempts.
    Errors for which ``is_miss`` is false abort immediately.
    """

    def __init__(self, client: Any, factory: Factory[T], is_miss: MissClassifier = is_missing_element) -> None:
        self.client = client
        self._factory = factory
        self._is_miss = is_miss
        self._in_flight: asyncio.Future[T] | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    def __await__(self) -> Generator[Any, None, T]:
        if self._in_flight is None:
            self._in_flight = asyncio.ensure_future(self._factory(self.client))
        return self._in_flight.__await__()

    async def retry_forever(self) -> T:
        self._require_ready()
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(self._is_miss),
            wait=wait_none(),
            stop=stop_never,
            reraise=True,
        ):
            with attempt:
                value = await self._factory(self.client)
        return value

    async def retry_for(self, duration: float) -> T:
        """Retry misses for ``duration`` seconds; an attempt still running then is abandoned."""
        try:
            return await asyncio.wait_for(self.retry_forever(), timeout=duration)
        except asyncio.TimeoutError:
            raise RetriesExhaustedError(f"no success within {duration}s") from None

    async def retry_until(self, deadline: float) -> T:
        """Like :meth:`retry_for`, with ``deadline`` given on the running loop's clock."""
        remaining = deadline - asyncio.get_running_loop().time()
        return await self.retry_for(max(0.0, remaining))

    def _require_ready(self) -> None:
        if self._in_flight is not None:
            raise RuntimeError("cannot retry a command that has already been awaited")
