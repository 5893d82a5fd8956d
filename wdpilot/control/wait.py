"""
Polling waits against a live session.

Usage:
    element = await client.wait().at_most(5).every(0.1).on_element(Locator.css("#done"))
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from wdpilot.wire.commands import Locator
from wdpilot.wire.errors import NoSuchElementError, WaitTimeoutError

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0
DEFAULT_PERIOD = 0.25


@dataclass(slots=True)
class WaitConfig:
    """Wait timing, in seconds; a ``timeout`` of None waits forever."""
    timeout: float | None = DEFAULT_TIMEOUT
    period: float = DEFAULT_PERIOD


class Wait:
    def __init__(self, client: Any, config: WaitConfig | None = None) -> None:
        self.client = client
        self.config = replace(config) if config is not None else WaitConfig()

    def at_most(self, timeout: float) -> Wait:
        self.config.timeout = timeout
        return self

    def forever(self) -> Wait:
        self.config.timeout = None
        return self

    def every(self, period: float) -> Wait:
        self.config.period = period
        return self

    async def until(self, ready: Callable[[Any], Awaitable[T | None]]) -> T:
        """
        Poll ``ready`` until it yields something other than None.

        The deadline is checked before each call, never after, so a call that
        starts in time may still return a value after the deadline has passed.
        Errors raised by ``ready`` propagate immediately.
        """
        loop = asyncio.get_running_loop()
        start = loop.time()
        while True:
            timeout = self.config.timeout
            if timeout is not None and loop.time() - start > timeout:
                raise WaitTimeoutError()
            result = await ready(self.client)
            if result is not None:
                return result
            await asyncio.sleep(self.config.period)

    async def on_predicate(self, predicate: Callable[[Any], Awaitable[bool]]) -> bool:
        async def ready(client: Any) -> bool | None:
            return True if await predicate(client) else None

        return await self.until(ready)

    async def on_element(self, locator: Locator) -> Any:
        async def ready(client: Any) -> Any:
            try:
                return await client.find(locator)
            except NoSuchElementError:
                return None

        return await self.until(ready)

    async def on_url(self, url: str) -> str:
        async def ready(client: Any) -> str | None:
            current = await client.current_url()
            return current if current == url else None

        return await self.until(ready)

    async def on_navigation(self, current: str | None = None) -> str:
        """Wait until the URL differs from ``current`` (by default, the URL right now); returns the new URL."""
        if current is None:
            current = await self.client.current_url()

        async def ready(client: Any) -> str | None:
            url = await client.current_url()
            return url if url != current else None

        return await self.until(ready)
