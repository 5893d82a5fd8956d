from __future__ import annotations

import asyncio
import inspect
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from wdpilot.wire.errors import ErrorStatus

WEBDRIVER_URL = "http://webdriver.test"
SESSION_ID = "abc123"


def value(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"value": payload})


def error(status: ErrorStatus, message: str = "boom") -> httpx.Response:
    return httpx.Response(
        status.http_status,
        json={"value": {"error": status.value, "message": message, "stacktrace": ""}},
    )


class FakeWebDriver:
    """A scripted WebDriver server behind ``httpx.MockTransport``."""

    def __init__(self, session_id: str = SESSION_ID) -> None:
        self.session_id = session_id
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Any] = {}
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self.on("POST", "/session", value({"sessionId": session_id, "capabilities": {"browserName": "chrome"}}))
        self.on("DELETE", f"/session/{session_id}", value(None))
        self.on("GET", "/status", value({"ready": True, "message": "ready"}))
        self.on("GET", f"/session/{session_id}/url", value("about:blank"))

    def on(self, method: str, path: str, reply: Any) -> None:
        """``reply`` is an httpx.Response, a callable taking the request, or a plain value."""
        self.routes[(method, path)] = reply

    def on_session(self, method: str, path: str, reply: Any) -> None:
        self.on(method, f"/session/{self.session_id}/{path}", reply)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def sent(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if (method is None or request.method == method) and (path is None or request.url.path == path)
        ]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            key = (request.method, request.url.path)
            if key not in self.routes:
                return error(ErrorStatus.UNKNOWN_COMMAND, f"{request.method} {request.url.path}")
            reply = self.routes[key]
            if isinstance(reply, httpx.Response):
                return httpx.Response(reply.status_code, headers=reply.headers, content=reply.content)
            if callable(reply):
                result = reply(request)
                if inspect.isawaitable(result):
                    result = await result
                return result if isinstance(result, httpx.Response) else value(result)
            return value(reply)
        finally:
            self.in_flight -= 1


def body_of(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


@pytest.fixture
def fake() -> FakeWebDriver:
    return FakeWebDriver()


@pytest.fixture
def connect(fake: FakeWebDriver) -> Callable[..., Any]:
    from wdpilot.browser.client import Client

    async def _connect(**kwargs: Any) -> Client:
        kwargs.setdefault("http_transport", fake.transport())
        url = kwargs.pop("webdriver_url", WEBDRIVER_URL)
        return await Client.connect(url, **kwargs)

    return _connect
