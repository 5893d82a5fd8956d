from __future__ import annotations

import logging
from typing import Any

import httpx

from wdpilot.browser.actions import ActionChainBuilder, Actions, InputSource
from wdpilot.browser.elements import Element, Form, decode_screenshot
from wdpilot.control.retry import Retry
from wdpilot.control.wait import Wait, WaitConfig
from wdpilot.wire import codec
from wdpilot.wire import commands as cmd
from wdpilot.wire.commands import Command, ElementRef, Locator, TimeoutConfiguration
from wdpilot.wire.errors import (
    BadUrlError,
    ConnectionLostError,
    InvalidArgumentError,
    NonConformingResponseError,
)
from wdpilot.wire.session import Mailbox, attach_session, open_session, request

logger = logging.getLogger(__name__)

COOKIE_URL = "/please_give_me_your_cookies"


class Client:
    """
    A handle to one WebDriver session.

    Handles are cheap: :meth:`clone` returns another handle onto the same
    session, and every handle feeds the same single-flight command queue.
    When the last handle is released the session is deleted, unless
    :meth:`persist` was called first.
    """

    def __init__(self, mailbox: Mailbox, legacy: bool, capabilities: dict[str, Any] | None = None) -> None:
        self._mailbox = mailbox
        self._released = False
        self.legacy = legacy
        self.capabilities: dict[str, Any] = capabilities or {}

    @classmethod
    async def connect(
        cls,
        webdriver_url: str,
        capabilities: dict[str, Any] | None = None,
        *,
        user_agent: str | None = None,
        timeout_seconds: float = 60.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> Client:
        mailbox, info = await open_session(
            webdriver_url,
            capabilities,
            user_agent=user_agent,
            timeout_seconds=timeout_seconds,
            http_transport=http_transport,
        )
        return cls(mailbox, info.legacy, info.capabilities)

    @classmethod
    async def attach(
        cls,
        webdriver_url: str,
        session_id: str,
        *,
        legacy: bool = False,
        timeout_seconds: float = 60.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> Client:
        """Drive a session someone else created; no handshake is performed."""
        mailbox = await attach_session(
            webdriver_url,
            session_id,
            legacy=legacy,
            timeout_seconds=timeout_seconds,
            http_transport=http_transport,
        )
        return cls(mailbox, legacy)

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        last = self._mailbox.senders == 1 and not self._released
        self.release()
        if last:
            await self._mailbox.wait_closed()

    async def issue(self, command: Command) -> Any:
        if self._released:
            raise ConnectionLostError("client handle has been released")
        return await request(self._mailbox, command)

    def clone(self) -> Client:
        if self._released:
            raise ConnectionLostError("client handle has been released")
        self._mailbox.attach()
        return Client(self._mailbox, self.legacy, self.capabilities)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._mailbox.detach()

    async def close(self) -> None:
        """Delete the session now, whatever other handles still exist."""
        await self.issue(cmd.Shutdown())
        self.release()
        await self._mailbox.wait_closed()

    async def persist(self) -> None:
        await self.issue(cmd.Persist())

    async def session_id(self) -> str | None:
        return await self.issue(cmd.GetSessionId())

    async def set_ua(self, user_agent: str) -> None:
        await self.issue(cmd.SetUserAgent(user_agent))

    async def get_ua(self) -> str | None:
        return await self.issue(cmd.GetUserAgent())

    async def status(self) -> dict[str, Any]:
        value = await self.issue(cmd.Status())
        if not isinstance(value, dict):
            raise NonConformingResponseError(value)
        return value

    async def get_timeouts(self) -> TimeoutConfiguration:
        value = await self.issue(cmd.GetTimeouts())
        if not isinstance(value, dict):
            raise NonConformingResponseError(value)
        return TimeoutConfiguration.from_json(value)

    async def update_timeouts(self, timeouts: TimeoutConfiguration) -> None:
        await self.issue(cmd.SetTimeouts(timeouts))

    async def resolve_url(self, url: str) -> str:
        """``url`` joined onto the URL of the current page."""
        current = await self.current_url() or "about:blank"
        try:
            return str(httpx.URL(current).join(url))
        except httpx.InvalidURL as exc:
            raise BadUrlError(url) from exc

    async def goto(self, url: str) -> None:
        """Navigate to ``url``; a relative URL is taken relative to the current page."""
        await self.issue(cmd.Get(await self.resolve_url(url)))

    async def current_url(self) -> str:
        return self._expect_str(await self.issue(cmd.GetCurrentUrl()))

    async def back(self) -> None:
        await self.issue(cmd.GoBack())

    async def forward(self) -> None:
        await self.issue(cmd.GoForward())

    async def refresh(self) -> None:
        await self.issue(cmd.Refresh())

    async def title(self) -> str:
        return self._expect_str(await self.issue(cmd.GetTitle()))

    async def source(self) -> str:
        return self._expect_str(await self.issue(cmd.GetPageSource()))

    async def window(self) -> str:
        return self._expect_str(await self.issue(cmd.GetWindowHandle()))

    async def windows(self) -> list[str]:
        value = await self.issue(cmd.GetWindowHandles())
        if not isinstance(value, list) or not all(isinstance(handle, str) for handle in value):
            raise NonConformingResponseError(value)
        return value

    async def close_window(self) -> None:
        await self.issue(cmd.CloseWindow())

    async def switch_to_window(self, handle: str) -> None:
        if handle == "current":
            raise InvalidArgumentError("handle", "the window handle `current` is reserved")
        await self.issue(cmd.SwitchToWindow(handle))

    async def new_window(self, as_tab: bool = True) -> dict[str, Any]:
        """Open a tab (or window); returns the server's ``{"handle", "type"}`` reply."""
        value = await self.issue(cmd.NewWindow(as_tab))
        if not isinstance(value, dict) or not isinstance(value.get("handle"), str):
            raise NonConformingResponseError(value)
        return value

    async def window_rect(self) -> dict[str, Any]:
        value = await self.issue(cmd.GetWindowRect())
        if not isinstance(value, dict):
            raise NonConformingResponseError(value)
        return value

    async def set_window_rect(self, x: int, y: int, width: int, height: int) -> None:
        await self.issue(cmd.SetWindowRect(x=x, y=y, width=width, height=height))

    async def set_window_size(self, width: int, height: int) -> None:
        await self.issue(cmd.SetWindowRect(width=width, height=height))

    async def get_window_size(self) -> tuple[int, int]:
        rect = await self.window_rect()
        return _pair(rect, "width", "height")

    async def set_window_position(self, x: int, y: int) -> None:
        await self.issue(cmd.SetWindowRect(x=x, y=y))

    async def get_window_position(self) -> tuple[int, int]:
        rect = await self.window_rect()
        return _pair(rect, "x", "y")

    async def maximize_window(self) -> None:
        await self.issue(cmd.MaximizeWindow())

    async def minimize_window(self) -> None:
        await self.issue(cmd.MinimizeWindow())

    async def fullscreen_window(self) -> None:
        await self.issue(cmd.FullscreenWindow())

    async def enter_frame(self, index: int | None) -> None:
        """Switch to frame ``index`` of the current browsing context; None goes to the top."""
        await self.issue(cmd.SwitchToFrame(index))

    async def enter_parent_frame(self) -> None:
        await self.issue(cmd.SwitchToParentFrame())

    def find(self, locator: Locator) -> Retry[Element]:
        async def lookup(client: Client) -> Element:
            value = await client.issue(cmd.FindElement(locator))
            return Element(client, codec.parse_lookup(value, legacy=client.legacy))

        return Retry(self, lookup)

    def find_all(self, locator: Locator) -> Retry[list[Element]]:
        async def lookup(client: Client) -> list[Element]:
            value = await client.issue(cmd.FindElements(locator))
            return [Element(client, ref) for ref in codec.parse_lookup_all(value, legacy=client.legacy)]

        return Retry(self, lookup)

    async def active_element(self) -> Element:
        value = await self.issue(cmd.GetActiveElement())
        return Element(self, codec.parse_lookup(value, legacy=self.legacy))

    def element_from(self, value: Any) -> Element:
        """Turn an element reference returned by a script into an :class:`Element`."""
        return Element(self, codec.parse_lookup(value, legacy=self.legacy))

    async def form(self, locator: Locator) -> Form:
        value = await self.issue(cmd.FindElement(locator))
        return Form(self, codec.parse_lookup(value, legacy=self.legacy))

    def wait(self, config: WaitConfig | None = None) -> Wait:
        return Wait(self, config)

    async def wait_for_navigation(self, current: str | None = None) -> str:
        """Block until the URL is no longer ``current`` (by default, the URL right now)."""
        return await self.wait().on_navigation(current)

    async def execute(self, script: str, args: list[Any] | tuple[Any, ...] = ()) -> Any:
        return await self.issue(cmd.ExecuteScript(script, tuple(_script_arg(arg) for arg in args)))

    async def execute_async(self, script: str, args: list[Any] | tuple[Any, ...] = ()) -> Any:
        """Run ``script`` with a completion callback appended to its arguments."""
        return await self.issue(cmd.ExecuteAsyncScript(script, tuple(_script_arg(arg) for arg in args)))

    async def perform_actions(self, actions: Actions | ActionChainBuilder | InputSource) -> None:
        if isinstance(actions, InputSource):
            actions = Actions(actions)
        await self.issue(cmd.PerformActions(actions.to_json()))

    async def release_actions(self) -> None:
        await self.issue(cmd.ReleaseActions())

    async def get_all_cookies(self) -> list[dict[str, Any]]:
        value = await self.issue(cmd.GetCookies())
        if not isinstance(value, list):
            raise NonConformingResponseError(value)
        return value

    async def get_named_cookie(self, name: str) -> dict[str, Any]:
        value = await self.issue(cmd.GetNamedCookie(name))
        if not isinstance(value, dict):
            raise NonConformingResponseError(value)
        return value

    async def add_cookie(self, cookie: dict[str, Any]) -> None:
        await self.issue(cmd.AddCookie(cookie))

    async def delete_cookie(self, name: str) -> None:
        await self.issue(cmd.DeleteCookie(name))

    async def delete_all_cookies(self) -> None:
        await self.issue(cmd.DeleteCookies())

    async def accept_alert(self) -> None:
        await self.issue(cmd.AcceptAlert())

    async def dismiss_alert(self) -> None:
        await self.issue(cmd.DismissAlert())

    async def get_alert_text(self) -> str:
        return self._expect_str(await self.issue(cmd.GetAlertText()))

    async def send_alert_text(self, text: str) -> None:
        await self.issue(cmd.SendAlertText(text))

    async def screenshot(self) -> bytes:
        return decode_screenshot(await self.issue(cmd.TakeScreenshot()))

    async def raw_client_for(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        cookie_url: str | None = COOKIE_URL,
    ) -> httpx.Response:
        """
        Fetch ``url`` outside the browser, as the browser would.

        ``url`` is resolved against the current page. To read the browser's
        cookies for that site, the browser visits ``cookie_url`` (resolved
        against ``url``) and then goes back. Pass ``cookie_url=None`` to skip
        the visit and send no cookies. The request also carries the session's
        user agent.
        """
        target = httpx.URL(await self.resolve_url(url))
        if target.scheme not in {"http", "https"} or not target.host:
            raise BadUrlError(url)

        cookies: list[Any] = []
        if cookie_url is not None:
            await self.goto(str(target.join(cookie_url)))
            cookies = await self.get_all_cookies()
            await self.back()

        merged = dict(headers or {})
        jar = "; ".join(_cookie_pair(cookie) for cookie in cookies)
        if jar:
            merged["Cookie"] = jar
        logger.debug(f"Raw {method} {target} with {len(cookies)} cookie(s)")
        return await self.issue(cmd.RawRequest(method, str(target), merged, content))

    @staticmethod
    def _expect_str(value: Any) -> str:
        if not isinstance(value, str):
            raise NonConformingResponseError(value)
        return value


def _pair(rect: dict[str, Any], first: str, second: str) -> tuple[int, int]:
    try:
        return int(rect[first]), int(rect[second])
    except (KeyError, TypeError, ValueError) as exc:
        raise NonConformingResponseError(rect) from exc


def _cookie_pair(cookie: Any) -> str:
    if not isinstance(cookie, dict):
        raise NonConformingResponseError(cookie)
    name, value = cookie.get("name"), cookie.get("value")
    if not isinstance(name, str) or not isinstance(value, str):
        raise NonConformingResponseError(cookie)
    return f"{name}={value}"


def _script_arg(value: Any) -> Any:
    if isinstance(value, (Element, Form, ElementRef)):
        return value.to_json()
    if isinstance(value, (list, tuple)):
        return [_script_arg(item) for item in value]
    if isinstance(value, dict):
        return {key: _script_arg(item) for key, item in value.items()}
    return value
