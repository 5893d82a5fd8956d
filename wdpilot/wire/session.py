from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from . import codec
from .commands import (
    Command,
    DeleteSession,
    GetSessionId,
    GetUserAgent,
    LocalCommand,
    NewSession,
    Persist,
    RawRequest,
    SetUserAgent,
    Shutdown,
)
from .errors import (
    CmdError,
    ConnectionLostError,
    HandshakeLostError,
    IncoherentResponseError,
    NonConformingResponseError,
    NotJsonError,
    NotW3CError,
    RequestFailedError,
    ServerUnreachableError,
    SessionNotCreatedError,
    WebDriverError,
)
from .transport import HttpTransport

logger = logging.getLogger(__name__)

_HANGUP = object()


@dataclass(slots=True)
class Task:
    command: Command
    ack: asyncio.Future[Any]


@dataclass(slots=True)
class SessionInfo:
    session_id: str
    legacy: bool
    capabilities: dict[str, Any] = field(default_factory=dict)


class Mailbox:
    """Unbounded command queue; its write end closes when the last handle detaches."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._senders = 0
        self._closed = False
        self.worker: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def senders(self) -> int:
        return self._senders

    def attach(self) -> None:
        if self._closed:
            raise ConnectionLostError("webdriver session has been closed")
        self._senders += 1

    def detach(self) -> None:
        self._senders -= 1
        if self._senders == 0 and not self._closed:
            self._queue.put_nowait(_HANGUP)

    def put(self, task: Task) -> None:
        if self._closed:
            raise ConnectionLostError("webdriver session has been closed")
        self._queue.put_nowait(task)

    async def get(self) -> Task | None:
        item = await self._queue.get()
        if item is _HANGUP:
            return None
        return item

    def close(self) -> None:
        self._closed = True
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if isinstance(item, Task) and not item.ack.done():
                item.ack.set_exception(ConnectionLostError("webdriver session has been closed"))

    async def wait_closed(self) -> None:
        if self.worker is not None:
            await asyncio.shield(self.worker)


async def request(mailbox: Mailbox, command: Command) -> Any:
    ack: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
    mailbox.put(Task(command, ack))
    return await ack


class SessionActor:
    """Sole owner of one WebDriver session; runs exactly one request at a time."""

    def __init__(
        self,
        transport: HttpTransport,
        mailbox: Mailbox,
        session_id: str | None = None,
        legacy: bool = False,
    ) -> None:
        self.transport = transport
        self.mailbox = mailbox
        self.session_id = session_id
        self.legacy = legacy
        self.user_agent: str | None = None
        self.persist = False
        self._current: Task | None = None

    async def run(self) -> None:
        try:
            while True:
                task = await self.mailbox.get()
                if task is None:
                    # every handle is gone
                    if self.persist:
                        logger.info(f"Leaving persistent session {self.session_id} open")
                    else:
                        await self._shutdown()
                    break

                command = task.command
                if isinstance(command, Shutdown):
                    await self._shutdown()
                    self._reply(task, None)
                    break
                if isinstance(command, LocalCommand):
                    self._reply(task, self._local(command))
                    continue

                self._current = task
                try:
                    result = await self._dispatch(command)
                except Exception as exc:
                    self._fail(task, exc)
                else:
                    self._reply(task, result)
                self._current = None
        finally:
            self.mailbox.close()
            if self._current is not None:
                self._fail(self._current, ConnectionLostError("webdriver session actor stopped"))
            await self.transport.stop()

    def _local(self, command: LocalCommand) -> Any:
        if isinstance(command, GetSessionId):
            return self.session_id
        if isinstance(command, SetUserAgent):
            self.user_agent = command.user_agent
            return None
        if isinstance(command, GetUserAgent):
            return self.user_agent
        if isinstance(command, Persist):
            self.persist = True
            return None
        raise TypeError(f"unknown local command {type(command).__name__}")

    async def _dispatch(self, command: Command) -> Any:
        if isinstance(command, RawRequest):
            headers = dict(command.headers)
            if self.user_agent is not None:
                headers.setdefault("User-Agent", self.user_agent)
            return await self.transport.raw(command.method, command.url, headers, command.content)

        is_new_session = isinstance(command, NewSession)
        if is_new_session and command.legacy:
            # handshake is falling back; every later request follows suit
            self.legacy = True
        if codec.needs_session(command) and self.session_id is None:
            raise ConnectionLostError("no webdriver session has been established")

        wire = codec.encode(command, session_id=self.session_id, legacy=self.legacy)
        response = await self.transport.send(wire, self.user_agent)
        value = codec.decode(
            response.status_code,
            response.content_type,
            response.text,
            legacy=self.legacy,
            new_session=is_new_session,
        )

        if is_new_session and self.session_id is None and isinstance(value, dict):
            session_id = value.get("sessionId")
            if isinstance(session_id, str):
                self.session_id = session_id
        return value

    async def _shutdown(self) -> None:
        if self.session_id is None:
            return
        wire = codec.encode(DeleteSession(), session_id=self.session_id, legacy=self.legacy)
        try:
            await self.transport.send(wire, self.user_agent)
        except CmdError as exc:
            logger.warning(f"Could not delete webdriver session {self.session_id}: {exc}")
        else:
            logger.info(f"Deleted webdriver session {self.session_id}")
        self.session_id = None

    @staticmethod
    def _reply(task: Task, value: Any) -> None:
        if not task.ack.done():
            task.ack.set_result(value)

    @staticmethod
    def _fail(task: Task, exc: BaseException) -> None:
        if not task.ack.done():
            task.ack.set_exception(exc)


def spawn(transport: HttpTransport, session_id: str | None = None, legacy: bool = False) -> Mailbox:
    mailbox = Mailbox()
    actor = SessionActor(transport, mailbox, session_id=session_id, legacy=legacy)
    mailbox.worker = asyncio.create_task(actor.run())
    return mailbox


def with_defaults(capabilities: dict[str, Any] | None) -> dict[str, Any]:
    caps = dict(capabilities or {})
    # we want the browser to wait for the page to load
    caps.setdefault("pageLoadStrategy", "normal")
    chrome_options = dict(caps.get("goog:chromeOptions") or {})
    chrome_options.setdefault("w3c", True)
    caps["goog:chromeOptions"] = chrome_options
    return caps


async def _new_session(mailbox: Mailbox, command: NewSession) -> dict[str, Any]:
    try:
        value = await request(mailbox, command)
    except NonConformingResponseError as exc:
        raise NotW3CError(exc.payload) from exc
    except (NotJsonError, IncoherentResponseError) as exc:
        raise NotW3CError(exc.detail) from exc
    except RequestFailedError as exc:
        raise ServerUnreachableError(exc.detail) from exc
    except ConnectionLostError as exc:
        raise HandshakeLostError(exc.detail) from exc
    except WebDriverError as exc:
        raise SessionNotCreatedError(exc.fault) from exc

    if not isinstance(value, dict) or not isinstance(value.get("sessionId"), str):
        raise NotW3CError(value)
    return value


async def handshake(mailbox: Mailbox, transport: HttpTransport, capabilities: dict[str, Any]) -> SessionInfo:
    command = NewSession(capabilities, user=transport.user, password=transport.password)
    try:
        value = await _new_session(mailbox, command)
        legacy = False
    except NotW3CError as exc:
        if not codec.looks_legacy(exc.payload):
            raise
        logger.info("WebDriver server only speaks the legacy wire protocol; retrying handshake")
        value = await _new_session(mailbox, NewSession(capabilities, legacy=True))
        legacy = True

    if legacy:
        returned = value.get("value")
    else:
        returned = value.get("capabilities")
    info = SessionInfo(
        session_id=value["sessionId"],
        legacy=legacy,
        capabilities=returned if isinstance(returned, dict) else {},
    )
    logger.info(f"Started webdriver session {info.session_id} ({'legacy' if legacy else 'w3c'})")
    return info


async def open_session(
    webdriver_url: str,
    capabilities: dict[str, Any] | None = None,
    *,
    user_agent: str | None = None,
    timeout_seconds: float = 60.0,
    http_transport: Any = None,
) -> tuple[Mailbox, SessionInfo]:
    """Start an actor and negotiate a new session; the returned mailbox has one handle attached."""
    transport = HttpTransport(webdriver_url, timeout_seconds=timeout_seconds, http_transport=http_transport)
    await transport.start()
    mailbox = spawn(transport)
    mailbox.attach()
    try:
        if user_agent is not None:
            await request(mailbox, SetUserAgent(user_agent))
        info = await handshake(mailbox, transport, with_defaults(capabilities))
    except Exception:
        mailbox.detach()
        await mailbox.wait_closed()
        raise
    return mailbox, info


async def attach_session(
    webdriver_url: str,
    session_id: str,
    *,
    legacy: bool = False,
    timeout_seconds: float = 60.0,
    http_transport: Any = None,
) -> Mailbox:
    transport = HttpTransport(webdriver_url, timeout_seconds=timeout_seconds, http_transport=http_transport)
    await transport.start()
    mailbox = spawn(transport, session_id=session_id, legacy=legacy)
    mailbox.attach()
    return mailbox
