from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorStatus(str, Enum):
    """Standard WebDriver error tokens, valued by their canonical wire string."""

    DETACHED_SHADOW_ROOT = "detached shadow root"
    ELEMENT_CLICK_INTERCEPTED = "element click intercepted"
    ELEMENT_NOT_INTERACTABLE = "element not interactable"
    ELEMENT_NOT_SELECTABLE = "element not selectable"
    INSECURE_CERTIFICATE = "insecure certificate"
    INVALID_ARGUMENT = "invalid argument"
    INVALID_COOKIE_DOMAIN = "invalid cookie domain"
    INVALID_COORDINATES = "invalid coordinates"
    INVALID_ELEMENT_STATE = "invalid element state"
    INVALID_SELECTOR = "invalid selector"
    INVALID_SESSION_ID = "invalid session id"
    JAVASCRIPT_ERROR = "javascript error"
    MOVE_TARGET_OUT_OF_BOUNDS = "move target out of bounds"
    NO_SUCH_ALERT = "no such alert"
    NO_SUCH_COOKIE = "no such cookie"
    NO_SUCH_ELEMENT = "no such element"
    NO_SUCH_FRAME = "no such frame"
    NO_SUCH_SHADOW_ROOT = "no such shadow root"
    NO_SUCH_WINDOW = "no such window"
    SCRIPT_TIMEOUT = "script timeout"
    SESSION_NOT_CREATED = "session not created"
    STALE_ELEMENT_REFERENCE = "stale element reference"
    TIMEOUT = "timeout"
    UNABLE_TO_CAPTURE_SCREEN = "unable to capture screen"
    UNABLE_TO_SET_COOKIE = "unable to set cookie"
    UNEXPECTED_ALERT_OPEN = "unexpected alert open"
    UNKNOWN_COMMAND = "unknown command"
    UNKNOWN_ERROR = "unknown error"
    UNKNOWN_METHOD = "unknown method"
    UNKNOWN_PATH = "unknown path"
    UNSUPPORTED_OPERATION = "unsupported operation"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ErrorStatus, int] = {
    ErrorStatus.DETACHED_SHADOW_ROOT: 404,
    ErrorStatus.ELEMENT_CLICK_INTERCEPTED: 400,
    ErrorStatus.ELEMENT_NOT_INTERACTABLE: 400,
    ErrorStatus.ELEMENT_NOT_SELECTABLE: 400,
    ErrorStatus.INSECURE_CERTIFICATE: 400,
    ErrorStatus.INVALID_ARGUMENT: 400,
    ErrorStatus.INVALID_COOKIE_DOMAIN: 400,
    ErrorStatus.INVALID_COORDINATES: 400,
    ErrorStatus.INVALID_ELEMENT_STATE: 400,
    ErrorStatus.INVALID_SELECTOR: 400,
    ErrorStatus.INVALID_SESSION_ID: 404,
    ErrorStatus.JAVASCRIPT_ERROR: 500,
    ErrorStatus.MOVE_TARGET_OUT_OF_BOUNDS: 500,
    ErrorStatus.NO_SUCH_ALERT: 404,
    ErrorStatus.NO_SUCH_COOKIE: 404,
    ErrorStatus.NO_SUCH_ELEMENT: 404,
    ErrorStatus.NO_SUCH_FRAME: 404,
    ErrorStatus.NO_SUCH_SHADOW_ROOT: 404,
    ErrorStatus.NO_SUCH_WINDOW: 404,
    ErrorStatus.SCRIPT_TIMEOUT: 500,
    ErrorStatus.SESSION_NOT_CREATED: 500,
    ErrorStatus.STALE_ELEMENT_REFERENCE: 404,
    ErrorStatus.TIMEOUT: 500,
    ErrorStatus.UNABLE_TO_CAPTURE_SCREEN: 400,
    ErrorStatus.UNABLE_TO_SET_COOKIE: 500,
    ErrorStatus.UNEXPECTED_ALERT_OPEN: 500,
    ErrorStatus.UNKNOWN_COMMAND: 404,
    ErrorStatus.UNKNOWN_ERROR: 500,
    ErrorStatus.UNKNOWN_METHOD: 405,
    ErrorStatus.UNKNOWN_PATH: 404,
    ErrorStatus.UNSUPPORTED_OPERATION: 500,
}

class WebDriverFault(Exception):
    """The error object a conforming server sends back for a failed command."""

    def __init__(
        self,
        status: ErrorStatus,
        message: str,
        stacktrace: str = "",
        data: Any = None,
    ) -> None:
        self.status = status
        self.message = message
        self.stacktrace = stacktrace
        self.data = data
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return self.status.http_status

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.status.value,
            "message": self.message,
            "stacktrace": self.stacktrace,
        }
        if self.data is not None:
            payload["data"] = self.data
        return payload


class CmdError(Exception):
    description = "webdriver command failed"

    def __init__(self, detail: Any = None) -> None:
        self.detail = detail
        if detail is None or detail == "":
            super().__init__(self.description)
        else:
            super().__init__(f"{self.description}: {detail}")

    @property
    def status(self) -> ErrorStatus | None:
        return None

    def is_status(self, status: ErrorStatus) -> bool:
        return self.status is status

    def is_no_such_element(self) -> bool:
        return self.is_status(ErrorStatus.NO_SUCH_ELEMENT)

    def is_stale_element_reference(self) -> bool:
        return self.is_status(ErrorStatus.STALE_ELEMENT_REFERENCE)

    def is_element_not_interactable(self) -> bool:
        return self.is_status(ErrorStatus.ELEMENT_NOT_INTERACTABLE)

    def is_timeout(self) -> bool:
        return self.is_status(ErrorStatus.TIMEOUT)


class WebDriverError(CmdError):
    """A standard error reported by the server; the fault is kept as ``__cause__``."""

    description = "webdriver returned error"

    def __init__(self, fault: WebDriverFault) -> None:
        self.fault = fault
        super().__init__(fault.message)
        self.__cause__ = fault

    @property
    def status(self) -> ErrorStatus:
        return self.fault.status


class NoSuchElementError(WebDriverError):
    pass


class BadUrlError(CmdError):
    description = "bad url provided"


class RequestFailedError(CmdError):
    description = "webdriver could not be reached"


class ConnectionLostError(CmdError):
    description = "webdriver connection lost"


class NotJsonError(CmdError):
    description = "webdriver returned invalid response"


class IncoherentResponseError(CmdError):
    description = "webdriver returned incoherent response"


class NonConformingResponseError(CmdError):
    """Carries the raw payload an uncooperative server returned."""

    description = "webdriver returned non-conforming response"

    @property
    def payload(self) -> Any:
        return self.detail


class InvalidArgumentError(CmdError):
    description = "invalid argument provided"

    def __init__(self, argument: str, message: str) -> None:
        self.argument = argument
        self.message = message
        super().__init__(f"Invalid argument `{argument}`: {message}")


class ImageDecodeError(CmdError):
    description = "error decoding image"


class WaitTimeoutError(CmdError):
    description = "timeout waiting on condition"


class RetriesExhaustedError(CmdError):
    description = "retries exhausted before the command succeeded"


def command_error(fault: WebDriverFault) -> WebDriverError:
    if fault.status is ErrorStatus.NO_SUCH_ELEMENT:
        return NoSuchElementError(fault)
    return WebDriverError(fault)


class NewSessionError(Exception):
    description = "webdriver session could not be established"

    def __init__(self, detail: Any = None) -> None:
        self.detail = detail
        super().__init__(f"{self.description}: {detail}" if detail is not None else self.description)


class BadWebdriverUrlError(NewSessionError):
    description = "webdriver url is invalid"


class ServerUnreachableError(NewSessionError):
    description = "webdriver server did not respond"


class HandshakeLostError(NewSessionError):
    description = "webdriver server disconnected"


class NotW3CError(NewSessionError):
    description = "webdriver server gave non-conformant response"

    @property
    def payload(self) -> Any:
        return self.detail


class SessionNotCreatedError(NewSessionError):
    description = "webdriver did not create session"

    def __init__(self, fault: WebDriverFault) -> None:
        self.fault = fault
        super().__init__(fault.message)
        self.__cause__ = fault


def root_cause(exc: BaseException) -> BaseException:
    seen = {id(exc)}
    while exc.__cause__ is not None and id(exc.__cause__) not in seen:
        exc = exc.__cause__
        seen.add(id(exc))
    return exc
