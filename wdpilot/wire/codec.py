from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from . import commands as cmd
from .commands import ELEMENT_KEY, LEGACY_ELEMENT_KEY, ElementRef
from .errors import (
    ErrorStatus,
    IncoherentResponseError,
    NonConformingResponseError,
    NotJsonError,
    WebDriverFault,
    command_error,
)


@dataclass(slots=True)
class WireRequest:
    method: str
    path: str
    body: Any = None

    def encode_body(self) -> bytes | None:
        if self.body is None:
            return None
        return json.dumps(self.body).encode("utf-8")


# (method, path template, legacy path template); templates are relative to
# /session/{id}/ unless listed in _UNROOTED.
_ROUTES: dict[type[cmd.Command], tuple[str, str, str | None]] = {
    cmd.NewSession: ("POST", "session", None),
    cmd.DeleteSession: ("DELETE", "session/{session_id}", None),
    cmd.Status: ("GET", "status", None),
    cmd.GetTimeouts: ("GET", "timeouts", None),
    cmd.SetTimeouts: ("POST", "timeouts", None),
    cmd.Get: ("POST", "url", None),
    cmd.GetCurrentUrl: ("GET", "url", None),
    cmd.GoBack: ("POST", "back", None),
    cmd.GoForward: ("POST", "forward", None),
    cmd.Refresh: ("POST", "refresh", None),
    cmd.GetTitle: ("GET", "title", None),
    cmd.GetPageSource: ("GET", "source", None),
    cmd.GetWindowHandle: ("GET", "window", "window_handle"),
    cmd.GetWindowHandles: ("GET", "window/handles", "window_handles"),
    cmd.CloseWindow: ("DELETE", "window", None),
    cmd.SwitchToWindow: ("POST", "window", None),
    cmd.NewWindow: ("POST", "window/new", None),
    cmd.SwitchToFrame: ("POST", "frame", None),
    cmd.SwitchToParentFrame: ("POST", "frame/parent", None),
    cmd.GetWindowRect: ("GET", "window/rect", None),
    cmd.SetWindowRect: ("POST", "window/rect", None),
    cmd.MaximizeWindow: ("POST", "window/maximize", None),
    cmd.MinimizeWindow: ("POST", "window/minimize", None),
    cmd.FullscreenWindow: ("POST", "window/fullscreen", None),
    cmd.FindElement: ("POST", "element", None),
    cmd.FindElements: ("POST", "elements", None),
    cmd.FindElementElement: ("POST", "element/{c.element}/element", None),
    cmd.FindElementElements: ("POST", "element/{c.element}/elements", None),
    cmd.GetActiveElement: ("GET", "element/active", None),
    cmd.IsElementSelected: ("GET", "element/{c.element}/selected", None),
    cmd.IsElementEnabled: ("GET", "element/{c.element}/enabled", None),
    cmd.IsElementDisplayed: ("GET", "element/{c.element}/displayed", None),
    cmd.GetElementAttribute: ("GET", "element/{c.element}/attribute/{c.name}", None),
    cmd.GetElementProperty: ("GET", "element/{c.element}/property/{c.name}", None),
    cmd.GetCSSValue: ("GET", "element/{c.element}/css/{c.name}", None),
    cmd.GetElementText: ("GET", "element/{c.element}/text", None),
    cmd.GetElementTagName: ("GET", "element/{c.element}/name", None),
    cmd.GetElementRect: ("GET", "element/{c.element}/rect", None),
    cmd.ElementClick: ("POST", "element/{c.element}/click", None),
    cmd.ElementClear: ("POST", "element/{c.element}/clear", None),
    cmd.ElementSendKeys: ("POST", "element/{c.element}/value", None),
    cmd.TakeElementScreenshot: ("GET", "element/{c.element}/screenshot", None),
    cmd.ExecuteScript: ("POST", "execute/sync", "execute"),
    cmd.ExecuteAsyncScript: ("POST", "execute/async", "execute_async"),
    cmd.GetCookies: ("GET", "cookie", None),
    cmd.GetNamedCookie: ("GET", "cookie/{c.name}", None),
    cmd.AddCookie: ("POST", "cookie", None),
    cmd.DeleteCookie: ("DELETE", "cookie/{c.name}", None),
    cmd.DeleteCookies: ("DELETE", "cookie", None),
    cmd.PerformActions: ("POST", "actions", None),
    cmd.ReleaseActions: ("DELETE", "actions", None),
    cmd.DismissAlert: ("POST", "alert/dismiss", None),
    cmd.AcceptAlert: ("POST", "alert/accept", None),
    cmd.GetAlertText: ("GET", "alert/text", None),
    cmd.SendAlertText: ("POST", "alert/text", None),
    cmd.TakeScreenshot: ("GET", "screenshot", None),
}

_UNROOTED = (cmd.NewSession, cmd.DeleteSession, cmd.Status)

# commands whose arguments may carry element references
_ELEMENT_CARRIERS = (cmd.ExecuteScript, cmd.ExecuteAsyncScript, cmd.SwitchToFrame, cmd.PerformActions)

_LEGACY_FINGERPRINTS = (
    "cannot find dict 'desiredCapabilities'",
    "Missing or invalid capabilities",
    "Unexpected server error.",
)


def needs_session(command: cmd.Command) -> bool:
    return not isinstance(command, _UNROOTED)


def encode(command: cmd.Command, *, session_id: str | None, legacy: bool) -> WireRequest:
    try:
        method, template, legacy_template = _ROUTES[type(command)]
    except KeyError:
        raise TypeError(f"no webdriver endpoint for {type(command).__name__}") from None

    if legacy and legacy_template is not None:
        template = legacy_template
    path = template.format(c=command, session_id=session_id)
    if needs_session(command):
        path = f"session/{session_id}/{path}"

    body = command.body()
    if method == "POST" and body is None:
        # the protocol wants an (empty) JSON object on every POST
        body = {}
    if legacy and isinstance(command, _ELEMENT_CARRIERS):
        body = fixup_elements(body)
    return WireRequest(method=method, path=path, body=body)


def fixup_elements(value: Any) -> Any:
    """Rename the W3C element key to the legacy ``ELEMENT`` key, recursively."""
    if isinstance(value, dict):
        fixed = {}
        for key, item in value.items():
            if key == ELEMENT_KEY:
                key = LEGACY_ELEMENT_KEY
            fixed[key] = fixup_elements(item)
        return fixed
    if isinstance(value, (list, tuple)):
        return [fixup_elements(item) for item in value]
    return value


def element_key(legacy: bool) -> str:
    return LEGACY_ELEMENT_KEY if legacy else ELEMENT_KEY


def parse_lookup(value: Any, *, legacy: bool) -> ElementRef:
    if not isinstance(value, dict):
        raise NonConformingResponseError(value)
    element_id = value.get(element_key(legacy))
    if not isinstance(element_id, str):
        raise NonConformingResponseError(value)
    return ElementRef(element_id)


def parse_lookup_all(value: Any, *, legacy: bool) -> list[ElementRef]:
    if not isinstance(value, list):
        raise NonConformingResponseError(value)
    return [parse_lookup(item, legacy=legacy) for item in value]


_MODERN_ERRORS: dict[tuple[int, str], ErrorStatus] = {
    (status.http_status, status.value): status for status in ErrorStatus
}
_MODERN_ERRORS.update(
    {
        # aliases and the status codes earlier drafts of the protocol used
        (400, "element not visible"): ErrorStatus.ELEMENT_NOT_INTERACTABLE,
        (400, "invalid element coordinates"): ErrorStatus.INVALID_COORDINATES,
        (400, "no such alert"): ErrorStatus.NO_SUCH_ALERT,
        (400, "no such frame"): ErrorStatus.NO_SUCH_FRAME,
        (400, "no such window"): ErrorStatus.NO_SUCH_WINDOW,
        (400, "stale element reference"): ErrorStatus.STALE_ELEMENT_REFERENCE,
        (408, "timeout"): ErrorStatus.TIMEOUT,
        (408, "script timeout"): ErrorStatus.SCRIPT_TIMEOUT,
        (500, "unable to capture screen"): ErrorStatus.UNABLE_TO_CAPTURE_SCREEN,
    }
)

_LEGACY_ERRORS: dict[int, ErrorStatus] = {
    6: ErrorStatus.SESSION_NOT_CREATED,
    7: ErrorStatus.NO_SUCH_ELEMENT,
    8: ErrorStatus.NO_SUCH_FRAME,
    9: ErrorStatus.UNKNOWN_COMMAND,
    10: ErrorStatus.STALE_ELEMENT_REFERENCE,
    11: ErrorStatus.ELEMENT_NOT_INTERACTABLE,
    12: ErrorStatus.INVALID_ELEMENT_STATE,
    13: ErrorStatus.UNKNOWN_ERROR,
    15: ErrorStatus.ELEMENT_NOT_SELECTABLE,
    17: ErrorStatus.JAVASCRIPT_ERROR,
    19: ErrorStatus.INVALID_SELECTOR,
    21: ErrorStatus.TIMEOUT,
    23: ErrorStatus.NO_SUCH_WINDOW,
    24: ErrorStatus.INVALID_COOKIE_DOMAIN,
    25: ErrorStatus.UNABLE_TO_SET_COOKIE,
    26: ErrorStatus.UNEXPECTED_ALERT_OPEN,
    27: ErrorStatus.NO_SUCH_ALERT,
    28: ErrorStatus.SCRIPT_TIMEOUT,
    29: ErrorStatus.INVALID_COORDINATES,
    32: ErrorStatus.INVALID_SELECTOR,
    33: ErrorStatus.SESSION_NOT_CREATED,
    34: ErrorStatus.MOVE_TARGET_OUT_OF_BOUNDS,
}


def classify_modern(http_status: int, token: str) -> ErrorStatus | None:
    return _MODERN_ERRORS.get((http_status, token))


def classify_legacy(status: int) -> ErrorStatus | None:
    return _LEGACY_ERRORS.get(status)


def is_json_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() == "application/json"


def decode(
    http_status: int,
    content_type: str | None,
    text: str,
    *,
    legacy: bool,
    new_session: bool = False,
) -> Any:
    """Unwrap a response body, raising the classified ``CmdError`` on failure."""
    if not is_json_content_type(content_type):
        raise NotJsonError(text)

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise IncoherentResponseError(str(exc)) from exc
    if not isinstance(payload, dict):
        raise NonConformingResponseError(payload)

    is_success = 200 <= http_status < 300
    legacy_status = 0
    if legacy:
        legacy_status = payload.get("status")
        if not isinstance(legacy_status, int) or isinstance(legacy_status, bool):
            raise NonConformingResponseError(payload)
        is_success = legacy_status == 0

    if legacy and new_session:
        # legacy servers do not wrap sessionId inside "value"
        value = payload
    elif "value" in payload:
        value = payload["value"]
    else:
        raise NonConformingResponseError(payload)

    if is_success:
        return value

    if not isinstance(value, dict):
        raise NonConformingResponseError(value)
    body = dict(value)
    # some servers attach a screenshot of the whole page to every error
    body.pop("screen", None)

    message = body.get("message")
    if legacy:
        if not isinstance(message, str):
            raise NonConformingResponseError(body)
        status = classify_legacy(legacy_status)
    else:
        token = body.get("error")
        if not isinstance(token, str) or not isinstance(message, str):
            raise NonConformingResponseError(body)
        status = classify_modern(http_status, token)
    if status is None:
        raise NonConformingResponseError(body)

    stacktrace = body.get("stacktrace")
    fault = WebDriverFault(
        status,
        message,
        stacktrace=stacktrace if isinstance(stacktrace, str) else "",
        data=body.get("data"),
    )
    raise command_error(fault)


def looks_legacy(payload: Any) -> bool:
    """Whether a non-conforming handshake reply came from a legacy-only server."""
    if isinstance(payload, str):
        # ghostdriver
        return payload.startswith("Missing Command Parameter")
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str):
            return any(fingerprint in message for fingerprint in _LEGACY_FINGERPRINTS)
    return False
