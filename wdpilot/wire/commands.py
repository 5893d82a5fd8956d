from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
LEGACY_ELEMENT_KEY = "ELEMENT"


@dataclass(frozen=True, slots=True)
class ElementRef:
    """Opaque server-assigned element id; only valid inside the session that issued it."""

    id: str

    def __str__(self) -> str:
        return self.id

    def to_json(self) -> dict[str, str]:
        return {ELEMENT_KEY: self.id}


@dataclass(frozen=True, slots=True)
class Locator:
    using: str
    value: str

    @classmethod
    def css(cls, selector: str) -> Locator:
        return cls("css selector", selector)

    @classmethod
    def id(cls, element_id: str) -> Locator:
        return cls("xpath", f'//*[@id="{element_id}"]')

    @classmethod
    def link_text(cls, text: str) -> Locator:
        return cls("link text", text)

    @classmethod
    def xpath(cls, expression: str) -> Locator:
        return cls("xpath", expression)

    def to_parameters(self) -> dict[str, str]:
        return {"using": self.using, "value": self.value}


@dataclass(slots=True)
class TimeoutConfiguration:
    script: float | None = 60.0
    page_load: float | None = 60.0
    implicit: float | None = 0.0

    def to_json(self) -> dict[str, int]:
        payload: dict[str, int] = {}
        if self.script is not None:
            payload["script"] = round(self.script * 1000)
        if self.page_load is not None:
            payload["pageLoad"] = round(self.page_load * 1000)
        if self.implicit is not None:
            payload["implicit"] = round(self.implicit * 1000)
        return payload

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> TimeoutConfiguration:
        def seconds(key: str) -> float | None:
            value = payload.get(key)
            return None if value is None else value / 1000

        return cls(script=seconds("script"), page_load=seconds("pageLoad"), implicit=seconds("implicit"))


class Command:
    """Base of every command the session actor accepts."""

    def body(self) -> Any:
        return None


class LocalCommand(Command):
    """Answered by the actor itself, without a network round trip."""


@dataclass(frozen=True, slots=True)
class GetSessionId(LocalCommand):
    pass


@dataclass(frozen=True, slots=True)
class SetUserAgent(LocalCommand):
    user_agent: str


@dataclass(frozen=True, slots=True)
class GetUserAgent(LocalCommand):
    pass


@dataclass(frozen=True, slots=True)
class Persist(LocalCommand):
    pass


@dataclass(frozen=True, slots=True)
class Shutdown(Command):
    pass


@dataclass(frozen=True, slots=True)
class RawRequest(Command):
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes | None = None


@dataclass(frozen=True, slots=True)
class NewSession(Command):
    capabilities: dict[str, Any]
    legacy: bool = False
    user: str | None = None
    password: str | None = None

    def body(self) -> dict[str, Any]:
        if self.legacy:
            return {"desiredCapabilities": self.capabilities, "requiredCapabilities": {}}
        payload: dict[str, Any] = {
            "capabilities": {"alwaysMatch": self.capabilities, "firstMatch": [{}]},
        }
        if self.user:
            payload["user"] = self.user
        if self.password is not None:
            payload["password"] = self.password
        return payload


@dataclass(frozen=True, slots=True)
class DeleteSession(Command):
    pass


@dataclass(frozen=True, slots=True)
class Status(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetTimeouts(Command):
    pass


@dataclass(frozen=True, slots=True)
class SetTimeouts(Command):
    timeouts: TimeoutConfiguration

    def body(self) -> dict[str, int]:
        return self.timeouts.to_json()


@dataclass(frozen=True, slots=True)
class Get(Command):
    url: str

    def body(self) -> dict[str, str]:
        return {"url": self.url}


@dataclass(frozen=True, slots=True)
class GetCurrentUrl(Command):
    pass


@dataclass(frozen=True, slots=True)
class GoBack(Command):
    pass


@dataclass(frozen=True, slots=True)
class GoForward(Command):
    pass


@dataclass(frozen=True, slots=True)
class Refresh(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetTitle(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetPageSource(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetWindowHandle(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetWindowHandles(Command):
    pass


@dataclass(frozen=True, slots=True)
class CloseWindow(Command):
    pass


@dataclass(frozen=True, slots=True)
class SwitchToWindow(Command):
    handle: str

    def body(self) -> dict[str, str]:
        return {"handle": self.handle}


@dataclass(frozen=True, slots=True)
class NewWindow(Command):
    as_tab: bool = True

    def body(self) -> dict[str, str]:
        return {"type": "tab" if self.as_tab else "window"}


@dataclass(frozen=True, slots=True)
class SwitchToFrame(Command):
    frame: int | ElementRef | None

    def body(self) -> dict[str, Any]:
        if isinstance(self.frame, ElementRef):
            return {"id": self.frame.to_json()}
        return {"id": self.frame}


@dataclass(frozen=True, slots=True)
class SwitchToParentFrame(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetWindowRect(Command):
    pass


@dataclass(frozen=True, slots=True)
class SetWindowRect(Command):
    x: int | None = None
    y: int | None = None
    width: int | None = None
    height: int | None = None

    def body(self) -> dict[str, int]:
        rect = {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
        return {key: value for key, value in rect.items() if value is not None}


@dataclass(frozen=True, slots=True)
class MaximizeWindow(Command):
    pass


@dataclass(frozen=True, slots=True)
class MinimizeWindow(Command):
    pass


@dataclass(frozen=True, slots=True)
class FullscreenWindow(Command):
    pass


@dataclass(frozen=True, slots=True)
class FindElement(Command):
    locator: Locator

    def body(self) -> dict[str, str]:
        return self.locator.to_parameters()


@dataclass(frozen=True, slots=True)
class FindElements(Command):
    locator: Locator

    def body(self) -> dict[str, str]:
        return self.locator.to_parameters()


@dataclass(frozen=True, slots=True)
class FindElementElement(Command):
    element: ElementRef
    locator: Locator

    def body(self) -> dict[str, str]:
        return self.locator.to_parameters()


@dataclass(frozen=True, slots=True)
class FindElementElements(Command):
    element: ElementRef
    locator: Locator

    def body(self) -> dict[str, str]:
        return self.locator.to_parameters()


@dataclass(frozen=True, slots=True)
class GetActiveElement(Command):
    pass


@dataclass(frozen=True, slots=True)
class IsElementSelected(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class IsElementEnabled(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class IsElementDisplayed(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class GetElementAttribute(Command):
    element: ElementRef
    name: str


@dataclass(frozen=True, slots=True)
class GetElementProperty(Command):
    element: ElementRef
    name: str


@dataclass(frozen=True, slots=True)
class GetCSSValue(Command):
    element: ElementRef
    name: str


@dataclass(frozen=True, slots=True)
class GetElementText(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class GetElementTagName(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class GetElementRect(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class ElementClick(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class ElementClear(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class ElementSendKeys(Command):
    element: ElementRef
    text: str

    def body(self) -> dict[str, Any]:
        return {"text": self.text, "value": list(self.text)}


@dataclass(frozen=True, slots=True)
class TakeElementScreenshot(Command):
    element: ElementRef


@dataclass(frozen=True, slots=True)
class ExecuteScript(Command):
    script: str
    args: tuple[Any, ...] = ()

    def body(self) -> dict[str, Any]:
        return {"script": self.script, "args": list(self.args)}


@dataclass(frozen=True, slots=True)
class ExecuteAsyncScript(Command):
    script: str
    args: tuple[Any, ...] = ()

    def body(self) -> dict[str, Any]:
        return {"script": self.script, "args": list(self.args)}


@dataclass(frozen=True, slots=True)
class GetCookies(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetNamedCookie(Command):
    name: str


@dataclass(frozen=True, slots=True)
class AddCookie(Command):
    cookie: dict[str, Any]

    def body(self) -> dict[str, Any]:
        return {"cookie": self.cookie}


@dataclass(frozen=True, slots=True)
class DeleteCookie(Command):
    name: str


@dataclass(frozen=True, slots=True)
class DeleteCookies(Command):
    pass


@dataclass(frozen=True, slots=True)
class PerformActions(Command):
    actions: dict[str, Any]

    def body(self) -> dict[str, Any]:
        return self.actions


@dataclass(frozen=True, slots=True)
class ReleaseActions(Command):
    pass


@dataclass(frozen=True, slots=True)
class DismissAlert(Command):
    pass


@dataclass(frozen=True, slots=True)
class AcceptAlert(Command):
    pass


@dataclass(frozen=True, slots=True)
class GetAlertText(Command):
    pass


@dataclass(frozen=True, slots=True)
class SendAlertText(Command):
    text: str

    def body(self) -> dict[str, str]:
        return {"text": self.text}


@dataclass(frozen=True, slots=True)
class TakeScreenshot(Command):
    pass
