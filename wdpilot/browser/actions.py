"""
Input actions for the WebDriver ``actions`` command.

Every channel (input source) holds an ordered list of actions. The server runs
the k-th action of every channel together, as one "column", and a column lasts
as long as its longest action.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from wdpilot.wire.commands import ElementRef

MOUSE_BUTTON_LEFT = 0
MOUSE_BUTTON_MIDDLE = 1
MOUSE_BUTTON_RIGHT = 2

DEFAULT_PAUSE = 0.0


def _millis(seconds: float) -> int:
    return int(round(seconds * 1000))


class PointerType(str, Enum):
    MOUSE = "mouse"
    PEN = "pen"
    TOUCH = "touch"


class Origin(str, Enum):
    VIEWPORT = "viewport"
    POINTER = "pointer"


PointerOrigin = Union[Origin, ElementRef]


@dataclass(frozen=True, slots=True)
class Pause:
    duration: float = DEFAULT_PAUSE

    def to_json(self) -> dict[str, Any]:
        return {"type": "pause", "duration": _millis(self.duration)}


@dataclass(frozen=True, slots=True)
class KeyDown:
    value: str

    def to_json(self) -> dict[str, Any]:
        return {"type": "keyDown", "value": self.value}


@dataclass(frozen=True, slots=True)
class KeyUp:
    value: str

    def to_json(self) -> dict[str, Any]:
        return {"type": "keyUp", "value": self.value}


@dataclass(frozen=True, slots=True)
class PointerDown:
    button: int = MOUSE_BUTTON_LEFT

    def to_json(self) -> dict[str, Any]:
        return {"type": "pointerDown", "button": self.button}


@dataclass(frozen=True, slots=True)
class PointerUp:
    button: int = MOUSE_BUTTON_LEFT

    def to_json(self) -> dict[str, Any]:
        return {"type": "pointerUp", "button": self.button}


@dataclass(frozen=True, slots=True)
class PointerMove:
    x: int
    y: int
    origin: PointerOrigin = Origin.VIEWPORT
    duration: float | None = None

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": "pointerMove", "x": self.x, "y": self.y}
        if isinstance(self.origin, ElementRef):
            payload["origin"] = self.origin.to_json()
        else:
            payload["origin"] = self.origin.value
        if self.duration is not None:
            payload["duration"] = _millis(self.duration)
        return payload


@dataclass(frozen=True, slots=True)
class PointerCancel:
    def to_json(self) -> dict[str, Any]:
        return {"type": "pointerCancel"}


def move_to(x: int, y: int, duration: float | None = None) -> PointerMove:
    return PointerMove(x, y, Origin.VIEWPORT, duration)


def move_by(x: int, y: int, duration: float | None = None) -> PointerMove:
    return PointerMove(x, y, Origin.POINTER, duration)


def move_to_element(element: Any, x: int = 0, y: int = 0, duration: float | None = None) -> PointerMove:
    """Move relative to the centre of ``element`` (an ``Element`` or an ``ElementRef``)."""
    ref = element if isinstance(element, ElementRef) else element.ref
    return PointerMove(x, y, ref, duration)


def action_duration(action: Any) -> float:
    if isinstance(action, Pause):
        return action.duration
    if isinstance(action, PointerMove) and action.duration is not None:
        return action.duration
    return 0.0


class InputSource:
    kind = ""
    accepts: tuple[type, ...] = (Pause,)

    def __init__(self, id: str) -> None:
        self.id = id
        self.actions: list[Any] = []

    def __len__(self) -> int:
        return len(self.actions)

    def then(self, action: Any) -> InputSource:
        if not isinstance(action, self.accepts):
            raise TypeError(f"{type(action).__name__} cannot be queued on a {self.kind} input source")
        self.actions.append(action)
        return self

    def pause(self, duration: float = DEFAULT_PAUSE) -> InputSource:
        return self.then(Pause(duration))

    def parameters(self) -> dict[str, Any] | None:
        return None

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "type": self.kind}
        parameters = self.parameters()
        if parameters is not None:
            payload["parameters"] = parameters
        payload["actions"] = [action.to_json() for action in self.actions]
        return payload


class NullActions(InputSource):
    """Holds pauses only; useful to stretch a column without real input."""

    kind = "none"


class KeyActions(InputSource):
    kind = "key"
    accepts = (Pause, KeyDown, KeyUp)

    def down(self, value: str) -> KeyActions:
        self.then(KeyDown(value))
        return self

    def up(self, value: str) -> KeyActions:
        self.then(KeyUp(value))
        return self


class PointerActions(InputSource):
    kind = "pointer"
    accepts = (Pause, PointerDown, PointerUp, PointerMove, PointerCancel)

    def __init__(self, id: str, pointer_type: PointerType = PointerType.MOUSE) -> None:
        super().__init__(id)
        self.pointer_type = pointer_type

    def parameters(self) -> dict[str, Any]:
        return {"pointerType": self.pointer_type.value}


def mouse(id: str = "mouse") -> PointerActions:
    return PointerActions(id, PointerType.MOUSE)


def pen(id: str = "pen") -> PointerActions:
    return PointerActions(id, PointerType.PEN)


def touch(id: str = "touch") -> PointerActions:
    return PointerActions(id, PointerType.TOUCH)


class Actions:
    """An ordered set of input sources with distinct ids, sent as one command."""

    def __init__(self, *sources: InputSource) -> None:
        self.sources: list[InputSource] = []
        for source in sources:
            self.add(source)

    def add(self, source: InputSource) -> Actions:
        if any(existing.id == source.id for existing in self.sources):
            raise ValueError(f"duplicate input source id {source.id!r}")
        self.sources.append(source)
        return self

    def columns(self) -> list[list[Any]]:
        """Actions grouped by tick; shorter channels contribute nothing to later ticks."""
        depth = max((len(source) for source in self.sources), default=0)
        return [
            [source.actions[tick] for source in self.sources if tick < len(source)]
            for tick in range(depth)
        ]

    def column_durations(self) -> list[float]:
        return [max((action_duration(action) for action in column), default=0.0) for column in self.columns()]

    def duration(self) -> float:
        return sum(self.column_durations())

    def to_json(self) -> dict[str, Any]:
        return {"actions": [source.to_json() for source in self.sources]}


class ActionChainBuilder:
    """
    Keyboard and mouse input that stays in step.

    Appending to one channel pads the other with a pause of ``default_pause``
    seconds, so both channels always hold the same number of actions.
    """

    def __init__(
        self,
        default_pause: float = DEFAULT_PAUSE,
        key_id: str = "keyboard",
        pointer_id: str = "mouse",
        pointer_type: PointerType = PointerType.MOUSE,
    ) -> None:
        self.default_pause = default_pause
        self.keys = KeyActions(key_id)
        self.pointer = PointerActions(pointer_id, pointer_type)

    def _key(self, action: Any) -> ActionChainBuilder:
        self.keys.then(action)
        self.pointer.pause(self.default_pause)
        return self

    def _pointer(self, action: Any) -> ActionChainBuilder:
        self.pointer.then(action)
        self.keys.pause(self.default_pause)
        return self

    def key_down(self, value: str) -> ActionChainBuilder:
        return self._key(KeyDown(value))

    def key_up(self, value: str) -> ActionChainBuilder:
        return self._key(KeyUp(value))

    def send_keys(self, text: str) -> ActionChainBuilder:
        for char in text:
            self.key_down(char)
            self.key_up(char)
        return self

    def pointer_down(self, button: int = MOUSE_BUTTON_LEFT) -> ActionChainBuilder:
        return self._pointer(PointerDown(button))

    def pointer_up(self, button: int = MOUSE_BUTTON_LEFT) -> ActionChainBuilder:
        return self._pointer(PointerUp(button))

    def move_to(self, x: int, y: int, duration: float | None = None) -> ActionChainBuilder:
        return self._pointer(move_to(x, y, duration))

    def move_by(self, x: int, y: int, duration: float | None = None) -> ActionChainBuilder:
        return self._pointer(move_by(x, y, duration))

    def move_to_element(self, element: Any, x: int = 0, y: int = 0) -> ActionChainBuilder:
        return self._pointer(move_to_element(element, x, y))

    def cancel(self) -> ActionChainBuilder:
        return self._pointer(PointerCancel())

    def click(self, button: int = MOUSE_BUTTON_LEFT) -> ActionChainBuilder:
        return self.pointer_down(button).pointer_up(button)

    def double_click(self, button: int = MOUSE_BUTTON_LEFT) -> ActionChainBuilder:
        return self.click(button).click(button)

    def click_element(self, element: Any, button: int = MOUSE_BUTTON_LEFT) -> ActionChainBuilder:
        return self.move_to_element(element).click(button)

    def drag_and_drop(self, source: Any, target: Any) -> ActionChainBuilder:
        return self.move_to_element(source).pointer_down().move_to_element(target).pointer_up()

    def pause(self, duration: float) -> ActionChainBuilder:
        self.keys.pause(duration)
        self.pointer.pause(duration)
        return self

    def build(self) -> Actions:
        return Actions(self.keys, self.pointer)

    def to_json(self) -> dict[str, Any]:
        return self.build().to_json()
