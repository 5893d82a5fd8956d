from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING, Any

from wdpilot.control.retry import Retry
from wdpilot.wire import codec
from wdpilot.wire.commands import (
    ElementClear,
    ElementClick,
    ElementRef,
    ElementSendKeys,
    FindElementElement,
    FindElementElements,
    GetCSSValue,
    GetElementAttribute,
    GetElementProperty,
    GetElementRect,
    GetElementTagName,
    GetElementText,
    IsElementDisplayed,
    IsElementEnabled,
    IsElementSelected,
    Locator,
    SwitchToFrame,
    TakeElementScreenshot,
)
from wdpilot.wire.errors import ImageDecodeError, InvalidArgumentError, NonConformingResponseError

if TYPE_CHECKING:
    from wdpilot.browser.client import Client


def decode_screenshot(value: Any) -> bytes:
    if not isinstance(value, str):
        raise NonConformingResponseError(value)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(str(exc)) from exc


def _expect(value: Any, kind: type) -> Any:
    if not isinstance(value, kind):
        raise NonConformingResponseError(value)
    return value


class Element:
    """A DOM element of the session that found it."""

    def __init__(self, client: Client, ref: ElementRef) -> None:
        self.client = client
        self.ref = ref

    def __repr__(self) -> str:
        return f"Element({self.ref.id!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Element) and other.ref == self.ref

    def __hash__(self) -> int:
        return hash(self.ref)

    def to_json(self) -> dict[str, str]:
        return self.ref.to_json()

    def find(self, locator: Locator) -> Retry[Element]:
        async def lookup(client: Client) -> Element:
            value = await client.issue(FindElementElement(self.ref, locator))
            return Element(client, codec.parse_lookup(value, legacy=client.legacy))

        return Retry(self.client, lookup)

    def find_all(self, locator: Locator) -> Retry[list[Element]]:
        async def lookup(client: Client) -> list[Element]:
            value = await client.issue(FindElementElements(self.ref, locator))
            return [Element(client, ref) for ref in codec.parse_lookup_all(value, legacy=client.legacy)]

        return Retry(self.client, lookup)

    async def is_selected(self) -> bool:
        return _expect(await self.client.issue(IsElementSelected(self.ref)), bool)

    async def is_enabled(self) -> bool:
        return _expect(await self.client.issue(IsElementEnabled(self.ref)), bool)

    async def is_displayed(self) -> bool:
        return _expect(await self.client.issue(IsElementDisplayed(self.ref)), bool)

    async def attr(self, name: str) -> str | None:
        value = await self.client.issue(GetElementAttribute(self.ref, name))
        if value is None:
            return None
        return _expect(value, str)

    async def prop(self, name: str) -> Any:
        return await self.client.issue(GetElementProperty(self.ref, name))

    async def css_value(self, name: str) -> str:
        return _expect(await self.client.issue(GetCSSValue(self.ref, name)), str)

    async def text(self) -> str:
        return _expect(await self.client.issue(GetElementText(self.ref)), str)

    async def tag_name(self) -> str:
        return _expect(await self.client.issue(GetElementTagName(self.ref)), str)

    async def rect(self) -> tuple[float, float, float, float]:
        """(x, y, width, height) of the element's bounding box."""
        value = _expect(await self.client.issue(GetElementRect(self.ref)), dict)
        try:
            return (
                float(value["x"]),
                float(value["y"]),
                float(value["width"]),
                float(value["height"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise NonConformingResponseError(value) from exc

    async def html(self, inner: bool = False) -> str:
        prop = "innerHTML" if inner else "outerHTML"
        value = await self.client.execute(f"return arguments[0].{prop};", [self])
        return _expect(value, str)

    async def screenshot(self) -> bytes:
        return decode_screenshot(await self.client.issue(TakeElementScreenshot(self.ref)))

    async def click(self) -> None:
        await self.client.issue(ElementClick(self.ref))

    async def clear(self) -> None:
        await self.client.issue(ElementClear(self.ref))

    async def send_keys(self, text: str) -> None:
        await self.client.issue(ElementSendKeys(self.ref, text))

    async def follow(self) -> None:
        """Navigate to this element's ``href``, resolved against the current URL."""
        href = await self.attr("href")
        if href is None:
            raise InvalidArgumentError("href", "element has no href attribute")
        await self.client.goto(href)

    async def enter_frame(self) -> None:
        await self.client.issue(SwitchToFrame(self.ref))

    async def select_by(self, locator: Locator) -> None:
        """Click the option of this ``<select>`` that ``locator`` finds."""
        option = await self.find(locator)
        await option.click()

    async def select_by_value(self, value: str) -> None:
        await self.select_by(Locator.css(f"option[value={_css_string(value)}]"))

    async def select_by_index(self, index: int) -> None:
        await self.select_by(Locator.css(f"option:nth-of-type({index + 1})"))

    async def select_by_label(self, label: str) -> None:
        await self.select_by(Locator.xpath(f".//option[.={_xpath_string(label)}]"))


class Form:
    """
    A ``<form>`` element, with helpers to fill it in and submit it.

    Field values are set through a script rather than typed, so they land
    exactly as given.
    """

    def __init__(self, client: Client, ref: ElementRef) -> None:
        self.client = client
        self.ref = ref

    def __repr__(self) -> str:
        return f"Form({self.ref.id!r})"

    def to_json(self) -> dict[str, str]:
        return self.ref.to_json()

    async def set(self, locator: Locator, value: str) -> Form:
        """Set the value of the field ``locator`` finds within this form."""
        found = await self.client.issue(FindElementElement(self.ref, locator))
        field = codec.parse_lookup(found, legacy=self.client.legacy)
        result = await self.client.execute("arguments[0].value = arguments[1]", [field, value])
        if result is not None:
            raise NonConformingResponseError(result)
        return self

    async def set_by_name(self, field: str, value: str) -> Form:
        return await self.set(Locator.css(f"[name={_css_string(field)}]"), value)

    async def submit(self) -> None:
        """Click the form's submit button."""
        await self.submit_with(Locator.css("input[type=submit],button[type=submit]"))

    async def submit_with(self, button: Locator) -> None:
        found = await self.client.issue(FindElementElement(self.ref, button))
        await Element(self.client, codec.parse_lookup(found, legacy=self.client.legacy)).click()

    async def submit_using(self, label: str) -> None:
        """Click the submit button whose value is ``label``, ignoring case."""
        quoted = _css_string(label)
        await self.submit_with(
            Locator.css(f"input[type=submit][value={quoted} i],button[type=submit][value={quoted} i]")
        )

    async def submit_direct(self) -> None:
        """
        Submit without clicking anything.

        No submit button is pressed, so its name and value are not sent and
        ``onsubmit`` handlers do not run.
        """
        result = await self.client.execute("document.createElement('form').submit.call(arguments[0])", [self])
        if result is not None and result != {}:
            raise NonConformingResponseError(result)

    async def submit_sneaky(self, field: str, value: str) -> None:
        """Add a hidden ``field`` carrying ``value`` to the form, then submit it directly."""
        script = (
            "var h = document.createElement('input');"
            "h.setAttribute('type', 'hidden');"
            "h.setAttribute('name', arguments[1]);"
            "h.value = arguments[2];"
            "arguments[0].appendChild(h)"
        )
        result = await self.client.execute(script, [self, field, value])
        if result is not None and result != {}:
            raise NonConformingResponseError(result)
        await self.submit_direct()


def _css_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _xpath_string(value: str) -> str:
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{part}"' for part in parts) + ")"
