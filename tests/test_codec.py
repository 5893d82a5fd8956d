import json

import pytest

from wdpilot.wire import codec
from wdpilot.wire import commands as cmd
from wdpilot.wire.commands import ELEMENT_KEY, ElementRef, Locator, TimeoutConfiguration
from wdpilot.wire.errors import (
    ErrorStatus,
    IncoherentResponseError,
    NonConformingResponseError,
    NoSuchElementError,
    NotJsonError,
    WebDriverError,
)

JSON = "application/json; charset=utf-8"


def test_session_commands_are_rooted_at_the_session() -> None:
    request = codec.encode(cmd.GetTitle(), session_id="s1", legacy=False)

    assert request.method == "GET"
    assert request.path == "session/s1/title"
    assert request.body is None


def test_unrooted_commands() -> None:
    assert codec.encode(cmd.Status(), session_id="s1", legacy=False).path == "status"
    assert codec.encode(cmd.NewSession({}), session_id=None, legacy=False).path == "session"
    assert codec.encode(cmd.DeleteSession(), session_id="s1", legacy=False).path == "session/s1"


def test_element_commands_fill_in_the_element_id() -> None:
    ref = ElementRef("e-42")

    assert codec.encode(cmd.GetElementAttribute(ref, "href"), session_id="s1", legacy=False).path == (
        "session/s1/element/e-42/attribute/href"
    )
    request = codec.encode(cmd.FindElementElements(ref, Locator.css("li")), session_id="s1", legacy=False)
    assert request.path == "session/s1/element/e-42/elements"
    assert request.body == {"using": "css selector", "value": "li"}


def test_bodyless_post_sends_empty_object() -> None:
    request = codec.encode(cmd.ElementClick(ElementRef("e1")), session_id="s1", legacy=False)

    assert request.method == "POST"
    assert request.body == {}
    assert request.encode_body() == b"{}"


def test_legacy_uses_old_script_and_window_paths() -> None:
    assert codec.encode(cmd.ExecuteScript("return 1;"), session_id="s1", legacy=True).path == "session/s1/execute"
    assert codec.encode(cmd.ExecuteScript("return 1;"), session_id="s1", legacy=False).path == "session/s1/execute/sync"
    assert codec.encode(cmd.GetWindowHandles(), session_id="s1", legacy=True).path == "session/s1/window_handles"


def test_legacy_renames_element_keys_recursively() -> None:
    ref = ElementRef("e1").to_json()
    command = cmd.ExecuteScript("return arguments;", (ref, [ref], {"nested": {"deeper": ref}}, 3))

    body = codec.encode(command, session_id="s1", legacy=True).body

    assert body["args"] == [{"ELEMENT": "e1"}, [{"ELEMENT": "e1"}], {"nested": {"deeper": {"ELEMENT": "e1"}}}, 3]
    assert ELEMENT_KEY not in json.dumps(body)


def test_modern_keeps_element_keys() -> None:
    command = cmd.SwitchToFrame(ElementRef("f1"))

    body = codec.encode(command, session_id="s1", legacy=False).body

    assert body == {"id": {ELEMENT_KEY: "f1"}}


def test_send_keys_body_carries_text_and_characters() -> None:
    body = codec.encode(cmd.ElementSendKeys(ElementRef("e1"), "hi"), session_id="s1", legacy=False).body

    assert body == {"text": "hi", "value": ["h", "i"]}


def test_timeouts_survive_a_read_modify_write_unchanged() -> None:
    served = {"script": 1001, "pageLoad": 300000, "implicit": 1003}

    assert TimeoutConfiguration.from_json(served).to_json() == served
    for millis in range(0, 5000, 7):
        assert TimeoutConfiguration.from_json({"implicit": millis}).to_json()["implicit"] == millis


def test_unknown_command_is_rejected() -> None:
    class Teleport(cmd.Command):
        pass

    with pytest.raises(TypeError):
        codec.encode(Teleport(), session_id="s1", legacy=False)


def test_lookup_parsing_per_dialect() -> None:
    assert codec.parse_lookup({ELEMENT_KEY: "e1"}, legacy=False) == ElementRef("e1")
    assert codec.parse_lookup({"ELEMENT": "e1"}, legacy=True) == ElementRef("e1")
    assert codec.parse_lookup_all([{ELEMENT_KEY: "a"}, {ELEMENT_KEY: "b"}], legacy=False) == [
        ElementRef("a"),
        ElementRef("b"),
    ]
    with pytest.raises(NonConformingResponseError):
        codec.parse_lookup({"ELEMENT": "e1"}, legacy=False)


def test_decode_unwraps_value() -> None:
    assert codec.decode(200, JSON, '{"value": "Example"}', legacy=False) == "Example"
    assert codec.decode(200, JSON, '{"status": 0, "value": [1, 2]}', legacy=True) == [1, 2]


def test_legacy_new_session_keeps_whole_payload() -> None:
    text = '{"sessionId": "s1", "status": 0, "value": {"browserName": "phantomjs"}}'

    payload = codec.decode(200, JSON, text, legacy=True, new_session=True)

    assert payload["sessionId"] == "s1"


def test_no_such_element_is_lifted_in_both_dialects() -> None:
    modern = '{"value": {"error": "no such element", "message": "gone", "stacktrace": ""}}'
    legacy = '{"status": 7, "value": {"message": "gone"}}'

    with pytest.raises(NoSuchElementError) as info:
        codec.decode(404, JSON, modern, legacy=False)
    assert info.value.is_no_such_element()
    with pytest.raises(NoSuchElementError):
        codec.decode(500, JSON, legacy, legacy=True)


def test_other_errors_carry_their_status() -> None:
    text = '{"value": {"error": "stale element reference", "message": "detached", "stacktrace": "at x"}}'

    with pytest.raises(WebDriverError) as info:
        codec.decode(404, JSON, text, legacy=False)

    assert info.value.status is ErrorStatus.STALE_ELEMENT_REFERENCE
    assert info.value.is_stale_element_reference()
    assert info.value.fault.stacktrace == "at x"


def test_older_draft_status_codes_are_accepted() -> None:
    text = '{"value": {"error": "timeout", "message": "slow"}}'

    with pytest.raises(WebDriverError) as info:
        codec.decode(408, JSON, text, legacy=False)

    assert info.value.is_timeout()


def test_retired_error_tokens_map_to_current_ones() -> None:
    text = '{"value": {"error": "element not visible", "message": "hidden"}}'

    with pytest.raises(WebDriverError) as info:
        codec.decode(400, JSON, text, legacy=False)

    assert info.value.is_element_not_interactable()


def test_unknown_error_shapes_are_non_conforming() -> None:
    with pytest.raises(NonConformingResponseError):
        codec.decode(404, JSON, '{"value": {"error": "no such thing", "message": "?"}}', legacy=False)
    # right token, wrong http status
    with pytest.raises(NonConformingResponseError):
        codec.decode(418, JSON, '{"value": {"error": "no such element", "message": "?"}}', legacy=False)
    with pytest.raises(NonConformingResponseError):
        codec.decode(500, JSON, '{"status": 99, "value": {"message": "?"}}', legacy=True)
    with pytest.raises(NonConformingResponseError):
        codec.decode(200, JSON, "[1, 2]", legacy=False)
    with pytest.raises(NonConformingResponseError):
        codec.decode(200, JSON, '{"status": "ok", "value": 1}', legacy=True)


def test_screen_is_stripped_from_error_bodies() -> None:
    text = '{"value": {"error": "unknown error", "message": "oops", "screen": "iVBORw0KGgo", "data": {"a": 1}}}'

    with pytest.raises(WebDriverError) as info:
        codec.decode(500, JSON, text, legacy=False)

    assert info.value.fault.data == {"a": 1}

    unknown = '{"value": {"error": "made up", "message": "oops", "screen": "iVBORw0KGgo"}}'
    with pytest.raises(NonConformingResponseError) as info:
        codec.decode(500, JSON, unknown, legacy=False)
    assert info.value.payload == {"error": "made up", "message": "oops"}


def test_non_json_and_broken_json() -> None:
    with pytest.raises(NotJsonError):
        codec.decode(200, "text/html", "<html></html>", legacy=False)
    with pytest.raises(NotJsonError):
        codec.decode(200, None, "{}", legacy=False)
    with pytest.raises(IncoherentResponseError):
        codec.decode(200, JSON, '{"value": ', legacy=False)


@pytest.mark.parametrize(
    "payload",
    [
        "Missing Command Parameter: desiredCapabilities",
        {"message": "unknown error: cannot find dict 'desiredCapabilities'"},
        {"message": "Missing or invalid capabilities"},
        {"message": "Unexpected server error."},
    ],
)
def test_legacy_fingerprints(payload) -> None:
    assert codec.looks_legacy(payload)


def test_ordinary_failures_are_not_legacy() -> None:
    assert not codec.looks_legacy("<html>hello</html>")
    assert not codec.looks_legacy({"message": "chrome not reachable"})
    assert not codec.looks_legacy(None)
