"""Tests for frame classification."""

import pytest

from schemas.messages import (
    HelloMessage,
    MessageKind,
    RemoteControlMessage,
    Role,
    UnknownMessage,
    WebRtcSignal,
    parse_message,
    parse_role,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("web", Role.WEB),
        (" APP ", Role.APP),
        ("Broadcast", Role.BROADCAST),
        ("unknown", None),
        ("", None),
        (None, None),
        (3, None),
    ],
)
def test_parse_role(value, expected):
    assert parse_role(value) == expected


def test_hello_is_classified():
    message = parse_message('{"type":"Hello","role":" Web"}')
    assert isinstance(message, HelloMessage)
    assert message.kind == MessageKind.HELLO
    assert message.requested_role == Role.WEB


@pytest.mark.parametrize("message_type", ["offer", "answer", "candidate", "control"])
def test_webrtc_types(message_type):
    message = parse_message(f'{{"type":"{message_type}"}}')
    assert isinstance(message, WebRtcSignal)
    assert message.kind == MessageKind.WEBRTC


@pytest.mark.parametrize("message_type", ["input", "command", "diagnostics"])
def test_remote_control_types(message_type):
    message = parse_message(f'{{"type":"{message_type}"}}')
    assert isinstance(message, RemoteControlMessage)
    assert message.kind == MessageKind.REMOTE_CONTROL


def test_sdp_details_are_extracted():
    message = parse_message('{"type":"offer","sdp":"v=0\\r\\nm=audio 9\\r\\nm=video 9"}')
    assert message.sdp.startswith("v=0")
    assert message.has_video is True
    assert message.has_candidate is False

    candidate = parse_message('{"type":"candidate","candidate":{"sdpMid":"0"}}')
    assert candidate.has_candidate is True
    assert candidate.sdp is None
    assert candidate.has_video is False


def test_remote_control_flags_ignore_null_fields():
    message = parse_message('{"type":"input","input":{"x":1},"command":null}')
    assert message.has_input is True
    assert message.has_command is False
    assert message.has_diagnostics is False


def test_non_hello_types_are_case_sensitive():
    message = parse_message('{"type":"OFFER"}')
    assert isinstance(message, UnknownMessage)
    assert message.kind == MessageKind.UNKNOWN
    assert message.type == "OFFER"


@pytest.mark.parametrize("raw", ["{", "null", "42", "[]", '{"sdp":"x"}', '{"type":["offer"]}'])
def test_malformed_frames(raw):
    assert parse_message(raw) is None
