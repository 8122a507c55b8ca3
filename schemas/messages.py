from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError


class Role(str, Enum):
    UNKNOWN = "unknown"
    WEB = "web"          # browser client
    APP = "app"          # main app, remote input/commands
    BROADCAST = "broadcast"  # broadcast extension, WebRTC offers/candidates


REGISTRABLE_ROLES = (Role.WEB, Role.APP, Role.BROADCAST)


class MessageKind(str, Enum):
    HELLO = "hello"
    WEBRTC = "webrtc"
    REMOTE_CONTROL = "remote_control"
    UNKNOWN = "unknown"


WEBRTC_TYPES = frozenset({"offer", "answer", "candidate", "control"})
REMOTE_CONTROL_TYPES = frozenset({"input", "command", "diagnostics"})


def parse_role(value: Any) -> Optional[Role]:
    """Normalize a role announced in a hello. Returns None unless it is web, app or broadcast."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    for role in REGISTRABLE_ROLES:
        if role.value == normalized:
            return role
    return None


class Envelope(BaseModel):
    """Minimal structural view of an inbound frame: a JSON object with a string ``type``."""
    model_config = ConfigDict(extra="allow")

    type: StrictStr


class HelloMessage(BaseModel):
    kind: ClassVar[MessageKind] = MessageKind.HELLO

    type: str
    role: Any = None

    @property
    def requested_role(self) -> Optional[Role]:
        return parse_role(self.role)


class WebRtcSignal(BaseModel):
    kind: ClassVar[MessageKind] = MessageKind.WEBRTC

    type: str
    sdp: Optional[str] = None
    has_candidate: bool = False

    @property
    def has_video(self) -> bool:
        return bool(self.sdp) and "m=video" in self.sdp


class RemoteControlMessage(BaseModel):
    kind: ClassVar[MessageKind] = MessageKind.REMOTE_CONTROL

    type: str
    has_input: bool = False
    has_command: bool = False
    has_diagnostics: bool = False


class UnknownMessage(BaseModel):
    kind: ClassVar[MessageKind] = MessageKind.UNKNOWN

    type: str


ParsedMessage = Union[HelloMessage, WebRtcSignal, RemoteControlMessage, UnknownMessage]


def parse_message(raw: str) -> Optional[ParsedMessage]:
    """Classify a raw frame once. Returns None for anything that isn't an object with a string type."""
    try:
        envelope = Envelope.model_validate_json(raw)
    except ValidationError:
        return None

    fields = envelope.model_extra or {}
    message_type = envelope.type

    if message_type.lower() == "hello":
        return HelloMessage(type=message_type, role=fields.get("role"))

    if message_type in WEBRTC_TYPES:
        sdp = fields.get("sdp")
        return WebRtcSignal(
            type=message_type,
            sdp=sdp if isinstance(sdp, str) else None,
            has_candidate="candidate" in fields,
        )

    if message_type in REMOTE_CONTROL_TYPES:
        return RemoteControlMessage(
            type=message_type,
            has_input=fields.get("input") is not None,
            has_command=fields.get("command") is not None,
            has_diagnostics=fields.get("diagnostics") is not None,
        )

    return UnknownMessage(type=message_type)
