"""Gateway protocol models.

Wire frames, opcodes, intents, the cached connection session and the effect
types produced by the gateway session state machine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum, IntFlag
from typing import Any, Union

from chatbridge.core.domain.errors import MalformedFrameError
from chatbridge.core.domain.session import UserInfo


class Opcode(IntEnum):
    """Gateway opcodes (Discord gateway v10)."""

    DISPATCH = 0
    HEARTBEAT = 1
    IDENTIFY = 2
    PRESENCE_UPDATE = 3
    VOICE_STATE_UPDATE = 4
    RESUME = 6
    RECONNECT = 7
    REQUEST_GUILD_MEMBERS = 8
    INVALID_SESSION = 9
    HELLO = 10
    HEARTBEAT_ACK = 11


class GatewayIntent(IntFlag):
    """Capability bitmask sent with IDENTIFY."""

    GUILDS = 1 << 0
    GUILD_MEMBERS = 1 << 1
    GUILD_MODERATION = 1 << 2
    GUILD_EMOJIS_AND_STICKERS = 1 << 3
    GUILD_INTEGRATIONS = 1 << 4
    GUILD_WEBHOOKS = 1 << 5
    GUILD_INVITES = 1 << 6
    GUILD_VOICE_STATES = 1 << 7
    GUILD_PRESENCES = 1 << 8
    GUILD_MESSAGES = 1 << 9
    GUILD_MESSAGE_REACTIONS = 1 << 10
    GUILD_MESSAGE_TYPING = 1 << 11
    DIRECT_MESSAGES = 1 << 12
    DIRECT_MESSAGE_REACTIONS = 1 << 13
    DIRECT_MESSAGE_TYPING = 1 << 14
    MESSAGE_CONTENT = 1 << 15
    GUILD_SCHEDULED_EVENTS = 1 << 16


DEFAULT_INTENTS = (
    GatewayIntent.GUILD_MESSAGES
    | GatewayIntent.GUILD_MESSAGE_REACTIONS
    | GatewayIntent.DIRECT_MESSAGES
    | GatewayIntent.DIRECT_MESSAGE_REACTIONS
    | GatewayIntent.MESSAGE_CONTENT
)


class FrameKind(str, Enum):
    """Tagged-union discriminator for inbound frames."""

    HELLO = "hello"
    DISPATCH = "dispatch"
    HEARTBEAT = "heartbeat"
    HEARTBEAT_ACK = "heartbeat_ack"
    INVALID_SESSION = "invalid_session"
    RECONNECT = "reconnect"
    UNKNOWN = "unknown"


_KIND_BY_OPCODE: dict[int, FrameKind] = {
    Opcode.HELLO: FrameKind.HELLO,
    Opcode.DISPATCH: FrameKind.DISPATCH,
    Opcode.HEARTBEAT: FrameKind.HEARTBEAT,
    Opcode.HEARTBEAT_ACK: FrameKind.HEARTBEAT_ACK,
    Opcode.INVALID_SESSION: FrameKind.INVALID_SESSION,
    Opcode.RECONNECT: FrameKind.RECONNECT,
}


class SessionState(str, Enum):
    """Lifecycle states of a gateway connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_HELLO = "awaiting_hello"
    IDENTIFYING = "identifying"
    RESUMING = "resuming"
    ONLINE = "online"
    RECONNECTING = "reconnecting"


class CloseReason(str, Enum):
    """Why the state machine asked for the transport to be closed."""

    SESSION_INVALIDATED = "session_invalidated"
    RECONNECT_REQUESTED = "reconnect_requested"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True)
class Frame:
    """An immutable gateway frame ``{op, d, s?, t?}``."""

    op: int
    d: Any = None
    s: int | None = None
    t: str | None = None

    @property
    def kind(self) -> FrameKind:
        return _KIND_BY_OPCODE.get(self.op, FrameKind.UNKNOWN)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the frame with only the fields that are set."""
        data: dict[str, Any] = {"op": self.op, "d": self.d}
        if self.s is not None:
            data["s"] = self.s
        if self.t is not None:
            data["t"] = self.t
        return data

    def encode(self) -> str:
        """Encode the frame as a JSON text frame."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def decode_frame(raw: str | bytes) -> Frame:
    """Decode a raw transport frame.

    Raises:
        MalformedFrameError: If the data is not a JSON object with an integer
            ``op`` and correctly typed optional ``s``/``t`` fields.
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedFrameError(
            f"Cannot parse gateway frame: {exc}", details={"raw": str(raw)[:200]}
        ) from exc

    if not isinstance(data, dict):
        raise MalformedFrameError("Gateway frame is not an object")

    op = data.get("op")
    if not isinstance(op, int) or isinstance(op, bool):
        raise MalformedFrameError("Gateway frame has no integer 'op'", details={"op": op})

    seq = data.get("s")
    if seq is not None and (not isinstance(seq, int) or isinstance(seq, bool)):
        raise MalformedFrameError("Gateway frame has a non-integer 's'", details={"s": seq})

    event_type = data.get("t")
    if event_type is not None and not isinstance(event_type, str):
        raise MalformedFrameError("Gateway frame has a non-string 't'", details={"t": event_type})

    return Frame(op=op, d=data.get("d"), s=seq, t=event_type)


def normalize_event_type(event_type: str) -> str:
    """Normalize an event type: ``MESSAGE_CREATE`` -> ``message-create``."""
    return event_type.strip().lower().replace("_", "-").replace(" ", "-")


@dataclass(frozen=True)
class IdentifyParams:
    """Credentials and capabilities used to authenticate a gateway session."""

    token: str
    intents: int = int(DEFAULT_INTENTS)
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConnectionSession:
    """Cached gateway session state.

    ``sequence`` only grows; it is reset together with ``session_id`` and
    ``resume_url`` when the peer invalidates the session for good.
    """

    sequence: int | None = None
    session_id: str = ""
    resume_url: str | None = None
    heartbeat_interval_ms: int | None = None
    state: SessionState = SessionState.DISCONNECTED
    identity: UserInfo | None = None

    @property
    def can_resume(self) -> bool:
        return bool(self.session_id)

    def with_sequence(self, seq: int | None) -> "ConnectionSession":
        if seq is None:
            return self
        if self.sequence is not None and seq <= self.sequence:
            return self
        return replace(self, sequence=seq)

    def with_state(self, state: SessionState) -> "ConnectionSession":
        return replace(self, state=state)

    def invalidated(self) -> "ConnectionSession":
        return replace(self, session_id="", resume_url=None, sequence=None)


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SendFrame:
    """Send a frame over the transport."""

    frame: Frame


@dataclass(frozen=True)
class StartHeartbeat:
    interval_ms: int


@dataclass(frozen=True)
class StopHeartbeat:
    pass


@dataclass(frozen=True)
class EmitEvent:
    """Publish a raw dispatch on the host event bus under ``name``."""

    name: str
    frame: Frame


@dataclass(frozen=True)
class DispatchEvent:
    """Hand a dispatch to the event dispatcher for adaptation."""

    event_type: str
    frame: Frame


@dataclass(frozen=True)
class AssignIdentity:
    user: UserInfo


@dataclass(frozen=True)
class SignalOnline:
    pass


@dataclass(frozen=True)
class SignalOffline:
    reason: str


@dataclass(frozen=True)
class CloseTransport:
    reason: CloseReason


Effect = Union[
    SendFrame,
    StartHeartbeat,
    StopHeartbeat,
    EmitEvent,
    DispatchEvent,
    AssignIdentity,
    SignalOnline,
    SignalOffline,
    CloseTransport,
]
