"""Gateway session state machine.

Pure functions from ``(ConnectionSession, Frame)`` to
``(ConnectionSession, list[Effect])``. Nothing here touches a socket or a
timer: the gateway client applies the returned effects in order.

Lifecycle::

    DISCONNECTED -> CONNECTING -> AWAITING_HELLO -> IDENTIFYING | RESUMING
        -> ONLINE -> RECONNECTING -> CONNECTING ...
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any

from chatbridge.core.domain.errors import MalformedFrameError
from chatbridge.core.domain.gateway import (
    AssignIdentity,
    CloseReason,
    CloseTransport,
    ConnectionSession,
    DispatchEvent,
    Effect,
    EmitEvent,
    Frame,
    FrameKind,
    IdentifyParams,
    Opcode,
    SendFrame,
    SessionState,
    SignalOffline,
    SignalOnline,
    StartHeartbeat,
    StopHeartbeat,
    normalize_event_type,
)
from chatbridge.core.domain.session import UserInfo

Transition = tuple[ConnectionSession, list[Effect]]

AVATAR_URL = "https://cdn.discordapp.com/avatars/{user_id}/{avatar}"

READY = "READY"
RESUMED = "RESUMED"


def decode_user(data: dict[str, Any]) -> UserInfo:
    """Decode a gateway user object."""
    user_id = str(data["id"])
    avatar = data.get("avatar")
    return UserInfo(
        id=user_id,
        name=data.get("global_name") or data.get("username"),
        avatar=AVATAR_URL.format(user_id=user_id, avatar=avatar) if avatar else None,
        is_bot=bool(data.get("bot", False)),
    )


def begin_connect(session: ConnectionSession) -> tuple[ConnectionSession, str | None]:
    """Enter CONNECTING and pick the endpoint.

    Returns the cached resume URL when there is one (it points at the node
    that holds the session); ``None`` means a fresh endpoint must be
    discovered.
    """
    return session.with_state(SessionState.CONNECTING), session.resume_url


def transport_opened(session: ConnectionSession) -> ConnectionSession:
    return session.with_state(SessionState.AWAITING_HELLO)


def transport_closed(session: ConnectionSession, *, will_retry: bool) -> Transition:
    """Handle any transport close. Cached session state is left intact."""
    state = SessionState.RECONNECTING if will_retry else SessionState.DISCONNECTED
    return session.with_state(state), [StopHeartbeat()]


def heartbeat_frame(session: ConnectionSession) -> Frame:
    """Heartbeat carrying the last sequence number seen."""
    return Frame(op=Opcode.HEARTBEAT, d=session.sequence)


def handle_frame(
    session: ConnectionSession,
    frame: Frame,
    params: IdentifyParams,
    *,
    platform: str = "discord",
) -> Transition:
    """Apply one inbound frame.

    Raises:
        MalformedFrameError: If a known frame lacks a required field.
    """
    session = session.with_sequence(frame.s)
    handler = _HANDLERS.get(frame.kind, _ignore)
    return handler(session, frame, params, platform)


def _on_hello(
    session: ConnectionSession, frame: Frame, params: IdentifyParams, platform: str
) -> Transition:
    payload = frame.d if isinstance(frame.d, dict) else {}
    interval = payload.get("heartbeat_interval")
    if not isinstance(interval, (int, float)) or isinstance(interval, bool) or interval <= 0:
        raise MalformedFrameError(
            "HELLO frame has no usable heartbeat_interval", details={"d": frame.d}
        )
    interval_ms = int(interval)
    effects: list[Effect] = [StartHeartbeat(interval_ms)]

    if session.can_resume:
        effects.append(
            SendFrame(
                Frame(
                    op=Opcode.RESUME,
                    d={
                        "token": params.token,
                        "session_id": session.session_id,
                        "seq": session.sequence,
                    },
                )
            )
        )
        state = SessionState.RESUMING
    else:
        effects.append(
            SendFrame(
                Frame(
                    op=Opcode.IDENTIFY,
                    d={
                        "token": params.token,
                        "properties": dict(params.properties),
                        "compress": False,
                        "intents": int(params.intents),
                    },
                )
            )
        )
        state = SessionState.IDENTIFYING

    return replace(session, heartbeat_interval_ms=interval_ms, state=state), effects


def _on_dispatch(
    session: ConnectionSession, frame: Frame, params: IdentifyParams, platform: str
) -> Transition:
    if not frame.t:
        raise MalformedFrameError("DISPATCH frame has no event type")

    event_type = frame.t.strip().upper().replace("-", "_").replace(" ", "_")
    effects: list[Effect] = [EmitEvent(f"{platform}/{normalize_event_type(frame.t)}", frame)]

    if event_type == READY:
        payload = frame.d if isinstance(frame.d, dict) else {}
        session_id = payload.get("session_id")
        if not session_id:
            raise MalformedFrameError("READY frame has no session_id")
        session = replace(
            session,
            session_id=str(session_id),
            resume_url=payload.get("resume_gateway_url") or session.resume_url,
            state=SessionState.ONLINE,
        )
        user = payload.get("user")
        if isinstance(user, dict) and "id" in user:
            identity = decode_user(user)
            session = replace(session, identity=identity)
            effects.append(AssignIdentity(identity))
        effects.append(SignalOnline())
        return session, effects

    if event_type == RESUMED:
        effects.append(SignalOnline())
        return session.with_state(SessionState.ONLINE), effects

    effects.append(DispatchEvent(event_type, frame))
    return session, effects


def _on_invalid_session(
    session: ConnectionSession, frame: Frame, params: IdentifyParams, platform: str
) -> Transition:
    if frame.d is True:
        return session, []
    return session.invalidated(), [
        SignalOffline("invalid session"),
        CloseTransport(CloseReason.SESSION_INVALIDATED),
    ]


def _on_reconnect(
    session: ConnectionSession, frame: Frame, params: IdentifyParams, platform: str
) -> Transition:
    return session, [
        SignalOffline("reconnect requested"),
        CloseTransport(CloseReason.RECONNECT_REQUESTED),
    ]


def _on_heartbeat_request(
    session: ConnectionSession, frame: Frame, params: IdentifyParams, platform: str
) -> Transition:
    return session, [SendFrame(heartbeat_frame(session))]


def _ignore(
    session: ConnectionSession, frame: Frame, params: IdentifyParams, platform: str
) -> Transition:
    return session, []


_HANDLERS: dict[
    FrameKind,
    Callable[[ConnectionSession, Frame, IdentifyParams, str], Transition],
] = {
    FrameKind.HELLO: _on_hello,
    FrameKind.DISPATCH: _on_dispatch,
    FrameKind.INVALID_SESSION: _on_invalid_session,
    FrameKind.RECONNECT: _on_reconnect,
    FrameKind.HEARTBEAT: _on_heartbeat_request,
    FrameKind.HEARTBEAT_ACK: _ignore,
    FrameKind.UNKNOWN: _ignore,
}
