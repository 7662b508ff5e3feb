"""Tests for the pure gateway session state machine."""

import pytest

from chatbridge.core.domain.errors import MalformedFrameError
from chatbridge.core.domain.gateway import (
    AssignIdentity,
    CloseReason,
    CloseTransport,
    ConnectionSession,
    DispatchEvent,
    EmitEvent,
    Frame,
    IdentifyParams,
    Opcode,
    SendFrame,
    SessionState,
    SignalOffline,
    SignalOnline,
    StartHeartbeat,
    StopHeartbeat,
)
from chatbridge.core.domain.gateway_session import (
    begin_connect,
    decode_user,
    handle_frame,
    heartbeat_frame,
    transport_closed,
    transport_opened,
)
from chatbridge.core.domain.session import UserInfo

PARAMS = IdentifyParams(token="secret", intents=513, properties={"os": "linux"})


def hello(interval=41250):
    return Frame(op=Opcode.HELLO, d={"heartbeat_interval": interval})


def dispatch(t, d=None, s=None):
    return Frame(op=Opcode.DISPATCH, d=d if d is not None else {}, s=s, t=t)


def sent_frames(effects):
    return [effect.frame for effect in effects if isinstance(effect, SendFrame)]


class TestHello:
    def test_identifies_without_session_id(self):
        session, effects = handle_frame(
            ConnectionSession(state=SessionState.AWAITING_HELLO), hello(), PARAMS
        )

        assert effects[0] == StartHeartbeat(41250)
        frames = sent_frames(effects)
        assert len(frames) == 1
        assert frames[0].op == Opcode.IDENTIFY
        assert frames[0].d == {
            "token": "secret",
            "properties": {"os": "linux"},
            "compress": False,
            "intents": 513,
        }
        assert session.state == SessionState.IDENTIFYING
        assert session.heartbeat_interval_ms == 41250

    def test_resumes_with_cached_session(self):
        cached = ConnectionSession(sequence=42, session_id="abc", resume_url="wss://r")
        session, effects = handle_frame(cached, hello(), PARAMS)

        frames = sent_frames(effects)
        assert [f.op for f in frames] == [Opcode.RESUME]
        assert frames[0].d == {"token": "secret", "session_id": "abc", "seq": 42}
        assert session.state == SessionState.RESUMING

    @pytest.mark.parametrize("d", [None, {}, {"heartbeat_interval": "soon"}, {"heartbeat_interval": 0}])
    def test_missing_interval_is_malformed(self, d):
        with pytest.raises(MalformedFrameError):
            handle_frame(ConnectionSession(), Frame(op=Opcode.HELLO, d=d), PARAMS)


class TestDispatch:
    def test_sequence_recorded_before_anything_else(self):
        session, _ = handle_frame(
            ConnectionSession(sequence=3), dispatch("TYPING_START", s=4), PARAMS
        )
        assert session.sequence == 4

    def test_every_dispatch_is_emitted(self):
        _, effects = handle_frame(ConnectionSession(), dispatch("GUILD_CREATE", s=1), PARAMS)
        assert isinstance(effects[0], EmitEvent)
        assert effects[0].name == "discord/guild-create"
        assert isinstance(effects[1], DispatchEvent)
        assert effects[1].event_type == "GUILD_CREATE"

    def test_platform_prefixes_event_name(self):
        _, effects = handle_frame(
            ConnectionSession(), dispatch("MESSAGE_CREATE"), PARAMS, platform="kook"
        )
        assert effects[0].name == "kook/message-create"

    def test_ready_goes_online_with_identity(self):
        ready = dispatch(
            "READY",
            {
                "session_id": "sess-1",
                "resume_gateway_url": "wss://resume.example",
                "user": {"id": "99", "username": "bridge", "avatar": "hash", "bot": True},
            },
            s=1,
        )
        session, effects = handle_frame(
            ConnectionSession(state=SessionState.IDENTIFYING), ready, PARAMS
        )

        assert session.state == SessionState.ONLINE
        assert session.session_id == "sess-1"
        assert session.resume_url == "wss://resume.example"
        assert session.identity == UserInfo(
            id="99",
            name="bridge",
            avatar="https://cdn.discordapp.com/avatars/99/hash",
            is_bot=True,
        )
        assert AssignIdentity(session.identity) in effects
        assert effects[-1] == SignalOnline()
        assert not any(isinstance(e, DispatchEvent) for e in effects)

    def test_ready_without_session_id_is_malformed(self):
        with pytest.raises(MalformedFrameError):
            handle_frame(ConnectionSession(), dispatch("READY", {"user": {"id": "1"}}), PARAMS)

    def test_resumed_keeps_identity(self):
        identity = UserInfo(id="99", name="bridge")
        cached = ConnectionSession(
            session_id="sess-1", identity=identity, state=SessionState.RESUMING
        )
        session, effects = handle_frame(cached, dispatch("RESUMED", s=43), PARAMS)

        assert session.state == SessionState.ONLINE
        assert session.identity is identity
        assert session.session_id == "sess-1"
        assert effects[-1] == SignalOnline()
        assert not any(isinstance(e, AssignIdentity) for e in effects)

    def test_dispatch_without_type_is_malformed(self):
        with pytest.raises(MalformedFrameError):
            handle_frame(ConnectionSession(), Frame(op=Opcode.DISPATCH, d={}), PARAMS)


class TestInvalidSession:
    def test_resumable_invalid_session_is_ignored(self):
        cached = ConnectionSession(sequence=5, session_id="abc", state=SessionState.ONLINE)
        session, effects = handle_frame(cached, Frame(op=Opcode.INVALID_SESSION, d=True), PARAMS)
        assert session == cached
        assert effects == []

    @pytest.mark.parametrize("d", [False, None])
    def test_unresumable_invalid_session_clears_session(self, d):
        cached = ConnectionSession(
            sequence=5, session_id="abc", resume_url="wss://r", state=SessionState.ONLINE
        )
        session, effects = handle_frame(cached, Frame(op=Opcode.INVALID_SESSION, d=d), PARAMS)

        assert session.session_id == ""
        assert session.resume_url is None
        assert session.sequence is None
        assert effects == [
            SignalOffline("invalid session"),
            CloseTransport(CloseReason.SESSION_INVALIDATED),
        ]

    def test_next_hello_identifies_after_invalidation(self):
        cached = ConnectionSession(sequence=5, session_id="abc")
        session, _ = handle_frame(cached, Frame(op=Opcode.INVALID_SESSION, d=False), PARAMS)
        _, effects = handle_frame(session, hello(), PARAMS)
        assert [f.op for f in sent_frames(effects)] == [Opcode.IDENTIFY]


class TestOtherOpcodes:
    def test_reconnect_keeps_session_for_resume(self):
        cached = ConnectionSession(sequence=5, session_id="abc", state=SessionState.ONLINE)
        session, effects = handle_frame(cached, Frame(op=Opcode.RECONNECT), PARAMS)

        assert session.session_id == "abc"
        assert effects == [
            SignalOffline("reconnect requested"),
            CloseTransport(CloseReason.RECONNECT_REQUESTED),
        ]

    def test_server_heartbeat_request_is_answered(self):
        _, effects = handle_frame(
            ConnectionSession(sequence=12), Frame(op=Opcode.HEARTBEAT), PARAMS
        )
        assert sent_frames(effects) == [Frame(op=Opcode.HEARTBEAT, d=12)]

    @pytest.mark.parametrize("op", [Opcode.HEARTBEAT_ACK, 42])
    def test_ignored_opcodes(self, op):
        cached = ConnectionSession(sequence=1)
        session, effects = handle_frame(cached, Frame(op=op), PARAMS)
        assert session == cached
        assert effects == []


class TestConnectionLifecycle:
    def test_begin_connect_prefers_resume_url(self):
        session, url = begin_connect(ConnectionSession(resume_url="wss://resume"))
        assert session.state == SessionState.CONNECTING
        assert url == "wss://resume"

    def test_begin_connect_without_resume_url(self):
        _, url = begin_connect(ConnectionSession())
        assert url is None

    def test_transport_opened_awaits_hello(self):
        assert transport_opened(ConnectionSession()).state == SessionState.AWAITING_HELLO

    @pytest.mark.parametrize(
        "will_retry,state",
        [(True, SessionState.RECONNECTING), (False, SessionState.DISCONNECTED)],
    )
    def test_transport_closed_keeps_cached_state(self, will_retry, state):
        cached = ConnectionSession(
            sequence=8, session_id="abc", resume_url="wss://r", state=SessionState.ONLINE
        )
        session, effects = transport_closed(cached, will_retry=will_retry)

        assert effects == [StopHeartbeat()]
        assert session.state == state
        assert (session.sequence, session.session_id, session.resume_url) == (8, "abc", "wss://r")

    def test_heartbeat_frame_carries_last_sequence(self):
        assert heartbeat_frame(ConnectionSession()).d is None
        assert heartbeat_frame(ConnectionSession(sequence=4)).encode() == '{"op":1,"d":4}'


def test_decode_user_prefers_global_name():
    user = decode_user({"id": 5, "username": "bot", "global_name": "Bridge Bot"})
    assert user == UserInfo(id="5", name="Bridge Bot")
