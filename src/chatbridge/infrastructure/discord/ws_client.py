"""Discord gateway client.

Owns one transport at a time. A reader task pushes raw frames into an
``asyncio.Queue``; a single consumer decodes them in arrival order, runs them
through the pure session state machine and applies the resulting effects.

Usage::

    client = DiscordGatewayClient(
        params=IdentifyParams(token="..."),
        host=host,
        api=DiscordApi("..."),
        transport_factory=AiohttpTransportFactory(),
    )
    await client.start()   # connects and reconnects in the background
    ...
    await client.stop()
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from chatbridge.core.domain.errors import (
    MalformedFrameError,
    PlatformApiError,
    TransportFailureError,
)
from chatbridge.core.domain.gateway import (
    AssignIdentity,
    CloseReason,
    CloseTransport,
    ConnectionSession,
    DispatchEvent,
    Effect,
    EmitEvent,
    Frame,
    IdentifyParams,
    SendFrame,
    SessionState,
    SignalOffline,
    SignalOnline,
    StartHeartbeat,
    StopHeartbeat,
    decode_frame,
)
from chatbridge.core.domain.gateway_session import (
    begin_connect,
    handle_frame,
    heartbeat_frame,
    transport_closed,
    transport_opened,
)
from chatbridge.core.interfaces.host import HostProtocol
from chatbridge.core.interfaces.transport import TransportFactoryProtocol, TransportProtocol
from chatbridge.infrastructure.discord.api import DiscordApi
from chatbridge.infrastructure.discord.dispatcher import EventDispatcher
from chatbridge.infrastructure.discord.heartbeat import HeartbeatScheduler
from chatbridge.infrastructure.transport.reconnect import ReconnectPolicy

GATEWAY_QUERY = "/?v=10&encoding=json"

# Queue marker for "transport closed".
_CLOSED = object()


class DiscordGatewayClient:
    """Keeps a gateway session alive across transport losses."""

    def __init__(
        self,
        *,
        params: IdentifyParams,
        host: HostProtocol,
        transport_factory: TransportFactoryProtocol,
        api: DiscordApi | None = None,
        dispatcher: EventDispatcher | None = None,
        policy: ReconnectPolicy | None = None,
        gateway_url: str | None = None,
        platform: str = "discord",
    ) -> None:
        if api is None and gateway_url is None:
            raise ValueError("Either api or gateway_url is required to find the gateway")
        self.params = params
        self.platform = platform
        self.session = ConnectionSession()
        self._host = host
        self._transport_factory = transport_factory
        self._api = api
        self._gateway_url = gateway_url
        self._dispatcher = dispatcher or EventDispatcher(host, self_id=lambda: self.self_id)
        self._policy = policy or ReconnectPolicy()
        self._heartbeat = HeartbeatScheduler(self.send_heartbeat, name=f"{platform}-heartbeat")
        self._transport: TransportProtocol | None = None
        self._close_reason: CloseReason | None = None
        self._stopping = False
        self._task: asyncio.Task[None] | None = None
        self._logger = structlog.get_logger(__name__).bind(platform=platform)

    @property
    def self_id(self) -> str | None:
        return self.session.identity.id if self.session.identity else None

    @property
    def heartbeat(self) -> HeartbeatScheduler:
        return self._heartbeat

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background connect/reconnect loop."""
        if self._task is not None:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run_loop(), name=f"{self.platform}-gateway")
        self._logger.info("gateway.started")

    async def stop(self) -> None:
        """Stop reconnecting and close the current transport."""
        self._stopping = True
        if self._transport is not None:
            await self._transport.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._heartbeat.stop()
        self.session = self.session.with_state(SessionState.DISCONNECTED)
        self._logger.info("gateway.stopped")

    async def _run_loop(self) -> None:
        while not self._stopping:
            try:
                await self.connect_once()
            except asyncio.CancelledError:
                raise
            except (TransportFailureError, PlatformApiError) as exc:
                self._logger.warning("gateway.connect_failed", error=str(exc), code=exc.code)
            except Exception as exc:
                self._logger.error(
                    "gateway.connection_error", error=str(exc), error_type=type(exc).__name__
                )
            if self._stopping:
                break
            delay = self._policy.next_delay()
            self._logger.info(
                "gateway.reconnect_scheduled", delay=delay, failures=self._policy.failures
            )
            await asyncio.sleep(delay)

    # ------------------------------------------------------------------
    # One connection
    # ------------------------------------------------------------------

    async def connect_once(self) -> None:
        """Open a transport and process frames until it closes.

        Raises:
            RuntimeError: If the previous transport is still open.
            TransportFailureError: If the transport cannot be opened.
            PlatformApiError: If gateway discovery fails.
        """
        if self._transport is not None and not self._transport.closed:
            raise RuntimeError("Previous gateway transport is still open")

        self.session, url = begin_connect(self.session)
        if url is None:
            url = await self._discover_gateway()
        url = url.rstrip("/") + GATEWAY_QUERY
        self._logger.info("gateway.connecting", url=url, resume=self.session.can_resume)

        transport = await self._transport_factory.connect(url)
        self._transport = transport
        self._close_reason = None
        self.session = transport_opened(self.session)

        queue: asyncio.Queue[Any] = asyncio.Queue()
        reader = asyncio.create_task(self._read(transport, queue), name=f"{self.platform}-gateway-reader")
        was_online = False
        try:
            while True:
                raw = await queue.get()
                if raw is _CLOSED:
                    break
                await self.process_raw(raw)
                was_online = was_online or self.session.state == SessionState.ONLINE
                if self._close_reason is not None:
                    break
        finally:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
            await transport.close()
            await self._on_closed(was_online)

    async def _read(self, transport: TransportProtocol, queue: asyncio.Queue[Any]) -> None:
        try:
            async for raw in transport:
                await queue.put(raw)
        except TransportFailureError as exc:
            self._logger.warning("gateway.transport_failed", error=str(exc))
        except Exception as exc:
            self._logger.error(
                "gateway.reader_failed", error=str(exc), error_type=type(exc).__name__
            )
        finally:
            await queue.put(_CLOSED)

    async def _on_closed(self, was_online: bool) -> None:
        reason = self._close_reason
        if reason is None:
            reason = CloseReason.TRANSPORT_FAILURE
            if was_online and self.session.state == SessionState.ONLINE:
                await self._host.offline(self.platform, self.self_id, "transport closed")
        self.session, effects = transport_closed(self.session, will_retry=not self._stopping)
        await self.apply(effects)
        self._logger.warning(
            "gateway.closed",
            reason=reason.value,
            state=self.session.state.value,
            can_resume=self.session.can_resume,
        )

    async def _discover_gateway(self) -> str:
        if self._gateway_url:
            return self._gateway_url
        assert self._api is not None
        data = await self._api.get_gateway_bot()
        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise PlatformApiError("Gateway discovery returned no url", method="GET /gateway/bot")
        return str(url)

    # ------------------------------------------------------------------
    # Frames and effects
    # ------------------------------------------------------------------

    async def process_raw(self, raw: str | bytes) -> None:
        """Decode and handle one inbound frame. Malformed frames are dropped."""
        try:
            frame = decode_frame(raw)
        except MalformedFrameError as exc:
            self._logger.warning("gateway.frame_malformed", error=exc.message, **exc.details)
            return
        await self.process_frame(frame)

    async def process_frame(self, frame: Frame) -> None:
        self._logger.debug("gateway.frame_received", op=frame.op, s=frame.s, t=frame.t)
        # The sequence counts even when the handler rejects the frame.
        self.session = self.session.with_sequence(frame.s)
        try:
            self.session, effects = handle_frame(
                self.session, frame, self.params, platform=self.platform
            )
        except MalformedFrameError as exc:
            self._logger.warning("gateway.frame_malformed", error=exc.message, op=frame.op, t=frame.t)
            return
        await self.apply(effects)

    async def apply(self, effects: list[Effect]) -> None:
        for effect in effects:
            await self._apply_one(effect)

    async def _apply_one(self, effect: Effect) -> None:
        if isinstance(effect, SendFrame):
            await self.send_frame(effect.frame)
        elif isinstance(effect, StartHeartbeat):
            await self._heartbeat.start(effect.interval_ms)
        elif isinstance(effect, StopHeartbeat):
            await self._heartbeat.stop()
        elif isinstance(effect, EmitEvent):
            await self._host.emit(effect.name, effect.frame.to_dict())
        elif isinstance(effect, DispatchEvent):
            await self._dispatcher.handle(effect.event_type, effect.frame)
        elif isinstance(effect, AssignIdentity):
            self._logger.info("gateway.identity_assigned", self_id=effect.user.id, name=effect.user.name)
        elif isinstance(effect, SignalOnline):
            self._policy.reset()
            self._logger.info("gateway.online", session_id=self.session.session_id)
            await self._host.online(self.platform, self.self_id, self.session.identity)
        elif isinstance(effect, SignalOffline):
            await self._host.offline(self.platform, self.self_id, effect.reason)
        elif isinstance(effect, CloseTransport):
            self._close_reason = effect.reason
            self._logger.warning("gateway.close_requested", reason=effect.reason.value)
            if self._transport is not None:
                await self._transport.close()

    async def send_frame(self, frame: Frame) -> None:
        """Send a frame on the current transport.

        Raises:
            TransportFailureError: If there is no open transport.
        """
        transport = self._transport
        if transport is None or transport.closed:
            raise TransportFailureError("No open gateway transport", details={"op": frame.op})
        self._logger.debug("gateway.frame_sent", op=frame.op)
        await transport.send(frame.encode())

    async def send_heartbeat(self) -> None:
        await self.send_frame(heartbeat_frame(self.session))
