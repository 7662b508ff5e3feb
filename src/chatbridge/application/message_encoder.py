"""Base class for outbound message encoders.

An encoder turns one abstract document into the platform calls needed to
deliver it. Subclasses implement ``visit`` (per-element rendering) and
``flush`` (send whatever is pending); the base class drives the traversal,
collects results and notifies the host.

One encoder instance handles one traversal at a time::

    encoder = TelegramMessageEncoder(bot, channel_id="42")
    sessions = await encoder.send("hello <image url='https://...'/>")
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from chatbridge.core.domain.document import Element, Fragment, normalize
from chatbridge.core.domain.session import ChatSession
from chatbridge.core.interfaces.host import HostProtocol


@dataclass(frozen=True)
class SendOptions:
    """Per-send flags."""

    link_preview: bool = False


class MessageEncoder:
    """Depth-first document traversal with a final flush.

    Subclasses override :meth:`visit` and :meth:`flush`, and call
    :meth:`add_result` for every message the platform reports as sent.
    """

    def __init__(
        self,
        host: HostProtocol,
        channel_id: str,
        guild_id: str | None = None,
        options: SendOptions | None = None,
    ) -> None:
        self.host = host
        self.channel_id = channel_id
        self.guild_id = guild_id
        self.options = options or SendOptions()
        self.results: list[ChatSession] = []
        self._sending = False
        self._logger = structlog.get_logger(__name__).bind(
            encoder=type(self).__name__, channel_id=channel_id
        )

    async def send(self, content: Fragment) -> list[ChatSession]:
        """Render ``content`` and send it.

        Returns:
            Sessions for every message sent, in call order.

        Raises:
            RuntimeError: If a traversal is already running on this encoder.
            PlatformApiError: If a platform call fails. Results gathered
                before the failure remain in :attr:`results` until the next
                :meth:`send`.
        """
        if self._sending:
            raise RuntimeError(f"{type(self).__name__} is already sending a document")
        self._sending = True
        self.results = []
        self.reset()
        try:
            elements = normalize(content)
            self._logger.debug("encoder.send_started", elements=len(elements))
            await self.render(elements)
            await self.flush()
        finally:
            self._sending = False
        self._logger.debug("encoder.send_finished", results=len(self.results))
        return self.results

    def reset(self) -> None:
        """Clear per-document state left behind by a previous traversal."""

    async def render(self, elements: list[Element]) -> None:
        for element in elements:
            await self.visit(element)

    async def visit(self, element: Element) -> None:
        raise NotImplementedError

    async def flush(self) -> None:
        raise NotImplementedError

    async def add_result(self, session: ChatSession) -> None:
        self.results.append(session)
        await self.host.notify_sent(session)
