"""Telegram message encoder.

Text and formatting accumulate into an HTML caption. A media element is
attached to the pending call; the call is sent when the next media element,
a quote, a message boundary or the end of the document forces a flush.
Inside a ``figure`` media and text share one call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aiohttp

from chatbridge.application.message_encoder import MessageEncoder, SendOptions
from chatbridge.core.domain.document import MEDIA_TYPES, STYLE_TYPES, Element, escape
from chatbridge.core.domain.outbound import PendingCall, RenderMode, select_media_method
from chatbridge.core.domain.session import SessionType
from chatbridge.infrastructure.telegram.adapt import adapt_message

if TYPE_CHECKING:
    from chatbridge.infrastructure.telegram.bot import TelegramBot

PARSE_MODE = "html"


class TelegramMessageEncoder(MessageEncoder):
    """Encodes documents into Telegram Bot API calls."""

    def __init__(
        self,
        bot: "TelegramBot",
        channel_id: str,
        guild_id: str | None = None,
        options: SendOptions | None = None,
    ) -> None:
        super().__init__(bot.host, channel_id, guild_id, options)
        self.bot = bot
        thread_id = int(channel_id) if guild_id and channel_id != guild_id else None
        self.pending = PendingCall(chat_id=guild_id or channel_id, thread_id=thread_id)

    def reset(self) -> None:
        # A failed flush leaves caption, asset and figure mode behind.
        self.pending.reset()
        self.pending.mode = RenderMode.DEFAULT

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    async def visit(self, element: Element) -> None:
        type_, attrs = element.type, element.attrs
        pending = self.pending

        if type_ == "text":
            pending.caption += escape(str(attrs.get("content", "")))
        elif type_ == "br":
            pending.caption += "\n"
        elif type_ == "p":
            if not pending.caption.endswith("\n"):
                pending.caption += "\n"
            await self.render(element.children)
        elif type_ in STYLE_TYPES:
            pending.caption += element.to_string()
        elif type_ == "spl":
            pending.caption += "<tg-spoiler>"
            await self.render(element.children)
            pending.caption += "</tg-spoiler>"
        elif type_ == "code":
            content = attrs.get("content")
            if content is None:
                content = element.text_content()
            lang = attrs.get("lang")
            css = f' class="language-{escape(str(lang), inline=True)}"' if lang else ""
            pending.caption += f"<code{css}>{escape(str(content))}</code>"
        elif type_ == "at":
            if attrs.get("id"):
                name = attrs.get("name") or attrs["id"]
                pending.caption += f'<a href="tg://user?id={attrs["id"]}">@{escape(str(name))}</a>'
        elif type_ in MEDIA_TYPES:
            if pending.mode == RenderMode.DEFAULT:
                await self.flush()
            pending.asset = element
        elif type_ == "figure":
            await self.flush()
            pending.mode = RenderMode.FIGURE
            await self.render(element.children)
            await self.flush()
            pending.mode = RenderMode.DEFAULT
        elif type_ == "quote":
            await self.flush()
            pending.reply_to_message_id = attrs.get("id")
        elif type_ == "message":
            if pending.mode == RenderMode.FIGURE:
                await self.render(element.children)
                pending.caption += "\n"
            else:
                await self.flush()
                await self.render(element.children)
                await self.flush()
        else:
            await self.render(element.children)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        pending = self.pending
        if pending.asset is not None:
            result = await self._send_asset(pending.asset)
        elif pending.caption:
            result = await self.bot.api.call(
                "sendMessage",
                {
                    "chat_id": pending.chat_id,
                    "text": pending.caption,
                    "parse_mode": PARSE_MODE,
                    "reply_to_message_id": pending.reply_to_message_id,
                    "message_thread_id": pending.thread_id,
                    "disable_web_page_preview": not self.options.link_preview,
                },
            )
        else:
            return
        pending.reset()
        await self.add_result(adapt_message(result, self_id=self.bot.self_id, type_=SessionType.SEND))

    def _call_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "chat_id": self.pending.chat_id,
            "parse_mode": PARSE_MODE,
            "caption": self.pending.caption,
        }
        if self.pending.reply_to_message_id is not None:
            fields["reply_to_message_id"] = self.pending.reply_to_message_id
        if self.pending.thread_id is not None:
            fields["message_thread_id"] = self.pending.thread_id
        return fields

    async def _send_asset(self, asset: Element) -> dict[str, Any]:
        # Unknown kinds fail before anything is downloaded.
        select_media_method(asset)
        filename, data, mime = await self.bot.fetcher.fetch(str(asset.attrs.get("url", "")))
        method = select_media_method(asset, mime)

        form = aiohttp.FormData()
        for key, value in self._call_fields().items():
            form.add_field(key, str(value))
        form.add_field(
            method.field_name,
            data,
            filename=str(asset.attrs.get("name") or filename),
            content_type=mime or "application/octet-stream",
        )
        self._logger.debug("telegram.asset_sending", method=method.value, filename=filename, mime=mime)
        return await self.bot.api.call_form(method.value, form)
