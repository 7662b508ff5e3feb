"""Outbound call assembly: render modes, the pending call and media routing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chatbridge.core.domain.document import Element
from chatbridge.core.domain.errors import UnsupportedMediaError


class RenderMode(str, Enum):
    """``FIGURE`` merges media and text into one call."""

    DEFAULT = "default"
    FIGURE = "figure"


class MediaMethod(str, Enum):
    SEND_PHOTO = "sendPhoto"
    SEND_ANIMATION = "sendAnimation"
    SEND_DOCUMENT = "sendDocument"
    SEND_VIDEO = "sendVideo"
    SEND_AUDIO = "sendAudio"
    SEND_VOICE = "sendVoice"

    @property
    def field_name(self) -> str:
        """Multipart field carrying the file: ``sendPhoto`` -> ``photo``."""
        return self.value[4:].lower()


# (element type, subtype) -> endpoint. Subtype is the detected MIME type for
# images and the ``type`` attribute for audio; ``None`` is the fallback row.
MEDIA_ROUTES: dict[tuple[str, str | None], MediaMethod] = {
    ("image", None): MediaMethod.SEND_PHOTO,
    ("image", "image/gif"): MediaMethod.SEND_ANIMATION,
    ("file", None): MediaMethod.SEND_DOCUMENT,
    ("video", None): MediaMethod.SEND_VIDEO,
    ("audio", None): MediaMethod.SEND_AUDIO,
    ("audio", "voice"): MediaMethod.SEND_VOICE,
}


def media_subtype(asset: Element, mime: str | None) -> str | None:
    if asset.type == "image":
        return mime
    if asset.type == "audio":
        return asset.attrs.get("type")
    return None


def select_media_method(asset: Element, mime: str | None = None) -> MediaMethod:
    """Pick the endpoint for a media element.

    Raises:
        UnsupportedMediaError: If no route exists for the element type.
    """
    subtype = media_subtype(asset, mime)
    method = MEDIA_ROUTES.get((asset.type, subtype)) or MEDIA_ROUTES.get((asset.type, None))
    if method is None:
        raise UnsupportedMediaError(
            f"No outbound endpoint for media element '{asset.type}'",
            details={"type": asset.type, "subtype": subtype},
        )
    return method


@dataclass
class PendingCall:
    """The platform call being assembled by one encoder traversal.

    ``chat_id`` and ``thread_id`` are fixed for the traversal; everything else
    is cleared by :meth:`reset` after each send.
    """

    chat_id: str
    thread_id: int | None = None
    caption: str = ""
    asset: Element | None = None
    reply_to_message_id: str | None = None
    mode: RenderMode = RenderMode.DEFAULT

    @property
    def is_empty(self) -> bool:
        return not self.caption and self.asset is None

    def reset(self) -> None:
        self.caption = ""
        self.asset = None
        self.reply_to_message_id = None
