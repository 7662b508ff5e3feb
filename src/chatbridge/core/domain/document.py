"""Abstract message document.

A document is a list of :class:`Element` nodes. Adapters walk it to produce
platform calls; inbound adapters build it to describe received content.
Documents can also be written as markup (``"hi <b>there</b><image url=.../>"``)
and parsed with :func:`parse`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any, Iterable, Union

STYLE_TYPES = frozenset({"b", "strong", "i", "em", "u", "ins", "s", "del", "a"})
MEDIA_TYPES = frozenset({"image", "audio", "video", "file"})

# Elements that never have children when written as markup.
VOID_TYPES = frozenset({"br", "at", "image", "audio", "video", "file", "quote"})


def escape(text: str, *, inline: bool = False) -> str:
    """Escape markup characters. ``inline`` also escapes double quotes."""
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    if inline:
        text = text.replace('"', "&quot;")
    return text


@dataclass
class Element:
    """A node of the abstract document tree."""

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    children: list["Element"] = field(default_factory=list)

    @property
    def is_media(self) -> bool:
        return self.type in MEDIA_TYPES

    def text_content(self) -> str:
        """Concatenated plain text of this node and its descendants."""
        if self.type == "text":
            return str(self.attrs.get("content", ""))
        return "".join(child.text_content() for child in self.children)

    def to_string(self) -> str:
        """Serialize as markup. Text is escaped; attributes are quoted."""
        if self.type == "text":
            return escape(str(self.attrs.get("content", "")))

        attrs = "".join(_format_attr(key, value) for key, value in self.attrs.items())
        if not self.children and self.type in VOID_TYPES:
            return f"<{self.type}{attrs}/>"
        inner = "".join(child.to_string() for child in self.children)
        return f"<{self.type}{attrs}>{inner}</{self.type}>"

    def __str__(self) -> str:
        return self.to_string()


def _format_attr(key: str, value: Any) -> str:
    if value is None or value is False:
        return ""
    if value is True:
        return f" {key}"
    return f' {key}="{escape(str(value), inline=True)}"'


Fragment = Union[str, Element, Iterable[Union[str, Element]], None]


def normalize(content: Fragment) -> list[Element]:
    """Turn markup, an element or a mixed sequence into a list of elements."""
    if content is None:
        return []
    if isinstance(content, Element):
        return [content]
    if isinstance(content, str):
        return parse(content)
    elements: list[Element] = []
    for item in content:
        elements.extend(normalize(item))
    return elements


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def element(type_: str, *children: Fragment, **attrs: Any) -> Element:
    return Element(type_, dict(attrs), normalize(list(children)))


def text(content: str) -> Element:
    return Element("text", {"content": content})


def br() -> Element:
    return Element("br")


def p(*children: Fragment) -> Element:
    return element("p", *children)


def style(type_: str, *children: Fragment, **attrs: Any) -> Element:
    if type_ not in STYLE_TYPES:
        raise ValueError(f"Unknown style element: {type_}")
    return element(type_, *children, **attrs)


def spoiler(*children: Fragment) -> Element:
    return element("spl", *children)


def code(content: str, lang: str | None = None) -> Element:
    attrs: dict[str, Any] = {"content": content}
    if lang:
        attrs["lang"] = lang
    return Element("code", attrs)


def at(user_id: str, name: str | None = None) -> Element:
    attrs: dict[str, Any] = {"id": user_id}
    if name:
        attrs["name"] = name
    return Element("at", attrs)


def media(type_: str, url: str, **attrs: Any) -> Element:
    if type_ not in MEDIA_TYPES:
        raise ValueError(f"Unknown media element: {type_}")
    return Element(type_, {"url": url, **attrs})


def image(url: str, **attrs: Any) -> Element:
    return media("image", url, **attrs)


def audio(url: str, **attrs: Any) -> Element:
    return media("audio", url, **attrs)


def video(url: str, **attrs: Any) -> Element:
    return media("video", url, **attrs)


def file(url: str, **attrs: Any) -> Element:
    return media("file", url, **attrs)


def quote(message_id: str) -> Element:
    return Element("quote", {"id": message_id})


def figure(*children: Fragment) -> Element:
    return element("figure", *children)


def message(*children: Fragment, **attrs: Any) -> Element:
    return element("message", *children, **attrs)


# ---------------------------------------------------------------------------
# Markup parsing
# ---------------------------------------------------------------------------


class _DocumentParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = Element("template")
        self._stack: list[Element] = [self.root]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        node = Element(tag, {key: True if value is None else value for key, value in attrs})
        self._stack[-1].children.append(node)
        if tag not in VOID_TYPES:
            self._stack.append(node)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        node = Element(tag, {key: True if value is None else value for key, value in attrs})
        self._stack[-1].children.append(node)

    def handle_endtag(self, tag: str) -> None:
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].type == tag:
                del self._stack[index:]
                return

    def handle_data(self, data: str) -> None:
        if not data:
            return
        siblings = self._stack[-1].children
        if siblings and siblings[-1].type == "text":
            siblings[-1].attrs["content"] += data
        else:
            siblings.append(text(data))


def parse(source: str) -> list[Element]:
    """Parse markup into elements. Unclosed tags are closed at the end."""
    parser = _DocumentParser()
    parser.feed(source)
    parser.close()
    return parser.root.children
