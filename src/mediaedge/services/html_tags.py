"""Start-tag scanner that edits attributes in place.

``HTMLParser`` does the tokenizing (comments, ``<script>`` bodies, odd
quoting), so only real start tags are visited. Edits are applied to each
tag's raw source text, so everything not explicitly changed comes back
byte-for-byte.
"""

import html
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Iterator

from markupsafe import escape

_TAG_NAME = re.compile(r"<\s*([^\s/>]+)")
_ATTRIBUTE = re.compile(
    r"""(?P<name>[^\s"'>/=]+)(?:\s*=\s*(?P<value>"[^"]*"|'[^']*'|[^\s"'>][^\s>]*))?"""
)


@dataclass
class _Attribute:
    name: str
    start: int
    end: int
    value: str


@dataclass
class StartTag:
    """A start tag located in the source, with editable attributes."""

    name: str
    offset: int
    raw: str
    original: str = ""
    _attributes: list[_Attribute] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.original = self.raw

    @property
    def modified(self) -> bool:
        return self.raw != self.original

    def _parse(self) -> list[_Attribute]:
        if self._attributes is None:
            self._attributes = []
            match = _TAG_NAME.match(self.raw)
            pos = match.end() if match else 1
            close = len(self.raw) - (2 if self.raw.endswith("/>") else 1)
            for attr in _ATTRIBUTE.finditer(self.raw, pos, close):
                value = attr.group("value")
                if value is None:
                    value = ""
                elif value[:1] in ("'", '"'):
                    value = value[1:-1]
                self._attributes.append(
                    _Attribute(
                        name=attr.group("name").lower(),
                        start=attr.start(),
                        end=attr.end(),
                        value=html.unescape(value),
                    )
                )
        return self._attributes

    def _find(self, name: str) -> _Attribute | None:
        name = name.lower()
        # Browsers keep the first occurrence of a duplicated attribute
        return next((a for a in self._parse() if a.name == name), None)

    def has_attribute(self, name: str) -> bool:
        return self._find(name) is not None

    def get_attribute(self, name: str) -> str | None:
        """Return the unescaped value of an attribute, or None if absent."""
        attr = self._find(name)
        return attr.value if attr is not None else None

    def set_attribute(self, name: str, value: str) -> None:
        """Set an attribute, replacing it in place or appending it."""
        attr = self._find(name)
        if attr is not None:
            original_name = self.raw[attr.start : attr.start + len(attr.name)]
            rendered = f'{original_name}="{escape(value)}"'
            self.raw = self.raw[: attr.start] + rendered + self.raw[attr.end :]
        else:
            rendered = f'{name}="{escape(value)}"'
            close = len(self.raw) - (2 if self.raw.endswith("/>") else 1)
            head = self.raw[:close]
            separator = "" if head[-1:].isspace() else " "
            self.raw = head + separator + rendered + self.raw[close:]
        self._attributes = None


class _StartTagLocator(HTMLParser):
    """Records every start tag together with its offset in the source."""

    def __init__(self, source: str) -> None:
        super().__init__(convert_charrefs=True)
        self.source = source
        self.tags: list[StartTag] = []
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", source)]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        raw = self.get_starttag_text()
        if not raw:
            return
        line, column = self.getpos()
        offset = self._line_starts[line - 1] + column
        # Skip anything whose position can't be confirmed against the source
        if self.source.startswith(raw, offset):
            self.tags.append(StartTag(name=tag, offset=offset, raw=raw))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)


class TagProcessor:
    """Walks the start tags of an HTML fragment and re-serializes edits.

    Usage::

        processor = TagProcessor(html)
        while (tag := processor.next_tag()) is not None:
            if tag.name == "img":
                tag.set_attribute("loading", "lazy")
        html = processor.get_updated_html()
    """

    def __init__(self, source: str) -> None:
        self.source = source
        locator = _StartTagLocator(source)
        locator.feed(source)
        locator.close()
        self._tags = locator.tags
        self._iter: Iterator[StartTag] = iter(self._tags)
        self.tag: StartTag | None = None

    def next_tag(self) -> StartTag | None:
        """Advance to the next start tag, returning None when exhausted."""
        self.tag = next(self._iter, None)
        return self.tag

    def __iter__(self) -> Iterator[StartTag]:
        while (tag := self.next_tag()) is not None:
            yield tag

    def get_updated_html(self) -> str:
        """Return the source with all attribute edits applied."""
        modified = [t for t in self._tags if t.modified]
        if not modified:
            return self.source

        pieces: list[str] = []
        cursor = 0
        for tag in modified:
            pieces.append(self.source[cursor : tag.offset])
            pieces.append(tag.raw)
            cursor = tag.offset + len(tag.original)
        pieces.append(self.source[cursor:])
        return "".join(pieces)
