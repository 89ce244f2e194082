"""Segment tree model and the recursive builder that produces it."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional

from .entities import decode_entities
from .scanner import TagIndex, TagMatch, sanitize_link, sanitize_span


class SegmentKind(str, Enum):
    ROOT = "root"
    TEXT = "text"
    BOLD = "bold"
    ITALIC = "italic"
    LINK = "link"
    SPAN = "span"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"
    LINE_BREAK = "line_break"
    # Only produced by layout: the closing half of a sub/superscript.
    BASELINE_RESTORE = "baseline_restore"


FORMAT_STYLES = MappingProxyType(
    {
        SegmentKind.BOLD: "font-weight:bold",
        SegmentKind.ITALIC: "font-style:italic",
    }
)

SCRIPT_KINDS = frozenset({SegmentKind.SUPERSCRIPT, SegmentKind.SUBSCRIPT})

# Deepest wrapper nesting kept; this also bounds every later tree walk.
MAX_NESTING = 64

_TAG_KINDS = MappingProxyType(
    {
        "a": SegmentKind.LINK,
        "b": SegmentKind.BOLD,
        "i": SegmentKind.ITALIC,
        "em": SegmentKind.ITALIC,
        "sup": SegmentKind.SUPERSCRIPT,
        "sub": SegmentKind.SUBSCRIPT,
        "span": SegmentKind.SPAN,
        "br": SegmentKind.LINE_BREAK,
    }
)


@dataclass
class Segment:
    """A node of the label tree.

    ``text`` is only meaningful for TEXT leaves. ``dy``, ``font_size`` and
    ``continued`` are filled in by layout for the sub/superscript brackets.
    """

    kind: SegmentKind
    text: str = ""
    children: List["Segment"] = field(default_factory=list)
    href: Optional[str] = None
    style: Optional[str] = None
    dy: Optional[str] = None
    font_size: Optional[str] = None
    continued: bool = False

    def iter_text(self) -> Iterator[str]:
        if self.kind is SegmentKind.TEXT:
            yield self.text
        for child in self.children:
            yield from child.iter_text()

    def walk(self) -> Iterator["Segment"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.kind is SegmentKind.TEXT:
            data["text"] = self.text
        for key in ("href", "style", "dy", "font_size"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.continued:
            data["continued"] = True
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def build_segments(text: str) -> Segment:
    """Parse label markup into a ROOT segment. Never raises on malformed input.

    Tags nested deeper than ``MAX_NESTING`` are dropped and their content is
    kept in the enclosing run.
    """
    index = TagIndex(text)
    children = _build_range(text, index, 0, len(text), 0, len(index.tokens), frozenset(), 0)
    return Segment(SegmentKind.ROOT, children=children)


class _Collector:
    """Accumulates children, joining adjacent text runs in one pass."""

    def __init__(self) -> None:
        self.children: List[Segment] = []
        self._pending: List[str] = []

    def add_text(self, raw: str) -> None:
        if raw:
            self._pending.append(decode_entities(raw))

    def extend(self, segments: List[Segment]) -> None:
        for segment in segments:
            if segment.kind is SegmentKind.TEXT:
                self._pending.append(segment.text)
            else:
                self._flush()
                self.children.append(segment)

    def finish(self) -> List[Segment]:
        self._flush()
        return self.children

    def _flush(self) -> None:
        if self._pending:
            self.children.append(Segment(SegmentKind.TEXT, text="".join(self._pending)))
            self._pending = []


def _build_range(
    text: str,
    index: TagIndex,
    lo: int,
    hi: int,
    first: int,
    stop: int,
    enclosing: frozenset,
    depth: int,
) -> List[Segment]:
    out = _Collector()
    pos = lo
    token_index = first
    while token_index < stop:
        match = index.match_at(token_index, stop)
        if match is None:
            token_index += 1
            continue
        out.add_text(text[pos : match.start])
        kind = _TAG_KINDS[match.name]
        if match.stray:
            pos = match.end
            token_index += 1
        elif kind is SegmentKind.LINE_BREAK:
            out.extend([Segment(SegmentKind.LINE_BREAK)])
            pos = match.end
            token_index += 1
        elif depth >= MAX_NESTING:
            # Drop the opener; its closer is dropped later as a stray.
            pos = match.inner_start
            token_index += 1
        else:
            children = _build_range(
                text,
                index,
                match.inner_start,
                match.inner_end,
                match.token_index + 1,
                match.close_index,
                enclosing | {kind},
                depth + 1,
            )
            out.extend(_wrap(match, kind, children, enclosing))
            pos = match.end
            token_index = match.close_index + 1
    out.add_text(text[pos:hi])
    return out.finish()


def _wrap(
    match: TagMatch, kind: SegmentKind, children: List[Segment], enclosing: frozenset
) -> List[Segment]:
    # Links inside links and scripts inside scripts lose their wrapper.
    if kind is SegmentKind.LINK and kind in enclosing:
        return children
    if kind in SCRIPT_KINDS and enclosing & SCRIPT_KINDS:
        return children

    if kind is SegmentKind.LINK:
        link = sanitize_link(match.attrs)
        if link is None:
            return children
        return [Segment(kind, children=children, href=link.href, style=link.style)]
    if kind is SegmentKind.SPAN:
        style = sanitize_span(match.attrs)
        if style is None:
            return children
        return [Segment(kind, children=children, style=style)]
    return [Segment(kind, children=children, style=FORMAT_STYLES.get(kind))]


__all__ = ["FORMAT_STYLES", "MAX_NESTING", "SCRIPT_KINDS", "Segment", "SegmentKind", "build_segments"]
