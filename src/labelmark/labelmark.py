"""Convert restricted label markup into positioned, sanitized text runs."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from .layout import LineSubtree, layout_lines
from .render import build_html_element, build_text_element, inner_markup
from .segments import Segment, SegmentKind, build_segments


def _coerce(text: Any) -> str:
    if text is None:
        return ""
    return text if isinstance(text, str) else str(text)


def parse(text: Any) -> Segment:
    """Build the unsplit segment tree for ``text``."""
    return build_segments(_coerce(text))


def convert(text: Any) -> List[LineSubtree]:
    """Convert label markup into one positioned subtree per line.

    Any input is accepted. Unrecognized or malformed markup comes back as
    literal text and unsafe links lose their wrapper; nothing is raised.
    """
    return layout_lines(parse(text))


def line_count(text: Any) -> int:
    root = parse(text)
    return 1 + sum(1 for node in root.walk() if node.kind is SegmentKind.LINE_BREAK)


def plain_text(text: Any, max_length: Optional[int] = None) -> str:
    """Visible text of a label with markup removed and ``<br>`` as newlines.

    With ``max_length`` the result is cut to fit and ends in ``...``.
    """
    if max_length is not None and max_length < 0:
        raise ValueError("max_length must be >= 0")
    content = _plain(parse(text))
    if max_length is None or len(content) <= max_length:
        return content
    ellipsis = "..."[:max_length]
    return content[: max_length - len(ellipsis)] + ellipsis


def _plain(segment: Segment) -> str:
    if segment.kind is SegmentKind.TEXT:
        return segment.text
    if segment.kind is SegmentKind.LINE_BREAK:
        return "\n"
    return "".join(_plain(child) for child in segment.children)


def render_text(text: Any, attrib: Optional[Dict[str, str]] = None) -> ET.Element:
    """Build an SVG ``<text>`` element for a label."""
    return build_text_element(convert(text), attrib)


def tspan_markup(text: Any) -> str:
    """Serialized content of :func:`render_text`, without the ``<text>`` wrapper."""
    return inner_markup(render_text(text))


def sanitize_html(text: Any) -> str:
    """Re-serialize a label as HTML using only the allowed tags and attributes."""
    return inner_markup(build_html_element(parse(text)), method="html")


__all__ = [
    "convert",
    "line_count",
    "parse",
    "plain_text",
    "render_text",
    "sanitize_html",
    "tspan_markup",
]
