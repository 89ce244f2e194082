"""Map laid-out label lines onto SVG text elements and sanitized HTML."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from types import MappingProxyType
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from .layout import LineSubtree
from .segments import Segment, SegmentKind

XLINK_NS = "http://www.w3.org/1999/xlink"
ET.register_namespace("xlink", XLINK_NS)

_HTML_TAGS = MappingProxyType(
    {
        SegmentKind.BOLD: "b",
        SegmentKind.ITALIC: "i",
        SegmentKind.SUPERSCRIPT: "sup",
        SegmentKind.SUBSCRIPT: "sub",
        SegmentKind.LINE_BREAK: "br",
        SegmentKind.SPAN: "span",
        SegmentKind.LINK: "a",
    }
)


def _xlink(local: str) -> str:
    return f"{{{XLINK_NS}}}{local}"


def build_text_element(
    lines: List[LineSubtree], attrib: Optional[Dict[str, str]] = None
) -> ET.Element:
    """Build an SVG ``<text>`` element holding ``lines``.

    A single line is written straight into ``<text>``; several lines each get
    a ``<tspan class="line">`` positioned by its ``dy``.
    """
    text_elem = ET.Element("text", dict(attrib or {}))
    if len(lines) == 1:
        _append_svg_nodes(text_elem, lines[0].root.children)
        return text_elem
    for line in lines:
        line_elem = ET.SubElement(text_elem, "tspan", {"class": "line", "dy": line.dy})
        _append_svg_nodes(line_elem, line.root.children)
    return text_elem


def inner_markup(elem: ET.Element, *, method: str = "xml") -> str:
    parts = [escape(elem.text or "")]
    # tostring() writes each child's tail along with it.
    parts.extend(ET.tostring(child, encoding="unicode", method=method) for child in elem)
    return "".join(parts)


def _append_text(parent: ET.Element, text: str) -> None:
    if len(parent):
        last = parent[-1]
        last.tail = (last.tail or "") + text
    else:
        parent.text = (parent.text or "") + text


def _append_svg_nodes(parent: ET.Element, nodes: List[Segment]) -> None:
    for node in nodes:
        if node.kind is SegmentKind.TEXT:
            _append_text(parent, node.text)
            continue
        elem = _svg_element(node)
        parent.append(elem)
        _append_svg_nodes(elem, node.children)


def _svg_element(node: Segment) -> ET.Element:
    if node.kind is SegmentKind.LINK:
        attrs = {}
        if node.href:
            attrs[_xlink("href")] = node.href
            attrs[_xlink("show")] = "new"
        if node.style:
            attrs["style"] = node.style
        return ET.Element("a", attrs)
    if node.kind is SegmentKind.BASELINE_RESTORE:
        return ET.Element("tspan", {"dy": node.dy or "0"})
    if node.font_size is not None:
        return ET.Element("tspan", {"style": f"font-size:{node.font_size}", "dy": node.dy or "0"})
    attrs = {"style": node.style} if node.style else {}
    return ET.Element("tspan", attrs)


def build_html_element(root: Segment) -> ET.Element:
    """Rebuild the unsplit segment tree as a ``<span>`` of allowed HTML tags."""
    container = ET.Element("span")
    _append_html_nodes(container, root.children)
    return container


def _append_html_nodes(parent: ET.Element, nodes: List[Segment]) -> None:
    for node in nodes:
        if node.kind is SegmentKind.TEXT:
            _append_text(parent, node.text)
            continue
        attrs: Dict[str, str] = {}
        if node.kind is SegmentKind.LINK:
            attrs = {"href": node.href or "", "target": "_blank", "rel": "noopener noreferrer"}
            if node.style:
                attrs["style"] = node.style
        elif node.kind is SegmentKind.SPAN and node.style:
            attrs["style"] = node.style
        elem = ET.SubElement(parent, _HTML_TAGS[node.kind], attrs)
        _append_html_nodes(elem, node.children)


__all__ = ["XLINK_NS", "build_html_element", "build_text_element", "inner_markup"]
