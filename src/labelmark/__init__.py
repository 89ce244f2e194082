"""Public API for labelmark."""
from .labelmark import convert, line_count, parse, plain_text, render_text, sanitize_html, tspan_markup
from .layout import LineSubtree
from .segments import Segment, SegmentKind

__all__ = [
    "convert",
    "line_count",
    "parse",
    "plain_text",
    "render_text",
    "sanitize_html",
    "tspan_markup",
    "LineSubtree",
    "Segment",
    "SegmentKind",
]
