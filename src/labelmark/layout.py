"""Split a segment tree into self-contained, vertically offset lines."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, List

from .segments import Segment, SegmentKind

LINE_HEIGHT_EM = 1.3
ZERO_WIDTH_SPACE = "\u200b"
SCRIPT_FONT_SIZE = "70%"


@dataclass(frozen=True)
class _ScriptShift:
    open_dy: str
    close_dy: str


SCRIPT_SHIFTS = MappingProxyType(
    {
        SegmentKind.SUPERSCRIPT: _ScriptShift(open_dy="-0.6em", close_dy="0.42em"),
        SegmentKind.SUBSCRIPT: _ScriptShift(open_dy="0.3em", close_dy="-0.21em"),
    }
)


@dataclass
class LineSubtree:
    index: int
    count: int
    root: Segment

    @property
    def offset_em(self) -> float:
        return self.index * LINE_HEIGHT_EM

    @property
    def dy(self) -> str:
        return f"{_fmt(self.offset_em)}em"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "count": self.count,
            "dy": self.dy,
            "root": self.root.to_dict(),
        }


def layout_lines(root: Segment) -> List[LineSubtree]:
    """Flatten ``root`` into one subtree per line.

    Every wrapper open across a line break is repeated on each line it
    covers. A sub/superscript opens on every line it covers (later lines are
    marked ``continued``) and restores the baseline once, on its last line.
    """
    lines = _split_children(root.children)
    count = len(lines)
    return [
        LineSubtree(index, count, Segment(SegmentKind.ROOT, children=line))
        for index, line in enumerate(lines)
    ]


def _split_children(children: List[Segment]) -> List[List[Segment]]:
    lines: List[List[Segment]] = [[]]
    for child in children:
        parts = _split(child)
        lines[-1].extend(parts[0])
        lines.extend(parts[1:])
    return lines


def _split(segment: Segment) -> List[List[Segment]]:
    if segment.kind is SegmentKind.TEXT:
        return [[Segment(SegmentKind.TEXT, text=segment.text)]]
    if segment.kind is SegmentKind.LINE_BREAK:
        return [[], []]
    inner = _split_children(segment.children)
    if segment.kind in SCRIPT_SHIFTS:
        return _bracket_script(segment.kind, inner)
    return [[replace(segment, children=line)] for line in inner]


def _bracket_script(kind: SegmentKind, inner: List[List[Segment]]) -> List[List[Segment]]:
    shift = SCRIPT_SHIFTS[kind]
    last = len(inner) - 1
    lines: List[List[Segment]] = []
    for index, content in enumerate(inner):
        nodes = [
            Segment(SegmentKind.TEXT, text=ZERO_WIDTH_SPACE),
            Segment(
                kind,
                children=content,
                dy=shift.open_dy,
                font_size=SCRIPT_FONT_SIZE,
                continued=index > 0,
            ),
        ]
        if index == last:
            nodes.append(
                Segment(
                    SegmentKind.BASELINE_RESTORE,
                    children=[Segment(SegmentKind.TEXT, text=ZERO_WIDTH_SPACE)],
                    dy=shift.close_dy,
                )
            )
        lines.append(nodes)
    return lines


def _fmt(value: float) -> str:
    if math.isclose(value, round(value)):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")


__all__ = [
    "LINE_HEIGHT_EM",
    "LineSubtree",
    "SCRIPT_FONT_SIZE",
    "SCRIPT_SHIFTS",
    "ZERO_WIDTH_SPACE",
    "layout_lines",
]
