from __future__ import annotations

import sys
import time
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(TESTS_DIR.parent / "src"))

from labelmark import convert, line_count, plain_text, sanitize_html, tspan_markup
from labelmark.segments import MAX_NESTING, Segment, SegmentKind, build_segments


def _kinds(segment: Segment) -> list:
    return [child.kind for child in segment.children]


def _text(segment: Segment) -> str:
    return "".join(segment.iter_text())


class BuildSegmentsTests(unittest.TestCase):
    def test_plain_text(self) -> None:
        root = build_segments("just text &amp; more")
        self.assertEqual(root.kind, SegmentKind.ROOT)
        self.assertEqual(_kinds(root), [SegmentKind.TEXT])
        self.assertEqual(root.children[0].text, "just text & more")

    def test_empty_input(self) -> None:
        self.assertEqual(build_segments("").children, [])

    def test_formatting_tags(self) -> None:
        root = build_segments("a<b>b</b><i>c</i><em>d</em><sup>e</sup><sub>f</sub>")
        self.assertEqual(
            _kinds(root),
            [
                SegmentKind.TEXT,
                SegmentKind.BOLD,
                SegmentKind.ITALIC,
                SegmentKind.ITALIC,
                SegmentKind.SUPERSCRIPT,
                SegmentKind.SUBSCRIPT,
            ],
        )
        self.assertEqual(root.children[1].style, "font-weight:bold")
        self.assertEqual(root.children[2].style, "font-style:italic")
        self.assertEqual(_text(root), "abcdef")

    def test_nested_bold_italic_with_breaks(self) -> None:
        root = build_segments("be <b>Bold<br>and<br><i>Strong</i></b>")
        bold = root.children[1]
        self.assertEqual(
            _kinds(bold),
            [
                SegmentKind.TEXT,
                SegmentKind.LINE_BREAK,
                SegmentKind.TEXT,
                SegmentKind.LINE_BREAK,
                SegmentKind.ITALIC,
            ],
        )
        self.assertEqual(bold.children[1].children, [])

    def test_link_attribute_permutations(self) -> None:
        cases = [
            '<a href="x" style="y">z</a>',
            '<a href=\'x\' style="y">z</a>',
            '<A HREF="x"StYlE=\'y\'>z</a>',
            '<a style=\'y\'href=\'x\'>z</A>',
            '<a \t\r\n href="x" \n\r\t style="y"  \n  \t  \r>z</a>',
            '<a magic="true" href="x" weather="cloudy" style="y" speed="42">z</a>',
            '<a href="x" style="y">z</a href="nope" style="for real?">',
        ]
        for case in cases:
            root = build_segments(case)
            self.assertEqual(_kinds(root), [SegmentKind.LINK], case)
            link = root.children[0]
            self.assertEqual(link.href, "x", case)
            self.assertEqual(link.style, "y;cursor:pointer", case)
            self.assertEqual(_text(root), "z", case)

    def test_rejected_link_splices_children(self) -> None:
        root = build_segments('pre <a href="javascript:alert(\'x\')" style="y"><b>XSS</b></a> post')
        self.assertEqual(_kinds(root), [SegmentKind.TEXT, SegmentKind.BOLD, SegmentKind.TEXT])
        self.assertEqual(_text(root), "pre XSS post")
        self.assertFalse(any(node.kind is SegmentKind.LINK for node in root.walk()))

    def test_link_inside_link_loses_wrapper(self) -> None:
        root = build_segments('<a href="/x">1<a href="/y">2</a></a>')
        self.assertEqual(_kinds(root), [SegmentKind.LINK])
        link = root.children[0]
        self.assertEqual(link.href, "/x")
        self.assertEqual(_kinds(link), [SegmentKind.TEXT])
        self.assertEqual(link.children[0].text, "12")

    def test_script_inside_script_loses_wrapper(self) -> None:
        root = build_segments("x<sup>2<sub>i</sub></sup>")
        sup = root.children[1]
        self.assertEqual(sup.kind, SegmentKind.SUPERSCRIPT)
        self.assertEqual(_kinds(sup), [SegmentKind.TEXT])
        self.assertEqual(sup.children[0].text, "2i")

    def test_span_with_and_without_style(self) -> None:
        styled = build_segments('<span style="fill:red">r</span>')
        self.assertEqual(_kinds(styled), [SegmentKind.SPAN])
        self.assertEqual(styled.children[0].style, "fill:red")

        for case in ("<span>text</span>", "<span style=unquoted>text</span>", '<span class="c">text</span>'):
            root = build_segments(case)
            self.assertEqual(_kinds(root), [SegmentKind.TEXT], case)
            self.assertEqual(root.children[0].text, "text")

    def test_span_style_keeps_entities_and_drops_junk(self) -> None:
        root = build_segments('<span style="quoted: yeah&\';;">text</span>')
        self.assertEqual(root.children[0].style, "quoted: yeah&';;")
        root = build_segments('<span style="a;b;"other="x">text</span>')
        self.assertEqual(root.children[0].style, "a;b;")

    def test_malformed_markup_degrades_to_text(self) -> None:
        self.assertEqual(build_segments("<b>oops").children[0].text, "<b>oops")
        self.assertEqual(build_segments("<u>x</u>").children[0].text, "<u>x</u>")
        self.assertEqual(build_segments("a < b > c").children[0].text, "a < b > c")

    def test_stray_closing_tags_are_dropped(self) -> None:
        root = build_segments("a</b>c</sup>")
        self.assertEqual(_kinds(root), [SegmentKind.TEXT])
        self.assertEqual(root.children[0].text, "ac")

    def test_escaped_markup_is_never_parsed(self) -> None:
        root = build_segments("&lt;b&gt;not bold&lt;/b&gt;")
        self.assertEqual(_kinds(root), [SegmentKind.TEXT])
        self.assertEqual(root.children[0].text, "<b>not bold</b>")

    def test_to_dict(self) -> None:
        data = build_segments('<a href="/x">go</a>').to_dict()
        self.assertEqual(
            data,
            {
                "kind": "root",
                "children": [
                    {
                        "kind": "link",
                        "href": "/x",
                        "style": "cursor:pointer",
                        "children": [{"kind": "text", "text": "go"}],
                    }
                ],
            },
        )


class NestingLimitTests(unittest.TestCase):
    def test_deep_nesting_is_capped(self) -> None:
        root = build_segments("<b>" * 2000 + "x" + "</b>" * 2000)
        bold = [node for node in root.walk() if node.kind is SegmentKind.BOLD]
        self.assertEqual(len(bold), MAX_NESTING)
        self.assertEqual(_text(root), "x")

    def test_deep_nesting_through_every_output(self) -> None:
        for tag in ("b", "sup", "span style=\"color:red\""):
            name = tag.split()[0]
            text = f"<{tag}>" * 2000 + "x" + f"</{name}>" * 2000
            with self.subTest(tag=name):
                self.assertEqual(len(convert(text)), 1)
                self.assertIn("x", tspan_markup(text))
                self.assertIn("x", sanitize_html(text))
                self.assertEqual(plain_text(text), "x")

    def test_deep_link_nesting(self) -> None:
        text = '<a href="/x">' * 2000 + "go" + "</a>" * 2000
        links = [node for node in build_segments(text).walk() if node.kind is SegmentKind.LINK]
        self.assertEqual(len(links), 1)
        self.assertEqual(plain_text(text), "go")

    def test_breaks_survive_past_the_limit(self) -> None:
        text = "<i>" * 100 + "a<br>b" + "</i>" * 100
        self.assertEqual(line_count(text), 2)
        self.assertEqual(plain_text(text), "a\nb")


class UnclosedTagScalingTests(unittest.TestCase):
    def test_unclosed_openers_parse_in_linear_time(self) -> None:
        started = time.perf_counter()
        lines = convert("<b><br>" * 4000)
        elapsed = time.perf_counter() - started
        self.assertEqual(len(lines), 4001)
        self.assertLess(elapsed, 2.0)

    def test_unclosed_openers_stay_literal(self) -> None:
        self.assertEqual(plain_text("<b><i>x</i>" * 3), "<b>x" * 3)


if __name__ == "__main__":
    unittest.main()
