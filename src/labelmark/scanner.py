"""Whitelist tag scanner and attribute sanitizer for label markup.

Nothing here hands the input to a general markup parser. Tags are found by
pattern matching against a fixed table of names, and attribute values are
only ever read as strings, never re-interpreted as markup.
"""
from __future__ import annotations

import logging
import re
from bisect import bisect_left
from dataclasses import dataclass
from typing import Dict, List, Optional

from .entities import decode_entities

logger = logging.getLogger(__name__)

TAG_NAMES = frozenset({"a", "b", "i", "em", "sup", "sub", "span", "br"})
VOID_TAGS = frozenset({"br"})
ALLOWED_HREF_SCHEMES = frozenset({"", "http", "https", "mailto"})
LINK_CURSOR_STYLE = "cursor:pointer"

# Longest names first so "sup" is never read as "s" + "up".
_TAG_ALTERNATION = "|".join(sorted(TAG_NAMES, key=len, reverse=True))
_TAG_RE = re.compile(rf"<(/?)({_TAG_ALTERNATION})(\s[^<>]*)?/?>", re.IGNORECASE)
_ATTR_RE = re.compile(
    r"""([^\s"'<>/=]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+))"""
)
_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+.\-]*):")
_IGNORED_HREF_CHARS_RE = re.compile(r"[\s\x00-\x1f\x7f]+")


@dataclass(frozen=True)
class TagToken:
    name: str
    attrs: str
    start: int
    end: int
    closing: bool


@dataclass(frozen=True)
class TagMatch:
    """One recognized tag occurrence.

    ``start``/``end`` span the whole construct (opening tag through closing
    tag); ``inner_start``/``inner_end`` span the content between them. A
    ``stray`` match is a closing tag with no opener, which callers drop.
    ``token_index``/``close_index`` locate the tags in their ``TagIndex``.
    """

    name: str
    attrs: str
    start: int
    end: int
    inner_start: int
    inner_end: int
    token_index: int
    close_index: int
    stray: bool = False


@dataclass(frozen=True)
class LinkAttributes:
    href: str
    style: str


class TagIndex:
    """Every whitelisted tag of one string, scanned once.

    Openers are paired with closers of the same name using one stack per
    name, so nesting of the same tag is honored and lookups never rescan.
    """

    def __init__(self, text: str) -> None:
        self.tokens: List[TagToken] = []
        self._partners: Dict[int, int] = {}
        open_stacks: Dict[str, List[int]] = {}
        for match in _TAG_RE.finditer(text):
            closing, raw_name, attrs = match.groups()
            token = TagToken(raw_name.lower(), attrs or "", match.start(), match.end(), bool(closing))
            index = len(self.tokens)
            self.tokens.append(token)
            if token.name in VOID_TAGS and not closing:
                continue
            stack = open_stacks.setdefault(token.name, [])
            if not closing:
                stack.append(index)
            elif stack:
                self._partners[stack.pop()] = index
        self._starts = [token.start for token in self.tokens]

    def first_at(self, pos: int) -> int:
        return bisect_left(self._starts, pos)

    def match_at(self, index: int, stop: Optional[int] = None) -> Optional[TagMatch]:
        """Classify token ``index`` within the token range ending at ``stop``.

        Returns None for an opener whose closer is missing or lies past
        ``stop``; its text stays literal.
        """
        if stop is None:
            stop = len(self.tokens)
        token = self.tokens[index]
        if token.closing or token.name in VOID_TAGS:
            return TagMatch(
                token.name,
                "" if token.closing else token.attrs,
                token.start,
                token.end,
                token.end,
                token.end,
                index,
                index,
                stray=token.closing,
            )
        partner = self._partners.get(index)
        if partner is None or partner >= stop:
            return None
        closer = self.tokens[partner]
        return TagMatch(
            token.name,
            token.attrs,
            token.start,
            closer.end,
            token.end,
            closer.start,
            index,
            partner,
        )


def find_tag(text: str, pos: int = 0, index: Optional[TagIndex] = None) -> Optional[TagMatch]:
    """Return the next usable tag at or after ``pos``, or None.

    Opening tags without a matching closing tag are skipped so their text
    stays literal. Pass ``index`` to reuse one scan across calls.
    """
    if index is None:
        index = TagIndex(text)
    for token_index in range(index.first_at(pos), len(index.tokens)):
        match = index.match_at(token_index)
        if match is not None:
            return match
    return None


def parse_attributes(raw: str) -> Dict[str, str]:
    """Collect quoted attribute values keyed by lowercased name.

    Unquoted values are never kept. The first occurrence of a name wins and
    any junk between or after attributes is skipped.
    """
    attrs: Dict[str, str] = {}
    for match in _ATTR_RE.finditer(raw):
        name = match.group(1).lower()
        double_quoted, single_quoted, unquoted = match.group(2, 3, 4)
        if unquoted is not None:
            logger.debug("dropping unquoted attribute %s=%s", name, unquoted)
            continue
        value = double_quoted if double_quoted is not None else single_quoted
        attrs.setdefault(name, value)
    return attrs


def safe_href(raw: str) -> Optional[str]:
    """Decode and validate an href, returning None when it is not allowed."""
    href = decode_entities(raw.strip())
    if not href:
        return None
    collapsed = _IGNORED_HREF_CHARS_RE.sub("", href).lower()
    if collapsed.startswith("javascript:"):
        logger.debug("rejecting javascript href %r", href)
        return None
    scheme_match = _SCHEME_RE.match(collapsed)
    scheme = scheme_match.group(1) if scheme_match else ""
    if scheme not in ALLOWED_HREF_SCHEMES:
        logger.debug("rejecting href with scheme %r", scheme)
        return None
    return href


def sanitize_link(raw_attrs: str) -> Optional[LinkAttributes]:
    """Reduce ``<a>`` attributes to a safe href and style, or None to drop the link."""
    attrs = parse_attributes(raw_attrs)
    href = attrs.get("href")
    if href is None:
        logger.debug("dropping link without a quoted href")
        return None
    href = safe_href(href)
    if href is None:
        return None
    style = attrs.get("style")
    if style:
        style = f"{style};{LINK_CURSOR_STYLE}"
    else:
        style = LINK_CURSOR_STYLE
    return LinkAttributes(href=href, style=style)


def sanitize_span(raw_attrs: str) -> Optional[str]:
    """Return the quoted ``style`` of a ``<span>``, or None when it has none."""
    style = parse_attributes(raw_attrs).get("style")
    return style or None


__all__ = [
    "ALLOWED_HREF_SCHEMES",
    "LINK_CURSOR_STYLE",
    "LinkAttributes",
    "TAG_NAMES",
    "TagIndex",
    "TagMatch",
    "TagToken",
    "find_tag",
    "parse_attributes",
    "safe_href",
    "sanitize_link",
    "sanitize_span",
]
