"""Character reference decoding for label text and href values."""
from __future__ import annotations

import re
from types import MappingProxyType

# Only these names are resolved; anything else stays verbatim.
NAMED_ENTITIES = MappingProxyType(
    {
        "amp": "&",
        "lt": "<",
        "gt": ">",
        "quot": '"',
        "apos": "'",
        "nbsp": "\u00a0",
        "times": "×",
        "divide": "÷",
        "plusmn": "±",
        "deg": "°",
        "mu": "μ",
        "micro": "µ",
        "alpha": "α",
        "beta": "β",
        "gamma": "γ",
        "delta": "δ",
        "Delta": "Δ",
        "pi": "π",
        "sigma": "σ",
        "Sigma": "Σ",
        "Omega": "Ω",
        "le": "≤",
        "ge": "≥",
        "ne": "≠",
        "minus": "−",
        "middot": "·",
        "hellip": "…",
        "copy": "©",
        "reg": "®",
        "euro": "€",
        "pound": "£",
    }
)

_ENTITY_RE = re.compile(r"&(#[xX][0-9a-fA-F]+|#[0-9]+|[A-Za-z][A-Za-z0-9]*);")


def _numeric_char(ref: str) -> str | None:
    if ref[1] in "xX":
        code = int(ref[2:], 16)
    else:
        code = int(ref[1:])
    # Reject NUL, surrogates and anything past the Unicode range.
    if code <= 0 or code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
        return None
    return chr(code)


def decode_entities(text: str) -> str:
    """Replace known named and numeric character references in ``text``.

    Unknown names and out-of-range code points are left as written. The
    result is never rescanned, so ``&amp;lt;`` decodes to ``&lt;``.
    """
    if "&" not in text:
        return text

    def _replace(match: re.Match) -> str:
        ref = match.group(1)
        if ref.startswith("#"):
            char = _numeric_char(ref)
        else:
            char = NAMED_ENTITIES.get(ref)
        return match.group(0) if char is None else char

    return _ENTITY_RE.sub(_replace, text)


__all__ = ["NAMED_ENTITIES", "decode_entities"]
