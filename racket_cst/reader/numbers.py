"""
racket_cst.reader.numbers - Numeric literal grammar

Numbers are recognized and classified, never computed. The grammar follows
the default Racket reader:

- Prefixes: at most one radix (#b #o #d #x) and one exactness (#e #i)
  marker, in either order, case-insensitive
- Integers and rationals: 42, -17, 1/3, #b101, #x-1A/F
- Decimals: 1.5, .5, 1., 1e10, 6.02e23, 1#.# (# as an inexact digit),
  exponent markers e s f d l t (only s and l in radix 16, where e d f
  are digits)
- Special values: +inf.0 -inf.0 +nan.0 +inf.f -nan.t
- Complex: 1+2i, -i, +inf.0i, 1.5-2/3i, and polar 1@2

A run that starts like a number but does not match (for example #x1G or
1.2.3) is not a number; the lexer then classifies it as a symbol.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NumberCategory(str, Enum):
    INTEGER = "integer"
    RATIONAL = "rational"
    DECIMAL = "decimal"
    COMPLEX = "complex"


@dataclass(frozen=True)
class NumberInfo:
    """Classification of a numeric literal."""

    radix: int
    exact: bool
    category: NumberCategory


_DIGITS = {
    2: "01",
    8: "0-7",
    10: "0-9",
    16: "0-9a-f",
}

_RADIX_MARKERS = {"b": 2, "o": 8, "d": 10, "x": 16}

_INF_NAN = r"(?:inf\.[0ft]|nan\.[0ft])"


def _build_grammar(radix: int) -> "re.Pattern[str]":
    d = _DIGITS[radix]
    exp_mark = "[sl]" if radix == 16 else "[esfdlt]"
    uinteger = rf"[{d}]+#*"
    decimal = rf"(?:[{d}]+#*\.#*|[{d}]*\.[{d}]+#*|[{d}]+#*)"
    exponent = rf"(?:{exp_mark}[+-]?[{d}]+)?"
    ureal = rf"(?:{uinteger}/{uinteger}|{decimal}{exponent})"
    real = rf"(?:[+-]?{ureal}|[+-]{_INF_NAN})"
    imaginary = rf"[+-](?:{ureal}|{_INF_NAN})?i"
    complex_ = rf"(?:{real}@{real}|{real}?{imaginary}|{real})"
    return re.compile(complex_, re.IGNORECASE)


_GRAMMARS = {radix: _build_grammar(radix) for radix in _DIGITS}

_INEXACT_HINT = re.compile(r"[.#]|inf|nan", re.IGNORECASE)


def split_prefix(text: str) -> Optional[tuple[int, Optional[bool], str]]:
    """
    Split numeric prefixes off a token.

    Returns (radix, exactness, body) where exactness is True for #e,
    False for #i and None when unspecified, or None if the prefixes are
    malformed (repeated or unknown markers).
    """
    radix: Optional[int] = None
    exact: Optional[bool] = None
    i = 0
    while i < len(text) and text[i] == "#":
        if i + 1 >= len(text):
            return None
        marker = text[i + 1].lower()
        if marker in _RADIX_MARKERS and radix is None:
            radix = _RADIX_MARKERS[marker]
        elif marker in "ei" and exact is None:
            exact = marker == "e"
        else:
            return None
        i += 2
    return (radix or 10, exact, text[i:])


def _categorize(body: str, radix: int) -> NumberCategory:
    lowered = body.lower()
    if lowered.endswith("i") or "@" in body:
        return NumberCategory.COMPLEX
    if "/" in body:
        return NumberCategory.RATIONAL
    if _INEXACT_HINT.search(body):
        return NumberCategory.DECIMAL
    if radix != 16 and re.search(r"[esfdlt]", lowered):
        # exponent marker without a decimal point: 1e10
        return NumberCategory.DECIMAL
    if radix == 16 and re.search(r"[sl]", lowered):
        return NumberCategory.DECIMAL
    return NumberCategory.INTEGER


def classify_number(text: str) -> Optional[NumberInfo]:
    """Classify text as a numeric literal, or return None if it is not one."""
    parts = split_prefix(text)
    if parts is None:
        return None
    radix, exact, body = parts
    if not body or not _GRAMMARS[radix].fullmatch(body):
        return None

    category = _categorize(body, radix)
    inexact_body = bool(_INEXACT_HINT.search(body)) or (
        category in (NumberCategory.DECIMAL, NumberCategory.COMPLEX)
        and _has_exponent(body, radix)
    )
    if exact is None:
        exact = not inexact_body
    elif exact and re.search(r"inf|nan", body, re.IGNORECASE):
        # #e+inf.0 has no exact counterpart
        return None
    return NumberInfo(radix, exact, category)


def _has_exponent(body: str, radix: int) -> bool:
    markers = "sl" if radix == 16 else "esfdlt"
    return any(c in markers for c in body.lower().rstrip("i"))


def is_number(text: str) -> bool:
    return classify_number(text) is not None


__all__ = [
    "NumberCategory",
    "NumberInfo",
    "classify_number",
    "is_number",
    "split_prefix",
]
