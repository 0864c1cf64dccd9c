"""
racket_cst.reader.literals - Decoding literal tokens to Python values

The reader only recognizes literal spans. These helpers decode them for
consumers that need values (the config loader, hover text):

- string_value('"a\\nb"') -> 'a\\nb'
- byte_string_value('#"ab"') -> b'ab'
- char_value('#\\newline') -> '\\n'
- integer_value('#x-1F') -> -31
- boolean_value('#true') -> True

Malformed escapes raise ValueError.
"""

from racket_cst.reader.numbers import split_prefix

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "v": "\v",
    "f": "\f",
    "r": "\r",
    "e": "\x1b",
    '"': '"',
    "'": "'",
    "\\": "\\",
}

NAMED_CHARS = {
    "nul": "\0",
    "null": "\0",
    "backspace": "\b",
    "tab": "\t",
    "newline": "\n",
    "linefeed": "\n",
    "vtab": "\v",
    "page": "\f",
    "return": "\r",
    "space": " ",
    "rubout": "\x7f",
    "delete": "\x7f",
}

_HEX = "0123456789abcdefABCDEF"
_OCTAL = "01234567"


def _take(body: str, i: int, alphabet: str, limit: int) -> int:
    j = i
    while j < len(body) and j - i < limit and body[j] in alphabet:
        j += 1
    return j


def _decode_escapes(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        c = body[i]
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= len(body):
            raise ValueError("backslash at end of string")
        e = body[i + 1]
        i += 2
        if e in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[e])
        elif e in _OCTAL:
            j = _take(body, i - 1, _OCTAL, 3)
            out.append(chr(int(body[i - 1 : j], 8)))
            i = j
        elif e == "x":
            j = _take(body, i, _HEX, 2)
            if j == i:
                raise ValueError("\\x escape needs hex digits")
            out.append(chr(int(body[i:j], 16)))
            i = j
        elif e in "uU":
            j = _take(body, i, _HEX, 4 if e == "u" else 8)
            if j == i:
                raise ValueError(f"\\{e} escape needs hex digits")
            out.append(chr(int(body[i:j], 16)))
            i = j
        elif e == "\n" or e == "\r":
            # line continuation: skip the newline and leading blanks
            if e == "\r" and i < len(body) and body[i] == "\n":
                i += 1
            while i < len(body) and body[i] in " \t":
                i += 1
        else:
            raise ValueError(f"unknown escape sequence \\{e}")
    return "".join(out)


def string_value(text: str) -> str:
    """Decode a string literal including its quotes."""
    if len(text) < 2 or text[0] != '"' or text[-1] != '"':
        raise ValueError(f"not a string literal: {text!r}")
    return _decode_escapes(text[1:-1])


def byte_string_value(text: str) -> bytes:
    if not text.startswith('#"') or len(text) < 3 or text[-1] != '"':
        raise ValueError(f"not a byte string literal: {text!r}")
    value = _decode_escapes(text[2:-1])
    try:
        return value.encode("latin-1")
    except UnicodeEncodeError:
        raise ValueError(f"byte string contains non-byte characters: {text!r}")


def char_value(text: str) -> str:
    """Decode a `#\\` character literal."""
    if not text.startswith("#\\") or len(text) < 3:
        raise ValueError(f"not a character literal: {text!r}")
    body = text[2:]
    if len(body) == 1:
        return body
    lowered = body.lower()
    if lowered in NAMED_CHARS:
        return NAMED_CHARS[lowered]
    if body[0] in "uU" and all(c in _HEX for c in body[1:]):
        return chr(int(body[1:], 16))
    if len(body) == 3 and all(c in _OCTAL for c in body):
        return chr(int(body, 8))
    raise ValueError(f"bad character constant: {text!r}")


def boolean_value(text: str) -> bool:
    lowered = text.lower()
    if lowered in ("#t", "#true"):
        return True
    if lowered in ("#f", "#false"):
        return False
    raise ValueError(f"not a boolean literal: {text!r}")


def integer_value(text: str) -> int:
    """Decode an exact integer literal, with optional radix prefix."""
    parts = split_prefix(text)
    if parts is None or parts[1] is False:
        raise ValueError(f"not an exact integer: {text!r}")
    radix, _, body = parts
    if "_" in body or body.strip() != body:
        raise ValueError(f"not an exact integer: {text!r}")
    try:
        return int(body, radix)
    except ValueError:
        raise ValueError(f"not an exact integer: {text!r}") from None


__all__ = [
    "string_value",
    "byte_string_value",
    "char_value",
    "boolean_value",
    "integer_value",
    "NAMED_CHARS",
]
