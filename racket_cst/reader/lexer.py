"""
racket_cst.reader.lexer - Lexical classifier for Racket source text

Lexer.scan(offset) classifies the token starting at offset. Classification
is an ordered choice, first match wins:

1. `#` dispatch (see _scan_dispatch for the exact order)
2. `"` string literals
3. delimiters ( ) [ ] { } and the prefixes ' ` , ,@
4. whitespace runs (kept, not discarded)
5. `;` line comments, up to but excluding the newline
6. everything else is a maximal run of non-delimiter characters, which is
   a number if the numeric grammar accepts it, otherwise a symbol (or the
   lone `.` of dotted-pair notation). `|...|` segments and backslash
   escapes inside a run make it a symbol unconditionally.

Unterminated strings, characters, byte strings, regexps, here strings,
piped symbols and block comments raise UnterminatedLiteral (block comments
raise its subclass UnterminatedComment).
"""

import re
from typing import Iterator

from racket_cst.reader.errors import (
    ErrorKind,
    UnterminatedComment,
    UnterminatedLiteral,
)
from racket_cst.reader.nodes import NodeKind, Token
from racket_cst.reader.numbers import is_number

# Characters that end a symbol or number run (besides whitespace).
# `#` and `|` are not delimiters: a#b and a|b c|d are single symbols.
DELIMITERS = frozenset("()[]{}\",'`;")

OPENERS = frozenset("([{")
CLOSERS = frozenset(")]}")

CHAR_NAMES = frozenset(
    {
        "nul",
        "null",
        "backspace",
        "tab",
        "newline",
        "linefeed",
        "vtab",
        "page",
        "return",
        "space",
        "rubout",
        "delete",
    }
)

_HEX = frozenset("0123456789abcdefABCDEF")
_OCTAL = frozenset("01234567")

# #( #[ #{ are handled separately; these carry a word or length first
_SEQUENCE_OPENER = re.compile(
    r"#(?:(?:fl|fx)\d*|hashalw|hasheqv|hasheq|hash|s|vu8|\d+)[(\[{]"
)
_GRAPH_MARK = re.compile(r"#\d+[=#]")
_LANG_NAME = re.compile(r"[A-Za-z0-9+\-_/]+")
_BOOLEANS = ("#true", "#false", "#t", "#f")


class Lexer:
    """Classifies tokens of one source string. Holds no mutable state."""

    def __init__(self, source: str):
        self.source = source
        self.length = len(source)

    def scan(self, i: int) -> Token:
        """Classify the token starting at offset i (which must be < length)."""
        src = self.source
        c = src[i]

        if c.isspace():
            j = i + 1
            while j < self.length and src[j].isspace():
                j += 1
            return self._token(NodeKind.WHITESPACE, i, j)
        if c == ";":
            j = src.find("\n", i)
            return self._token(NodeKind.LINE_COMMENT, i, self.length if j < 0 else j)
        if c in OPENERS:
            return self._token(NodeKind.OPEN, i, i + 1)
        if c in CLOSERS:
            return self._token(NodeKind.CLOSE, i, i + 1)
        if c in "'`":
            return self._token(NodeKind.PREFIX, i, i + 1)
        if c == ",":
            width = 2 if src.startswith(",@", i) else 1
            return self._token(NodeKind.PREFIX, i, i + width)
        if c == '"':
            return self._token(NodeKind.STRING, i, self._scan_string(i + 1, i))
        if c == "#":
            return self._scan_dispatch(i)
        return self._scan_atom(i)

    def tokens(self, start: int = 0) -> Iterator[Token]:
        """Yield every token from start to the end of the source."""
        pos = start
        while pos < self.length:
            try:
                tok = self.scan(pos)
            except UnterminatedLiteral as e:
                tok = Token(NodeKind.ERROR, pos, self.length, self.source[pos:], e.kind)
            yield tok
            pos = tok.end

    # =========================================================================
    # Helpers
    # =========================================================================

    def _token(self, kind: NodeKind, start: int, end: int) -> Token:
        return Token(kind, start, end, self.source[start:end])

    def _delimited(self, j: int) -> bool:
        """True if a token may end right before offset j."""
        return (
            j >= self.length
            or self.source[j].isspace()
            or self.source[j] in DELIMITERS
        )

    def _scan_string(self, j: int, start: int) -> int:
        """Scan a string body starting after the opening quote; return end."""
        src = self.source
        while j < self.length:
            c = src[j]
            if c == "\\":
                j += 2
            elif c == '"':
                return j + 1
            else:
                j += 1
        raise UnterminatedLiteral("unterminated string", start, self.length)

    def _scan_pipe(self, j: int, start: int) -> int:
        """Scan a |...| segment starting after the opening pipe."""
        src = self.source
        while j < self.length:
            if src[j] == "\\" and j + 1 < self.length and src[j + 1] == "|":
                j += 2
            elif src[j] == "|":
                return j + 1
            else:
                j += 1
        raise UnterminatedLiteral("unterminated `|` in symbol", start, self.length)

    def _scan_run(self, j: int, start: int) -> tuple[int, bool]:
        """
        Scan a maximal symbol/number run.

        Returns the end offset and whether the run was plain (no escapes
        or pipes), since only plain runs may be numbers.
        """
        src = self.source
        plain = True
        while j < self.length:
            c = src[j]
            if c == "\\":
                if j + 1 >= self.length:
                    raise UnterminatedLiteral("escape at end of input", start, self.length)
                plain = False
                j += 2
            elif c == "|":
                plain = False
                j = self._scan_pipe(j + 1, start)
            elif c.isspace() or c in DELIMITERS:
                break
            else:
                j += 1
        return j, plain

    def _scan_atom(self, i: int) -> Token:
        end, plain = self._scan_run(i, i)
        text = self.source[i:end]
        if text == ".":
            return self._token(NodeKind.DOT, i, end)
        # A run the numeric grammar accepts is a number
        if plain and is_number(text):
            return self._token(NodeKind.NUMBER, i, end)
        return self._token(NodeKind.SYMBOL, i, end)

    # =========================================================================
    # `#` Dispatch
    # =========================================================================

    def _scan_dispatch(self, i: int) -> Token:
        src = self.source
        nxt = src[i + 1] if i + 1 < self.length else ""
        if not nxt:
            return self._token(NodeKind.EXTENSION, i, i + 1)

        if nxt == "|":
            return self._token(NodeKind.BLOCK_COMMENT, i, self._scan_block_comment(i))
        if nxt == ";":
            return self._token(NodeKind.DATUM_COMMENT_PREFIX, i, i + 2)
        if nxt == "!":
            if i + 2 < self.length and src[i + 2] in " /":
                # #! /usr/bin/env racket
                j = src.find("\n", i)
                return self._token(
                    NodeKind.LINE_COMMENT, i, self.length if j < 0 else j
                )
            m = _LANG_NAME.match(src, i + 2)
            if m:
                return self._token(NodeKind.READER_DIRECTIVE, i, m.end())
        if src.startswith("#lang", i) and i + 5 < self.length and src[i + 5] in " \t":
            j = i + 5
            while j < self.length and src[j] in " \t":
                j += 1
            m = _LANG_NAME.match(src, j)
            if m:
                return self._token(NodeKind.READER_DIRECTIVE, i, m.end())
        if nxt == "\\":
            return self._scan_character(i)
        if nxt == '"':
            return self._token(NodeKind.BYTE_STRING, i, self._scan_string(i + 2, i))
        if src.startswith(('#rx"', '#px"'), i):
            return self._token(NodeKind.REGEXP, i, self._scan_string(i + 4, i))
        if src.startswith(('#rx#"', '#px#"'), i):
            return self._token(NodeKind.REGEXP, i, self._scan_string(i + 5, i))
        if src.startswith("#<<", i):
            return self._token(NodeKind.HERE_STRING, i, self._scan_here_string(i))
        if nxt in OPENERS:
            return self._token(NodeKind.OPEN, i, i + 2)
        m = _SEQUENCE_OPENER.match(src, i)
        if m:
            return self._token(NodeKind.OPEN, i, m.end())
        if nxt in "'`":
            return self._token(NodeKind.PREFIX, i, i + 2)
        if nxt == ",":
            width = 3 if src.startswith("#,@", i) else 2
            return self._token(NodeKind.PREFIX, i, i + width)
        if nxt == "&":
            return self._token(NodeKind.PREFIX, i, i + 2)
        if nxt == ":":
            end, _ = self._scan_run(i + 2, i)
            return self._token(NodeKind.KEYWORD, i, end)
        m = _GRAPH_MARK.match(src, i)
        if m:
            kind = (
                NodeKind.GRAPH_LABEL if src[m.end() - 1] == "=" else NodeKind.GRAPH_REFERENCE
            )
            return self._token(kind, i, m.end())
        for word in _BOOLEANS:
            end = i + len(word)
            if src[i:end].lower() == word and self._delimited(end):
                return self._token(NodeKind.BOOLEAN, i, end)
        if nxt.lower() in "eixobd":
            end, plain = self._scan_run(i, i)
            text = src[i:end]
            if plain and is_number(text):
                return self._token(NodeKind.NUMBER, i, end)
            # invalid digits for the radix: the permissive reader keeps it as a symbol
            return self._token(NodeKind.SYMBOL, i, end)

        # Unknown reader extension
        end, _ = self._scan_run(i + 1, i)
        return self._token(NodeKind.EXTENSION, i, max(end, i + 1))

    def _scan_block_comment(self, i: int) -> int:
        src = self.source
        depth = 1
        j = i + 2
        while j < self.length:
            if src.startswith("|#", j):
                depth -= 1
                j += 2
                if depth == 0:
                    return j
            elif src.startswith("#|", j):
                depth += 1
                j += 2
            else:
                j += 1
        raise UnterminatedComment("unterminated block comment", i, self.length)

    def _scan_character(self, i: int) -> Token:
        src = self.source
        j = i + 2
        if j >= self.length:
            raise UnterminatedLiteral("unterminated character", i, self.length)
        c = src[j]

        if c in "uU" and j + 1 < self.length and src[j + 1] in _HEX:
            limit = 4 if c == "u" else 8
            k = j + 1
            while k < self.length and k - (j + 1) < limit and src[k] in _HEX:
                k += 1
            return self._token(NodeKind.CHARACTER, i, k)
        if (
            c in "0123"
            and j + 2 < self.length
            and src[j + 1] in _OCTAL
            and src[j + 2] in _OCTAL
        ):
            return self._token(NodeKind.CHARACTER, i, j + 3)
        if c.isalpha():
            k = j + 1
            while k < self.length and src[k].isalpha():
                k += 1
            word = src[j:k]
            if len(word) == 1 or word.lower() in CHAR_NAMES:
                return self._token(NodeKind.CHARACTER, i, k)
            return Token(NodeKind.CHARACTER, i, k, src[i:k], ErrorKind.BAD_CHARACTER)
        return self._token(NodeKind.CHARACTER, i, j + 1)

    def _scan_here_string(self, i: int) -> int:
        src = self.source
        newline = src.find("\n", i)
        if newline < 0:
            raise UnterminatedLiteral("unterminated here string", i, self.length)
        terminator = src[i + 3 : newline]
        j = newline + 1
        while j <= self.length:
            line_end = src.find("\n", j)
            if line_end < 0:
                line_end = self.length
            if src[j:line_end] == terminator:
                return line_end
            j = line_end + 1
        raise UnterminatedLiteral("unterminated here string", i, self.length)


def tokenize(source: str) -> list[Token]:
    """
    Tokenize source text into a list of Tokens, trivia included.

    Unterminated literals become a single error token running to the end
    of the input, so the tokens always cover the whole text.
    """
    return list(Lexer(source).tokens())


__all__ = ["Lexer", "tokenize", "DELIMITERS", "CHAR_NAMES"]
