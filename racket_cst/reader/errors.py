"""
racket_cst.reader.errors - Error taxonomy for the reader

Two views of the same taxonomy:
- ErrorKind: the reason recorded on an error node in the tree
- ReadError and subclasses: exceptions raised by the low-level contracts
  (Lexer.scan, parse_datum). The tree-building API converts these into
  error nodes and never lets them escape.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Why the reader produced an error node."""

    UNTERMINATED_LITERAL = "unterminated_literal"
    UNTERMINATED_COMMENT = "unterminated_comment"
    UNEXPECTED_TOKEN = "unexpected_token"
    DELIMITER_MISMATCH = "delimiter_mismatch"
    MALFORMED_DOTTED_PAIR = "malformed_dotted_pair"
    UNCLOSED_DELIMITER = "unclosed_delimiter"
    BAD_CHARACTER = "bad_character"
    NESTING_TOO_DEEP = "nesting_too_deep"

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self]


ERROR_MESSAGES = {
    ErrorKind.UNTERMINATED_LITERAL: "literal is never terminated",
    ErrorKind.UNTERMINATED_COMMENT: "block comment is never closed",
    ErrorKind.UNEXPECTED_TOKEN: "unexpected token",
    ErrorKind.DELIMITER_MISMATCH: "closing delimiter does not match the opener",
    ErrorKind.MALFORMED_DOTTED_PAIR: "illegal use of `.`",
    ErrorKind.UNCLOSED_DELIMITER: "opening delimiter is never closed",
    ErrorKind.BAD_CHARACTER: "bad character constant",
    ErrorKind.NESTING_TOO_DEEP: "nesting is too deep",
}


class ReadError(SyntaxError):
    """Base class for reader failures, located by character offset."""

    kind = ErrorKind.UNEXPECTED_TOKEN

    def __init__(self, message: str, start: int, end: Optional[int] = None):
        super().__init__(f"{message} at offset {start}")
        self.start = start
        self.end = start if end is None else end


class UnterminatedLiteral(ReadError):
    """A string, character, byte string or similar opener has no close."""

    kind = ErrorKind.UNTERMINATED_LITERAL


class UnterminatedComment(UnterminatedLiteral):
    """A `#|` block comment whose nesting depth never returns to zero."""

    kind = ErrorKind.UNTERMINATED_COMMENT


class UnexpectedToken(ReadError):
    """A token cannot begin or continue the current construct."""

    kind = ErrorKind.UNEXPECTED_TOKEN


class MalformedDottedPair(ReadError):
    kind = ErrorKind.MALFORMED_DOTTED_PAIR


__all__ = [
    "ErrorKind",
    "ERROR_MESSAGES",
    "ReadError",
    "UnterminatedLiteral",
    "UnterminatedComment",
    "UnexpectedToken",
    "MalformedDottedPair",
]
