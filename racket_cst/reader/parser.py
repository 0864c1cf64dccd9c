"""
racket_cst.reader.parser - Datum parser and trivia skipper

The Reader turns the lexer's tokens into node records in a NodeArena.
All parse state (cursor, nesting depth, the stack of expected closing
delimiters) lives on the Reader instance, so independent texts can be
read concurrently.

Trivia (whitespace, line comments, block comments and datum comments) is
attached as sibling nodes between datums, never discarded, so the leaves
of the result reproduce the input exactly.

Error recovery keeps every problem local:
- a stray `)` or `.` at top level becomes an error node around that token
- an opener that reaches end of input becomes an error node to EOF
- a bad dotted tail becomes an error node from the `.` to the closer
- a prefix (' #; #& ...) with nothing to wrap wraps a missing node
Parsing always resumes at the next closing delimiter at the same depth or
at the next top-level item.
"""

from typing import Optional

from racket_cst.config import ReaderConfig
from racket_cst.reader.errors import (
    ErrorKind,
    MalformedDottedPair,
    UnexpectedToken,
    UnterminatedLiteral,
)
from racket_cst.reader.lexer import Lexer
from racket_cst.reader.nodes import (
    ATOM_KINDS,
    PREFIX_FORMS,
    TRIVIA_KINDS,
    NodeArena,
    NodeKind,
    SyntaxNode,
    Token,
    sequence_kind,
)

# Tokens the trivia skipper consumes between datums
_TRIVIA_TOKENS = frozenset(
    {
        NodeKind.WHITESPACE,
        NodeKind.LINE_COMMENT,
        NodeKind.BLOCK_COMMENT,
        NodeKind.DATUM_COMMENT_PREFIX,
    }
)

_DATUM_START_TOKENS = ATOM_KINDS | {
    NodeKind.OPEN,
    NodeKind.PREFIX,
    NodeKind.GRAPH_LABEL,
    NodeKind.ERROR,
}

_CLOSERS = {"(": ")", "[": "]", "{": "}"}


def _closer_for(opener: str) -> str:
    return _CLOSERS[opener[-1]]


def can_begin_datum(tok: Optional[Token]) -> bool:
    return tok is not None and tok.kind in _DATUM_START_TOKENS


class Reader:
    """
    Reader that parses tokens into CST node records.

    Produces handles into `arena`; wrap the root handle in a Tree to walk it.
    """

    def __init__(
        self,
        source: str,
        arena: Optional[NodeArena] = None,
        config: Optional[ReaderConfig] = None,
    ):
        self.source = source
        self.lexer = Lexer(source)
        self.arena = arena if arena is not None else NodeArena()
        self.config = config or ReaderConfig()
        self.pos = 0
        self.depth = 0
        # Expected closing delimiter for each open sequence
        self.boundaries: list[str] = []
        self._peeked: Optional[Token] = None

    def eof(self) -> bool:
        return self.pos >= len(self.source)

    def peek(self) -> Optional[Token]:
        """Classify the token at the cursor without consuming it."""
        if self.eof():
            return None
        if self._peeked is None or self._peeked.start != self.pos:
            try:
                self._peeked = self.lexer.scan(self.pos)
            except UnterminatedLiteral as e:
                # Unterminated literals swallow the rest of the input
                self._peeked = Token(
                    NodeKind.ERROR,
                    self.pos,
                    len(self.source),
                    self.source[self.pos :],
                    e.kind,
                )
        return self._peeked

    def next(self) -> Token:
        tok = self.peek()
        assert tok is not None  # callers check for EOF first
        self.pos = tok.end
        return tok

    # =========================================================================
    # Top Level
    # =========================================================================

    def read_source(self) -> int:
        """Read the whole input into a `source` node and return its handle."""
        items = []
        while not self.eof():
            items.append(self.read_toplevel())
        return self.arena.branch(NodeKind.SOURCE, items)

    def read_toplevel(self) -> int:
        """Read one top-level item: a single trivia node, a datum or an error."""
        tok = self.peek()
        assert tok is not None
        if tok.kind in _TRIVIA_TOKENS:
            return self.read_trivia_item()
        if can_begin_datum(tok):
            return self.read_datum()
        self.next()
        reason = (
            ErrorKind.MALFORMED_DOTTED_PAIR
            if tok.kind == NodeKind.DOT
            else ErrorKind.UNEXPECTED_TOKEN
        )
        return self.arena.branch(NodeKind.ERROR, [self.arena.token(tok)], reason)

    # =========================================================================
    # Trivia
    # =========================================================================

    def read_trivia(self, children: list[int]) -> None:
        """Append every trivia node at the cursor to children."""
        while True:
            tok = self.peek()
            if tok is None or tok.kind not in _TRIVIA_TOKENS:
                return
            children.append(self.read_trivia_item())

    def read_trivia_item(self) -> int:
        tok = self.peek()
        assert tok is not None
        if tok.kind == NodeKind.DATUM_COMMENT_PREFIX:
            if self.depth >= self.config.max_depth:
                return self._too_deep()
            self.depth += 1
            try:
                return self.read_datum_comment(self.next())
            finally:
                self.depth -= 1
        self.next()
        if tok.kind == NodeKind.BLOCK_COMMENT:
            return self._block_comment(tok.text)
        return self.arena.token(tok)

    def _block_comment(self, text: str) -> int:
        """Build nested block_comment nodes from a complete `#|...|#`."""
        arena = self.arena
        # Children of each comment still open, innermost last
        stack = [[arena.leaf(NodeKind.BLOCK_COMMENT_OPEN, "#|")]]
        j = 2
        run_start = j
        while True:
            if text.startswith("|#", j):
                if j > run_start:
                    stack[-1].append(arena.leaf(NodeKind.COMMENT_TEXT, text[run_start:j]))
                children = stack.pop()
                children.append(arena.leaf(NodeKind.BLOCK_COMMENT_CLOSE, "|#"))
                handle = arena.branch(NodeKind.BLOCK_COMMENT, children)
                j += 2
                run_start = j
                if not stack:
                    return handle
                stack[-1].append(handle)
            elif text.startswith("#|", j):
                if j > run_start:
                    stack[-1].append(arena.leaf(NodeKind.COMMENT_TEXT, text[run_start:j]))
                stack.append([arena.leaf(NodeKind.BLOCK_COMMENT_OPEN, "#|")])
                j += 2
                run_start = j
            else:
                j += 1

    def read_datum_comment(self, prefix: Token) -> int:
        """`#;` consumes exactly the next datum, with any trivia before it."""
        children = [self.arena.token(prefix)]
        self.read_trivia(children)
        if not can_begin_datum(self.peek()):
            children.append(self.arena.missing())
            return self.arena.branch(
                NodeKind.ERROR, children, ErrorKind.UNEXPECTED_TOKEN
            )
        children.append(self.read_datum())
        return self.arena.branch(NodeKind.DATUM_COMMENT, children)

    # =========================================================================
    # Datums
    # =========================================================================

    def read_datum(self) -> int:
        """Read a single datum at the cursor (no leading trivia)."""
        tok = self.peek()
        if tok is None:
            raise UnexpectedToken("unexpected end of input", self.pos)
        if tok.kind == NodeKind.DOT:
            raise MalformedDottedPair("illegal use of `.`", tok.start, tok.end)
        if not can_begin_datum(tok):
            raise UnexpectedToken(f"unexpected `{tok.text}`", tok.start, tok.end)

        if tok.kind in (NodeKind.OPEN, NodeKind.PREFIX, NodeKind.GRAPH_LABEL):
            if self.depth >= self.config.max_depth:
                return self._too_deep()
            self.depth += 1
            try:
                if tok.kind == NodeKind.OPEN:
                    return self.read_sequence()
                return self.read_wrapped()
            finally:
                self.depth -= 1

        self.next()
        return self.arena.token(tok)

    def _too_deep(self) -> int:
        """An error leaf from the cursor to the end of the input."""
        start = self.pos
        self.pos = len(self.source)
        return self.arena.leaf(
            NodeKind.ERROR, self.source[start:], ErrorKind.NESTING_TOO_DEEP
        )

    def read_wrapped(self) -> int:
        """Quote-family, box and graph-label prefixes wrap the next datum."""
        prefix = self.next()
        if prefix.kind == NodeKind.GRAPH_LABEL:
            kind = NodeKind.GRAPH_DEFINITION
        else:
            kind = PREFIX_FORMS[prefix.text]
        children = [self.arena.token(prefix)]
        self.read_trivia(children)
        if not can_begin_datum(self.peek()):
            children.append(self.arena.missing())
            return self.arena.branch(
                NodeKind.ERROR, children, ErrorKind.UNEXPECTED_TOKEN
            )
        children.append(self.read_datum())
        return self.arena.branch(kind, children)

    def read_sequence(self) -> int:
        """Read a list, vector, byte vector, hash or prefab struct."""
        opener = self.next()
        kind = sequence_kind(opener.text)
        children = [self.arena.token(opener)]
        seen_datum = False
        self.boundaries.append(_closer_for(opener.text))
        try:
            while True:
                self.read_trivia(children)
                tok = self.peek()
                if tok is None:
                    children.append(self.arena.missing())
                    return self.arena.branch(
                        NodeKind.ERROR, children, ErrorKind.UNCLOSED_DELIMITER
                    )
                if tok.kind == NodeKind.CLOSE:
                    self.next()
                    children.append(self._close(tok))
                    return self.arena.branch(kind, children)
                if tok.kind == NodeKind.DOT:
                    if kind == NodeKind.LIST and seen_datum:
                        self.read_dotted_tail(children)
                    else:
                        self.next()
                        children.append(
                            self.arena.branch(
                                NodeKind.ERROR,
                                [self.arena.token(tok)],
                                ErrorKind.MALFORMED_DOTTED_PAIR,
                            )
                        )
                    continue
                children.append(self.read_datum())
                seen_datum = True
        finally:
            self.boundaries.pop()

    def _close(self, tok: Token) -> int:
        # ( [ { close each other by default; strict mode flags the substitution
        leaf = self.arena.token(tok)
        if self.config.strict_delimiters and tok.text != self.boundaries[-1]:
            return self.arena.branch(
                NodeKind.ERROR, [leaf], ErrorKind.DELIMITER_MISMATCH
            )
        return leaf

    def read_dotted_tail(self, children: list[int]) -> None:
        """
        Read from a `.` up to the list's closing delimiter.

        Accepts `. tail` and, with infix_dots, `. op . rest`. Anything else
        is wrapped in a single malformed_dotted_pair error node so the
        rest of the list stays intact.
        """
        arena = self.arena
        max_dots = 2 if self.config.infix_dots else 1
        pieces: list[int] = []
        dots = 0
        well_formed = True
        while True:
            tok = self.peek()
            if tok is None or tok.kind == NodeKind.CLOSE:
                break
            if tok.kind == NodeKind.DOT:
                dots += 1
                if dots > max_dots:
                    well_formed = False
                pieces.append(arena.token(self.next()))
                self.read_trivia(pieces)
                if not can_begin_datum(self.peek()):
                    # `.` followed by `)`, another `.` or end of input
                    well_formed = False
                    continue
            else:
                # a second datum after the tail
                well_formed = False
            pieces.append(self.read_datum())
            self.read_trivia(pieces)

        trailing: list[int] = []
        while pieces and arena[pieces[-1]].kind in TRIVIA_KINDS:
            trailing.insert(0, pieces.pop())
        if well_formed:
            children.extend(pieces)
        else:
            children.append(
                arena.branch(NodeKind.ERROR, pieces, ErrorKind.MALFORMED_DOTTED_PAIR)
            )
        children.extend(trailing)


# =============================================================================
# Convenience Functions
# =============================================================================


def parse_datum(
    source: str, offset: int = 0, config: Optional[ReaderConfig] = None
) -> tuple[SyntaxNode, int]:
    """
    Read one datum starting at offset, skipping any trivia before it.

    Returns the datum and the offset just past it. Raises UnexpectedToken
    (or MalformedDottedPair for a lone `.`) if nothing there can begin a
    datum.
    """
    from racket_cst.reader.tree import Tree

    reader = Reader(source, config=config)
    reader.pos = offset
    reader.read_trivia([])
    start = reader.pos
    handle = reader.read_datum()
    tree = Tree(source, reader.arena, handle, reader.config, root_start=start)
    return tree.root, reader.pos


__all__ = ["Reader", "parse_datum", "can_begin_datum"]
