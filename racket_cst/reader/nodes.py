"""
racket_cst.reader.nodes - Node vocabulary, tokens and the node arena

Components:
- NodeKind: the closed enumeration of node kinds (with one open-ended
  EXTENSION variant for unknown `#` dispatches)
- Token: a classified span of source text produced by the lexer
- NodeData: an immutable node record (kind, width, leaf text or child
  handles). Records store widths, not offsets, so an unchanged record can
  be reused at a shifted position after an edit.
- NodeArena: append-only storage of NodeData addressed by integer handles
- SyntaxNode: a read-only view of a record at an absolute position,
  created while walking a Tree
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional, Sequence

from racket_cst.reader.errors import ErrorKind

if TYPE_CHECKING:
    from racket_cst.reader.tree import Tree


class NodeKind(str, Enum):
    """Every kind of node or token the reader produces."""

    SOURCE = "source"

    # Trivia
    WHITESPACE = "whitespace"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    DATUM_COMMENT = "datum_comment"
    COMMENT_TEXT = "comment_text"

    # Atoms
    SYMBOL = "symbol"
    NUMBER = "number"
    STRING = "string"
    BYTE_STRING = "byte_string"
    CHARACTER = "character"
    BOOLEAN = "boolean"
    KEYWORD = "keyword"
    REGEXP = "regexp"
    HERE_STRING = "here_string"
    GRAPH_REFERENCE = "graph_reference"
    READER_DIRECTIVE = "reader_directive"
    EXTENSION = "extension"

    # Punctuation
    OPEN = "open"
    CLOSE = "close"
    DOT = "dot"
    PREFIX = "prefix"
    DATUM_COMMENT_PREFIX = "datum_comment_prefix"
    GRAPH_LABEL = "graph_label"
    BLOCK_COMMENT_OPEN = "block_comment_open"
    BLOCK_COMMENT_CLOSE = "block_comment_close"

    # Compounds
    LIST = "list"
    VECTOR = "vector"
    BYTE_VECTOR = "byte_vector"
    HASH = "hash"
    PREFAB_STRUCT = "prefab_struct"
    QUOTE = "quote"
    QUASIQUOTE = "quasiquote"
    UNQUOTE = "unquote"
    UNQUOTE_SPLICING = "unquote_splicing"
    SYNTAX_QUOTE = "syntax_quote"
    SYNTAX_QUASIQUOTE = "syntax_quasiquote"
    SYNTAX_UNQUOTE = "syntax_unquote"
    SYNTAX_UNQUOTE_SPLICING = "syntax_unquote_splicing"
    BOX = "box"
    GRAPH_DEFINITION = "graph_definition"

    # Recovery
    ERROR = "error"
    MISSING = "missing"

    def __str__(self) -> str:
        return self.value


TRIVIA_KINDS = frozenset(
    {
        NodeKind.WHITESPACE,
        NodeKind.LINE_COMMENT,
        NodeKind.BLOCK_COMMENT,
        NodeKind.DATUM_COMMENT,
    }
)

COMMENT_KINDS = TRIVIA_KINDS - {NodeKind.WHITESPACE}

ATOM_KINDS = frozenset(
    {
        NodeKind.SYMBOL,
        NodeKind.NUMBER,
        NodeKind.STRING,
        NodeKind.BYTE_STRING,
        NodeKind.CHARACTER,
        NodeKind.BOOLEAN,
        NodeKind.KEYWORD,
        NodeKind.REGEXP,
        NodeKind.HERE_STRING,
        NodeKind.GRAPH_REFERENCE,
        NodeKind.READER_DIRECTIVE,
        NodeKind.EXTENSION,
    }
)

PUNCTUATION_KINDS = frozenset(
    {
        NodeKind.OPEN,
        NodeKind.CLOSE,
        NodeKind.DOT,
        NodeKind.PREFIX,
        NodeKind.DATUM_COMMENT_PREFIX,
        NodeKind.GRAPH_LABEL,
        NodeKind.BLOCK_COMMENT_OPEN,
        NodeKind.BLOCK_COMMENT_CLOSE,
        NodeKind.COMMENT_TEXT,
        NodeKind.MISSING,
    }
)

SEQUENCE_KINDS = frozenset(
    {
        NodeKind.LIST,
        NodeKind.VECTOR,
        NodeKind.BYTE_VECTOR,
        NodeKind.HASH,
        NodeKind.PREFAB_STRUCT,
    }
)

# Prefix text -> the compound it builds around the next datum
PREFIX_FORMS = {
    "'": NodeKind.QUOTE,
    "`": NodeKind.QUASIQUOTE,
    ",": NodeKind.UNQUOTE,
    ",@": NodeKind.UNQUOTE_SPLICING,
    "#'": NodeKind.SYNTAX_QUOTE,
    "#`": NodeKind.SYNTAX_QUASIQUOTE,
    "#,": NodeKind.SYNTAX_UNQUOTE,
    "#,@": NodeKind.SYNTAX_UNQUOTE_SPLICING,
    "#&": NodeKind.BOX,
}

WRAPPER_KINDS = frozenset(PREFIX_FORMS.values()) | {NodeKind.GRAPH_DEFINITION}

COMPOUND_KINDS = SEQUENCE_KINDS | WRAPPER_KINDS


def sequence_kind(opener: str) -> NodeKind:
    """Map an opening delimiter's text to the sequence node it starts."""
    if opener in ("(", "[", "{"):
        return NodeKind.LIST
    if opener.startswith("#vu8"):
        return NodeKind.BYTE_VECTOR
    if opener.startswith("#hash"):
        return NodeKind.HASH
    if opener.startswith("#s"):
        return NodeKind.PREFAB_STRUCT
    return NodeKind.VECTOR


# =============================================================================
# Tokens
# =============================================================================


@dataclass(frozen=True)
class Token:
    """A classified span of source text. Tokens own no children."""

    kind: NodeKind
    start: int
    end: int
    text: str
    error: Optional[ErrorKind] = None

    def __repr__(self):
        return f"Token({self.kind.value}, {self.text!r}, {self.start}:{self.end})"


# =============================================================================
# Node Arena
# =============================================================================


@dataclass(frozen=True)
class NodeData:
    """An immutable node record. Leaves carry text; branches carry handles."""

    kind: NodeKind
    width: int
    text: Optional[str] = None
    children: tuple[int, ...] = ()
    error: Optional[ErrorKind] = None
    has_error: bool = False

    @property
    def is_leaf(self) -> bool:
        return self.text is not None


class NodeArena:
    """
    Append-only storage for node records.

    Handles are indices into the arena and never change meaning, which is
    what lets a new tree version reuse the handles of unaffected subtrees.
    Only the single writer re-parsing a tree appends; readers of older
    versions only look at handles that already existed.
    """

    def __init__(self):
        self._nodes: list[NodeData] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, handle: int) -> NodeData:
        return self._nodes[handle]

    def _add(self, data: NodeData) -> int:
        self._nodes.append(data)
        return len(self._nodes) - 1

    def leaf(
        self, kind: NodeKind, text: str, error: Optional[ErrorKind] = None
    ) -> int:
        return self._add(
            NodeData(kind, len(text), text, (), error, has_error=error is not None)
        )

    def token(self, token: Token) -> int:
        kind = NodeKind.ERROR if token.error is not None else token.kind
        return self.leaf(kind, token.text, token.error)

    def missing(self) -> int:
        """A zero-width placeholder for something the source lacks."""
        return self.leaf(NodeKind.MISSING, "")

    def branch(
        self,
        kind: NodeKind,
        children: Sequence[int],
        error: Optional[ErrorKind] = None,
    ) -> int:
        records = [self._nodes[h] for h in children]
        return self._add(
            NodeData(
                kind,
                sum(r.width for r in records),
                None,
                tuple(children),
                error,
                has_error=error is not None or any(r.has_error for r in records),
            )
        )


# =============================================================================
# Syntax Node Views
# =============================================================================


class SyntaxNode:
    """
    A node record seen at an absolute position in a particular tree.

    Views are cheap and created on demand; the identity of the underlying
    record is its `handle`.
    """

    __slots__ = ("tree", "handle", "start", "parent")

    def __init__(
        self,
        tree: "Tree",
        handle: int,
        start: int,
        parent: Optional["SyntaxNode"] = None,
    ):
        self.tree = tree
        self.handle = handle
        self.start = start
        self.parent = parent

    @property
    def data(self) -> NodeData:
        return self.tree.arena[self.handle]

    @property
    def kind(self) -> NodeKind:
        return self.data.kind

    @property
    def end(self) -> int:
        return self.start + self.data.width

    @property
    def text(self) -> str:
        data = self.data
        if data.text is not None:
            return data.text
        return self.tree.source[self.start : self.end]

    @property
    def byte_range(self) -> tuple[int, int]:
        """The node's span as UTF-8 byte offsets."""
        index = self.tree.line_index
        return index.byte_offset(self.start), index.byte_offset(self.end)

    @property
    def error(self) -> Optional[ErrorKind]:
        return self.data.error

    @property
    def is_error(self) -> bool:
        return self.data.kind == NodeKind.ERROR

    @property
    def is_missing(self) -> bool:
        return self.data.kind == NodeKind.MISSING

    @property
    def has_error(self) -> bool:
        return self.data.has_error

    @property
    def is_leaf(self) -> bool:
        return self.data.is_leaf

    @property
    def is_trivia(self) -> bool:
        return self.data.kind in TRIVIA_KINDS

    @property
    def children(self) -> list["SyntaxNode"]:
        arena = self.tree.arena
        result = []
        offset = self.start
        for handle in self.data.children:
            result.append(SyntaxNode(self.tree, handle, offset, self))
            offset += arena[handle].width
        return result

    @property
    def named_children(self) -> list["SyntaxNode"]:
        """Children other than whitespace and punctuation."""
        return [
            c
            for c in self.children
            if c.kind != NodeKind.WHITESPACE and c.kind not in PUNCTUATION_KINDS
        ]

    @property
    def datums(self) -> list["SyntaxNode"]:
        """Children that occupy datum positions (error nodes included)."""
        return [c for c in self.named_children if c.kind not in COMMENT_KINDS]

    @property
    def dotted_tail(self) -> Optional["SyntaxNode"]:
        """The tail of an improper list `(a . b)`, if this is one."""
        if self.kind != NodeKind.LIST:
            return None
        children = self.children
        dots = [i for i, c in enumerate(children) if c.kind == NodeKind.DOT]
        if len(dots) != 1:
            return None
        for child in children[dots[0] + 1 :]:
            if child.kind in ATOM_KINDS or child.kind in COMPOUND_KINDS:
                return child
        return None

    def walk(self) -> Iterator["SyntaxNode"]:
        """Yield this node and all descendants in source order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> Iterator["SyntaxNode"]:
        for node in self.walk():
            if node.is_leaf:
                yield node

    def descendant_at(self, offset: int) -> "SyntaxNode":
        """The deepest node whose span contains offset (end exclusive)."""
        node = self
        while True:
            for child in node.children:
                if child.start <= offset < child.end:
                    node = child
                    break
            else:
                return node

    def to_sexp(self) -> str:
        """Render the named structure, e.g. `(source (list (number "1")))`."""
        kind = self.kind.value
        if self.is_leaf:
            if self.is_error and self.error is not None:
                return f"(error {self.error.value} {json.dumps(self.text)})"
            return f"({kind} {json.dumps(self.text)})"
        parts = [kind]
        if self.error is not None:
            parts.append(self.error.value)
        parts.extend(c.to_sexp() for c in self.named_children)
        return "(" + " ".join(parts) + ")"

    def __repr__(self):
        return f"<SyntaxNode {self.kind.value} [{self.start}, {self.end})>"


__all__ = [
    "NodeKind",
    "TRIVIA_KINDS",
    "COMMENT_KINDS",
    "ATOM_KINDS",
    "PUNCTUATION_KINDS",
    "SEQUENCE_KINDS",
    "COMPOUND_KINDS",
    "WRAPPER_KINDS",
    "PREFIX_FORMS",
    "sequence_kind",
    "Token",
    "NodeData",
    "NodeArena",
    "SyntaxNode",
]
