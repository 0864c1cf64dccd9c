"""
racket_cst.reader.tree - Concrete syntax trees

A Tree is a root handle, the arena holding its records, and the source text
it was read from. Trees are immutable: editing produces a new Tree that
shares the arena and the handles of every unaffected top-level item.
"""

from typing import TYPE_CHECKING, Iterator, Optional, Union

from racket_cst.config import ReaderConfig
from racket_cst.lines import LineIndex
from racket_cst.reader.nodes import NodeArena, SyntaxNode
from racket_cst.reader.parser import Reader

if TYPE_CHECKING:
    from racket_cst.reader.incremental import Edit


class Tree:
    def __init__(
        self,
        source: str,
        arena: NodeArena,
        root: int,
        config: Optional[ReaderConfig] = None,
        root_start: int = 0,
    ):
        self.source = source
        self.arena = arena
        self.root_handle = root
        self.config = config or ReaderConfig()
        self.root_start = root_start
        self._line_index: Optional[LineIndex] = None

    @property
    def root(self) -> SyntaxNode:
        return SyntaxNode(self, self.root_handle, self.root_start)

    @property
    def line_index(self) -> LineIndex:
        if self._line_index is None:
            self._line_index = LineIndex(self.source)
        return self._line_index

    def text(self) -> str:
        """Concatenate every leaf; equals the source for a whole-input tree."""
        return "".join(leaf.data.text for leaf in self.root.leaves())

    def has_errors(self) -> bool:
        return self.arena[self.root_handle].has_error

    def errors(self) -> Iterator[SyntaxNode]:
        """Yield the outermost error nodes (and missing nodes outside them)."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_error:
                yield node
                continue
            if node.is_missing:
                yield node
                continue
            if node.has_error:
                stack.extend(reversed(node.children))

    def walk(self) -> Iterator[SyntaxNode]:
        return self.root.walk()

    def leaves(self) -> Iterator[SyntaxNode]:
        return self.root.leaves()

    def top_level(self) -> list[SyntaxNode]:
        return self.root.children

    def node_at(self, offset: int) -> SyntaxNode:
        """The deepest node containing offset; the root for offsets at EOF."""
        return self.root.descendant_at(offset)

    def to_sexp(self) -> str:
        return self.root.to_sexp()

    def equivalent(self, other: "Tree") -> bool:
        """Structural equality: same kinds, texts and errors in the same shape."""
        return _same(self.arena, self.root_handle, other.arena, other.root_handle)

    def edit(self, new_source: Union[str, bytes], edit: "Edit") -> "Tree":
        from racket_cst.reader.incremental import reparse

        return reparse(self, new_source, edit)

    def replace(self, start: int, end: int, inserted: str) -> "Tree":
        """Replace source[start:end] with inserted and re-parse incrementally."""
        from racket_cst.reader.incremental import Edit, reparse

        edit, new_source = Edit.replacement(self.source, start, end, inserted)
        return reparse(self, new_source, edit)

    def __repr__(self):
        return f"<Tree {len(self.source)} chars, {len(self.top_level())} items>"


def _same(a: NodeArena, ha: int, b: NodeArena, hb: int) -> bool:
    stack = [(ha, hb)]
    while stack:
        x, y = stack.pop()
        if a is b and x == y:
            continue
        dx, dy = a[x], b[y]
        if (
            dx.kind != dy.kind
            or dx.width != dy.width
            or dx.text != dy.text
            or dx.error != dy.error
            or len(dx.children) != len(dy.children)
        ):
            return False
        stack.extend(zip(dx.children, dy.children))
    return True


def parse(
    source: Union[str, bytes],
    config: Optional[ReaderConfig] = None,
    arena: Optional[NodeArena] = None,
) -> Tree:
    """
    Parse source text into a Tree. Never raises on malformed source.

    Bytes are decoded as UTF-8.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8")
    reader = Reader(source, arena, config)
    root = reader.read_source()
    return Tree(source, reader.arena, root, reader.config)


__all__ = ["Tree", "parse"]
