"""
racket_cst.reader.incremental - Re-parsing after an edit

An Edit describes one contiguous replacement: the text in [start, old_end)
of the old source became [start, new_end) of the new source.

reparse() works at the granularity of top-level items (the children of the
root `source` node). It re-reads from the first item touching the edit, or
from the item before it when that item ends at most one character before
the edit in a token that may have looked ahead: classifying a run, a
character literal or the token after a dangling prefix looks up to two
characters past the item's end. Items ending in `)`, a closing quote or
`|#` never look ahead. Re-reading stops as soon as its cursor lands on the
shifted start of an old item lying entirely after the edit; from there on
the old item handles are reused unchanged. Because records store widths
rather than offsets, reused items are simply seen at their shifted
positions in the new tree.

If re-reading never lines up with an old boundary (an edit opened a string
or a block comment that now runs to the end), it continues to EOF, so the
result is always identical to a full parse of the new text.
"""

from dataclasses import dataclass
from typing import Optional, Union

from racket_cst.lines import LineIndex, Point
from racket_cst.reader.nodes import NodeArena, NodeKind
from racket_cst.reader.parser import Reader
from racket_cst.reader.tree import Tree

# Last leaves whose token ends at a closing character, without lookahead
_CLOSED_ENDS = frozenset(
    {
        NodeKind.CLOSE,
        NodeKind.STRING,
        NodeKind.BYTE_STRING,
        NodeKind.REGEXP,
        NodeKind.BLOCK_COMMENT_CLOSE,
    }
)


def _last_leaf_kind(arena: NodeArena, handle: int) -> NodeKind:
    data = arena[handle]
    while data.children:
        data = arena[data.children[-1]]
    return data.kind


@dataclass(frozen=True)
class Edit:
    """A single text replacement, in code-point offsets."""

    start: int
    old_end: int
    new_end: int
    start_point: Optional[Point] = None
    old_end_point: Optional[Point] = None
    new_end_point: Optional[Point] = None

    def __post_init__(self):
        if self.start < 0 or self.old_end < self.start or self.new_end < self.start:
            raise ValueError(
                f"invalid edit: start={self.start} old_end={self.old_end} "
                f"new_end={self.new_end}"
            )

    @property
    def delta(self) -> int:
        return self.new_end - self.old_end

    def shift(self, offset: int) -> int:
        """Map an old offset at or after old_end to its new position."""
        return offset + self.delta if offset >= self.old_end else offset

    @classmethod
    def replacement(
        cls, old_text: str, start: int, end: int, inserted: str
    ) -> tuple["Edit", str]:
        """Build the Edit and new text for replacing old_text[start:end]."""
        if not 0 <= start <= end <= len(old_text):
            raise ValueError(f"replacement range {start}:{end} is out of bounds")
        new_text = old_text[:start] + inserted + old_text[end:]
        old_index = LineIndex(old_text)
        new_end = start + len(inserted)
        edit = cls(
            start,
            end,
            new_end,
            old_index.position(start),
            old_index.position(end),
            LineIndex(new_text).position(new_end),
        )
        return edit, new_text

    @classmethod
    def from_points(
        cls, old_text: str, start: Point, end: Point, inserted: str
    ) -> tuple["Edit", str]:
        """Like replacement(), with the range given as (row, column) points."""
        index = LineIndex(old_text)
        return cls.replacement(old_text, index.offset(start), index.offset(end), inserted)


def reparse(tree: Tree, new_source: Union[str, bytes], edit: Edit) -> Tree:
    """
    Produce the tree for new_source, reusing unaffected items of tree.

    The old tree is left untouched. Raises ValueError if the edit does not
    describe how the old source became new_source.
    """
    if isinstance(new_source, bytes):
        new_source = new_source.decode("utf-8")
    old_length = len(tree.source)
    if edit.old_end > old_length:
        raise ValueError(f"edit ends at {edit.old_end}, past the old text ({old_length})")
    expected = old_length - (edit.old_end - edit.start) + (edit.new_end - edit.start)
    if len(new_source) != expected:
        raise ValueError(
            f"edit does not match the new text: expected {expected} characters, "
            f"got {len(new_source)}"
        )

    root = tree.root
    if root.kind != NodeKind.SOURCE or tree.root_start != 0:
        raise ValueError("only whole-source trees can be re-parsed")
    items = root.children

    first = 0
    while first < len(items) and items[first].end < edit.start:
        first += 1
    if first > 0:
        before = items[first - 1]
        if before.end + 1 >= edit.start and (
            _last_leaf_kind(tree.arena, before.handle) not in _CLOSED_ENDS
        ):
            first -= 1

    # New offset -> index of the old item that may be resumed there
    resume_at = {}
    for k in range(first + 1, len(items)):
        if items[k].start >= edit.old_end:
            resume_at[items[k].start + edit.delta] = k

    reader = Reader(new_source, tree.arena, tree.config)
    reader.pos = items[first].start if first < len(items) else 0
    fresh = []
    tail: list[int] = []
    while not reader.eof():
        k = resume_at.get(reader.pos)
        if k is not None:
            tail = [item.handle for item in items[k:]]
            break
        fresh.append(reader.read_toplevel())

    children = [item.handle for item in items[:first]] + fresh + tail
    new_root = tree.arena.branch(NodeKind.SOURCE, children)
    return Tree(new_source, tree.arena, new_root, tree.config)


__all__ = ["Edit", "reparse"]
