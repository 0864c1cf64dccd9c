"""
racket_cst.lines - Converting between offsets and line positions

Offsets everywhere in racket_cst are code-point offsets into a str. This
module maps them to zero-based (row, column) points, to UTF-8 byte offsets
and to UTF-16 columns (what LSP clients count in), and splits ranges that
cross newlines into per-line ranges for display.
"""

import bisect
from typing import Iterable, NamedTuple


class Point(NamedTuple):
    """A zero-based (row, column) position; column counts code points."""

    row: int
    column: int


class LineRange(NamedTuple):
    """A range within a single line: columns [start, end)."""

    row: int
    start: int
    end: int


class LineIndex:
    """
    Start offsets of every line in a text, for fast position lookups.

    Only `\\n` ends a line; a `\\r` before it belongs to the line's content.
    """

    def __init__(self, text: str):
        self.text = text
        starts = [0]
        i = text.find("\n")
        while i >= 0:
            starts.append(i + 1)
            i = text.find("\n", i + 1)
        self.starts = starts
        self._ascii = text.isascii()

    @property
    def line_count(self) -> int:
        return len(self.starts)

    @property
    def max_row(self) -> int:
        return len(self.starts) - 1

    def line(self, row: int) -> str:
        """The text of a row without its newline."""
        start = self.starts[row]
        end = self.starts[row + 1] - 1 if row + 1 < len(self.starts) else len(self.text)
        return self.text[start:end]

    def line_length(self, row: int) -> int:
        return len(self.line(row))

    def position(self, offset: int) -> Point:
        """Map an offset to a Point. Offsets past the end clamp to EOF."""
        offset = max(0, min(offset, len(self.text)))
        row = bisect.bisect_right(self.starts, offset) - 1
        return Point(row, offset - self.starts[row])

    def offset(self, point: Point) -> int:
        """Map a Point back to an offset, clamping the column to its line."""
        row, column = point
        if row < 0:
            return 0
        if row >= len(self.starts):
            return len(self.text)
        return self.starts[row] + max(0, min(column, self.line_length(row)))

    def byte_offset(self, offset: int) -> int:
        if self._ascii:
            return offset
        return len(self.text[:offset].encode("utf-8"))

    def from_byte_offset(self, byte_offset: int) -> int:
        if self._ascii:
            return byte_offset
        prefix = self.text.encode("utf-8")[:byte_offset]
        return len(prefix.decode("utf-8", errors="ignore"))

    # =========================================================================
    # UTF-16 columns (LSP)
    # =========================================================================

    def utf16_position(self, offset: int) -> Point:
        row, column = self.position(offset)
        if self._ascii:
            return Point(row, column)
        start = self.starts[row]
        return Point(row, _utf16_len(self.text[start : start + column]))

    def offset_from_utf16(self, row: int, character: int) -> int:
        if row >= len(self.starts):
            return len(self.text)
        if self._ascii:
            return self.offset(Point(row, character))
        units = 0
        column = 0
        for ch in self.line(row):
            if units >= character:
                break
            units += 2 if ord(ch) > 0xFFFF else 1
            column += 1
        return self.starts[row] + column

    # =========================================================================
    # Ranges
    # =========================================================================

    def split_range(self, start: int, end: int) -> list[LineRange]:
        """
        Split an absolute range into ranges that each lie on one line.

        Middle lines are covered entirely, without their newline.
        """
        first = self.position(start)
        last = self.position(end)
        if first.row == last.row:
            return [LineRange(first.row, first.column, last.column)]
        ranges = [LineRange(first.row, first.column, self.line_length(first.row))]
        for row in range(first.row + 1, last.row):
            ranges.append(LineRange(row, 0, self.line_length(row)))
        ranges.append(LineRange(last.row, 0, last.column))
        return ranges

    def split_ranges(self, ranges: Iterable[tuple[int, int]]) -> list[LineRange]:
        result = []
        for start, end in ranges:
            result.extend(self.split_range(start, end))
        return result

    def rows_of(self, ranges: Iterable[tuple[int, int]]) -> list[int]:
        """The distinct rows touched by ranges, in first-seen order."""
        seen = set()
        rows = []
        for line_range in self.split_ranges(ranges):
            if line_range.row not in seen:
                seen.add(line_range.row)
                rows.append(line_range.row)
        return rows


def _utf16_len(text: str) -> int:
    return sum(2 if ord(ch) > 0xFFFF else 1 for ch in text)


def context_lines(rows: Iterable[int], context: int, max_row: int) -> list[int]:
    """
    Expand sorted rows with `context` rows on either side.

    The result is ascending without duplicates, clamped to [0, max_row].
    """
    result: list[int] = []
    for row in rows:
        earliest = max(0, row - context)
        latest = min(row + context, max_row)
        for i in range(earliest, latest + 1):
            if not result or i > result[-1]:
                result.append(i)
    return result


def enforce_length(text: str, width: int) -> str:
    """Pad short lines and truncate long ones so every line has `width`."""
    out = []
    for line in text.splitlines():
        out.append(line[:width].ljust(width) + "\n")
    return "".join(out)


__all__ = [
    "Point",
    "LineRange",
    "LineIndex",
    "context_lines",
    "enforce_length",
]
