"""Tests for offset/position conversion and line ranges."""

import unittest


class TestLineIndex(unittest.TestCase):
    def test_rows(self):
        from racket_cst.lines import LineIndex

        index = LineIndex("ab\ncd\n")
        self.assertEqual(index.starts, [0, 3, 6])
        self.assertEqual(index.line_count, 3)
        self.assertEqual(index.max_row, 2)
        self.assertEqual(index.line(0), "ab")
        self.assertEqual(index.line(1), "cd")
        self.assertEqual(index.line(2), "")

    def test_position_and_offset(self):
        from racket_cst.lines import LineIndex, Point

        index = LineIndex("ab\ncd\n")
        self.assertEqual(index.position(0), Point(0, 0))
        self.assertEqual(index.position(2), Point(0, 2))
        self.assertEqual(index.position(3), Point(1, 0))
        self.assertEqual(index.position(4), Point(1, 1))
        self.assertEqual(index.position(100), Point(2, 0))

        self.assertEqual(index.offset(Point(1, 1)), 4)
        self.assertEqual(index.offset(Point(1, 99)), 5)
        self.assertEqual(index.offset(Point(-1, 0)), 0)
        self.assertEqual(index.offset(Point(9, 0)), 6)

    def test_carriage_return_stays_on_its_line(self):
        from racket_cst.lines import LineIndex

        index = LineIndex("a\r\nb")
        self.assertEqual(index.line(0), "a\r")
        self.assertEqual(index.position(3).row, 1)

    def test_byte_offsets(self):
        from racket_cst.lines import LineIndex

        index = LineIndex("λx")
        self.assertEqual(index.byte_offset(1), 2)
        self.assertEqual(index.byte_offset(2), 3)
        self.assertEqual(index.from_byte_offset(2), 1)

        ascii_index = LineIndex("abc")
        self.assertEqual(ascii_index.byte_offset(2), 2)
        self.assertEqual(ascii_index.from_byte_offset(2), 2)

    def test_utf16(self):
        from racket_cst.lines import LineIndex, Point

        index = LineIndex("x\n😀y")
        self.assertEqual(index.utf16_position(2), Point(1, 0))
        self.assertEqual(index.utf16_position(3), Point(1, 2))
        self.assertEqual(index.utf16_position(4), Point(1, 3))
        self.assertEqual(index.offset_from_utf16(1, 2), 3)
        self.assertEqual(index.offset_from_utf16(1, 3), 4)
        self.assertEqual(index.offset_from_utf16(5, 0), 4)


class TestRanges(unittest.TestCase):
    def test_split_range(self):
        from racket_cst.lines import LineIndex, LineRange

        index = LineIndex("ab\ncd\nef")
        self.assertEqual(index.split_range(0, 1), [LineRange(0, 0, 1)])
        self.assertEqual(
            index.split_range(1, 7),
            [LineRange(0, 1, 2), LineRange(1, 0, 2), LineRange(2, 0, 1)],
        )

    def test_rows_of(self):
        from racket_cst.lines import LineIndex

        index = LineIndex("ab\ncd\nef")
        self.assertEqual(index.rows_of([(6, 7), (1, 4)]), [2, 0, 1])

    def test_context_lines(self):
        from racket_cst.lines import context_lines

        self.assertEqual(context_lines([3], 1, 10), [2, 3, 4])
        self.assertEqual(context_lines([0, 1], 2, 2), [0, 1, 2])
        self.assertEqual(context_lines([2, 8], 1, 9), [1, 2, 3, 7, 8, 9])
        self.assertEqual(context_lines([4], 0, 9), [4])

    def test_enforce_length(self):
        from racket_cst.lines import enforce_length

        self.assertEqual(enforce_length("abc\nd", 2), "ab\nd \n")


if __name__ == "__main__":
    unittest.main()
