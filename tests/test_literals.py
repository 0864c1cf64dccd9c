"""Tests for decoding literal tokens."""

import unittest


class TestStrings(unittest.TestCase):
    def test_escapes(self):
        from racket_cst.reader.literals import string_value

        self.assertEqual(string_value('"plain"'), "plain")
        self.assertEqual(string_value('"a\\nb\\t\\\\"'), "a\nb\t\\")
        self.assertEqual(string_value('"say \\"hi\\""'), 'say "hi"')
        self.assertEqual(string_value('"\\x41\\101"'), "AA")
        self.assertEqual(string_value('"\\u03BB\\U0001F600"'), "λ😀")

    def test_line_continuation(self):
        from racket_cst.reader.literals import string_value

        self.assertEqual(string_value('"ab\\\n    cd"'), "abcd")

    def test_malformed(self):
        from racket_cst.reader.literals import string_value

        for text in ['"\\q"', '"\\x"', "plain", '"']:
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    string_value(text)

    def test_byte_strings(self):
        from racket_cst.reader.literals import byte_string_value

        self.assertEqual(byte_string_value('#"ab\\0"'), b"ab\x00")
        self.assertEqual(byte_string_value('#"\\xff"'), b"\xff")
        with self.assertRaises(ValueError):
            byte_string_value('#"\\u03BB"')


class TestAtoms(unittest.TestCase):
    def test_characters(self):
        from racket_cst.reader.literals import char_value

        self.assertEqual(char_value("#\\a"), "a")
        self.assertEqual(char_value("#\\("), "(")
        self.assertEqual(char_value("#\\space"), " ")
        self.assertEqual(char_value("#\\Newline"), "\n")
        self.assertEqual(char_value("#\\u03BB"), "λ")
        self.assertEqual(char_value("#\\101"), "A")
        with self.assertRaises(ValueError):
            char_value("#\\spce")

    def test_booleans(self):
        from racket_cst.reader.literals import boolean_value

        self.assertIs(boolean_value("#t"), True)
        self.assertIs(boolean_value("#FALSE"), False)
        with self.assertRaises(ValueError):
            boolean_value("#x")

    def test_integers(self):
        from racket_cst.reader.literals import integer_value

        self.assertEqual(integer_value("42"), 42)
        self.assertEqual(integer_value("-7"), -7)
        self.assertEqual(integer_value("#x-1F"), -31)
        self.assertEqual(integer_value("#e#b101"), 5)
        for text in ["#i5", "1.5", "1/2", "1_000", "abc"]:
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    integer_value(text)


if __name__ == "__main__":
    unittest.main()
