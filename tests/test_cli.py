"""Tests for the racket-cst command line."""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout


def run_cli(*argv):
    """Run the CLI and return (exit status, stdout lines, stderr text)."""
    from racket_cst.cli import _main

    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        status = _main(list(argv))
    return status, out.getvalue().splitlines(), err.getvalue()


class TestParseCommand(unittest.TestCase):
    def test_sexp(self):
        status, lines, _ = run_cli("-c", "(a b)", "parse", "--sexp")
        self.assertEqual(status, 0)
        self.assertEqual(lines, ['(source (list (symbol "a") (symbol "b")))'])

    def test_code_alone_prints_outline(self):
        status, lines, _ = run_cli("-c", "(a)")
        self.assertEqual(status, 0)
        self.assertEqual(lines[0], "source [0, 3)")
        self.assertEqual(lines[1], "  list [0, 3)")
        self.assertEqual(lines[2], "    open [0, 1) '('")

    def test_outline_marks_errors(self):
        _, lines, _ = run_cli("-c", ")", "parse")
        self.assertEqual(lines[1], "  error [0, 1) unexpected_token")


class TestCheckCommand(unittest.TestCase):
    def test_reports_errors_with_context(self):
        status, lines, _ = run_cli("-c", "(1 . 2 3)\n)", "check")
        self.assertEqual(status, 1)
        self.assertEqual(
            lines,
            [
                "<string>:1:4: error: illegal use of `.` [malformed_dotted_pair]",
                ">    1 | (1 . 2 3)",
                "<string>:2:1: error: unexpected token [unexpected_token]",
                ">    2 | )",
            ],
        )

    def test_no_context(self):
        _, lines, _ = run_cli("-c", "(a", "check", "-C", "-1")
        self.assertEqual(
            lines, ["<string>:1:1: error: `(` is never closed [unclosed_delimiter]"]
        )

    def test_clean_source(self):
        status, lines, _ = run_cli("-c", "(a)", "check")
        self.assertEqual(status, 0)
        self.assertEqual(lines, [])

        status, lines, _ = run_cli("-c", "(a)", "check", "--verbose")
        self.assertEqual(status, 0)
        self.assertEqual(lines, ["<string>: ok"])


class TestTokensAndHighlight(unittest.TestCase):
    def test_tokens(self):
        status, lines, _ = run_cli("-c", "(a )", "tokens")
        self.assertEqual(status, 0)
        self.assertEqual(
            lines,
            [
                "1:1\topen\t'('",
                "1:2\tsymbol\t'a'",
                "1:3\twhitespace\t' '",
                "1:4\tclose\t')'",
            ],
        )

    def test_tokens_without_trivia(self):
        _, lines, _ = run_cli("-c", "(a )", "tokens", "--no-trivia")
        self.assertEqual(len(lines), 3)
        self.assertNotIn("whitespace", "\n".join(lines))

        _, lines, _ = run_cli("-c", "(a #| c |# #;b) ; end", "tokens", "--no-trivia")
        self.assertEqual(
            lines,
            [
                "1:1\topen\t'('",
                "1:2\tsymbol\t'a'",
                "1:14\tsymbol\t'b'",
                "1:15\tclose\t')'",
            ],
        )

    def test_highlight(self):
        status, lines, _ = run_cli("-c", "(a)", "highlight")
        self.assertEqual(status, 0)
        self.assertEqual(
            lines,
            ["    1 | (a)", "      | open@0-1 symbol@1-2 close@2-3"],
        )


class TestFilesAndErrors(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, text):
        path = os.path.join(self.root, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_check_files(self):
        good = self.write("good.rkt", "(define x 1)\n")
        bad = self.write("bad.rkt", "(define x\n")
        status, lines, _ = run_cli("check", good, bad)
        self.assertEqual(status, 1)
        self.assertEqual(len([l for l in lines if ": error: " in l]), 1)
        self.assertTrue(lines[0].startswith(f"{bad}:1:1: error: "))

    def test_config_file_next_to_source(self):
        from racket_cst.config import CONFIG_FILENAME

        self.write(CONFIG_FILENAME, "((strict-delimiters . #t))")
        source = self.write("main.rkt", "(a]")
        status, lines, _ = run_cli("check", source)
        self.assertEqual(status, 1)
        self.assertIn("[delimiter_mismatch]", lines[0])

    def test_explicit_config(self):
        config = self.write("strict.rktd", "((strict-delimiters . #t))")
        status, _, _ = run_cli("--config", config, "-c", "(a]", "check")
        self.assertEqual(status, 1)

    def test_bad_config(self):
        config = self.write("bad.rktd", "((colour . red))")
        status, _, err = run_cli("--config", config, "-c", "(a)", "check")
        self.assertEqual(status, 1)
        self.assertIn("Error in reader config", err)

    def test_missing_file(self):
        status, _, err = run_cli("check", os.path.join(self.root, "missing.rkt"))
        self.assertEqual(status, 1)
        self.assertIn("Error:", err)


class TestUsage(unittest.TestCase):
    def test_no_arguments(self):
        status, lines, _ = run_cli()
        self.assertEqual(status, 2)
        self.assertTrue(any("usage:" in line for line in lines))

    def test_command_without_input(self):
        status, _, err = run_cli("check")
        self.assertEqual(status, 2)
        self.assertIn("needs a FILE", err)

    def test_main_exits(self):
        from racket_cst.cli import main

        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["-c", "(a)", "check"])
        self.assertEqual(ctx.exception.code, 0)


if __name__ == "__main__":
    unittest.main()
