"""
Fuzz testing for incremental re-parsing.

Applies random insertions, deletions and replacements to random Racket
text (mostly malformed) and checks after every step that:
- the tree reproduces its source exactly
- the incrementally re-parsed tree equals a full parse of the new text
- older tree versions still see their own text and structure
"""

import random

from racket_cst import ReaderConfig, parse

from .fuzz import Fuzzer, random_fragment, random_source


class EditFuzzer(Fuzzer):
    """Fuzzer for Tree.edit and reparse."""

    name = "incremental edits"

    def __init__(self):
        super().__init__()
        self.source = ""
        self.tree = parse("")
        self.config = ReaderConfig()
        # (tree, source, sexp) snapshots of earlier versions
        self.old_versions: list = []

    def reset(self):
        self.config = ReaderConfig(
            max_depth=random.choice([4, 50, 200]),
            strict_delimiters=random.random() < 0.3,
            infix_dots=random.random() < 0.7,
        )
        self.source = random_source()
        self.tree = parse(self.source, self.config)
        self.old_versions = []

    def save_version(self):
        """Save the current version for later persistence checks."""
        if len(self.old_versions) < 5:
            self.old_versions.append((self.tree, self.source, self.tree.to_sexp()))

    def _random_range(self) -> tuple[int, int]:
        n = len(self.source)
        start = random.randint(0, n)
        end = min(n, start + random.randint(0, 8))
        return start, end

    def _apply(self, start: int, end: int, inserted: str):
        if random.random() < 0.1:
            self.save_version()
        self.tree = self.tree.replace(start, end, inserted)
        self.source = self.source[:start] + inserted + self.source[end:]

    def do_insert(self):
        start = random.randint(0, len(self.source))
        self._apply(start, start, random_fragment())
        self.record_op("insert")

    def do_insert_char(self):
        start = random.randint(0, len(self.source))
        self._apply(start, start, random.choice("()[]\"|#;. \nx1\\'"))
        self.record_op("insert_char")

    def do_delete(self):
        start, end = self._random_range()
        self._apply(start, end, "")
        self.record_op("delete")

    def do_replace(self):
        start, end = self._random_range()
        self._apply(start, end, random_fragment())
        self.record_op("replace")

    def do_noop(self):
        start = random.randint(0, len(self.source))
        self._apply(start, start, "")
        self.record_op("noop")

    def do_random_operation(self):
        ops = [
            (self.do_insert, 30),
            (self.do_insert_char, 25),
            (self.do_delete, 25),
            (self.do_replace, 15),
            (self.do_noop, 5),
        ]
        total = sum(w for _, w in ops)
        r = random.randint(1, total)
        cumulative = 0
        for op, weight in ops:
            cumulative += weight
            if r <= cumulative:
                op()
                return

    def check_invariants(self):
        assert self.tree.source == self.source, "tree source out of sync"
        text = self.tree.text()
        assert text == self.source, f"round trip failed: {text!r} != {self.source!r}"

        full = parse(self.source, self.config)
        assert self.tree.equivalent(full), (
            f"incremental tree differs from a full parse of {self.source!r}:\n"
            f"  incremental: {self.tree.to_sexp()}\n"
            f"  full:        {full.to_sexp()}"
        )

        for old_tree, old_source, old_sexp in self.old_versions:
            assert old_tree.text() == old_source, "old version text changed"
            assert old_tree.to_sexp() == old_sexp, "old version structure changed"

    def get_stats(self):
        return {
            "Final length": len(self.source),
            "Top-level items": len(self.tree.top_level()),
            "Arena size": len(self.tree.arena),
        }
