#!/usr/bin/env python3
"""Base fuzzing framework for racket-cst.

This module provides a base class for fuzz tests and a runner to execute them.

Usage:
    python -m tests.fuzzing.fuzz [--examples N] [--steps N] [--seed N] [pattern...]

Example:
    python -m tests.fuzzing.fuzz                    # Run all fuzz tests
    python -m tests.fuzzing.fuzz edit               # Run tests matching 'edit'
    python -m tests.fuzzing.fuzz --examples 5000    # Run with custom params
"""

import abc
import argparse
import gc
import importlib
import random
import resource
import sys
import time
from pathlib import Path
from typing import Any

# Pieces of Racket source, valid and invalid, that random texts are made of
FRAGMENTS = [
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    " ",
    "  ",
    "\n",
    "\t",
    "define",
    "x",
    "lambda",
    "42",
    "-1/2",
    "1.5e3",
    "+inf.0",
    "#x1F",
    "#x1G",
    "1+2i",
    ".",
    " . ",
    "'",
    "`",
    ",",
    ",@",
    "#'",
    "#&",
    "#;",
    "#|",
    "|#",
    "; note",
    '"',
    '"str"',
    '"a\\"b"',
    "\\",
    "#\\a",
    "#\\space",
    "#\\(",
    "#t",
    "#false",
    "#:kw",
    "#(",
    "#hash(",
    "#vu8(",
    "#s(",
    "#0=",
    "#0#",
    '#rx"a+"',
    '#"bytes"',
    "|pipe sym|",
    "#lang racket",
    "#<<EOS\nhere\nEOS\n",
    "#%app",
    "λ",
    "😀",
]


def get_mem_mb() -> float:
    """Get peak RSS memory in MB."""
    return resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024


def random_fragment() -> str:
    return random.choice(FRAGMENTS)


def random_source(max_fragments: int = 30) -> str:
    """Generate a random (usually malformed) piece of Racket source."""
    return "".join(random_fragment() for _ in range(random.randint(0, max_fragments)))


class Fuzzer(abc.ABC):
    """Base class for fuzz tests.

    Subclasses must implement:
        - name: class attribute with the fuzzer name
        - reset(): reset state for a new example
        - do_random_operation(): perform one random operation
        - check_invariants(): verify state is correct

    Optionally override:
        - setup(): called once before running
        - teardown(): called once after running
        - get_stats(): return dict of stats to display
    """

    name: str = "unnamed"

    def __init__(self):
        self.operations = 0
        self.op_counts: dict[str, int] = {}

    def record_op(self, name: str):
        """Record that an operation was performed."""
        self.operations += 1
        self.op_counts[name] = self.op_counts.get(name, 0) + 1

    def setup(self):
        """Called once before running. Override if needed."""
        pass

    def teardown(self):
        """Called once after running. Override if needed."""
        pass

    @abc.abstractmethod
    def reset(self):
        """Reset state for a new example."""
        pass

    @abc.abstractmethod
    def do_random_operation(self):
        """Perform one random operation."""
        pass

    @abc.abstractmethod
    def check_invariants(self):
        """Verify that the current state is correct.

        Should raise AssertionError if invariants are violated.
        """
        pass

    def get_stats(self) -> dict[str, Any]:
        """Return additional stats to display. Override if needed."""
        return {}


class FuzzRunner:
    """Runs fuzz tests and reports results."""

    def __init__(
        self,
        examples: int = 1000,
        steps: int = 50,
        seed: int | None = None,
        quiet: bool = False,
    ):
        self.examples = examples
        self.steps = steps
        self.quiet = quiet

        if seed is not None:
            self.seed = seed
        else:
            self.seed = random.randint(0, 2**32)
        random.seed(self.seed)

    def _print(self, *args):
        if not self.quiet:
            print(*args)

    def run(self, fuzzer: Fuzzer) -> bool:
        """Run a fuzzer. Returns True if passed, False if failed."""
        self._print(f"Fuzz: {fuzzer.name}")
        self._print(f"  Examples: {self.examples:,}")
        self._print(f"  Steps per example: {self.steps}")
        self._print(f"  Seed: {self.seed}")
        self._print()

        start_time = time.time()
        last_print = start_time
        example = 0
        step = 0

        fuzzer.setup()

        try:
            for example in range(self.examples):
                fuzzer.reset()
                fuzzer.check_invariants()

                for step in range(self.steps):
                    fuzzer.do_random_operation()
                    fuzzer.check_invariants()

                # Progress output every second
                now = time.time()
                if now - last_print >= 1.0:
                    elapsed = now - start_time
                    rate = (example + 1) / elapsed
                    self._print(
                        f"[{elapsed:6.1f}s] "
                        f"ex:{example + 1:>6,} | "
                        f"ops:{fuzzer.operations:>8,} | "
                        f"{rate:>5.1f}/s | "
                        f"peak rss:{get_mem_mb():.0f}MB"
                    )
                    last_print = now

            elapsed = time.time() - start_time

            self._print()
            self._print(
                f"Completed {self.examples:,} examples, "
                f"{fuzzer.operations:,} operations in {elapsed:.1f}s"
            )
            self._print(f"  Operations: {fuzzer.op_counts}")
            for key, value in fuzzer.get_stats().items():
                self._print(f"  {key}: {value}")

            fuzzer.teardown()
            self._print()
            self._print("  PASSED")
            return True

        except AssertionError as e:
            # Failures are always reported, quiet or not
            print()
            print(f"FAILED {fuzzer.name} at example {example + 1}, step {step + 1}!")
            print(f"  Seed: {self.seed}")
            print(f"  Error: {e}")
            fuzzer.teardown()
            return False

        except KeyboardInterrupt:
            print()
            print(f"Interrupted at example {example + 1}")
            fuzzer.teardown()
            return False


def discover_fuzzers() -> list[type[Fuzzer]]:
    """Discover all Fuzzer subclasses in the fuzzing package."""
    fuzzers = []

    fuzzing_dir = Path(__file__).parent
    package = __name__.rsplit(".", 1)[0]

    for path in sorted(fuzzing_dir.glob("fuzz_*.py")):
        module_name = path.stem
        try:
            module = importlib.import_module(f"{package}.{module_name}")
        except ImportError as e:
            print(f"Warning: Could not import {module_name}: {e}")
            continue

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, type) and issubclass(attr, Fuzzer) and attr is not Fuzzer:
                fuzzers.append(attr)

    return fuzzers


def run_suite(
    examples: int = 1000,
    steps: int = 50,
    seed: int | None = None,
    patterns: list[str] | None = None,
) -> int:
    """Run the fuzz test suite.

    Args:
        examples: Number of examples per fuzzer
        steps: Steps per example
        seed: Random seed (None for random)
        patterns: Optional list of patterns to filter fuzzers by name

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    fuzzers = discover_fuzzers()

    if not fuzzers:
        print("No fuzzers found!")
        return 1

    if patterns:
        fuzzers = [
            fuzzer_cls
            for fuzzer_cls in fuzzers
            if any(p.lower() in fuzzer_cls.name.lower() for p in patterns)
        ]

    if not fuzzers:
        print("No fuzzers matched the given patterns!")
        return 1

    print(f"Running {len(fuzzers)} fuzzer(s)")
    print("=" * 60)
    print()

    results = []
    runner = FuzzRunner(examples=examples, steps=steps, seed=seed)

    for fuzzer_cls in fuzzers:
        fuzzer = fuzzer_cls()
        passed = runner.run(fuzzer)
        results.append((fuzzer.name, passed))
        print()
        print("=" * 60)
        print()
        gc.collect()

    print("Summary")
    print("-" * 40)

    passed = sum(1 for _, p in results if p)
    failed = sum(1 for _, p in results if not p)

    for name, result in results:
        status = "PASSED" if result else "FAILED"
        print(f"  {name}: {status}")

    print()
    print(f"Passed: {passed}, Failed: {failed}")

    return 0 if failed == 0 else 1


def main():
    parser = argparse.ArgumentParser(description="Run fuzz test suite")
    parser.add_argument(
        "--examples",
        "-n",
        type=int,
        default=1000,
        help="Number of examples per fuzzer (default: 1000)",
    )
    parser.add_argument(
        "--steps",
        "-s",
        type=int,
        default=50,
        help="Steps per example (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "patterns",
        nargs="*",
        help="Optional patterns to filter fuzzers by name",
    )
    args = parser.parse_args()

    sys.exit(
        run_suite(
            examples=args.examples,
            steps=args.steps,
            seed=args.seed,
            patterns=args.patterns if args.patterns else None,
        )
    )


if __name__ == "__main__":
    main()
