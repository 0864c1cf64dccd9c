"""Fuzz testing suite for racket-cst."""

from .fuzz import Fuzzer, FuzzRunner, random_fragment, random_source, run_suite

__all__ = ["Fuzzer", "FuzzRunner", "random_fragment", "random_source", "run_suite"]
