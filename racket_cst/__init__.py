"""
racket_cst - Lossless concrete syntax trees for Racket source

    >>> from racket_cst import parse
    >>> tree = parse("(define x '(1 . 2)) ; pair")
    >>> tree.text() == "(define x '(1 . 2)) ; pair"
    True
"""

from racket_cst.config import ReaderConfig
from racket_cst.reader import Edit, NodeKind, Tree, parse, parse_datum

__version__ = "0.1.0"

__all__ = ["ReaderConfig", "Edit", "NodeKind", "Tree", "parse", "parse_datum"]
