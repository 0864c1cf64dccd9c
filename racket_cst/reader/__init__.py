"""
racket_cst.reader - The Racket concrete syntax reader

This package reads `#lang racket` source text into lossless concrete syntax
trees.

Phases:
1. Classify (lexer.py): Text -> Tokens, with the ordered `#` dispatch
2. Read (parser.py): Tokens -> node records, trivia kept as siblings
3. Build (tree.py): node records -> Tree
4. Re-read (incremental.py): old Tree + Edit -> new Tree sharing subtrees
"""

from racket_cst.reader.errors import (
    ErrorKind,
    MalformedDottedPair,
    ReadError,
    UnexpectedToken,
    UnterminatedComment,
    UnterminatedLiteral,
)
from racket_cst.reader.incremental import Edit, reparse
from racket_cst.reader.lexer import Lexer, tokenize
from racket_cst.reader.nodes import (
    NodeArena,
    NodeData,
    NodeKind,
    SyntaxNode,
    Token,
)
from racket_cst.reader.numbers import NumberInfo, classify_number, is_number
from racket_cst.reader.parser import Reader, parse_datum
from racket_cst.reader.tree import Tree, parse

__all__ = [
    # Errors
    "ErrorKind",
    "ReadError",
    "UnterminatedLiteral",
    "UnterminatedComment",
    "UnexpectedToken",
    "MalformedDottedPair",
    # Nodes
    "NodeKind",
    "Token",
    "NodeData",
    "NodeArena",
    "SyntaxNode",
    # Main API
    "Lexer",
    "tokenize",
    "Reader",
    "parse",
    "parse_datum",
    "Tree",
    "Edit",
    "reparse",
    # Numbers
    "NumberInfo",
    "classify_number",
    "is_number",
]
