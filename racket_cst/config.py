"""
racket_cst.config - Reader configuration loader

This module handles reader options and loading them from a
.racket-cst.rktd file. The file is Racket data, read with racket_cst's own
reader, holding an association list:

    ((max-depth . 100)
     (strict-delimiters . #t)
     (infix-dots . #f))

Two-element lists such as (max-depth 100) are accepted as well.
"""

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from racket_cst.reader.nodes import SyntaxNode

CONFIG_FILENAME = ".racket-cst.rktd"
DEFAULT_MAX_DEPTH = 200


def datum_to_python(node: "SyntaxNode") -> Any:
    """
    Convert a datum node to Python values for internal tooling use.

    - number -> int (exact integers) or float
    - string, character -> str
    - boolean -> bool
    - symbol -> str; keyword -> str (without the #:)
    - proper list or vector -> list
    - pair (a . b) -> tuple (a, b)
    - quote forms -> the quoted datum
    - hash -> dict
    """
    from racket_cst.reader import literals
    from racket_cst.reader.nodes import NodeKind

    kind = node.kind
    text = node.text
    if node.has_error:
        raise ValueError(f"malformed datum at offset {node.start}: {text!r}")
    if kind == NodeKind.NUMBER:
        try:
            return literals.integer_value(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                raise ValueError(f"unsupported number literal: {text}") from None
    if kind == NodeKind.STRING:
        return literals.string_value(text)
    if kind == NodeKind.CHARACTER:
        return literals.char_value(text)
    if kind == NodeKind.BOOLEAN:
        return literals.boolean_value(text)
    if kind == NodeKind.SYMBOL:
        return text
    if kind == NodeKind.KEYWORD:
        return text[2:]
    if kind in (NodeKind.QUOTE, NodeKind.QUASIQUOTE, NodeKind.BOX):
        return datum_to_python(node.datums[0])
    if kind == NodeKind.HASH:
        pairs = [datum_to_python(d) for d in node.datums]
        if not all(isinstance(p, tuple) and len(p) == 2 for p in pairs):
            raise ValueError(f"hash entries must be pairs at offset {node.start}")
        return dict(pairs)
    if kind == NodeKind.LIST and node.dotted_tail is not None:
        values = [datum_to_python(d) for d in node.datums]
        return tuple(values)
    if kind in (NodeKind.LIST, NodeKind.VECTOR):
        return [datum_to_python(d) for d in node.datums]
    raise ValueError(f"unsupported datum {kind.value} at offset {node.start}")


def find_config_file(start_path: Optional[str] = None) -> Optional[str]:
    """
    Find a .racket-cst.rktd by walking up directory trees.

    Args:
        start_path: File or directory to start from; defaults to the
                    current working directory.

    Returns:
        Absolute path of the config file, or None if there is none.
    """
    if start_path is None:
        current = os.getcwd()
    elif os.path.isfile(start_path):
        current = os.path.dirname(os.path.abspath(start_path))
    else:
        current = os.path.abspath(start_path)

    while True:
        config_file = os.path.join(current, CONFIG_FILENAME)
        if os.path.isfile(config_file):
            return config_file

        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


@dataclass
class ReaderConfig:
    """
    Options for the reader.

    Fields:
        max_depth: Deepest nesting of compounds before the rest of the input
                   becomes a nesting_too_deep error node
        strict_delimiters: Report `(a]` as a delimiter_mismatch instead of
                   accepting it
        infix_dots: Accept Racket's infix form `(a . op . b)`
        path: The file this config was loaded from, if any
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    strict_delimiters: bool = False
    infix_dots: bool = True
    path: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.max_depth, int) or isinstance(self.max_depth, bool):
            raise ValueError(f"max-depth must be an integer, got {self.max_depth!r}")
        if self.max_depth < 1:
            raise ValueError(f"max-depth must be positive, got {self.max_depth}")

    @classmethod
    def from_text(cls, text: str, path: Optional[str] = None) -> "ReaderConfig":
        """Parse config data. Raises ValueError for anything malformed."""
        from racket_cst.reader.tree import parse

        where = path or "<config>"
        tree = parse(text)
        if tree.has_errors():
            first = next(tree.errors())
            row, column = tree.line_index.position(first.start)
            raise ValueError(f"Failed to parse {where}:{row + 1}:{column + 1}")

        forms = tree.root.datums
        if not forms:
            return cls(path=path)
        if len(forms) > 1:
            raise ValueError(f"{where} must contain a single association list")

        entries = datum_to_python(forms[0])
        if not isinstance(entries, list):
            raise ValueError(
                f"{where} must contain an association list, got {type(entries).__name__}"
            )

        options: dict[str, Any] = {}
        for entry in entries:
            if isinstance(entry, tuple) and len(entry) == 2:
                key, value = entry
            elif isinstance(entry, list) and len(entry) == 2:
                key, value = entry
            else:
                raise ValueError(f"{where}: bad entry {entry!r}, expected (key . value)")
            if not isinstance(key, str):
                raise ValueError(f"{where}: keys must be symbols, got {key!r}")
            options[key] = value

        return cls._from_options(options, where, path)

    @classmethod
    def _from_options(
        cls, options: dict[str, Any], where: str, path: Optional[str]
    ) -> "ReaderConfig":
        known = {"max-depth", "strict-delimiters", "infix-dots"}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ValueError(f"{where}: unknown option {unknown[0]}")

        max_depth = options.get("max-depth", DEFAULT_MAX_DEPTH)
        strict = options.get("strict-delimiters", False)
        infix = options.get("infix-dots", True)

        if not isinstance(max_depth, int) or isinstance(max_depth, bool):
            raise ValueError(
                f"{where}: max-depth must be an integer, got {type(max_depth).__name__}"
            )
        if not isinstance(strict, bool):
            raise ValueError(
                f"{where}: strict-delimiters must be a boolean, got {type(strict).__name__}"
            )
        if not isinstance(infix, bool):
            raise ValueError(
                f"{where}: infix-dots must be a boolean, got {type(infix).__name__}"
            )

        return cls(
            max_depth=max_depth,
            strict_delimiters=strict,
            infix_dots=infix,
            path=path,
        )

    @classmethod
    def from_file(cls, path: str) -> "ReaderConfig":
        """Load a specific config file, whatever its name."""
        with open(path, encoding="utf-8") as f:
            content = f.read()
        return cls.from_text(content, os.path.abspath(path))

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ReaderConfig":
        """
        Load reader options.

        Args:
            path: A config file, or a file or directory to search upward
                  from. None searches from the current directory.

        Returns:
            The loaded ReaderConfig, or the defaults if no config file
            exists.

        Raises:
            FileNotFoundError: If path does not exist.
            ValueError: If the config file is invalid.
        """
        if path is not None and not os.path.exists(path):
            raise FileNotFoundError(f"Path does not exist: {path}")

        if path is not None and os.path.basename(path) == CONFIG_FILENAME:
            config_file: Optional[str] = os.path.abspath(path)
        else:
            config_file = find_config_file(path)
        if config_file is None:
            return cls()
        return cls.from_file(config_file)


def load_config(path: Optional[str] = None) -> ReaderConfig:
    """Convenience function to load a ReaderConfig."""
    return ReaderConfig.load(path)


__all__ = [
    "CONFIG_FILENAME",
    "ReaderConfig",
    "datum_to_python",
    "find_config_file",
    "load_config",
]
