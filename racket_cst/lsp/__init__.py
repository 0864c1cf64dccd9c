"""
racket_cst.lsp - Language Server Protocol implementation for Racket

This package provides a syntax-level LSP server, enabling editor
integration for features like:
- Diagnostics (reader errors)
- Document symbols
- Folding ranges
- Hover information

The LSP server communicates over stdio using JSON-RPC 2.0.
"""

from racket_cst.lsp.server import RacketLanguageServer

__all__ = ["RacketLanguageServer"]
