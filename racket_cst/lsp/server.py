"""
racket_cst.lsp.server - Racket Language Server

A syntax-level language server. Every open document keeps its current
Tree; incremental didChange events are applied with Tree.edit, so only the
top-level forms touched by an edit are re-read.

Features:
- Incremental document synchronization
- Diagnostics from error nodes
- Document symbols for define, define-syntax, struct and module forms
- Folding ranges for multi-line compounds and block comments
- Hover showing the node kind (and number classification)

Usage:
    The server is started via `racket-cst lsp` and communicates over stdio.
"""

import sys
import traceback
from dataclasses import dataclass, field
from typing import Any, Optional

from racket_cst.config import ReaderConfig
from racket_cst.lsp.protocol import (
    DiagnosticSeverity,
    ErrorCode,
    FoldingRangeKind,
    JsonRpcError,
    JsonRpcProtocol,
    SymbolKind,
    TextDocumentSyncKind,
    make_diagnostic,
    make_document_symbol,
    make_folding_range,
    make_hover,
    make_range,
    path_to_uri,
    uri_to_path,
)
from racket_cst.reader import Edit, NodeKind, SyntaxNode, Tree, parse
from racket_cst.reader.errors import ErrorKind
from racket_cst.reader.nodes import PUNCTUATION_KINDS, SEQUENCE_KINDS
from racket_cst.reader.numbers import classify_number

# Head symbol -> kind of the symbol it defines
DEFINITION_FORMS = {
    "define": SymbolKind.VARIABLE,
    "define-values": SymbolKind.VARIABLE,
    "define/contract": SymbolKind.VARIABLE,
    "define-syntax": SymbolKind.OPERATOR,
    "define-syntax-rule": SymbolKind.OPERATOR,
    "define-syntaxes": SymbolKind.OPERATOR,
    "struct": SymbolKind.STRUCT,
    "define-struct": SymbolKind.STRUCT,
}

MODULE_FORMS = frozenset({"module", "module*", "module+"})


@dataclass
class TextDocument:
    """An open text document and its current syntax tree."""

    uri: str
    language_id: str
    version: int
    tree: Tree

    @property
    def path(self) -> str:
        return uri_to_path(self.uri)

    @property
    def content(self) -> str:
        return self.tree.source

    def offset_at(self, position: dict[str, Any]) -> int:
        """Convert an LSP position (UTF-16 character) to an offset."""
        return self.tree.line_index.offset_from_utf16(
            position.get("line", 0), position.get("character", 0)
        )

    def range_of(self, start: int, end: int) -> dict[str, Any]:
        index = self.tree.line_index
        start_row, start_col = index.utf16_position(start)
        end_row, end_col = index.utf16_position(end)
        return make_range(start_row, start_col, end_row, end_col)

    def apply_change(self, change: dict[str, Any]) -> None:
        """Apply one contentChanges entry, incrementally when it has a range."""
        text = change.get("text", "")
        range_ = change.get("range")
        if range_ is None:
            self.tree = parse(text, self.tree.config)
            return
        start = self.offset_at(range_["start"])
        end = self.offset_at(range_["end"])
        if end < start:
            start, end = end, start
        edit, new_source = Edit.replacement(self.content, start, end, text)
        self.tree = self.tree.edit(new_source, edit)


@dataclass
class RacketLanguageServer:
    """Language Server Protocol implementation for Racket source files."""

    protocol: JsonRpcProtocol = field(default_factory=JsonRpcProtocol)

    # Open documents: uri -> TextDocument
    documents: dict[str, TextDocument] = field(default_factory=dict)

    config: ReaderConfig = field(default_factory=ReaderConfig)

    initialized: bool = False
    shutdown_requested: bool = False

    root_uri: Optional[str] = None
    root_path: Optional[str] = None

    log_file: Any = None

    def __post_init__(self):
        self.protocol.on_error = self._handler_failed
        self._register_handlers()

    def _log(self, message: str) -> None:
        if self.log_file:
            self.log_file.write(f"{message}\n")
            self.log_file.flush()
        # LSP clients capture stderr into their output panel
        print(f"[racket-cst-lsp] {message}", file=sys.stderr)
        sys.stderr.flush()

    def _handler_failed(self, method: str, error: BaseException) -> None:
        self._log(f"{method} failed: {error}")
        if self.log_file:
            traceback.print_exception(error, file=self.log_file)

    def _register_handlers(self) -> None:
        # Lifecycle
        self.protocol.register_request_handler("initialize", self._handle_initialize)
        self.protocol.register_notification_handler(
            "initialized", self._handle_initialized
        )
        self.protocol.register_request_handler("shutdown", self._handle_shutdown)
        self.protocol.register_notification_handler("exit", self._handle_exit)

        # Text document synchronization
        self.protocol.register_notification_handler(
            "textDocument/didOpen", self._handle_did_open
        )
        self.protocol.register_notification_handler(
            "textDocument/didChange", self._handle_did_change
        )
        self.protocol.register_notification_handler(
            "textDocument/didClose", self._handle_did_close
        )
        self.protocol.register_notification_handler(
            "textDocument/didSave", self._handle_did_save
        )

        # Language features
        self.protocol.register_request_handler("textDocument/hover", self._handle_hover)
        self.protocol.register_request_handler(
            "textDocument/documentSymbol", self._handle_document_symbol
        )
        self.protocol.register_request_handler(
            "textDocument/foldingRange", self._handle_folding_range
        )

    # =========================================================================
    # Lifecycle Methods
    # =========================================================================

    def _handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        self._log("Received initialize request")

        self.root_uri = params.get("rootUri")
        if self.root_uri:
            self.root_path = uri_to_path(self.root_uri)
        else:
            # rootPath is deprecated but some clients still only send it
            self.root_path = params.get("rootPath")
            if self.root_path:
                self.root_uri = path_to_uri(self.root_path)

        self._log(f"Workspace root: {self.root_path}")
        self._load_config()

        return {
            "capabilities": {
                "textDocumentSync": {
                    "openClose": True,
                    "change": TextDocumentSyncKind.INCREMENTAL,
                    "save": {"includeText": True},
                },
                "hoverProvider": True,
                "documentSymbolProvider": True,
                "foldingRangeProvider": True,
            },
            "serverInfo": {
                "name": "racket-cst-lsp",
                "version": "0.1.0",
            },
        }

    def _handle_initialized(self, params: dict[str, Any]) -> None:
        self._log("Server initialized")
        self.initialized = True

    def _handle_shutdown(self, params: dict[str, Any]) -> None:
        self._log("Shutdown requested")
        self.shutdown_requested = True
        return None

    def _handle_exit(self, params: dict[str, Any]) -> None:
        self._log("Exit notification received")
        sys.exit(0 if self.shutdown_requested else 1)

    def _load_config(self) -> None:
        """Load .racket-cst.rktd from the workspace root, if there is one."""
        if not self.root_path:
            return
        try:
            self.config = ReaderConfig.load(self.root_path)
        except (OSError, ValueError) as e:
            self._log(f"Ignoring reader config: {e}")
            self.config = ReaderConfig()
            return
        if self.config.path:
            self._log(f"Reader config: {self.config.path}")

    # =========================================================================
    # Document Synchronization
    # =========================================================================

    def _handle_did_open(self, params: dict[str, Any]) -> None:
        text_document = params.get("textDocument", {})
        uri = text_document.get("uri", "")

        self._log(f"Document opened: {uri}")

        doc = TextDocument(
            uri=uri,
            language_id=text_document.get("languageId", "racket"),
            version=text_document.get("version", 0),
            tree=parse(text_document.get("text", ""), self.config),
        )
        self.documents[uri] = doc
        self._validate_document(doc)

    def _handle_did_change(self, params: dict[str, Any]) -> None:
        text_document = params.get("textDocument", {})
        uri = text_document.get("uri", "")

        doc = self.documents.get(uri)
        if doc is None:
            self._log(f"Warning: didChange for unknown document: {uri}")
            return

        # Changes apply in order, each to the result of the previous one
        for change in params.get("contentChanges", []):
            doc.apply_change(change)
        doc.version = text_document.get("version", doc.version)

        self._validate_document(doc)

    def _handle_did_close(self, params: dict[str, Any]) -> None:
        uri = params.get("textDocument", {}).get("uri", "")

        self._log(f"Document closed: {uri}")
        self.documents.pop(uri, None)
        self._publish_diagnostics(uri, [])

    def _handle_did_save(self, params: dict[str, Any]) -> None:
        uri = params.get("textDocument", {}).get("uri", "")
        text = params.get("text")

        self._log(f"Document saved: {uri}")

        doc = self.documents.get(uri)
        if doc is not None and text is not None and text != doc.content:
            doc.tree = parse(text, self.config)
            self._validate_document(doc)

    def _document(self, params: dict[str, Any]) -> Optional[TextDocument]:
        uri = params.get("textDocument", {}).get("uri", "")
        return self.documents.get(uri)

    # =========================================================================
    # Language Features
    # =========================================================================

    def _handle_hover(self, params: dict[str, Any]) -> Optional[dict[str, Any]]:
        doc = self._document(params)
        if doc is None:
            return None
        if "position" not in params:
            raise JsonRpcError(ErrorCode.INVALID_PARAMS, "hover needs a position")

        offset = doc.offset_at(params["position"])
        if offset >= len(doc.content):
            return None
        node = doc.tree.node_at(offset)
        # Hovering a paren describes the form it belongs to
        while node.parent is not None and node.kind in PUNCTUATION_KINDS:
            node = node.parent
        if node.kind == NodeKind.SOURCE:
            return None

        return make_hover(describe_node(node), doc.range_of(node.start, node.end))

    def _handle_document_symbol(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        doc = self._document(params)
        if doc is None:
            return []
        return self._symbols_in(doc, doc.tree.root.datums)

    def _symbols_in(
        self, doc: TextDocument, forms: list[SyntaxNode]
    ) -> list[dict[str, Any]]:
        symbols = []
        for form in forms:
            symbol = self._definition_symbol(doc, form)
            if symbol is not None:
                symbols.append(symbol)
        return symbols

    def _definition_symbol(
        self, doc: TextDocument, form: SyntaxNode
    ) -> Optional[dict[str, Any]]:
        """Build a DocumentSymbol if form is a definition or submodule."""
        if form.kind != NodeKind.LIST:
            return None
        parts = form.datums
        if len(parts) < 2 or parts[0].kind != NodeKind.SYMBOL:
            return None
        head = parts[0].text
        range_ = doc.range_of(form.start, form.end)

        if head in MODULE_FORMS:
            name = parts[1]
            return make_document_symbol(
                name.text,
                SymbolKind.MODULE,
                range_,
                doc.range_of(name.start, name.end),
                detail=head,
                children=self._symbols_in(doc, parts[2:]),
            )

        if head not in DEFINITION_FORMS:
            return None
        kind = DEFINITION_FORMS[head]

        target = parts[1]
        if head in ("define-values", "define-syntaxes") and target.kind == NodeKind.LIST:
            names = [d for d in target.datums if d.kind == NodeKind.SYMBOL]
            if not names:
                return None
            target = names[0]
        # (define (f x) ...) and curried (define ((f a) b) ...)
        while target.kind == NodeKind.LIST and target.datums:
            if kind == SymbolKind.VARIABLE:
                kind = SymbolKind.FUNCTION
            target = target.datums[0]
        if target.kind != NodeKind.SYMBOL:
            return None

        children = None
        if kind == SymbolKind.STRUCT:
            children = self._struct_fields(doc, parts[2:])

        return make_document_symbol(
            target.text,
            kind,
            range_,
            doc.range_of(target.start, target.end),
            detail=head,
            children=children,
        )

    def _struct_fields(
        self, doc: TextDocument, parts: list[SyntaxNode]
    ) -> list[dict[str, Any]]:
        # (struct point (x y)) or (struct point3 point (z))
        for part in parts:
            if part.kind != NodeKind.LIST:
                continue
            fields = []
            for item in part.datums:
                name = item
                if item.kind == NodeKind.LIST and item.datums:
                    # [x #:mutable]
                    name = item.datums[0]
                if name.kind == NodeKind.SYMBOL:
                    fields.append(
                        make_document_symbol(
                            name.text,
                            SymbolKind.FIELD,
                            doc.range_of(item.start, item.end),
                            doc.range_of(name.start, name.end),
                        )
                    )
            return fields
        return []

    def _handle_folding_range(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        doc = self._document(params)
        if doc is None:
            return []

        index = doc.tree.line_index
        ranges = []
        for node in doc.tree.walk():
            kind = node.kind
            if kind == NodeKind.BLOCK_COMMENT and node.parent is not None:
                if node.parent.kind == NodeKind.BLOCK_COMMENT:
                    continue
                fold_kind: Optional[str] = FoldingRangeKind.COMMENT
            elif kind in SEQUENCE_KINDS:
                fold_kind = None
            else:
                continue
            start_row = index.position(node.start).row
            end_row = index.position(node.end).row
            if end_row > start_row:
                ranges.append(make_folding_range(start_row, end_row, fold_kind))
        return ranges

    # =========================================================================
    # Validation and Diagnostics
    # =========================================================================

    def _validate_document(self, doc: TextDocument) -> None:
        diagnostics = [
            make_diagnostic(
                range_=doc.range_of(*diagnostic_span(node)),
                message=diagnostic_message(node),
                severity=DiagnosticSeverity.ERROR,
                code=node.error.value if node.error is not None else None,
            )
            for node in doc.tree.errors()
        ]
        self._publish_diagnostics(doc.uri, diagnostics)

    def _publish_diagnostics(self, uri: str, diagnostics: list[dict[str, Any]]) -> None:
        self.protocol.send_notification(
            "textDocument/publishDiagnostics",
            {"uri": uri, "diagnostics": diagnostics},
        )

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    def run(self) -> None:
        self._log("Racket CST Language Server starting")

        try:
            self.protocol.run()
        except KeyboardInterrupt:
            self._log("Interrupted")
        finally:
            self._log("Server stopped")


def diagnostic_span(node: SyntaxNode) -> tuple[int, int]:
    """The part of an error node worth underlining."""
    if node.error == ErrorKind.UNCLOSED_DELIMITER:
        opener = node.children[0]
        return opener.start, opener.end
    return node.start, node.end


def diagnostic_message(node: SyntaxNode) -> str:
    if node.is_missing:
        return "expected a datum"
    if node.error is None:
        return "syntax error"
    if node.error == ErrorKind.UNCLOSED_DELIMITER:
        return f"`{node.children[0].text}` is never closed"
    return node.error.message


def describe_node(node: SyntaxNode) -> str:
    """Markdown hover text for a node."""
    lines = [f"**{node.kind.value}**"]
    if node.kind == NodeKind.NUMBER:
        info = classify_number(node.text)
        if info is not None:
            exactness = "exact" if info.exact else "inexact"
            lines.append(f"{exactness} {info.category.value}, radix {info.radix}")
    elif node.is_error and node.error is not None:
        lines.append(node.error.message)
    elif node.kind in SEQUENCE_KINDS:
        lines.append(f"{len(node.datums)} elements")
    return "\n\n".join(lines)


def start_server(log_path: Optional[str] = None) -> None:
    """
    Start the language server on stdio.

    Args:
        log_path: Optional path to a log file for debugging.
    """
    log_file = None
    if log_path:
        log_file = open(log_path, "w", encoding="utf-8")

    try:
        server = RacketLanguageServer(log_file=log_file)
        server.run()
    finally:
        if log_file:
            log_file.close()


__all__ = ["RacketLanguageServer", "TextDocument", "start_server"]
