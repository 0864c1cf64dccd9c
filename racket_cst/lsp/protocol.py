"""
racket_cst.lsp.protocol - JSON-RPC 2.0 framing for the language server

Handles:
- Message framing with Content-Length headers
- Dispatching requests and notifications to registered handlers
- Error responses with JSON-RPC error codes
- Builders for the LSP structures the server returns

Messages travel over stdio with HTTP-style headers:
    Content-Length: <length>\r\n
    \r\n
    <JSON body>
"""

import json
import os
import sys
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional, Union
from urllib.parse import quote, unquote

# =============================================================================
# JSON-RPC Error Codes
# =============================================================================


class ErrorCode(IntEnum):
    """JSON-RPC and LSP error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    SERVER_NOT_INITIALIZED = -32002
    UNKNOWN_ERROR_CODE = -32001

    REQUEST_CANCELLED = -32800
    CONTENT_MODIFIED = -32801


class JsonRpcError(Exception):
    """Exception representing a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


# =============================================================================
# Protocol Transport
# =============================================================================


class ProtocolReader:
    """Reads framed messages from a binary input stream."""

    def __init__(self, input_stream=None):
        self.input = input_stream or sys.stdin.buffer
        self._lock = threading.Lock()

    def read_message(self) -> Optional[dict[str, Any]]:
        """
        Read and parse a single message.

        Returns:
            The parsed JSON message, or None at EOF.

        Raises:
            JsonRpcError: If the headers or the body are malformed.
        """
        with self._lock:
            content_length = self._read_headers()
            if content_length is None:
                return None

            body = self.input.read(content_length)
            if len(body) < content_length:
                return None

            try:
                message = json.loads(body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise JsonRpcError(ErrorCode.PARSE_ERROR, f"Invalid JSON: {e}")
            if not isinstance(message, dict):
                raise JsonRpcError(
                    ErrorCode.INVALID_REQUEST, "Message must be a JSON object"
                )
            return message

    def _read_headers(self) -> Optional[int]:
        """Read headers up to the blank line; return Content-Length or None at EOF."""
        content_length = None

        while True:
            line = self.input.readline()
            if not line:
                return None

            line = line.decode("ascii", errors="replace").strip()
            if not line:
                break

            if line.lower().startswith("content-length:"):
                try:
                    content_length = int(line.split(":", 1)[1].strip())
                except ValueError:
                    raise JsonRpcError(
                        ErrorCode.PARSE_ERROR, f"Invalid Content-Length: {line}"
                    )
            # Content-Type and any other headers are ignored

        if content_length is None:
            raise JsonRpcError(ErrorCode.PARSE_ERROR, "Missing Content-Length header")
        return content_length


class ProtocolWriter:
    """Writes framed messages to a binary output stream."""

    def __init__(self, output_stream=None):
        self.output = output_stream or sys.stdout.buffer
        self._lock = threading.Lock()

    def write_message(self, message: dict[str, Any]) -> None:
        body = json.dumps(message, ensure_ascii=False).encode("utf-8")
        header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")

        with self._lock:
            self.output.write(header)
            self.output.write(body)
            self.output.flush()


# =============================================================================
# JSON-RPC Protocol Handler
# =============================================================================


@dataclass
class JsonRpcProtocol:
    """
    Dispatches incoming messages to registered handlers.

    Failures inside notification handlers have nowhere to be answered, so
    they are passed to `on_error` (the server logs them).
    """

    reader: ProtocolReader = field(default_factory=ProtocolReader)
    writer: ProtocolWriter = field(default_factory=ProtocolWriter)
    on_error: Optional[Callable[[str, BaseException], None]] = None

    _request_handlers: dict[str, Callable] = field(default_factory=dict)
    _notification_handlers: dict[str, Callable] = field(default_factory=dict)

    def register_request_handler(
        self, method: str, handler: Callable[[dict], Any]
    ) -> None:
        """The handler receives params and returns a result or raises JsonRpcError."""
        self._request_handlers[method] = handler

    def register_notification_handler(
        self, method: str, handler: Callable[[dict], None]
    ) -> None:
        self._notification_handlers[method] = handler

    def handle_message(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Handle one incoming message.

        Returns:
            A response if the message was a request, None otherwise.
        """
        if "result" in message or "error" in message:
            # Responses to server-initiated requests; the server sends none
            return None

        method = message.get("method")
        if method is None:
            return self._make_error_response(
                message.get("id"), ErrorCode.INVALID_REQUEST, "Missing method field"
            )

        msg_id = message.get("id")
        params = message.get("params") or {}

        if msg_id is not None:
            return self._handle_request(msg_id, method, params)
        self._handle_notification(method, params)
        return None

    def _handle_request(
        self, msg_id: Union[int, str], method: str, params: dict[str, Any]
    ) -> dict[str, Any]:
        handler = self._request_handlers.get(method)
        if handler is None:
            return self._make_error_response(
                msg_id, ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}"
            )

        try:
            result = handler(params)
        except JsonRpcError as e:
            return self._make_error_response(msg_id, e.code, e.message, e.data)
        except Exception as e:
            self._report(method, e)
            return self._make_error_response(msg_id, ErrorCode.INTERNAL_ERROR, str(e))
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    def _handle_notification(self, method: str, params: dict[str, Any]) -> None:
        handler = self._notification_handlers.get(method)
        if handler is None:
            return
        try:
            handler(params)
        except Exception as e:
            self._report(method, e)

    def _report(self, method: str, error: BaseException) -> None:
        if self.on_error is not None:
            self.on_error(method, error)

    def _make_error_response(
        self,
        msg_id: Optional[Union[int, str]],
        code: int,
        message: str,
        data: Any = None,
    ) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": msg_id,
            "error": JsonRpcError(code, message, data).to_dict(),
        }

    def send_notification(
        self, method: str, params: Optional[dict[str, Any]] = None
    ) -> None:
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        self.writer.write_message(message)

    def run(self) -> None:
        """Read and dispatch messages until EOF."""
        while True:
            try:
                message = self.reader.read_message()
            except JsonRpcError as e:
                self.writer.write_message(
                    self._make_error_response(None, e.code, e.message, e.data)
                )
                continue
            if message is None:
                break

            response = self.handle_message(message)
            if response is not None:
                self.writer.write_message(response)


# =============================================================================
# LSP-Specific Types
# =============================================================================


class DiagnosticSeverity(IntEnum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class SymbolKind(IntEnum):
    """The subset of LSP symbol kinds used for Racket definitions."""

    MODULE = 2
    CLASS = 5
    METHOD = 6
    FIELD = 8
    FUNCTION = 12
    VARIABLE = 13
    CONSTANT = 14
    STRUCT = 23
    OPERATOR = 25


class TextDocumentSyncKind(IntEnum):
    NONE = 0
    FULL = 1
    INCREMENTAL = 2


class FoldingRangeKind:
    COMMENT = "comment"
    IMPORTS = "imports"
    REGION = "region"


# =============================================================================
# LSP Helper Functions
# =============================================================================


def make_position(line: int, character: int) -> dict[str, int]:
    """Create an LSP Position object (0-based line and character)."""
    return {"line": line, "character": character}


def make_range(
    start_line: int, start_char: int, end_line: int, end_char: int
) -> dict[str, Any]:
    return {
        "start": make_position(start_line, start_char),
        "end": make_position(end_line, end_char),
    }


def make_diagnostic(
    range_: dict[str, Any],
    message: str,
    severity: DiagnosticSeverity = DiagnosticSeverity.ERROR,
    source: str = "racket-cst",
    code: Optional[Union[int, str]] = None,
) -> dict[str, Any]:
    diagnostic: dict[str, Any] = {
        "range": range_,
        "message": message,
        "severity": severity,
        "source": source,
    }
    if code is not None:
        diagnostic["code"] = code
    return diagnostic


def make_document_symbol(
    name: str,
    kind: SymbolKind,
    range_: dict[str, Any],
    selection_range: dict[str, Any],
    detail: Optional[str] = None,
    children: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Create an LSP DocumentSymbol object (hierarchical form)."""
    symbol: dict[str, Any] = {
        "name": name,
        "kind": kind,
        "range": range_,
        "selectionRange": selection_range,
    }
    if detail is not None:
        symbol["detail"] = detail
    if children:
        symbol["children"] = children
    return symbol


def make_folding_range(
    start_line: int, end_line: int, kind: Optional[str] = None
) -> dict[str, Any]:
    folding: dict[str, Any] = {"startLine": start_line, "endLine": end_line}
    if kind is not None:
        folding["kind"] = kind
    return folding


def make_hover(
    contents: str, range_: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    hover: dict[str, Any] = {"contents": {"kind": "markdown", "value": contents}}
    if range_ is not None:
        hover["range"] = range_
    return hover


def uri_to_path(uri: str) -> str:
    """Convert a file URI to a file path."""
    if uri.startswith("file://"):
        path = unquote(uri[7:])
        # file:///C:/... on Windows
        if len(path) > 2 and path[0] == "/" and path[2] == ":":
            path = path[1:]
        return path
    return uri


def path_to_uri(path: str) -> str:
    path = os.path.abspath(path)
    if os.name == "nt":
        path = "/" + path.replace("\\", "/")
    return "file://" + quote(path)


__all__ = [
    "ErrorCode",
    "JsonRpcError",
    "ProtocolReader",
    "ProtocolWriter",
    "JsonRpcProtocol",
    "DiagnosticSeverity",
    "SymbolKind",
    "TextDocumentSyncKind",
    "FoldingRangeKind",
    "make_position",
    "make_range",
    "make_diagnostic",
    "make_document_symbol",
    "make_folding_range",
    "make_hover",
    "uri_to_path",
    "path_to_uri",
]
