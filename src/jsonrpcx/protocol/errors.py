"""Error types shared by the client and the server.

Two families:
- RPCError: the peer answered with an error object carrying a numeric code.
- TransportError: the exchange itself failed (network, HTTP status, bad body).
"""

from __future__ import annotations

from typing import Any


class ErrorCode:
    """Reserved JSON-RPC error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    SERVER_ERROR = -32000


class JSONRPCError(Exception):
    """Base class for every error raised by jsonrpcx."""


class RPCError(JSONRPCError):
    """Structured protocol error.

    Raised by handlers on the server to produce an error envelope with a
    specific code, and raised on the client when the peer returns one.

    Example:
        raise RPCError(1003, "current user is not authorized")
    """

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data

    def to_error_object(self) -> dict[str, Any]:
        """Wire representation of this error."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error

    def __repr__(self) -> str:
        return f"RPCError(code={self.code!r}, message={self.message!r}, data={self.data!r})"


class MethodNotFoundError(RPCError):
    """The dotted method name does not resolve to a registered handler."""

    def __init__(self, method: str | None = None) -> None:
        super().__init__(
            ErrorCode.METHOD_NOT_FOUND,
            "method not found on server",
            {"method": method} if method else None,
        )


class TransportError(JSONRPCError):
    """The exchange failed before a protocol-level answer was obtained."""


class MalformedResponseError(TransportError):
    """An inbound payload did not carry the expected protocol version tag."""

    def __init__(self, message: str = "RPC Error: missing jsonrpc value in JSON response") -> None:
        super().__init__(message)
