"""Transport-agnostic protocol layer.

Defines the envelopes exchanged by clients and servers and the errors
both sides raise. Everything here is independent of HTTP or WebSocket.
"""

from .envelope import (
    PROTOCOL_VERSION,
    ErrorObject,
    Request,
    Response,
    as_batch,
    error_response,
    make_request,
    success_response,
    validate_responses,
)
from .errors import (
    ErrorCode,
    JSONRPCError,
    MalformedResponseError,
    MethodNotFoundError,
    RPCError,
    TransportError,
)

__all__ = [
    "PROTOCOL_VERSION",
    "ErrorObject",
    "Request",
    "Response",
    "as_batch",
    "error_response",
    "make_request",
    "success_response",
    "validate_responses",
    "ErrorCode",
    "JSONRPCError",
    "MalformedResponseError",
    "MethodNotFoundError",
    "RPCError",
    "TransportError",
]
