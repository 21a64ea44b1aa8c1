"""Wire envelopes for the JSON-RPC protocol.

Request:  {"jsonrpc": "2.0-x", "method": "ns.Method", "params": [...], "id": 0}
Response: {"jsonrpc": "2.0-x", "id": 0, "result": ...}
          {"jsonrpc": "2.0-x", "id": 0, "error": {"code": ..., "message": ..., "data": ...}}

A payload on the wire is either a single envelope or an array of them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import MalformedResponseError

# Version tag carried by every envelope; both ends must agree on it.
PROTOCOL_VERSION = "2.0-x"


class ErrorObject(BaseModel):
    """Error member of a response envelope.

    `code` is optional here because peers occasionally send error objects
    without one; those are reported as transport failures, not protocol errors.
    """

    code: int | None = None
    message: str = ""
    data: Any | None = None


class Request(BaseModel):
    """Request envelope."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = PROTOCOL_VERSION
    method: str = Field(min_length=1)
    params: list[Any] = Field(default_factory=list)
    id: int | str | None = None


class Response(BaseModel):
    """Response envelope. Exactly one of result/error is meaningful."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str
    id: int | str | None = None
    result: Any | None = None
    error: ErrorObject | None = None

    def is_error(self) -> bool:
        """Check if this response carries an error object."""
        return self.error is not None


def make_request(
    method: str,
    params: list[Any],
    request_id: int,
    version: str = PROTOCOL_VERSION,
) -> dict[str, Any]:
    """Build an outgoing request envelope.

    Key order matches what peers expect to see on the wire:
    jsonrpc, method, params, id.
    """
    return {
        "jsonrpc": version,
        "method": method,
        "params": list(params),
        "id": request_id,
    }


def success_response(
    request_id: int | str | None, result: Any, version: str = PROTOCOL_VERSION
) -> dict[str, Any]:
    """Build a response envelope carrying a result."""
    return {"jsonrpc": version, "result": result, "id": request_id}


def error_response(
    request_id: int | str | None,
    error: dict[str, Any],
    version: str = PROTOCOL_VERSION,
) -> dict[str, Any]:
    """Build a response envelope carrying an error object."""
    return {"jsonrpc": version, "error": error, "id": request_id}


def as_batch(payload: Any) -> tuple[list[Any], bool]:
    """Normalize a payload to a list of elements.

    Returns:
        (elements, was_array)
    """
    if isinstance(payload, list):
        return payload, True
    return [payload], False


def validate_responses(payload: Any, version: str = PROTOCOL_VERSION) -> list[Response]:
    """Validate a whole inbound payload before any element is used.

    Every element must be an object declaring `version`. A single bad element
    rejects the entire payload, so callers never act on part of a batch.

    Raises:
        MalformedResponseError: If any element is missing or mismatches the
            version tag, or cannot be read as a response envelope.
    """
    elements, _ = as_batch(payload)

    for element in elements:
        if not isinstance(element, dict) or element.get("jsonrpc") != version:
            raise MalformedResponseError()

    try:
        return [Response.model_validate(element) for element in elements]
    except ValidationError as e:
        raise MalformedResponseError(f"RPC Error: invalid response envelope: {e}") from e
