"""Dispatcher - resolves dotted method names and maps outcomes to envelopes.

The registry is a plain nested structure:

    methods = {
        "test": TestMethods(),          # object: handlers are its bound methods
        "math": {"add": add},           # mapping: handlers are its values
    }

`test.Sum` resolves to `methods["test"].Sum`; handlers are invoked as
`handler(context, *params)` and may be sync or async.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from ..protocol.envelope import PROTOCOL_VERSION, Request, error_response, success_response
from ..protocol.errors import ErrorCode, MethodNotFoundError

logger = logging.getLogger(__name__)

_MISSING = object()


def to_error_object(error: BaseException) -> dict[str, Any]:
    """Map a handler exception to a wire error object.

    Exceptions carrying an integer `code` pass through with their message and
    data. Anything else becomes an unhandled server error whose message still
    includes the exception text.
    """
    code = getattr(error, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        result: dict[str, Any] = {
            "code": code,
            "message": str(getattr(error, "message", error)),
        }
        data = getattr(error, "data", None)
        if data is not None:
            result["data"] = data
        return result

    return {
        "code": ErrorCode.SERVER_ERROR,
        "message": f"Unhandled exception occurred in server: {error}",
    }


class Dispatcher:
    """Routes request envelopes to registered handlers."""

    def __init__(self, methods: Mapping[str, Any], version: str = PROTOCOL_VERSION) -> None:
        self.methods = methods
        self.version = version

    def lookup(self, method: str) -> Callable[..., Any]:
        """Resolve a dotted method name to its handler.

        Raises:
            MethodNotFoundError: If any segment is missing, private, or the
                leaf is not callable.
        """
        container: Any = self.methods
        for segment in method.split("."):
            container = self._child(container, segment)
            if container is _MISSING:
                raise MethodNotFoundError(method)

        if not callable(container):
            raise MethodNotFoundError(method)
        return container

    @staticmethod
    def _child(container: Any, segment: str) -> Any:
        if not segment or segment.startswith("_"):
            return _MISSING
        if isinstance(container, Mapping):
            return container.get(segment, _MISSING)
        return getattr(container, segment, _MISSING)

    async def dispatch(self, context: dict[str, Any], message: Any) -> dict[str, Any]:
        """Handle one request element and build its response envelope."""
        request_id = message.get("id") if isinstance(message, dict) else None

        try:
            request = Request.model_validate(message)
        except ValidationError as e:
            logger.warning(f"Invalid request element: {e.error_count()} validation error(s)")
            return error_response(
                request_id,
                {"code": ErrorCode.INVALID_REQUEST, "message": "invalid request"},
                self.version,
            )

        try:
            handler = self.lookup(request.method)
            result = handler(context, *request.params)
            if inspect.isawaitable(result):
                result = await result
            json.dumps(result, allow_nan=False)  # unencodable results fail here, per element
        except Exception as e:
            error = to_error_object(e)
            if error["code"] == ErrorCode.SERVER_ERROR:
                logger.exception(f"Unhandled error in {request.method} (id={request.id!r})")
            else:
                logger.debug(f"{request.method} (id={request.id!r}) failed: {error}")
            return error_response(request.id, error, self.version)

        return success_response(request.id, result, self.version)
