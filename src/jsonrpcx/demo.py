"""Demo method set served by `jsonrpcx serve` and used by the integration tests.

    test.Sum(1, 2, 3, 4)         -> 10
    test.Sum("5")                -> [-32602] parameters should be ...
    test.SecureSum(1, 2)         -> [1003] current user is not authorized
                                    (unless an Authorization header was sent)
"""

from __future__ import annotations

from typing import Any

from .protocol.errors import ErrorCode, RPCError

NOT_AUTHORIZED = 1003


class TestMethods:
    """Handlers registered under the `test` namespace."""

    __test__ = False  # not a pytest collection target

    def Sum(self, context: dict[str, Any], *numbers: Any) -> int:
        if len(numbers) < 2 or not all(_is_int(n) for n in numbers):
            raise RPCError(
                ErrorCode.INVALID_PARAMS,
                "parameters should be (number (int), number (int), ...number (int))",
            )
        return sum(numbers)

    def SecureSum(self, context: dict[str, Any], *numbers: Any) -> int:
        if not context.get("is_authenticated"):
            raise RPCError(NOT_AUTHORIZED, "current user is not authorized")
        return self.Sum(context, *numbers)


def _is_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return value.is_integer()
    return isinstance(value, int)


def test_auth(context: dict[str, Any], request: Any) -> None:
    """Mark the context authenticated when the exchange carries credentials."""
    context["is_authenticated"] = bool(request.headers.get("authorization"))


def demo_methods() -> dict[str, Any]:
    """Fresh registry holding the demo namespace."""
    return {"test": TestMethods()}
