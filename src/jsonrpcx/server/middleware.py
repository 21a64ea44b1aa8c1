"""Middleware pipeline that builds the per-exchange request context.

A middleware step is any callable `step(context, request)`, sync or async.
Steps run in registration order; each is awaited before the next starts, so
later steps can read what earlier ones stored.

Example:
    async def authenticate(context: dict, request: HTTPConnection) -> None:
        if request.headers.get("authorization"):
            context["is_authenticated"] = True
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Middleware = Callable[[dict[str, Any], Any], Awaitable[None] | None]


class MiddlewarePipeline:
    """Ordered, sequential context builders."""

    def __init__(self, *steps: Middleware) -> None:
        self._steps: list[Middleware] = list(steps)

    def __len__(self) -> int:
        return len(self._steps)

    def use(self, step: Middleware) -> Middleware:
        """Append a step. Returns it so this can be used as a decorator."""
        self._steps.append(step)
        return step

    async def build(self, request: Any) -> dict[str, Any]:
        """Create a fresh context and let every step populate it."""
        context: dict[str, Any] = {}
        for step in self._steps:
            result = step(context, request)
            if inspect.isawaitable(result):
                await result
        logger.debug(f"Built request context with keys {sorted(context)}")
        return context
