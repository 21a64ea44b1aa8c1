"""Request correlation: outstanding call ids to their futures.

Each client owns one correlator. A pending call is settled exactly once and
removed from the table the moment it is settled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from ..protocol.envelope import PROTOCOL_VERSION, Response, validate_responses
from ..protocol.errors import RPCError, TransportError

logger = logging.getLogger(__name__)


class RequestCorrelator:
    """Table of pending calls keyed by request id."""

    def __init__(self, version: str = PROTOCOL_VERSION) -> None:
        self.version = version
        self._pending: dict[int | str, asyncio.Future[Any]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    @property
    def pending_ids(self) -> list[int | str]:
        """Ids of calls still waiting for an answer."""
        return list(self._pending)

    def register(self, request_id: int | str) -> asyncio.Future[Any]:
        """Create the completion slot for a request.

        Raises:
            ValueError: If the id is already pending.
        """
        if request_id in self._pending:
            raise ValueError(f"Request id {request_id!r} is already pending")

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        return future

    def complete(self, response: Response) -> None:
        """Settle the pending call a validated response refers to.

        Responses for unknown or already-settled ids are dropped.
        """
        future = self._pending.pop(response.id, None) if response.id is not None else None
        if future is None:
            logger.debug(f"Dropping response for unknown request id {response.id!r}")
            return
        if future.done():
            # Cancelled by the caller while in flight.
            return

        error = response.error
        if error is None:
            future.set_result(response.result)
        elif error.code is not None:
            future.set_exception(RPCError(error.code, error.message, error.data))
        else:
            future.set_exception(TransportError(error.message or "RPC Error: error without code"))

    def handle(self, payload: Any) -> None:
        """Validate an inbound payload as a whole, then settle each element.

        Raises:
            MalformedResponseError: If any element fails validation. Nothing
                is settled in that case.
        """
        responses = validate_responses(payload, self.version)
        for response in responses:
            self.complete(response)

    def abort(self, ids: Iterable[int | str], cause: BaseException) -> None:
        """Reject every still-pending id with a transport-level failure."""
        for request_id in ids:
            future = self._pending.pop(request_id, None)
            if future is not None and not future.done():
                future.set_exception(cause)

    def settle(self, ids: Iterable[int | str]) -> None:
        """Resolve ids acknowledged by an exchange that carried no answer for them.

        A successful exchange without a matching response element resolves the
        call to None rather than leaving it pending forever.
        """
        for request_id in ids:
            future = self._pending.pop(request_id, None)
            if future is not None and not future.done():
                future.set_result(None)
