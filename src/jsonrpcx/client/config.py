"""Client configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..protocol.envelope import PROTOCOL_VERSION

MODES = ("http", "websocket")


@dataclass
class ClientConfig:
    """Configuration for RPC clients and their transports.

    Attributes:
        endpoint: URL of the server (http(s):// for "http", ws(s):// for "websocket").
        mode: "http" for one exchange per call/batch, "websocket" for a
            single persistent connection.
        headers: Extra HTTP headers, merged on top of the defaults.
        batch_window: Seconds to accumulate calls into one batch (0 disables).
            Ignored by the websocket transport.
        timeout: HTTP timeout in seconds for owned httpx clients.
        version: Protocol version tag expected on every envelope.
    """

    endpoint: str = ""
    mode: str = "http"
    headers: dict[str, str] = field(default_factory=dict)
    batch_window: float = 0.0
    timeout: float = 30.0
    version: str = PROTOCOL_VERSION

    def validate(self) -> None:
        """Raise ValueError for settings no transport can work with."""
        if not self.endpoint:
            raise ValueError("An endpoint URL is required")
        if self.mode not in MODES:
            raise ValueError(f"Unknown client mode {self.mode!r}; expected one of {MODES}")
        if self.batch_window < 0:
            raise ValueError(f"batch_window must be non-negative, got {self.batch_window}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
