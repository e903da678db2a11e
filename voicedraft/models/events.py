"""Inbound transport events consumed by the lifecycle controller."""

import time
from dataclasses import dataclass, field


CONNECTION_OK = "ok"
CONNECTION_ERROR = "error"


@dataclass(frozen=True)
class TranscriptEvent:
    """One transcript fragment from the recognition service."""
    text: str
    is_final: bool  # True when the provider will not revise this text
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class ConnectionStatus:
    """Out-of-band connection status reported by a transcript channel."""
    status: str  # "ok" | "error"
    message: str = ""
    timestamp: float = field(default_factory=time.monotonic)

    @property
    def is_error(self) -> bool:
        return self.status == CONNECTION_ERROR
