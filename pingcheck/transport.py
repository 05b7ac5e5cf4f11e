"""Echo transport interface: one request/reply exchange per call."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

SEQUENCE_MASK = 0xFFFF


def wrap_sequence(counter: int) -> int:
    """Loop counter -> 16-bit ICMP sequence. Wraps on long endless runs."""
    return counter & SEQUENCE_MASK


@dataclass
class EchoResult:
    success: bool
    rtt_ms: Optional[float]  # None if failed
    reason: str  # "OK", "TIMEOUT", "UNREACHABLE", "TTL_EXCEEDED", "ERROR:<detail>"
    address: str = ""
    ttl: Optional[int] = None  # reply TTL, when the transport sees it

    @property
    def is_timeout(self) -> bool:
        return self.reason == "TIMEOUT"


class EchoTransport(ABC):
    @abstractmethod
    async def probe_once(self, address: str, sequence: int, timeout_ms: int) -> EchoResult:
        """Send exactly one echo request and wait at most timeout_ms for its reply."""
        raise NotImplementedError

    def close(self) -> None:
        """Release sockets or other resources. Safe to call more than once."""

    async def __aenter__(self) -> "EchoTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
