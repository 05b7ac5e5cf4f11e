"""Scripted echo transport for loop tests; no network access."""
import asyncio
from collections import deque
from typing import Callable, Optional

from pingcheck.transport import EchoResult, EchoTransport


class FakeTransport(EchoTransport):
    """
    script: sequence of RTTs in ms (float) for replies, or None / a failure reason
    string / an exception instance for failures. When the script runs out every
    further call times out. on_call(n) runs after the n-th call (1-based).
    """

    def __init__(self, script=None, on_call: Optional[Callable[[int], None]] = None):
        self.script = deque(script or [])
        self.on_call = on_call
        self.calls: list[tuple[str, int, int]] = []
        self.closed = False

    async def probe_once(self, address: str, sequence: int, timeout_ms: int) -> EchoResult:
        self.calls.append((address, sequence, timeout_ms))
        await asyncio.sleep(0)
        step = self.script.popleft() if self.script else None
        try:
            if isinstance(step, Exception):
                raise step
            if isinstance(step, (int, float)):
                return EchoResult(success=True, rtt_ms=float(step), reason="OK", address=address)
            return EchoResult(success=False, rtt_ms=None, reason=step or "TIMEOUT", address=address)
        finally:
            if self.on_call is not None:
                self.on_call(len(self.calls))

    def close(self) -> None:
        self.closed = True
