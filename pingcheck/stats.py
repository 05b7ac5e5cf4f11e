"""
Running packet statistics for one probe run.
Every update and the final read take the lock once; it is never held
across an await on the network or a sleep.
RTTs are summed as integer nanoseconds so averages truncate exactly.
"""
import asyncio
from dataclasses import dataclass

NS_PER_MS = 1_000_000


@dataclass(frozen=True)
class StatsSnapshot:
    sent: int = 0
    received: int = 0
    total_rtt_ns: int = 0

    @property
    def total_rtt_ms(self) -> float:
        return self.total_rtt_ns / NS_PER_MS

    def loss_percent(self) -> float:
        if self.sent == 0:
            return 100.0
        return (self.sent - self.received) / self.sent * 100.0

    def avg_rtt_ms(self) -> float:
        if self.received == 0:
            return 0.0
        return self.total_rtt_ns / self.received / NS_PER_MS

    def avg_latency_ms(self) -> int:
        """Average RTT truncated to whole milliseconds."""
        if self.received == 0:
            return 0
        return self.total_rtt_ns // self.received // NS_PER_MS


class RunStats:
    """Mutable aggregate shared by the probe loop and the interrupt watcher."""

    def __init__(self) -> None:
        self._sent = 0
        self._received = 0
        self._total_rtt_ns = 0
        self._lock = asyncio.Lock()

    async def record_success(self, rtt_ms: float) -> None:
        async with self._lock:
            self._sent += 1
            self._received += 1
            self._total_rtt_ns += round(rtt_ms * NS_PER_MS)

    async def record_failure(self) -> None:
        async with self._lock:
            self._sent += 1

    async def snapshot(self) -> StatsSnapshot:
        async with self._lock:
            return StatsSnapshot(
                sent=self._sent,
                received=self._received,
                total_rtt_ns=self._total_rtt_ns,
            )
