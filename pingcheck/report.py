"""Human-readable, ping-like output on stdout. Silent in quiet mode."""
import logging
import sys
from typing import Optional, TextIO

from pingcheck.stats import NS_PER_MS, StatsSnapshot
from pingcheck.transport import EchoResult

logger = logging.getLogger("pingcheck.report")


class Reporter:
    def __init__(self, quiet: bool = False, stream: Optional[TextIO] = None, payload_size: int = 56):
        self.quiet = quiet
        self.stream = stream if stream is not None else sys.stdout
        self.payload_size = payload_size

    def _print(self, line: str) -> None:
        print(line, file=self.stream, flush=True)

    def start(self, target: str, address: str) -> None:
        if self.quiet:
            return
        self._print(f"PING {target} ({address}) {self.payload_size} bytes of data")

    def reply(self, sequence: int, result: EchoResult, default_ttl: int) -> None:
        if self.quiet:
            return
        ttl = result.ttl if result.ttl is not None else default_ttl
        self._print(
            f"{self.payload_size + 8} bytes from {result.address}: "
            f"icmp_seq={sequence} ttl={ttl} time={result.rtt_ms:.2f} ms"
        )

    def failure(self, sequence: int, result: EchoResult) -> None:
        if self.quiet:
            return
        if result.is_timeout:
            logger.error("Request timeout for icmp_seq %d", sequence)
        else:
            logger.error("Ping failed for sequence %d: %s", sequence, result.reason)

    def summary(self, target: str, snapshot: StatsSnapshot) -> None:
        if self.quiet:
            return
        self._print(f"\n--- {target} ping statistics ---")
        self._print(
            f"{snapshot.sent} packets transmitted, {snapshot.received} received, "
            f"{snapshot.loss_percent():.1f}% packet loss, time {snapshot.total_rtt_ns // NS_PER_MS}ms"
        )
        if snapshot.received > 0:
            self._print(f"rtt avg = {snapshot.avg_rtt_ms():.3f} ms")

    def interim(self, snapshot: StatsSnapshot) -> None:
        """Progress line on SIGQUIT, on stderr so stdout stays ping-shaped."""
        if self.quiet:
            return
        print(
            f"{snapshot.received}/{snapshot.sent} packets, "
            f"{snapshot.loss_percent():.0f}% loss, avg {snapshot.avg_rtt_ms():.3f} ms",
            file=sys.stderr,
            flush=True,
        )
