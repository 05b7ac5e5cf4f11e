"""
Probe loop: resolve once, then send echo requests at a fixed cadence until the
packet count is reached or a stop is requested, then hand the final stats to
the verdict builder.
Phases: RESOLVING -> RUNNING -> DRAINING -> DONE (or RESOLVING -> DONE on a
resolution failure). Stop requests are honoured between packets only; the
packet in flight always completes or times out.
"""
import asyncio
import logging
import signal
from enum import Enum
from typing import Callable, Optional

from pingcheck.config import ProbeConfig
from pingcheck.exceptions import EchoTimeout, EchoTransportError, ResolutionError
from pingcheck.report import Reporter
from pingcheck.resolver import resolve_host
from pingcheck.stats import RunStats
from pingcheck.transport import EchoResult, EchoTransport, wrap_sequence
from pingcheck.verdict import ProbeResult, build_result, failure_result

logger = logging.getLogger("pingcheck.probe")


class Phase(Enum):
    RESOLVING = "resolving"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class ProbeRun:
    """One run against one target. The transport is closed when run() returns."""

    def __init__(
        self,
        config: ProbeConfig,
        transport: EchoTransport,
        reporter: Optional[Reporter] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self.reporter = reporter if reporter is not None else Reporter(quiet=config.quiet)
        self.stop = stop if stop is not None else asyncio.Event()
        self.stats = RunStats()
        self.phase = Phase.RESOLVING
        self.address: Optional[str] = None
        self._status_tasks: set[asyncio.Task] = set()

    async def run(self) -> ProbeResult:
        try:
            self.phase = Phase.RESOLVING
            try:
                self.address = await resolve_host(self.config.target)
            except ResolutionError as e:
                logger.error("DNS resolution failed for %s: %s", self.config.target, e)
                self.phase = Phase.DONE
                return failure_result(self.config, f"DNS resolution failed: {e}")

            self.reporter.start(self.config.target, self.address)
            self.phase = Phase.RUNNING
            await self._loop(self.address)

            self.phase = Phase.DRAINING
            snapshot = await self.stats.snapshot()
            self.reporter.summary(self.config.target, snapshot)
            self.phase = Phase.DONE
            return build_result(snapshot, self.config)
        finally:
            self.transport.close()

    async def _loop(self, address: str) -> None:
        counter = 0
        while True:
            sequence = wrap_sequence(counter)
            result = await self._attempt(address, sequence)
            if result.success:
                await self.stats.record_success(result.rtt_ms)
                self.reporter.reply(sequence, result, self.config.ttl)
            else:
                await self.stats.record_failure()
                self.reporter.failure(sequence, result)
            counter += 1

            if not self.config.endless and counter >= self.config.count:
                logger.debug("Packet count %d reached", self.config.count)
                return
            if self.stop.is_set() or await self._pause():
                logger.info("Stop requested after %d packets", counter)
                return

    async def _attempt(self, address: str, sequence: int) -> EchoResult:
        try:
            return await self.transport.probe_once(address, sequence, self.config.timeout_ms)
        except EchoTimeout:
            return EchoResult(success=False, rtt_ms=None, reason="TIMEOUT", address=address)
        except EchoTransportError as e:
            return EchoResult(success=False, rtt_ms=None, reason=f"ERROR:{e}", address=address)

    async def _pause(self) -> bool:
        """Wait out the send interval. True if a stop arrived meanwhile."""
        if self.config.interval_ms <= 0:
            await asyncio.sleep(0)
            return self.stop.is_set()
        try:
            await asyncio.wait_for(self.stop.wait(), timeout=self.config.interval_ms / 1000.0)
        except asyncio.TimeoutError:
            return False
        return True

    def request_status(self) -> None:
        """Print interim statistics without stopping the run."""
        task = asyncio.ensure_future(self._report_interim())
        self._status_tasks.add(task)
        task.add_done_callback(self._status_tasks.discard)

    async def _report_interim(self) -> None:
        self.reporter.interim(await self.stats.snapshot())


def watch_interrupts(
    stop: asyncio.Event, on_status: Optional[Callable[[], None]] = None
) -> Callable[[], None]:
    """
    SIGINT/SIGTERM set the stop event; SIGQUIT (where it exists) calls on_status.
    Must be called from inside the running loop. Returns an uninstaller.
    """
    loop = asyncio.get_running_loop()
    restore: list[Callable[[], None]] = []

    def _request_stop(signame: str) -> None:
        if not stop.is_set():
            logger.info("Received %s, finishing current packet", signame)
            stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop, sig.name)
            restore.append(lambda s=sig: loop.remove_signal_handler(s))
        except NotImplementedError:
            # Windows event loops: fall back to a plain handler
            previous = signal.signal(
                sig, lambda _signum, _frame, n=sig.name: loop.call_soon_threadsafe(_request_stop, n)
            )
            restore.append(lambda s=sig, p=previous: signal.signal(s, p))

    sigquit = getattr(signal, "SIGQUIT", None)
    if on_status is not None and sigquit is not None:
        try:
            loop.add_signal_handler(sigquit, on_status)
            restore.append(lambda: loop.remove_signal_handler(sigquit))
        except NotImplementedError:
            pass

    def uninstall() -> None:
        for undo in restore:
            undo()

    return uninstall


async def run_probe(
    config: ProbeConfig,
    transport: EchoTransport,
    reporter: Optional[Reporter] = None,
    handle_signals: bool = True,
) -> ProbeResult:
    """Run one probe, stopping early on SIGINT/SIGTERM when handle_signals is set."""
    probe = ProbeRun(config, transport, reporter=reporter)
    uninstall = watch_interrupts(probe.stop, probe.request_status) if handle_signals else None
    try:
        return await probe.run()
    finally:
        if uninstall is not None:
            uninstall()
