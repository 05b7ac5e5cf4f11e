"""
Echo transport backed by the system ping binary (1 packet per call).
Windows: ping -n 1 -w <timeout_ms> -i <ttl> <host>.
macOS: ping -c 1 -W <timeout_ms> -m <ttl> <host>.
Linux: ping -c 1 -W <timeout_s> -t <ttl> <host>.
Capture return code and elapsed time; parse output only if needed for reason.
"""
import asyncio
import logging
import re
import sys
import time
from typing import Optional

from pingcheck.transport import EchoResult, EchoTransport

logger = logging.getLogger("pingcheck.ping")


def _timeout_seconds(timeout_ms: int) -> int:
    return max(1, (timeout_ms + 999) // 1000)


def build_command(host: str, timeout_ms: int, ttl: int) -> tuple[list[str], float]:
    """Return (argv, subprocess wall-clock limit in seconds)."""
    if sys.platform == "win32":
        cmd = ["ping", "-n", "1", "-w", str(timeout_ms), "-i", str(ttl), host]
        return cmd, (timeout_ms / 1000.0) + 2.0
    if sys.platform == "darwin":
        cmd = ["ping", "-c", "1", "-W", str(max(1, timeout_ms)), "-m", str(ttl), host]
        return cmd, (timeout_ms / 1000.0) + 2.0
    timeout_s = _timeout_seconds(timeout_ms)
    cmd = ["ping", "-c", "1", "-W", str(timeout_s), "-t", str(ttl), host]
    return cmd, timeout_s + 2.0


class SubprocessTransport(EchoTransport):
    """
    Sequence numbers are not forwarded: every call is a separate ping process
    with its own identifier, so replies cannot be confused across calls.
    """

    def __init__(self, ttl: int = 64):
        self.ttl = ttl

    async def probe_once(self, address: str, sequence: int, timeout_ms: int) -> EchoResult:
        cmd, limit_s = build_command(address, timeout_ms, self.ttl)
        start = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("ping subprocess failed for seq %d: %s", sequence, e)
            return EchoResult(success=False, rtt_ms=None, reason=f"ERROR:{type(e).__name__}", address=address)
        try:
            stdout, _stderr = await asyncio.wait_for(proc.communicate(), timeout=limit_s)
        except asyncio.TimeoutError:
            await _reap(proc)
            return EchoResult(success=False, rtt_ms=None, reason="TIMEOUT", address=address)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        return _interpret(proc.returncode or 0, stdout.decode("utf-8", errors="replace"), elapsed_ms, address)


async def _reap(proc) -> None:
    """Kill a ping that outlived its deadline and wait for it to exit."""
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


def _interpret(returncode: int, output: str, elapsed_ms: float, address: str = "") -> EchoResult:
    """Interpret ping return code and optional output for latency/reason."""
    if returncode == 0:
        lat = _parse_latency(output)
        return EchoResult(
            success=True,
            rtt_ms=lat if lat is not None else round(elapsed_ms, 1),
            reason="OK",
            address=address,
            ttl=_parse_ttl(output),
        )
    output_lower = output.lower()
    if "timed out" in output_lower or "timeout" in output_lower:
        reason = "TIMEOUT"
    elif "unreachable" in output_lower:
        reason = "UNREACHABLE"
    elif "time to live exceeded" in output_lower or "ttl expired" in output_lower:
        reason = "TTL_EXCEEDED"
    elif returncode == 1:
        # Linux/macOS ping exits 1 when no reply arrived within -W
        reason = "TIMEOUT"
    else:
        reason = f"ERROR:{returncode}"
    return EchoResult(success=False, rtt_ms=None, reason=reason, address=address)


def _parse_latency(output: str) -> Optional[float]:
    """Extract latency in ms from ping output. Windows: time=12ms, Linux: time=12.3 ms."""
    m = re.search(r"time[=<:]?\s*([\d.]+)\s*ms", output, re.I)
    if m:
        try:
            return float(m.group(1))
        except ValueError:
            pass
    return None


def _parse_ttl(output: str) -> Optional[int]:
    m = re.search(r"ttl=(\d+)", output, re.I)
    return int(m.group(1)) if m else None
