"""
pingcheck – ICMP ping utility with JSON output. Entry point.
- Human-readable ping-like lines on stdout unless --quiet
- Final stdout line is always the JSON result record
- Exit status 1 only when the run could not start (resolution / socket setup)
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from pingcheck import __version__
from pingcheck.config import TRANSPORTS, ProbeConfig, load_config
from pingcheck.exceptions import EchoTransportError
from pingcheck.icmp import IcmpTransport
from pingcheck.logging_setup import setup_logging
from pingcheck.ping import SubprocessTransport
from pingcheck.probe import run_probe
from pingcheck.transport import EchoTransport
from pingcheck.verdict import ProbeResult, failure_result

logger = logging.getLogger("pingcheck")


def build_parser(defaults: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pingcheck", description="ICMP ping utility with JSON output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("target", help="Target host to ping")
    parser.add_argument("-c", "--count", type=int, default=defaults["count"],
                        help="Stop after sending COUNT packets (0 = until interrupted)")
    parser.add_argument("-i", "--interval", type=int, default=defaults["interval"],
                        help="Wait INTERVAL milliseconds between sending each packet")
    parser.add_argument("-W", "--timeout", type=int, default=defaults["timeout"],
                        help="Time to wait for a response, in milliseconds")
    parser.add_argument("-t", "--ttl", type=int, default=defaults["ttl"], help="Set Time to Live")
    parser.add_argument("-L", "--max-loss", type=float, default=defaults["max_loss"],
                        help="Maximum acceptable packet loss percentage")
    parser.add_argument("-M", "--max-latency", type=int, default=defaults["max_latency"],
                        help="Maximum acceptable round-trip time in milliseconds")
    parser.add_argument("-n", "--name", dest="server_name", default=None,
                        help="Server name for reporting (defaults to target)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Quiet output. Only show summary at end")
    parser.add_argument("--transport", choices=TRANSPORTS, default=defaults["transport"],
                        help="icmp: ICMP socket (default); subprocess: system ping binary")
    parser.add_argument("--config", default=None, help="JSON file with default option values")
    parser.add_argument("--log-path", default=defaults["log_path"] or None,
                        help="Directory for daily rotating log files")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON result record")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    # --config decides the defaults of every other option, so read it first
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    known, _ = pre.parse_known_args(argv)
    return build_parser(load_config(known.config)).parse_args(argv)


def config_from_args(args: argparse.Namespace) -> ProbeConfig:
    return ProbeConfig(
        target=args.target,
        count=args.count,
        interval_ms=args.interval,
        timeout_ms=args.timeout,
        ttl=args.ttl,
        max_loss=args.max_loss,
        max_latency_ms=args.max_latency,
        server_name=args.server_name,
        quiet=args.quiet,
    )


def make_transport(kind: str, ttl: int) -> EchoTransport:
    if kind == "subprocess":
        return SubprocessTransport(ttl=ttl)
    transport = IcmpTransport(ttl=ttl)
    transport.open()
    return transport


def emit(result: ProbeResult, pretty: bool) -> None:
    print(result.to_json(pretty=pretty), flush=True)


async def run(config: ProbeConfig, transport_kind: str, pretty: bool = False) -> int:
    try:
        transport = make_transport(transport_kind, config.ttl)
    except EchoTransportError as e:
        logger.error("Transport setup failed: %s", e)
        emit(failure_result(config, f"Transport setup failed: {e}"), pretty)
        return 1

    async with transport:
        result = await run_probe(config, transport)
    if result.error is not None:
        emit(result, pretty)
        return 1

    if not result.success:
        logger.error(
            "Member: %s failed ping check - Loss: %.2f%% (Max: %s%%) Latency: %dms (Max: %dms)",
            config.display_name,
            result.data.packetloss,
            config.max_loss,
            result.data.latency,
            config.max_latency_ms,
        )
    emit(result, pretty)
    # Threshold failures are reported in the record only, not the exit status
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_path, verbose=args.verbose, quiet=args.quiet)
    try:
        config = config_from_args(args)
    except ValueError as e:
        build_parser(load_config(args.config)).error(str(e))
    logger.debug("Starting pingcheck %s against %s", __version__, config.target)
    return asyncio.run(run(config, args.transport, pretty=args.pretty))


if __name__ == "__main__":
    sys.exit(main())
