"""ICMP echo over an asyncio-driven socket (IPv4 only)."""

from __future__ import annotations

import asyncio
import logging
import os
import socket
import struct
import sys
import time
from dataclasses import dataclass
from typing import Optional

from pingcheck.exceptions import EchoTransportError, RawSocketPermissionError
from pingcheck.transport import EchoResult, EchoTransport

ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0
ICMP_TIME_EXCEEDED = 11
ICMP_DEST_UNREACHABLE = 3

DEFAULT_PAYLOAD_SIZE = 56

logger = logging.getLogger("pingcheck.icmp")


@dataclass
class IcmpPacket:
    type: int
    code: int
    checksum: int
    id: int
    sequence: int
    data: bytes


@dataclass
class ReceivedPacket:
    src_addr: str
    ttl: Optional[int]
    icmp_packet: IcmpPacket


def icmp_checksum(data: bytes) -> int:
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack("!%dH" % (len(data) // 2), data))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return (~total) & 0xFFFF


def build_echo_request(identifier: int, sequence: int, payload_size: int = DEFAULT_PAYLOAD_SIZE) -> bytes:
    payload = bytes((0x10 + i) & 0xFF for i in range(payload_size))
    header = struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, 0, identifier, sequence)
    checksum = icmp_checksum(header + payload)
    header = struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, checksum, identifier, sequence)
    return header + payload


def has_ipv4_header(pkt: bytes) -> bool:
    """
    Raw sockets, and datagram sockets on macOS, deliver the IPv4 header;
    Linux datagram sockets do not. No ICMP type we accept has 4 in its
    high nibble, so the version nibble tells them apart.
    """
    return len(pkt) >= 20 and pkt[0] >> 4 == 4


def parse_packet(pkt: bytes, src_addr: str, has_ip_header: bool) -> ReceivedPacket:
    ttl = None
    offset = 0
    if has_ip_header:
        if len(pkt) < 20:
            raise ValueError("Packet shorter than minimum IP header length (20 bytes).")
        ihl = pkt[0] & 0xF
        offset = ihl * 4
        ttl = pkt[8]
        src_addr = socket.inet_ntoa(pkt[12:16])
    if len(pkt) < offset + 8:
        raise ValueError("Packet shorter than ICMP header (8 bytes).")
    icmph = struct.unpack("!BBHHH", pkt[offset : offset + 8])
    return ReceivedPacket(
        src_addr=src_addr,
        ttl=ttl,
        icmp_packet=IcmpPacket(
            type=icmph[0],
            code=icmph[1],
            checksum=icmph[2],
            id=icmph[3],
            sequence=icmph[4],
            data=pkt[offset + 8 :],
        ),
    )


def matches_probe(
    icmp_pkt: IcmpPacket, identifier: Optional[int], sequence: int
) -> bool:
    """identifier None skips the id check (the kernel rewrites it on datagram sockets)."""
    if icmp_pkt.type == ICMP_ECHO_REPLY:
        return icmp_pkt.sequence == sequence and (
            identifier is None or icmp_pkt.id == identifier
        )

    if (
        icmp_pkt.type in {ICMP_TIME_EXCEEDED, ICMP_DEST_UNREACHABLE}
        and len(icmp_pkt.data) >= 28
    ):
        # Error replies quote the original IP header + first 8 bytes of our request
        inner_ihl = (icmp_pkt.data[0] & 0xF) * 4
        quoted = icmp_pkt.data[inner_ihl : inner_ihl + 8]
        if len(quoted) < 8:
            return False
        inner_type, _, _, inner_id, inner_seq = struct.unpack("!BBHHH", quoted)
        return (
            inner_type == ICMP_ECHO_REQUEST
            and inner_seq == sequence
            and (identifier is None or inner_id == identifier)
        )

    return False


class IcmpTransport(EchoTransport):
    """
    One socket for the whole run, opened lazily on first probe.
    Prefers an unprivileged ICMP datagram socket and falls back to SOCK_RAW.
    """

    def __init__(self, ttl: int = 64, payload_size: int = DEFAULT_PAYLOAD_SIZE):
        self.ttl = ttl
        self.payload_size = payload_size
        self.identifier = os.getpid() & 0xFFFF
        self._sock: Optional[socket.socket] = None
        self._raw = False

    @property
    def sock(self) -> socket.socket:
        if self._sock is None:
            self._sock, self._raw = self._open_socket()
            self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, self.ttl)
            self._sock.setblocking(False)
            logger.debug(
                "Opened ICMP %s socket (ttl=%d)", "raw" if self._raw else "datagram", self.ttl
            )
        return self._sock

    @staticmethod
    def _open_socket() -> tuple[socket.socket, bool]:
        if sys.platform != "win32":
            try:
                return socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_ICMP), False
            except OSError as exc:
                logger.debug("ICMP datagram socket unavailable: %s", exc)
        try:
            return socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP), True
        except PermissionError as exc:
            message = (
                "Raw socket requires elevated privileges. Use sudo, grant "
                "CAP_NET_RAW, or run with --transport subprocess."
            )
            raise RawSocketPermissionError(message) from exc
        except OSError as exc:
            raise EchoTransportError(f"Could not open ICMP socket: {exc}") from exc

    def open(self) -> None:
        """Open the socket now so permission problems surface before the loop."""
        _ = self.sock

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    async def probe_once(self, address: str, sequence: int, timeout_ms: int) -> EchoResult:
        sock = self.sock
        packet = build_echo_request(self.identifier, sequence, self.payload_size)
        sent_at = time.perf_counter()
        try:
            sock.sendto(packet, (address, 0))
        except OSError as exc:
            return EchoResult(success=False, rtt_ms=None, reason=f"ERROR:{exc.strerror or exc}", address=address)

        try:
            return await asyncio.wait_for(
                self._receive(sock, address, sequence, sent_at), timeout=timeout_ms / 1000.0
            )
        except asyncio.TimeoutError:
            return EchoResult(success=False, rtt_ms=None, reason="TIMEOUT", address=address)
        except OSError as exc:
            return EchoResult(success=False, rtt_ms=None, reason=f"ERROR:{exc.strerror or exc}", address=address)

    async def _receive(
        self, sock: socket.socket, address: str, sequence: int, sent_at: float
    ) -> EchoResult:
        loop = asyncio.get_running_loop()
        identifier = self.identifier if self._raw else None
        while True:
            pkt, src = await loop.sock_recvfrom(sock, 2048)
            received_at = time.perf_counter()
            try:
                received = parse_packet(pkt, src[0], has_ip_header=self._raw or has_ipv4_header(pkt))
            except ValueError as err:
                logger.debug("Discarding malformed packet: %s", err)
                continue

            if not matches_probe(received.icmp_packet, identifier, sequence):
                continue

            icmp_type = received.icmp_packet.type
            if icmp_type == ICMP_ECHO_REPLY:
                if received.src_addr != address:
                    continue
                return EchoResult(
                    success=True,
                    rtt_ms=(received_at - sent_at) * 1000.0,
                    reason="OK",
                    address=received.src_addr,
                    ttl=received.ttl,
                )
            reason = "UNREACHABLE" if icmp_type == ICMP_DEST_UNREACHABLE else "TTL_EXCEEDED"
            logger.debug(
                "ICMP type %d code %d from %s for seq %d",
                icmp_type,
                received.icmp_packet.code,
                received.src_addr,
                sequence,
            )
            return EchoResult(success=False, rtt_ms=None, reason=reason, address=received.src_addr)
