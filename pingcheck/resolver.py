"""Host string -> single IPv4 address. Literal first, then first DNS answer."""
import asyncio
import ipaddress
import logging
import socket

from pingcheck.exceptions import ResolutionError

logger = logging.getLogger("pingcheck.resolver")


async def resolve_host(host: str) -> str:
    host = host.strip()
    try:
        return str(ipaddress.IPv4Address(host))
    except ValueError:
        pass

    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, None, family=socket.AF_INET)
    except OSError as e:
        raise ResolutionError(f"Could not resolve hostname {host}: {e}") from e
    if not infos:
        raise ResolutionError(f"Could not resolve hostname {host}")
    # First answer, like ping
    address = infos[0][4][0]
    logger.debug("Resolved %s -> %s (%d answers)", host, address, len(infos))
    return address
