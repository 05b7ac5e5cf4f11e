"""Unit tests for host resolution (pingcheck.resolver)."""
import socket
from unittest.mock import AsyncMock, patch

import pytest

from pingcheck.exceptions import ResolutionError
from pingcheck.resolver import resolve_host


def _info(addr):
    return (socket.AF_INET, socket.SOCK_STREAM, 6, "", (addr, 0))


@pytest.mark.asyncio
async def test_literal_address_skips_lookup():
    with patch("asyncio.BaseEventLoop.getaddrinfo", new_callable=AsyncMock) as mock_gai:
        assert await resolve_host("192.0.2.7") == "192.0.2.7"
        mock_gai.assert_not_called()


@pytest.mark.asyncio
async def test_first_answer_wins():
    with patch("asyncio.BaseEventLoop.getaddrinfo", new_callable=AsyncMock) as mock_gai:
        mock_gai.return_value = [_info("198.51.100.1"), _info("198.51.100.2")]
        assert await resolve_host("example.test") == "198.51.100.1"
        assert mock_gai.call_args.kwargs["family"] == socket.AF_INET


@pytest.mark.asyncio
async def test_lookup_error_raises_resolution_error():
    with patch("asyncio.BaseEventLoop.getaddrinfo", new_callable=AsyncMock) as mock_gai:
        mock_gai.side_effect = socket.gaierror(-2, "Name or service not known")
        with pytest.raises(ResolutionError):
            await resolve_host("no-such-host.invalid")


@pytest.mark.asyncio
async def test_empty_answer_raises_resolution_error():
    with patch("asyncio.BaseEventLoop.getaddrinfo", new_callable=AsyncMock) as mock_gai:
        mock_gai.return_value = []
        with pytest.raises(ResolutionError):
            await resolve_host("empty.test")
