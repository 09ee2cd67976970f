from __future__ import annotations

import logging
import socket
from typing import Optional, Tuple

from shared.protocol import ErrorCode, TransportError
from shared.utils import format_address

logger = logging.getLogger(__name__)


def open_listener(port: int, host: str = "0.0.0.0") -> socket.socket:
    """Bind and listen with a backlog of one; only a single peer is ever accepted."""
    try:
        listener = socket.create_server((host, port), backlog=1)
    except OSError as exc:
        raise TransportError(ErrorCode.BIND_FAILED, f"Cannot listen on {format_address(host, port)}: {exc}") from exc
    logger.info("Listening on %s", format_address(host, listener.getsockname()[1]))
    return listener


def accept_one(listener: socket.socket) -> Tuple[socket.socket, str]:
    """Accept exactly one inbound connection, then stop listening."""
    with listener:
        try:
            conn, addr = listener.accept()
        except OSError as exc:
            raise TransportError(ErrorCode.ACCEPT_FAILED, f"Accept failed: {exc}") from exc
    peer_address = format_address(addr[0], addr[1])
    logger.info("Accepted peer %s", peer_address)
    return conn, peer_address


def connect_to(address: str, port: int, timeout: Optional[float] = None) -> Tuple[socket.socket, str]:
    """Resolve and connect once. No retries."""
    try:
        sock = socket.create_connection((address, port), timeout=timeout)
    except OSError as exc:
        raise TransportError(
            ErrorCode.CONNECT_FAILED, f"Cannot connect to {format_address(address, port)}: {exc}"
        ) from exc
    sock.settimeout(None)
    peer_address = format_address(address, port)
    logger.info("Connected to %s", peer_address)
    return sock, peer_address


__all__ = ["open_listener", "accept_one", "connect_to"]
