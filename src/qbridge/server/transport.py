# -*- coding: utf-8 -*-
"""
Non-blocking UDP sockets for use with the asyncio `sock_*` loop methods.
"""

from __future__ import annotations

import socket

from loguru import logger

from qbridge.types import Endpoint, TransportError


def resolve_endpoint(endpoint: Endpoint) -> tuple[int, tuple]:
    """Resolve to (address family, sockaddr) for a UDP socket."""
    try:
        infos = socket.getaddrinfo(
            endpoint.host, endpoint.port, type=socket.SOCK_DGRAM
        )
    except socket.gaierror as e:
        raise TransportError(f"Cannot resolve {endpoint}: {e}") from e
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


def open_udp_socket(family: int, bind_to: tuple | None = None) -> socket.socket:
    """Create a non-blocking UDP socket, optionally bound.

    Raises
    ------
    TransportError
        If the socket cannot be created or bound. Nothing is leaked.
    """
    try:
        sock = socket.socket(family, socket.SOCK_DGRAM)
    except OSError as e:
        raise TransportError(f"Could not create UDP socket: {e}") from e
    try:
        sock.setblocking(False)
        if bind_to is not None:
            sock.bind(bind_to)
    except OSError as e:
        sock.close()
        raise TransportError(f"Could not bind UDP socket to {bind_to}: {e}") from e
    logger.debug("Opened UDP socket {}", sock.getsockname())
    return sock


def bind_udp_socket(endpoint: Endpoint) -> socket.socket:
    family, sockaddr = resolve_endpoint(endpoint)
    return open_udp_socket(family, sockaddr)
