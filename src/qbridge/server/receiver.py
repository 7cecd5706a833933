# -*- coding: utf-8 -*-
"""
Receiver stage: UDP datagrams -> Requests -> request channel.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from qbridge.server.channel import Channel
from qbridge.server.codec import decode_request
from qbridge.server.transport import bind_udp_socket
from qbridge.types import (
    DecodePolicy,
    Endpoint,
    ProtocolError,
    Request,
    TransportError,
)
from qbridge.util import OSC_BUF_LEN


def handle_datagram(
    dgram: bytes, policy: DecodePolicy = DecodePolicy.LENIENT
) -> Request | None:
    """Decode one datagram.

    Returns None when the datagram was dropped under the lenient policy; under
    the strict policy the `ProtocolError` propagates.
    """
    try:
        return decode_request(dgram)
    except ProtocolError as e:
        if policy is DecodePolicy.STRICT:
            raise
        logger.warning("Dropped datagram ({} bytes): {}", len(dgram), e)
        return None


async def receiver_loop(
    rx_addr: Endpoint,
    chan_tx: Channel[Request],
    policy: DecodePolicy = DecodePolicy.LENIENT,
    buffer_len: int = OSC_BUF_LEN,
):
    """Bind `rx_addr` and feed decoded Requests into `chan_tx`, forever.

    Datagrams longer than `buffer_len` are truncated by the OS and will
    usually fail to decode.

    Raises
    ------
    TransportError
        Bind or receive failure.
    ChannelClosed
        The runner has exited.
    ProtocolError
        Only under `DecodePolicy.STRICT`.
    """
    loop = asyncio.get_running_loop()
    rx = None
    try:
        rx = bind_udp_socket(rx_addr)
        logger.info("Receiving from {}...", rx_addr)
        while True:
            try:
                dgram = await loop.sock_recv(rx, buffer_len)
            except OSError as e:
                raise TransportError(f"Receive on {rx_addr} failed: {e}") from e
            logger.trace("Datagram ({} bytes) on {}", len(dgram), rx_addr)
            request = handle_datagram(dgram, policy)
            if request is None:
                continue
            logger.debug("*REQUEST* (bridge<-): {}", request)
            await chan_tx.put(request)
    finally:
        chan_tx.close()
        if rx is not None:
            rx.close()
