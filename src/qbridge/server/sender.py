# -*- coding: utf-8 -*-
"""
Sender stage: response channel -> OSC -> one UDP datagram per Response.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from qbridge.server.channel import Channel
from qbridge.server.codec import encode_response
from qbridge.server.transport import open_udp_socket, resolve_endpoint
from qbridge.types import (
    ChannelClosed,
    Endpoint,
    OutboundFraming,
    Response,
    StageExited,
    TransportError,
)


async def sender_loop(
    tx_addr: Endpoint,
    chan_rx: Channel[Response],
    framing: OutboundFraming = OutboundFraming.BARE,
    bind_addr: Endpoint | None = None,
):
    """Send every Response from `chan_rx` to `tx_addr`, in order.

    The socket is not connected, so an unreachable client does not turn into
    an error on the next send: delivery is best effort.

    Raises
    ------
    TransportError
        Bind or send failure.
    StageExited
        The runner closed the response channel.
    """
    loop = asyncio.get_running_loop()
    tx = None
    try:
        family, dest = resolve_endpoint(tx_addr)
        bind_to = resolve_endpoint(bind_addr)[1] if bind_addr is not None else None
        tx = open_udp_socket(family, bind_to)
        while True:
            try:
                response = await chan_rx.get()
            except ChannelClosed:
                break
            logger.info("sender_loop: Received from channel: {}", response)
            packet = encode_response(response, framing)
            try:
                await loop.sock_sendto(tx, packet, dest)
            except OSError as e:
                raise TransportError(f"Send to {tx_addr} failed: {e}") from e
        raise StageExited("sender_loop unexpected finished")
    finally:
        chan_rx.close()
        if tx is not None:
            tx.close()
