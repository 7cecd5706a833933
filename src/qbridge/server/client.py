# -*- coding: utf-8 -*-
"""
Client side of the bridge protocol.

Sends gate instructions to a bridge's receive address and listens on the
bridge's send address for results.

Examples
--------
```python
async with BridgeClient(Endpoint.parse("127.0.0.1:9001"),
                        Endpoint.parse("127.0.0.1:9000")) as client:
    await client.h(0)
    result = await client.mz(0)
    print(result.bit)
```
"""

from __future__ import annotations

import asyncio
import socket

from loguru import logger

from qbridge.server.codec import decode_response, encode_request
from qbridge.server.transport import bind_udp_socket, open_udp_socket, resolve_endpoint
from qbridge.types import (
    CXRequest,
    Endpoint,
    HRequest,
    MzRequest,
    MzResponse,
    Request,
    Response,
    SdgRequest,
    SRequest,
    XRequest,
    YRequest,
    ZRequest,
)
from qbridge.util import OSC_BUF_LEN

DEFAULT_TIMEOUT = 5  # seconds


class BridgeClient:
    """UDP client for a running bridge.

    Parameters
    ----------
    bridge_addr : Endpoint
        The bridge's receive address (where instructions go).
    listen_addr : Endpoint
        The bridge's send address (where results arrive).
    bundle : bool, optional
        Wrap each instruction in a single-element bundle, by default True.
    """

    def __init__(self, bridge_addr: Endpoint, listen_addr: Endpoint, bundle=True):
        self.bridge_addr = bridge_addr
        self.listen_addr = listen_addr
        self.bundle = bundle
        self._tx: socket.socket | None = None
        self._rx: socket.socket | None = None
        self._dest = None

    def open(self):
        family, self._dest = resolve_endpoint(self.bridge_addr)
        self._rx = bind_udp_socket(self.listen_addr)
        try:
            self._tx = open_udp_socket(family)
        except Exception:
            self._rx.close()
            self._rx = None
            raise
        logger.info(
            "Client sending to {}, listening on {}", self.bridge_addr, self.listen_addr
        )

    def close(self):
        for sock in (self._tx, self._rx):
            if sock is not None:
                sock.close()
        self._tx = self._rx = None

    async def __aenter__(self) -> BridgeClient:
        self.open()
        return self

    async def __aexit__(self, *exc):
        self.close()

    def _check_open(self):
        if self._tx is None or self._rx is None:
            raise RuntimeError("Client not open.")

    async def send(self, request: Request):
        self._check_open()
        logger.debug("*REQUEST* (client->): {}", request)
        loop = asyncio.get_running_loop()
        await loop.sock_sendto(
            self._tx, encode_request(request, bundle=self.bundle), self._dest
        )

    async def send_raw(self, dgram: bytes):
        """Send arbitrary bytes (e.g. malformed packets for testing)."""
        self._check_open()
        loop = asyncio.get_running_loop()
        await loop.sock_sendto(self._tx, dgram, self._dest)

    async def recv(self, timeout: float = DEFAULT_TIMEOUT) -> Response:
        self._check_open()
        loop = asyncio.get_running_loop()
        dgram = await asyncio.wait_for(loop.sock_recv(self._rx, OSC_BUF_LEN), timeout)
        response = decode_response(dgram)
        logger.debug("*RESPONSE* (client<-): {}", response)
        return response

    # ---------- gates ----------

    async def x(self, qubit: int, reg: int = 0):
        await self.send(XRequest(reg=reg, qubit=qubit))

    async def y(self, qubit: int, reg: int = 0):
        await self.send(YRequest(reg=reg, qubit=qubit))

    async def z(self, qubit: int, reg: int = 0):
        await self.send(ZRequest(reg=reg, qubit=qubit))

    async def h(self, qubit: int, reg: int = 0):
        await self.send(HRequest(reg=reg, qubit=qubit))

    async def s(self, qubit: int, reg: int = 0):
        await self.send(SRequest(reg=reg, qubit=qubit))

    async def sdg(self, qubit: int, reg: int = 0):
        await self.send(SdgRequest(reg=reg, qubit=qubit))

    async def cx(self, control: int, target: int, reg: int = 0):
        await self.send(
            CXRequest(control_reg=reg, control=control, target_reg=reg, target=target)
        )

    async def mz(
        self, qubit: int, reg: int = 0, timeout: float = DEFAULT_TIMEOUT
    ) -> MzResponse:
        """Measure `qubit` and wait for the result."""
        await self.send(MzRequest(reg=reg, qubit=qubit))
        response = await self.recv(timeout)
        if not isinstance(response, MzResponse):
            raise RuntimeError(f"Expected an Mz result, got {response}")
        return response
