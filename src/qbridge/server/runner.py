# -*- coding: utf-8 -*-
"""
Runner stage: owns the instruction accumulator and the simulator.

Gate requests are appended to the accumulator in arrival order. A
measurement request flushes the accumulator to the simulator, reads the
measured qubit's bit out of the returned bitstring, emits one `MzResponse`
and starts over with a fresh, empty accumulator. Every measurement is
therefore an independent circuit run from |0...0>.
"""

from __future__ import annotations

from typing import Callable

from loguru import logger

from qbridge.server.channel import Channel
from qbridge.types import (
    BackendError,
    ChannelClosed,
    CXRequest,
    HRequest,
    MzRequest,
    MzResponse,
    OperationsProtocol,
    Request,
    Response,
    SdgRequest,
    SimulatorProtocol,
    SRequest,
    StageExited,
    UnhandledPolicy,
    UnhandledRequestError,
    XRequest,
    YRequest,
    ZRequest,
)
from qbridge.util import PROBABILITY_UNSET

# ============================================================================


def get_gate_map() -> dict[
    type[Request], Callable[[OperationsProtocol, Request], None]
]:
    return {
        XRequest: lambda ops, req: ops.x(req.qubit),
        YRequest: lambda ops, req: ops.y(req.qubit),
        ZRequest: lambda ops, req: ops.z(req.qubit),
        HRequest: lambda ops, req: ops.h(req.qubit),
        SRequest: lambda ops, req: ops.s(req.qubit),
        SdgRequest: lambda ops, req: ops.sdg(req.qubit),
        CXRequest: lambda ops, req: ops.cx(req.control, req.target),
    }


def new_accumulator(simulator: SimulatorProtocol) -> OperationsProtocol:
    ops = simulator.new_operations()
    ops.initialize()
    return ops


def extract_bit(result: str, qubit: int) -> int:
    """Classical bit for `qubit` out of a simulator bitstring."""
    if not 0 <= qubit < len(result):
        raise BackendError(
            f"Result '{result}' has no bit for qubit {qubit} ({len(result)} qubits)."
        )
    char = result[qubit]
    if char not in ("0", "1"):
        raise BackendError(f"Result '{result}' has non-binary bit '{char}'.")
    return int(char)


async def flush_measurement(
    simulator: SimulatorProtocol, ops: OperationsProtocol, request: MzRequest
) -> MzResponse:
    """Measure, execute the accumulated circuit and build the response."""
    ops.measure(request.qubit)
    logger.debug("Flushing {} operations to the simulator.", len(ops))
    # the runner's only suspension point besides the channel get; no timeout
    result = await simulator.send_receive(ops)
    bit = extract_bit(result, request.qubit)
    return MzResponse(bit=bit, probability=PROBABILITY_UNSET)


# ============================================================================


async def runner_loop(
    ops_rx: Channel[Request],
    result_tx: Channel[Response],
    simulator: SimulatorProtocol,
    unhandled: UnhandledPolicy = UnhandledPolicy.FATAL,
):
    """Apply Requests from `ops_rx` in order, push Responses to `result_tx`.

    Raises
    ------
    StageExited
        The receiver closed the request channel.
    ChannelClosed
        The sender has exited.
    UnhandledRequestError
        Unhandled request kind under `UnhandledPolicy.FATAL`.
    BackendError
        The simulator failed; the measurement is aborted.
    """
    gate_map = get_gate_map()
    ops = new_accumulator(simulator)
    try:
        while True:
            try:
                request = await ops_rx.get()
            except ChannelClosed:
                break

            if isinstance(request, MzRequest):
                response = await flush_measurement(simulator, ops, request)
                logger.debug("*RESPONSE* (runner->): {}", response)
                await result_tx.put(response)
                ops = new_accumulator(simulator)
                continue

            try:
                apply = gate_map[type(request)]
            except KeyError:
                if unhandled is UnhandledPolicy.SKIP:
                    logger.warning("Skipping unhandled request: {}", request)
                    continue
                raise UnhandledRequestError(
                    f"Unhandled request kind '{request.kind}': {request}"
                ) from None
            apply(ops, request)
            logger.trace("Applied {} ({} operations pending)", request, len(ops))
        raise StageExited("runner_loop unexpected exit")
    finally:
        ops_rx.close()
        result_tx.close()
