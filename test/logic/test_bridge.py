"""End-to-end tests: client -> bridge -> client over loopback UDP."""

import asyncio
import json
import socket
from unittest.mock import patch

import pytest
import pytest_asyncio
from fakes import RecordingSimulator, local_endpoint
from pythonosc import osc_bundle_builder

from qbridge.server.bridge import register_bridge, run_bridge
from qbridge.server.client import BridgeClient
from qbridge.types import (
    BackendError,
    BridgeConfig,
    DecodeError,
    DecodePolicy,
    Lifecycle,
    MzRequest,
    MzResponse,
    OutboundFraming,
    TransportError,
    TRequest,
    UnhandledRequestError,
)

STARTUP_DELAY = 0.2


def make_config(**kwargs) -> BridgeConfig:
    return BridgeConfig(
        send_addr=local_endpoint(), recv_addr=local_endpoint(), seed=1, **kwargs
    )


def rebind(endpoint):
    """Fails if the bridge still holds the port."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind(endpoint.as_tuple())


class RunningBridge:
    def __init__(self, config, simulator=None):
        self.config = config
        self.shutdown = asyncio.Event()
        self.task = asyncio.create_task(
            run_bridge(config, self.shutdown, simulator, handle_signals=False)
        )
        self.client = BridgeClient(config.recv_addr, config.send_addr)

    async def stop(self):
        self.client.close()
        self.shutdown.set()
        await asyncio.wait_for(self.task, 5)


class BridgeClientContext:
    def __init__(self, config):
        self.client = BridgeClient(config.recv_addr, config.send_addr)

    def __enter__(self) -> BridgeClient:
        self.client.open()
        return self.client

    def __exit__(self, *exc):
        self.client.close()


@pytest_asyncio.fixture
async def bridge():
    running = RunningBridge(make_config())
    running.client.open()
    await asyncio.sleep(STARTUP_DELAY)
    yield running
    if not running.task.done():
        await running.stop()


@pytest.mark.asyncio
@pytest.mark.slow
async def test_x_then_measure(bridge: RunningBridge):
    await bridge.client.x(0)
    assert await bridge.client.mz(0) == MzResponse(bit=1, probability=0.0)


@pytest.mark.asyncio
@pytest.mark.slow
async def test_h_then_measure(bridge: RunningBridge):
    await bridge.client.h(0)
    response = await bridge.client.mz(0)
    assert response.bit in (0, 1)


@pytest.mark.asyncio
@pytest.mark.slow
async def test_measurements_are_independent(bridge: RunningBridge):
    await bridge.client.x(0)
    assert (await bridge.client.mz(0)).bit == 1
    # no gates in between: a fresh circuit measures 0
    assert (await bridge.client.mz(0)).bit == 0


@pytest.mark.asyncio
@pytest.mark.slow
async def test_cx_entangles(bridge: RunningBridge):
    await bridge.client.x(0)
    await bridge.client.cx(0, 1)
    assert (await bridge.client.mz(1)).bit == 1


@pytest.mark.asyncio
@pytest.mark.slow
async def test_malformed_traffic_does_not_stop_bridge(bridge: RunningBridge):
    empty = osc_bundle_builder.OscBundleBuilder(osc_bundle_builder.IMMEDIATELY)
    await bridge.client.send_raw(b"\x00\x01garbage")
    await bridge.client.send_raw(empty.build().dgram)
    await bridge.client.x(1)
    await bridge.client.cx(1, 2)
    assert (await bridge.client.mz(2)).bit == 1
    assert not bridge.task.done()


@pytest.mark.asyncio
@pytest.mark.slow
async def test_bare_client_messages(bridge: RunningBridge):
    bridge.client.bundle = False
    await bridge.client.y(0)
    assert (await bridge.client.mz(0)).bit == 1


@pytest.mark.asyncio
@pytest.mark.slow
async def test_responses_in_order(bridge: RunningBridge):
    # send everything before reading anything back
    for q in range(5):
        if q % 2 == 0:
            await bridge.client.x(q)
        await bridge.client.send(MzRequest(reg=0, qubit=q))
    bits = [(await bridge.client.recv()).bit for _ in range(5)]
    assert bits == [1, 0, 1, 0, 1]


@pytest.mark.asyncio
@pytest.mark.slow
async def test_shutdown_releases_sockets(bridge: RunningBridge):
    await bridge.stop()
    assert bridge.task.done()
    assert bridge.task.exception() is None
    rebind(bridge.config.recv_addr)


@pytest.mark.asyncio
@pytest.mark.slow
async def test_bundle_outbound_framing():
    running = RunningBridge(make_config(outbound_framing=OutboundFraming.BUNDLE))
    running.client.open()
    await asyncio.sleep(STARTUP_DELAY)
    try:
        await running.client.x(0)
        assert (await running.client.mz(0)).bit == 1
    finally:
        await running.stop()


@pytest.mark.asyncio
async def test_interrupt_lifecycle_raises_when_all_stages_exit():
    config = make_config()
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as taken:
        taken.bind(config.recv_addr.as_tuple())
        running = RunningBridge(config, RecordingSimulator())
        # receiver cannot bind, runner and sender follow: nothing left to run
        with pytest.raises(TransportError):
            await asyncio.wait_for(running.task, 5)
    assert not running.shutdown.is_set()


@pytest.mark.asyncio
@pytest.mark.slow
async def test_interrupt_lifecycle_outlives_single_stage_failure():
    running = RunningBridge(make_config())
    running.client.open()
    await asyncio.sleep(STARTUP_DELAY)
    try:
        await running.client.send(TRequest(reg=0, qubit=0))
        await asyncio.sleep(STARTUP_DELAY)
        # runner and sender are gone, receiver still waits for traffic
        assert not running.task.done()
        await running.client.x(0)
        with pytest.raises(UnhandledRequestError):
            await asyncio.wait_for(running.task, 5)
    finally:
        running.client.close()
    rebind(running.config.recv_addr)


@pytest.mark.asyncio
@pytest.mark.slow
async def test_huge_qubit_index_does_not_crash_bridge():
    running = RunningBridge(make_config())
    running.client.open()
    await asyncio.sleep(STARTUP_DELAY)
    try:
        await running.client.x(262144)
        await running.client.send(MzRequest(reg=0, qubit=262144))
        with pytest.raises(asyncio.TimeoutError):
            await running.client.recv(timeout=0.5)
        await running.client.x(0)
        with pytest.raises(BackendError):
            await asyncio.wait_for(running.task, 5)
    finally:
        running.client.close()


# ----------------------------------------------------------------------------
# run to completion


@pytest.mark.asyncio
async def test_run_to_completion_raises_bind_failure():
    config = make_config(lifecycle=Lifecycle.RUN_TO_COMPLETION)
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as taken:
        taken.bind(config.recv_addr.as_tuple())
        with pytest.raises(TransportError):
            await asyncio.wait_for(
                run_bridge(config, simulator=RecordingSimulator(), handle_signals=False),
                5,
            )


@pytest.mark.asyncio
@pytest.mark.slow
async def test_run_to_completion_strict_decode():
    config = make_config(
        lifecycle=Lifecycle.RUN_TO_COMPLETION, decode_policy=DecodePolicy.STRICT
    )
    task = asyncio.create_task(run_bridge(config, handle_signals=False))
    await asyncio.sleep(STARTUP_DELAY)
    with BridgeClientContext(config) as client:
        await client.send_raw(b"garbage")
        with pytest.raises(DecodeError):
            await asyncio.wait_for(task, 5)
    rebind(config.recv_addr)


@pytest.mark.asyncio
@pytest.mark.slow
async def test_run_to_completion_unhandled_kind():
    config = make_config(lifecycle=Lifecycle.RUN_TO_COMPLETION)
    task = asyncio.create_task(run_bridge(config, handle_signals=False))
    await asyncio.sleep(STARTUP_DELAY)
    with BridgeClientContext(config) as client:
        await client.send(TRequest(reg=0, qubit=0))
        with pytest.raises(UnhandledRequestError):
            await asyncio.wait_for(task, 5)


# ----------------------------------------------------------------------------


def test_register_bridge(tmp_path):
    config = make_config()
    with patch("qbridge.server.bridge.get_bridges_dir", return_value=tmp_path):
        pid_file = register_bridge(config)
    info = json.loads(pid_file.read_text())
    assert pid_file.parent == tmp_path
    assert info["send_addr"] == str(config.send_addr)
    assert info["recv_addr"] == str(config.recv_addr)
