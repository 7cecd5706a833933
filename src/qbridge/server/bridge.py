# -*- coding: utf-8 -*-
"""
Bridge orchestrator: wires the receiver, runner and sender together.

    network -> receiver -> request channel -> runner -> response channel
            -> sender -> network

The three stages run as concurrent asyncio tasks and share nothing but the
two bounded channels. Each stage closes its channels when it exits, so a
failure anywhere unwinds the whole pipeline.

Two lifecycles are supported (see `qbridge.types.Lifecycle`):

- `interrupt` (default): run until SIGINT/SIGTERM (or the `shutdown` event),
  then cancel all three stages without draining. If all three stages exit
  on their own first (e.g. the receive address cannot be bound), the
  earliest failure is raised.
- `run_to_completion`: as soon as one stage exits, cancel the other two and
  re-raise the first failure.
"""
# ============================================================================

import asyncio
import json
import os
import signal
from datetime import datetime
from pathlib import Path

from loguru import logger
from setproctitle import setproctitle

# ============================================================================
import qbridge.util
from qbridge.backend import StimSimulator
from qbridge.server.bg_killer import get_bridges_dir
from qbridge.server.channel import Channel
from qbridge.server.receiver import receiver_loop
from qbridge.server.runner import runner_loop
from qbridge.server.sender import sender_loop
from qbridge.types import (
    BridgeConfig,
    Lifecycle,
    Request,
    Response,
    SimulatorProtocol,
    StageExited,
)

# ============================================================================


def register_bridge(config: BridgeConfig) -> Path:
    """Register a running bridge in the PID directory."""
    pid = os.getpid()
    timestamp = datetime.now().strftime("%Y-%m-%d_%H:%M:%S")

    bridge_info = {
        "pid": pid,
        "timestamp": timestamp,
        "send_addr": str(config.send_addr),
        "recv_addr": str(config.recv_addr),
    }

    pid_file = get_bridges_dir() / f"bridge_{pid}.json"
    with pid_file.open("w") as f:
        json.dump(bridge_info, f, indent=2)

    return pid_file


# ============================================================================


def _log_stage_exit(task: asyncio.Task):
    if task.cancelled():
        logger.debug("{} cancelled.", task.get_name())
        return
    exc = task.exception()
    if isinstance(exc, StageExited):
        logger.warning("{} exited: {}", task.get_name(), exc)
    elif exc is not None:
        logger.opt(exception=exc).error("{} failed.", task.get_name())


def start_stages(
    config: BridgeConfig, simulator: SimulatorProtocol
) -> list[asyncio.Task]:
    requests: Channel[Request] = Channel(config.queue_len, "request channel")
    responses: Channel[Response] = Channel(config.queue_len, "response channel")
    stages = [
        asyncio.create_task(
            receiver_loop(
                config.recv_addr, requests, config.decode_policy, config.buffer_len
            ),
            name="receiver",
        ),
        asyncio.create_task(
            runner_loop(requests, responses, simulator, config.unhandled_policy),
            name="runner",
        ),
        asyncio.create_task(
            sender_loop(
                config.send_addr,
                responses,
                config.outbound_framing,
                config.send_bind_addr,
            ),
            name="sender",
        ),
    ]
    for task in stages:
        task.add_done_callback(_log_stage_exit)
    return stages


async def cancel_stages(stages: list[asyncio.Task]):
    """Cancel without draining, wait for sockets to be released."""
    for task in stages:
        task.cancel()
    await asyncio.gather(*stages, return_exceptions=True)


def _track_exit_order(stages: list[asyncio.Task]) -> list[asyncio.Task]:
    finished: list[asyncio.Task] = []
    for task in stages:
        task.add_done_callback(finished.append)
    return finished


def _raise_first_failure(finished: list[asyncio.Task]):
    for task in finished:
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()


async def wait_for_completion(stages: list[asyncio.Task]):
    """Wait for a stage to exit, stop the others, raise the earliest failure.

    A stage blocked on the network never sees its peer go away, so the
    remaining stages are cancelled rather than awaited.
    """
    finished = _track_exit_order(stages)
    try:
        await asyncio.wait(stages, return_when=asyncio.FIRST_COMPLETED)
    finally:
        await cancel_stages(stages)
    _raise_first_failure(finished)


def _install_signal_handlers(shutdown: asyncio.Event) -> list[int]:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            # windows / non-main thread: KeyboardInterrupt cancels us instead
            logger.debug("Cannot install handler for {}", sig)
    return installed


async def wait_for_interrupt(
    stages: list[asyncio.Task],
    shutdown: asyncio.Event | None = None,
    handle_signals: bool = True,
):
    """Run until `shutdown` is set (by a signal or the caller), or until all
    three stages have exited on their own.

    In the second case the earliest stage failure is raised.
    """
    if shutdown is None:
        shutdown = asyncio.Event()
    finished = _track_exit_order(stages)
    installed = _install_signal_handlers(shutdown) if handle_signals else []
    interrupted = asyncio.create_task(shutdown.wait(), name="shutdown")
    all_exited = asyncio.create_task(asyncio.wait(stages), name="all stages")
    try:
        await asyncio.wait(
            [interrupted, all_exited], return_when=asyncio.FIRST_COMPLETED
        )
        if shutdown.is_set():
            logger.info("Shutdown requested, cancelling stages.")
        else:
            logger.warning("All stages exited.")
    finally:
        interrupted.cancel()
        all_exited.cancel()
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)
        await cancel_stages(stages)
    if not shutdown.is_set():
        _raise_first_failure(finished)


async def run_bridge(
    config: BridgeConfig,
    shutdown: asyncio.Event | None = None,
    simulator: SimulatorProtocol | None = None,
    handle_signals: bool = True,
):
    """Run the three stages under the configured lifecycle.

    Parameters
    ----------
    config : BridgeConfig
        Endpoints, sizes and policies.
    shutdown : asyncio.Event, optional
        Setting it stops an `interrupt` lifecycle bridge.
    simulator : SimulatorProtocol, optional
        Backend, by default a `StimSimulator` seeded with `config.seed`.
    handle_signals : bool, optional
        Install SIGINT/SIGTERM handlers (interrupt lifecycle), by default True.
    """
    if simulator is None:
        simulator = StimSimulator(seed=config.seed)
    logger.info("Starting bridge: {}", config.to_dict())
    stages = start_stages(config, simulator)
    if config.lifecycle is Lifecycle.RUN_TO_COMPLETION:
        await wait_for_completion(stages)
    else:
        await wait_for_interrupt(stages, shutdown, handle_signals)
    logger.info("Bridge stopped.")


async def start_bridge(config: BridgeConfig, shutdown: asyncio.Event | None = None):
    """Process entry point: logging, process title, PID file, then run."""
    timestamp = datetime.now().strftime("%Y-%m-%d_%H:%M:%S")
    setproctitle(f"qbridge_{timestamp}")

    qbridge.util.start_bridge_log(
        log_to_file=config.log_to_file,
        log_to_stdout=config.log_to_stdout,
        log_path=config.log_path,
        clear_prev=config.clear_prev_log,
        log_level=config.log_level,
    )

    pid_file = register_bridge(config)
    try:
        await run_bridge(config, shutdown)
    finally:
        pid_file.unlink(missing_ok=True)
