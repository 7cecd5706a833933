# qbridge/backend/stim_backend.py
from __future__ import annotations

import asyncio

import stim
from loguru import logger

from qbridge.types.errors import BackendError
from qbridge.util.defaults import MAX_QUBITS


class StimOperations:
    """Gate-by-gate circuit accumulator for the stim backend.

    Gates are only recorded here; nothing touches stim until the simulator
    flushes the accumulator, so index problems surface as `BackendError`.
    """

    def __init__(self):
        self.initialize()

    def initialize(self) -> None:
        """Drop all recorded operations."""
        self.ops: list[tuple[str, tuple[int, ...]]] = []
        self.measured: list[int] = []

    # ---------- gates ----------

    def _do1(self, opname: str, t: int) -> None:
        self.ops.append((opname, (t,)))

    def _do2(self, opname: str, t0: int, t1: int) -> None:
        self.ops.append((opname, (t0, t1)))

    def x(self, qubit: int) -> None:
        self._do1("X", qubit)

    def y(self, qubit: int) -> None:
        self._do1("Y", qubit)

    def z(self, qubit: int) -> None:
        self._do1("Z", qubit)

    def h(self, qubit: int) -> None:
        self._do1("H", qubit)

    def s(self, qubit: int) -> None:
        self._do1("S", qubit)

    def sdg(self, qubit: int) -> None:
        self._do1("S_DAG", qubit)

    def cx(self, control: int, target: int) -> None:
        self._do2("CX", control, target)

    def measure(self, qubit: int) -> None:
        self._do1("M", qubit)
        self.measured.append(qubit)

    # ---------- export ----------

    def to_circuit(self) -> stim.Circuit:
        circuit = stim.Circuit()
        for opname, targets in self.ops:
            if any(t < 0 or t >= MAX_QUBITS for t in targets):
                raise ValueError(
                    f"Qubit index out of range [0, {MAX_QUBITS}) in "
                    f"{opname}{list(targets)}"
                )
            circuit.append(opname, list(targets))
        return circuit

    def __len__(self) -> int:
        return len(self.ops)

    def __repr__(self):
        return f"StimOperations({' '.join(f'{n}{list(t)}' for n, t in self.ops)})"


class StimSimulator:
    """Runs a `StimOperations` accumulator for a single shot.

    Parameters
    ----------
    seed : int | None
        Sampler seed. With a seed every flush of the same circuit returns
        the same bitstring.
    """

    def __init__(self, seed: int | None = None):
        self.seed = seed

    def new_operations(self) -> StimOperations:
        return StimOperations()

    async def send_receive(self, ops: StimOperations) -> str:
        # sampling runs off the event loop so receiver/sender keep going
        return await asyncio.to_thread(self.run, ops)

    def run(self, ops: StimOperations) -> str:
        """Blocking single-shot execution, returns one character per qubit."""
        try:
            circuit = ops.to_circuit()
            sampler = circuit.compile_sampler(seed=self.seed)
            shot = sampler.sample(shots=1)[0]
        except Exception as e:
            raise BackendError(f"Simulation of {ops!r} failed: {e}") from e

        # measurement record order == order of measure() calls
        bits = ["0"] * circuit.num_qubits
        for qubit, value in zip(ops.measured, shot):
            bits[qubit] = "1" if value else "0"
        result = "".join(bits)
        logger.trace("Simulated {} -> {}", ops, result)
        return result
