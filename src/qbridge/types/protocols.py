"""Backend protocols: the instruction accumulator and the simulator.

The runner only talks to these interfaces, so any backend that implements
the methods can be plugged in (and tests can substitute recording fakes).

The Accumulator Lifecycle
-------------------------
1. `SimulatorProtocol.new_operations()` creates an empty accumulator,
   the runner calls `initialize()` on it.
2. Each gate request appends one gate (`x`, `cx`, ...).
3. A measurement request calls `measure(q)`, then
   `await simulator.send_receive(ops)` flushes the whole accumulator and
   returns a bitstring whose character `q` is the measured bit.
4. The runner discards the accumulator and starts a fresh one.

See Also
--------
qbridge.backend.stim_backend : Default stim implementation
qbridge.server.runner : The consumer of these protocols
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class OperationsProtocol(Protocol):
    """A mutable, in-progress circuit. `len()` is the number of operations."""

    def initialize(self) -> None: ...

    def x(self, qubit: int) -> None: ...

    def y(self, qubit: int) -> None: ...

    def z(self, qubit: int) -> None: ...

    def h(self, qubit: int) -> None: ...

    def s(self, qubit: int) -> None: ...

    def sdg(self, qubit: int) -> None: ...

    def cx(self, control: int, target: int) -> None: ...

    def measure(self, qubit: int) -> None: ...

    def __len__(self) -> int: ...


@runtime_checkable
class SimulatorProtocol(Protocol):
    """Executes a flushed accumulator and returns the measured bitstring."""

    def new_operations(self) -> OperationsProtocol: ...

    async def send_receive(self, ops: OperationsProtocol) -> str:
        """Run `ops` from a fresh |0...0> state.

        Returns
        -------
        str
            One character ("0"/"1") per qubit, indexed by qubit number.
        """
        ...
