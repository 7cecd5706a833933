"""
Quantum-state backends for the runner.

A backend provides an accumulator implementing
`qbridge.types.OperationsProtocol` and a simulator implementing
`qbridge.types.SimulatorProtocol`. The default is a stim stabilizer
simulator, which covers the Clifford gates the runner applies.
"""

from .stim_backend import StimOperations, StimSimulator
