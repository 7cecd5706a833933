# -*- coding: utf-8 -*-
"""# qbridge

A bridge that exposes quantum gate execution over an OSC/UDP message
protocol.

Clients send one gate instruction per datagram (X, Y, Z, H, S, Sdg, CX and
the Z measurement Mz). The bridge accumulates gates into a circuit and, on
each measurement, runs the circuit on a stabilizer simulator and sends the
measured bit back.

- `qbridge.server`: receiver, runner and sender stages and the orchestrator
- `qbridge.types`: messages, configuration, backend protocols, errors
- `qbridge.backend`: the stim simulator backend
- `qbridge.server.client`: an asyncio client
- `qbridge.cli`: the `qbridge` command
"""

from ._version import __version__
