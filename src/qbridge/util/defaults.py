# -*- coding: utf-8 -*-

DEFAULT_HOST_ADDR = "127.0.0.1"
DEFAULT_SEND_PORT = 9000
DEFAULT_RECV_PORT = 9001
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"

QUEUE_LEN = 100  # capacity of each inter-stage channel
OSC_BUF_LEN = 1000  # inbound datagrams longer than this are truncated

PROBABILITY_UNSET = 0.0  # Mz probability is never computed from amplitudes
MAX_QUBITS = 4096  # qubit indices must lie in [0, MAX_QUBITS)
