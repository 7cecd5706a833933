# -*- coding: utf-8 -*-
"""
Utility functions and constants for qbridge.

- Default addresses, buffer and queue sizes
- Logging configuration and management

See Also
--------
qbridge.util.logging : Logging configuration
qbridge.util.defaults : Constants
"""

from .defaults import (
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_RECV_PORT,
    DEFAULT_SEND_PORT,
    MAX_QUBITS,
    OSC_BUF_LEN,
    PROBABILITY_UNSET,
    QUEUE_LEN,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    get_log_filename,
    log_default_path_bridge,
    shutdown_bridge_log,
    start_bridge_log,
)
