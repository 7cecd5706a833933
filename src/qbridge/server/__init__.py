# -*- coding: utf-8 -*-
"""
The bridge pipeline: receiver, runner and sender stages plus the
orchestrator that runs them.

Examples
--------
Running a bridge until Ctrl-C:
```python
import asyncio
from qbridge.server import start_bridge
from qbridge.types import BridgeConfig, Endpoint

config = BridgeConfig(
    send_addr=Endpoint.parse("127.0.0.1:9000"),
    recv_addr=Endpoint.parse("127.0.0.1:9001"),
)
asyncio.run(start_bridge(config))
```

See Also
--------
qbridge.server.bridge : Orchestrator and lifecycles
qbridge.server.codec : OSC framing
qbridge.server.client : A client for the bridge
"""

from .bg_killer import (
    cleanup_stale_bridges,
    get_bridges_dir,
    kill_bridges,
    list_running_bridges,
)
from .bridge import register_bridge, run_bridge, start_bridge
from .channel import Channel
from .codec import (
    decode_packet,
    decode_request,
    decode_response,
    encode_request,
    encode_response,
    unwrap_single_message,
)
from .receiver import handle_datagram, receiver_loop
from .runner import extract_bit, flush_measurement, runner_loop
from .sender import sender_loop
