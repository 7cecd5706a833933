"""
Message, configuration and backend types for qbridge.

1. Messages (messages.py)
    - `Request` variants decoded from inbound OSC messages
    - `Response` variants encoded into outbound OSC messages
    - mashumaro dataclasses, discriminated on `kind`

2. Configuration (config.py)
    - `Endpoint` and `BridgeConfig`
    - Named policies: decode, outbound framing, lifecycle, unhandled kinds

3. Protocols (protocols.py)
    - Accumulator and simulator interfaces the runner depends on

4. Errors (errors.py)
    - `ProtocolError` family: recoverable per-datagram problems
    - Everything else: fatal to the stage that raised it

Examples
--------
Converting between OSC and Requests:
```python
from qbridge.types import HRequest, Request
msg = HRequest(reg=0, qubit=0).to_osc()
assert Request.from_osc(msg) == HRequest(reg=0, qubit=0)
```
"""

from .config import (
    BridgeConfig,
    DecodePolicy,
    Endpoint,
    Lifecycle,
    OutboundFraming,
    UnhandledPolicy,
)
from .errors import (
    BackendError,
    BridgeError,
    ChannelClosed,
    DecodeError,
    FramingError,
    MessageConversionError,
    ProtocolError,
    StageExited,
    TransportError,
    UnhandledRequestError,
)
from .messages import (
    CXRequest,
    HRequest,
    Message,
    MzRequest,
    MzResponse,
    Request,
    Response,
    SdgRequest,
    SRequest,
    TdgRequest,
    TRequest,
    XRequest,
    YRequest,
    ZRequest,
    get_all_subclasses_map,
    get_request_map,
    get_response_map,
    operand_names,
    request_from_osc,
    response_from_osc,
)
from .protocols import OperationsProtocol, SimulatorProtocol
