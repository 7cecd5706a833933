"""Exception hierarchy for the bridge pipeline.

`ProtocolError` and its subclasses are per-datagram problems: the receiver
logs and drops them under the lenient decode policy. Everything else escapes
the stage that raised it.
"""


class BridgeError(Exception):
    """Base exception for qbridge."""

    pass


class ProtocolError(BridgeError):
    """Inbound datagram could not be turned into a Request."""

    pass


class DecodeError(ProtocolError):
    """The OSC codec could not parse the datagram."""

    pass


class FramingError(ProtocolError):
    """Datagram did not resolve to exactly one message."""

    pass


class MessageConversionError(ProtocolError):
    """OSC message does not map onto a Request variant."""

    pass


class TransportError(BridgeError):
    """Socket bind/send/receive failure."""

    pass


class ChannelClosed(BridgeError):
    """The stage on the other end of a channel has exited."""

    pass


class UnhandledRequestError(BridgeError):
    """Runner received a request kind it does not implement."""

    pass


class BackendError(BridgeError):
    """Simulator failed or returned an unusable result."""

    pass


class StageExited(BridgeError):
    """A stage loop finished without raising (its input was closed)."""

    pass
