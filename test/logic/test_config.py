import pytest

from qbridge.types import (
    BridgeConfig,
    DecodePolicy,
    Endpoint,
    Lifecycle,
    OutboundFraming,
    UnhandledPolicy,
)
from qbridge.util import OSC_BUF_LEN, QUEUE_LEN


@pytest.mark.parametrize(
    "text, host, port",
    [
        ("127.0.0.1:9000", "127.0.0.1", 9000),
        ("localhost:0", "localhost", 0),
        ("[::1]:9001", "::1", 9001),
        (" 10.0.0.2:65535 ", "10.0.0.2", 65535),
    ],
)
def test_endpoint_parse(text, host, port):
    endpoint = Endpoint.parse(text)
    assert endpoint == Endpoint(host=host, port=port)
    assert endpoint.as_tuple() == (host, port)


@pytest.mark.parametrize(
    "text",
    ["", "9000", "127.0.0.1", ":9000", "127.0.0.1:", "host:port", "h:70000", "::1:9000", "[nope]:1"],
)
def test_endpoint_parse_rejects(text):
    with pytest.raises(ValueError):
        Endpoint.parse(text)


def test_endpoint_str():
    assert str(Endpoint.parse("127.0.0.1:9000")) == "127.0.0.1:9000"
    assert str(Endpoint.parse("[::1]:9000")) == "[::1]:9000"


def test_config_defaults():
    config = BridgeConfig(
        send_addr=Endpoint.parse("127.0.0.1:9000"),
        recv_addr=Endpoint.parse("127.0.0.1:9001"),
    )
    assert config.queue_len == QUEUE_LEN == 100
    assert config.buffer_len == OSC_BUF_LEN == 1000
    assert config.decode_policy is DecodePolicy.LENIENT
    assert config.outbound_framing is OutboundFraming.BARE
    assert config.lifecycle is Lifecycle.INTERRUPT
    assert config.unhandled_policy is UnhandledPolicy.FATAL
    assert config.send_bind_addr is None


def test_config_dict_roundtrip():
    config = BridgeConfig(
        send_addr=Endpoint.parse("127.0.0.1:9000"),
        recv_addr=Endpoint.parse("127.0.0.1:9001"),
        decode_policy=DecodePolicy.STRICT,
        seed=7,
    )
    as_dict = config.to_dict()
    assert as_dict["decode_policy"] == "strict"
    assert as_dict["send_addr"] == {"host": "127.0.0.1", "port": 9000}
    assert BridgeConfig.from_dict(as_dict) == config
