import pytest

import qbridge.util
from qbridge.util import TEST_LOGLEVEL


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks test as slow running test (real UDP sockets)"
    )


@pytest.fixture(autouse=True, scope="session")
def bridge_log():
    qbridge.util.start_bridge_log(
        log_to_file=False, log_to_stdout=True, log_level=TEST_LOGLEVEL
    )
    yield
    qbridge.util.shutdown_bridge_log()
