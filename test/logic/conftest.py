import pytest
from fakes import RecordingSimulator


@pytest.fixture
def simulator():
    return RecordingSimulator()
