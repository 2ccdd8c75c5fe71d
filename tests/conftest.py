import pytest

from fakes import NOW, FakeHubSpot, RecordingReporter


@pytest.fixture
def hubspot():
    return FakeHubSpot()


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def clock():
    return lambda: NOW
