"""
Shared fixtures for the Shopkeeper AI tests.
"""

import pytest

from StatusChannel import StatusChannel


@pytest.fixture
def messages():
    """Messages delivered to the attached test client."""
    return []


@pytest.fixture
def channel(messages):
    """StatusChannel with a client recording every delivered message."""
    status_channel = StatusChannel()
    status_channel.attach(object(), messages.append)
    return status_channel


@pytest.fixture
def no_sleep():
    """Sleep replacement recording the requested durations."""
    durations = []

    def sleep(seconds):
        durations.append(seconds)

    sleep.durations = durations
    return sleep
