"""
Pytest configuration and shared fixtures.
"""

import io

import pytest

from latency_receiver.dispatcher import EventDispatcher
from latency_receiver.latency import LatencyRecorder
from latency_receiver.reporter import Reporter
from latency_receiver.session import SessionState

from tests.fakes import FakeClock, FakeTransport


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def state() -> SessionState:
    return SessionState(target_address="topic", credit_window=100)


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def dispatcher(state, transport, clock, output) -> EventDispatcher:
    recorder = LatencyRecorder()
    return EventDispatcher(
        state,
        transport,
        recorder=recorder,
        reporter=Reporter(state, recorder, output),
        measure_latency=True,
        clock=clock,
    )
