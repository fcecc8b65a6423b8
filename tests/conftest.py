"""Shared pytest fixtures for the control surface test suite."""

import pytest

from core.connection_state import ConnectionStore
from events import EventBus
from tests.helpers import FakeDaemonClient


@pytest.fixture
def fake_client() -> FakeDaemonClient:
    return FakeDaemonClient()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store(event_bus) -> ConnectionStore:
    return ConnectionStore(event_bus=event_bus)
