"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Iterator

import pytest

from ispy import bus
from ispy.clock import ManualClock
from ispy.spy import SpyRegistry, set_spy_registry
from ispy.spyable import Spyable, spied


@pytest.fixture(autouse=True)
def spy_registry() -> Iterator[SpyRegistry]:
    """Fresh process-wide Spy registry for every test."""
    registry = SpyRegistry()
    previous = set_spy_registry(registry)
    yield registry
    set_spy_registry(previous)


@pytest.fixture(autouse=True)
def default_isolation() -> Iterator[None]:
    """Restore listener isolation after tests that change it."""
    previous = bus.get_default_isolation()
    yield
    bus.set_default_isolation(previous)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


class Ship(Spyable):
    """Minimal spyable subject used across tests."""

    x = spied(0.0)
    name = spied("ship")

    def __repr__(self) -> str:
        return f"Ship({self.name})"


@pytest.fixture
def ship() -> Ship:
    return Ship()
