"""Shared fixtures."""

from __future__ import annotations

import pytest


class FakeClock:
    """Monotonic clock stand-in; tests move time explicitly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
