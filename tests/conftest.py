"""Shared fixtures: a fresh simulated kernel and audit log per test."""

from collections.abc import Iterator

import pytest

from posix_mq.adapter import set_default_adapter
from posix_mq.logging import Logger
from posix_mq.simulated import SimulatedKernel


@pytest.fixture
def kernel() -> SimulatedKernel:
    """Return an empty simulated kernel with Linux default limits."""
    return SimulatedKernel()


@pytest.fixture
def logger() -> Logger:
    """Return an empty audit log."""
    return Logger()


@pytest.fixture(autouse=True)
def _reset_default_adapter() -> Iterator[None]:
    """Keep tests from leaking a process-wide adapter into each other."""
    yield
    set_default_adapter(None)
