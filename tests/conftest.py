"""Shared fixtures for maelnode tests."""

from __future__ import annotations

import pytest

from maelnode import logger
from maelnode.workloads.broadcast import BroadcastState

from tests.utils import StubContext


@pytest.fixture(autouse=True)
def _quiet_logs():
    logger.set_colors(False)
    logger.set_level(logger.Level.WARN)
    yield
    logger.set_level(logger.Level.INFO)


@pytest.fixture
def ctx() -> StubContext:
    return StubContext()


@pytest.fixture
def state() -> BroadcastState:
    return BroadcastState()
