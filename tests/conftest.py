"""Shared fixtures."""

from typing import List

import pytest
from loguru import logger

from tests.fakes import FakeMeilisearch


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def fake_meilisearch():
    return FakeMeilisearch()
