"""Shared pytest fixtures for dubtrack tests."""

from urllib.parse import quote

import pytest
from unittest.mock import AsyncMock, MagicMock

from dubtrack.config import ComponentSettings
from dubtrack.host import MemoryClient


@pytest.fixture
def settings():
    """Component settings with a test API key."""
    return ComponentSettings(api_key="dub_test_key_123")


@pytest.fixture
def session_cookie():
    """Encoded session cookie carrying both a session and a customer id."""
    return quote('{"sessionId":"session123","customerId":"customer456"}', safe="")


@pytest.fixture
def known_client(session_cookie):
    """Client with a Dub click cookie and a complete session cookie."""
    return MemoryClient(
        cookies={"mc_dub": session_cookie},
        headers={"cookie": "dub_id=click123; other=value"},
    )


@pytest.fixture
def new_client():
    """Client with no cookies at all."""
    return MemoryClient()


@pytest.fixture
def mock_dub_api():
    """Mock DubClient exposing track.lead and track.sale."""
    api = MagicMock()
    api.track.lead = AsyncMock(return_value={})
    api.track.sale = AsyncMock(return_value={})
    return api
