# tests/conftest.py
from unittest.mock import MagicMock

import pytest

from codegen.data_models import ProviderConfig
from tests.fakes import FakeTransport


@pytest.fixture
def mock_console():
    """Fixture for a mock Rich console object."""
    return MagicMock()


@pytest.fixture
def anthropic_config():
    return ProviderConfig(provider="anthropic", model="claude-3-5-haiku-latest", api_key="sk-ant-test")


@pytest.fixture
def openai_config():
    return ProviderConfig(provider="openai", model="gpt-4o-mini", api_key="sk-test")


@pytest.fixture
def fake_transport():
    return FakeTransport()
