"""Pytest configuration - loads .env for integration tests."""

from pathlib import Path

import pytest
from dotenv import load_dotenv
from helpers import MockFetch, generate_test_api_key

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


@pytest.fixture
def api_key() -> str:
    return generate_test_api_key()


@pytest.fixture
def mock_fetch() -> MockFetch:
    return MockFetch({"ok": True})
