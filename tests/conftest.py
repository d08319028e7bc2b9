# tests/conftest.py
import pytest

from redfish_client.config import RedfishSettings


@pytest.fixture
def settings() -> RedfishSettings:
    """Settings isolated from any .env file on the machine running the tests."""
    return RedfishSettings(_env_file=None)
