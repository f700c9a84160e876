import pytest

from ghost import GhostSession
from ghost_mocks import reset_mocks


@pytest.fixture(autouse=True)
def fresh_mocks():
    reset_mocks()
    yield


@pytest.fixture
def session():
    """A fresh evaluation session per test."""
    return GhostSession()
