"""Shared fixtures for Herald tests."""

import os
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from herald.properties import InMemoryPropertyStore


@pytest.fixture(autouse=True)
def _no_sops(monkeypatch):
    """Ensure tests never try to invoke SOPS."""
    monkeypatch.setenv("HERALD_USE_SOPS", "false")


@pytest.fixture()
def project_root():
    """Return the project root path."""
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture
def store():
    return InMemoryPropertyStore()


@pytest.fixture
def created_at():
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def group():
    grp = MagicMock()
    grp.name = "newcomers"
    grp.members = set()
    return grp


@pytest.fixture
def collaborators(group):
    """Mocked router, transport and stores, keyed by pipeline argument name."""
    groups = MagicMock()
    groups.get_group.return_value = group
    return {
        "router": MagicMock(),
        "email_transport": MagicMock(),
        "groups": groups,
        "privacy_lists": MagicMock(),
        "lockouts": MagicMock(),
    }
