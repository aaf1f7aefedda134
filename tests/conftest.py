"""Shared fixtures for mirror tests."""

import pytest

from mirror.lists.store import ListStore
from mirror.schemas.lists import ListCategory
from mirror.schemas.mail import MailboxConfig


@pytest.fixture(autouse=True)
def _no_sops(monkeypatch):
    """Ensure tests never try to invoke SOPS."""
    monkeypatch.setenv("MIRROR_USE_SOPS", "false")


@pytest.fixture()
def store(tmp_path):
    """An empty ListStore writing under tmp_path."""
    return ListStore.open(tmp_path / "lists", list(ListCategory))


@pytest.fixture()
def mailbox_config():
    return MailboxConfig(
        server="imap.example.com",
        email="lists@example.com",
        password="secret",
    )
