"""
Unit tests for the remote wallet session store.
"""

import json
from unittest.mock import patch

import pytest

from staking_toolkit.connectors.session_store import SessionStore


@pytest.fixture
def store(tmp_path):
    return SessionStore(directory=str(tmp_path / "sessions"), default_ttl=60)


class TestSessionStore:
    @pytest.mark.asyncio
    async def test_roundtrip(self, store):
        session = {"accounts": ["0xabc"], "chain_id": 1}

        await store.set("WalletConnect", session)

        assert await store.get("WalletConnect") == session
        assert await store.get("WalletLink") is None

    @pytest.mark.asyncio
    async def test_missing_directory(self, store):
        assert await store.get("WalletConnect") is None

    @pytest.mark.asyncio
    async def test_expired_entry_removed(self, store):
        with patch("staking_toolkit.connectors.session_store.time.time", return_value=1000):
            await store.set("WalletConnect", {"accounts": ["0xabc"]}, ttl=10)

        with patch("staking_toolkit.connectors.session_store.time.time", return_value=1011):
            assert await store.get("WalletConnect") is None

        assert list(store.directory.iterdir()) == []

    @pytest.mark.asyncio
    async def test_unreadable_entry_discarded(self, store):
        await store.set("WalletConnect", {"accounts": ["0xabc"]})
        path = next(store.directory.iterdir())
        path.write_text("{not json")

        assert await store.get("WalletConnect") is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.set("WalletConnect", {"accounts": ["0xabc"]})
        await store.delete("WalletConnect")
        await store.delete("WalletConnect")

        assert await store.get("WalletConnect") is None

    @pytest.mark.asyncio
    async def test_filenames_do_not_leak_keys(self, store):
        await store.set("../WalletConnect", {"accounts": []})

        (path,) = store.directory.iterdir()
        assert "WalletConnect" not in path.name
        assert json.loads(path.read_text())["value"] == {"accounts": []}
