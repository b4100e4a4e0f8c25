"""
File-based persistence for remote wallet sessions.

Remote-session connectors store the accounts and chain they were authorized
for so that a later process can resume without pairing again. Entries expire
after a TTL, like the wallet sessions themselves.
"""

import asyncio
import hashlib
import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

from staking_toolkit.shared.constants import ConnectorConstants
from staking_toolkit.shared.logging import get_logger

_logger = get_logger(__name__)


class SessionStore:
    """Persistent TTL store keyed by connector name."""

    def __init__(
        self,
        directory: str = ConnectorConstants.SESSION_DIR,
        default_ttl: int = ConnectorConstants.SESSION_TTL,
    ):
        self._lock = asyncio.Lock()
        self.directory = Path(directory)
        self.default_ttl = default_ttl

    def _get_session_path(self, key: str) -> Path:
        safe_key = hashlib.sha256(f"session:{key}".encode()).hexdigest()
        return self.directory / f"{safe_key}.json"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get a stored session if present and not expired."""
        async with self._lock:
            path = self._get_session_path(key)
            if not path.exists():
                return None

            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                expiry_time = data["expiry_time"]
                value = data["value"]
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                _logger.warning(f"Discarding unreadable session {key}: {e}")
                path.unlink(missing_ok=True)
                return None

            if time.time() > expiry_time:
                path.unlink(missing_ok=True)
                return None

            return value

    async def set(
        self, key: str, value: Dict[str, Any], ttl: Optional[int] = None
    ) -> None:
        if ttl is None:
            ttl = self.default_ttl

        async with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self._get_session_path(key)
            data = {"value": value, "expiry_time": time.time() + ttl}
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._get_session_path(key).unlink(missing_ok=True)
