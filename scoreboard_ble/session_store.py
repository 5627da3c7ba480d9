"""Bounded persistence of resumable game sessions."""
from __future__ import annotations

import asyncio
import json
import logging
from json import JSONDecodeError
from typing import TYPE_CHECKING

from .const import MAX_SESSIONS, SESSIONS_KEY
from .models import Session

if TYPE_CHECKING:
    from .storage import KeyValueStorage

_LOGGER = logging.getLogger(__name__)


class SessionStore:
    """Keeps the most recent sessions as a JSON list under a single key.

    Writes through one instance are serialized with a lock so concurrent
    upserts do not lose each other. Separate instances over the same key are
    last-write-wins.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = SESSIONS_KEY,
        limit: int = MAX_SESSIONS,
    ) -> None:
        """Initialize."""
        self._storage = storage
        self._key = key
        self._limit = limit
        self._lock = asyncio.Lock()

    @property
    def limit(self) -> int:
        """Return the maximum number of kept sessions."""
        return self._limit

    async def async_load(self) -> list[Session]:
        """Return stored sessions oldest first. Never raises on bad data."""
        try:
            raw = await self._storage.async_get_item(self._key)
        except OSError as err:
            _LOGGER.error("Error reading sessions: %s", err)
            return []

        if raw is None:
            return []

        try:
            parsed = json.loads(raw)
        except (JSONDecodeError, TypeError) as err:
            _LOGGER.warning("Ignoring malformed stored sessions: %s", err)
            return []

        if not isinstance(parsed, list):
            _LOGGER.warning("Ignoring stored sessions: expected list, got %s", type(parsed).__name__)
            return []

        sessions: list[Session] = []
        for item in parsed:
            if not isinstance(item, dict):
                _LOGGER.warning("Skipping stored session %r: not an object", item)
                continue
            try:
                sessions.append(Session.from_dict(item))
            except (KeyError, TypeError, ValueError, OverflowError) as err:
                _LOGGER.warning("Skipping invalid stored session %r: %s", item, err)
        return sessions

    async def async_save(self, sessions: list[Session]) -> None:
        """Overwrite the stored collection."""
        async with self._lock:
            await self._write(sessions)

    async def async_upsert(self, session: Session) -> None:
        """Replace the session with the same id in place, or append it, keeping the newest entries."""
        async with self._lock:
            sessions = await self.async_load()
            for idx, existing in enumerate(sessions):
                if existing.id == session.id:
                    sessions[idx] = session
                    break
            else:
                sessions.append(session)

            await self._write(sessions[-self._limit:])

    async def async_remove(self, session_id: str) -> None:
        """Drop the session with the given id."""
        async with self._lock:
            sessions = await self.async_load()
            await self._write([s for s in sessions if s.id != session_id])

    async def async_clear(self) -> None:
        """Forget every stored session."""
        async with self._lock:
            await self._write([])

    async def _write(self, sessions: list[Session]) -> None:
        payload = json.dumps([s.to_dict() for s in sessions])
        await self._storage.async_set_item(self._key, payload)
        _LOGGER.debug("Stored %d session(s)", len(sessions))
