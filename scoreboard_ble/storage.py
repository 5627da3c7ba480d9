"""Key-value storage used to persist scoreboard sessions."""
from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStorage(ABC):
    """Flat string key-value store.

    Implementations wrap whatever durable storage the host application has
    (the Home Assistant integration uses its ``Store`` helper).
    """

    @abstractmethod
    async def async_get_item(self, key: str) -> str | None:
        """Return the value stored under key, or None if absent."""

    @abstractmethod
    async def async_set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
