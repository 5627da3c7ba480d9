"""Session storage backed by Home Assistant's Store helper."""
from __future__ import annotations

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from scoreboard_ble import KeyValueStorage

from .const import STORAGE_KEY_PREFIX, STORAGE_VERSION


class HassKeyValueStorage(KeyValueStorage):
    """Flat string key-value store kept in one .storage file per config entry."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize."""
        self._store: Store[dict[str, str]] = Store(
            hass, STORAGE_VERSION, f"{STORAGE_KEY_PREFIX}.{entry_id}"
        )
        self._items: dict[str, str] | None = None

    async def async_get_item(self, key: str) -> str | None:
        """Return the value stored under key."""
        items = await self._async_items()
        return items.get(key)

    async def async_set_item(self, key: str, value: str) -> None:
        """Store value under key and save the file."""
        items = await self._async_items()
        items[key] = value
        await self._store.async_save(items)

    async def async_remove(self) -> None:
        """Delete the backing file."""
        self._items = None
        await self._store.async_remove()

    async def _async_items(self) -> dict[str, str]:
        if self._items is None:
            self._items = await self._store.async_load() or {}
        return self._items
