"""The BLE Scoreboard integration."""
from __future__ import annotations

import logging

from homeassistant.components import bluetooth
from homeassistant.const import CONF_ADDRESS, Platform
from homeassistant.core import HomeAssistant

from .coordinator import ScoreboardDataUpdateCoordinator
from .models import ScoreboardConfigEntry
from .storage import HassKeyValueStorage

PLATFORMS: list[Platform] = [
    Platform.BUTTON,
    Platform.NUMBER,
    Platform.SELECT,
    Platform.SENSOR,
    Platform.SWITCH,
]

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ScoreboardConfigEntry) -> bool:
    """Set up BLE Scoreboard from a config entry."""
    address = entry.data[CONF_ADDRESS]

    coordinator = ScoreboardDataUpdateCoordinator(hass, address, entry)
    await coordinator.async_start()

    # Keep the discovered scoreboard current as advertisements arrive
    entry.async_on_unload(
        bluetooth.async_register_callback(
            hass,
            coordinator.async_handle_bluetooth_event,
            {"address": address.upper()},
            bluetooth.BluetoothScanningMode.ACTIVE,
        )
    )

    # Stored sessions only; connecting happens when a session is started
    await coordinator.async_config_entry_first_refresh()

    entry.runtime_data = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ScoreboardConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        await entry.runtime_data.async_shutdown()

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ScoreboardConfigEntry) -> None:
    """Delete stored sessions when the entry is removed."""
    _LOGGER.debug("Removing stored sessions of %s", entry.title)
    await HassKeyValueStorage(hass, entry.entry_id).async_remove()
