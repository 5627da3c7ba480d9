"""Diagnostics support for BLE Scoreboard."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.const import CONF_ADDRESS
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceEntry

from .models import ScoreboardConfigEntry

TO_REDACT = {CONF_ADDRESS, "peripheral_id"}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ScoreboardConfigEntry
) -> dict[str, Any]:
    """Dump link, game and stored sessions with the scoreboard address removed."""
    coordinator = entry.runtime_data
    connection = coordinator.connection
    game = coordinator.game
    binding = connection.binding
    stored = await coordinator.controller.async_sessions()

    link = {
        "scanning": connection.is_scanning,
        "connected": connection.is_connected,
        "notifications": connection.notification_enabled,
        "binding": asdict(binding) if binding else None,
        **connection.connection_stats,
    }

    return async_redact_data(
        {
            "config_entry": {"data": dict(entry.data), "options": dict(entry.options)},
            "link": link,
            "game": {
                "state": game.state.value,
                "session_id": game.session_id,
                "clock_task_running": coordinator.controller.clock_running,
                "transport_mode": game.transport_mode.value,
                **game.data.to_dict(),
            },
            "stored_sessions": [session.to_dict() for session in stored],
            "last_update_success": coordinator.last_update_success,
        },
        TO_REDACT,
    )


async def async_get_device_diagnostics(
    hass: HomeAssistant, entry: ScoreboardConfigEntry, device: DeviceEntry
) -> dict[str, Any]:
    """Return diagnostics for the scoreboard device."""
    return await async_get_config_entry_diagnostics(hass, entry)
