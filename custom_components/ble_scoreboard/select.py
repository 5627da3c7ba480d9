"""Select platform for BLE Scoreboard integration."""
from __future__ import annotations

import logging

from homeassistant.components.select import SelectEntity, SelectEntityDescription
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from scoreboard_ble import Possession, TransportMode

from .coordinator import ScoreboardDataUpdateCoordinator
from .entity import ScoreboardEntity
from .models import ScoreboardConfigEntry

_LOGGER = logging.getLogger(__name__)

POSSESSION_OPTIONS = {
    "none": Possession.NONE,
    "home": Possession.HOME,
    "away": Possession.AWAY,
}

TRANSPORT_MODE_OPTIONS = {
    "ble": TransportMode.BLE,
    "espnow": TransportMode.ESPNOW,
}


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ScoreboardConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up BLE Scoreboard selects based on a config entry."""
    coordinator = config_entry.runtime_data

    async_add_entities([
        ScoreboardPossessionSelect(coordinator, config_entry),
        ScoreboardTransportModeSelect(coordinator, config_entry),
    ])


class ScoreboardPossessionSelect(ScoreboardEntity, SelectEntity):
    """Select entity for ball possession."""

    _attr_options = list(POSSESSION_OPTIONS)

    def __init__(
        self,
        coordinator: ScoreboardDataUpdateCoordinator,
        config_entry: ScoreboardConfigEntry,
    ) -> None:
        """Initialize the select entity."""
        super().__init__(
            coordinator,
            config_entry,
            SelectEntityDescription(
                key="possession",
                translation_key="possession",
                name="Possession",
                icon="mdi:basketball",
            ),
        )

    @property
    def current_option(self) -> str | None:
        """Return the team holding the ball."""
        if not self.coordinator.data or not self.coordinator.data.has_session:
            return None
        possession = self.coordinator.data.game.possession
        return next(key for key, value in POSSESSION_OPTIONS.items() if value is possession)

    async def async_select_option(self, option: str) -> None:
        """Give possession to a team."""
        team = POSSESSION_OPTIONS[option]
        if team is Possession.NONE:
            # The scoreboard has no command to clear possession
            _LOGGER.debug("Ignoring possession reset, not supported by the scoreboard")
            return
        await self.coordinator.async_game_action(lambda game: game.set_possession(team))


class ScoreboardTransportModeSelect(ScoreboardEntity, SelectEntity):
    """Select entity for the scoreboard's display link."""

    _attr_options = list(TRANSPORT_MODE_OPTIONS)

    def __init__(
        self,
        coordinator: ScoreboardDataUpdateCoordinator,
        config_entry: ScoreboardConfigEntry,
    ) -> None:
        """Initialize the select entity."""
        super().__init__(
            coordinator,
            config_entry,
            SelectEntityDescription(
                key="transport_mode",
                translation_key="transport_mode",
                name="Transport mode",
                icon="mdi:access-point",
            ),
        )

    @property
    def current_option(self) -> str | None:
        """Return the last mode sent to the scoreboard."""
        if not self.coordinator.data:
            return None
        mode = self.coordinator.data.transport_mode
        return next(key for key, value in TRANSPORT_MODE_OPTIONS.items() if value is mode)

    async def async_select_option(self, option: str) -> None:
        """Change the transport mode."""
        mode = TRANSPORT_MODE_OPTIONS[option]
        await self.coordinator.async_game_action(lambda game: game.set_transport_mode(mode))
