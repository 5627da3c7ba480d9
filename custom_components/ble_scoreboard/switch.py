"""Switch platform for BLE Scoreboard integration."""
from __future__ import annotations

from homeassistant.components.switch import SwitchEntity, SwitchEntityDescription
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .coordinator import ScoreboardDataUpdateCoordinator
from .entity import ScoreboardEntity
from .models import ScoreboardConfigEntry


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ScoreboardConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up BLE Scoreboard switches based on a config entry."""
    coordinator = config_entry.runtime_data

    async_add_entities([ScoreboardHornSwitch(coordinator, config_entry)])


class ScoreboardHornSwitch(ScoreboardEntity, SwitchEntity):
    """Horn sounds while the switch is on."""

    def __init__(
        self,
        coordinator: ScoreboardDataUpdateCoordinator,
        config_entry: ScoreboardConfigEntry,
    ) -> None:
        """Initialize the horn switch."""
        super().__init__(
            coordinator,
            config_entry,
            SwitchEntityDescription(key="horn", translation_key="horn", name="Horn", icon="mdi:bullhorn-variant"),
        )
        self._pressed = False

    @property
    def is_on(self) -> bool:
        """Return true if the horn is held down."""
        return self._pressed

    async def async_turn_on(self) -> None:
        """Press the horn."""
        await self.coordinator.async_game_action(lambda game: game.press_horn())
        self._pressed = True
        self.async_write_ha_state()

    async def async_turn_off(self) -> None:
        """Release the horn."""
        await self.coordinator.async_game_action(lambda game: game.release_horn())
        self._pressed = False
        self.async_write_ha_state()
