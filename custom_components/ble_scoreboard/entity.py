"""Base entity for BLE Scoreboard integration."""
from __future__ import annotations

from homeassistant.helpers.entity import EntityDescription
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import ScoreboardDataUpdateCoordinator
from .models import ScoreboardConfigEntry


class ScoreboardEntity(CoordinatorEntity[ScoreboardDataUpdateCoordinator]):
    """Common behaviour of all scoreboard entities."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    # Game controls only make sense while a session is bound to the scoreboard
    _requires_session = True

    def __init__(
        self,
        coordinator: ScoreboardDataUpdateCoordinator,
        config_entry: ScoreboardConfigEntry,
        description: EntityDescription,
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self.entity_description = description
        self._attr_unique_id = f"{config_entry.entry_id}_{description.key}"
        self._attr_device_info = coordinator.device_info

    @property
    def available(self) -> bool:
        """Return if entity is available."""
        if not self._requires_session:
            return super().available
        return (
            super().available
            and self.coordinator.is_connected
            and self.coordinator.has_session
        )
