"""Sensor platform for BLE Scoreboard integration."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.const import SIGNAL_STRENGTH_DECIBELS_MILLIWATT, EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from scoreboard_ble import GameState

from .coordinator import ScoreboardDataUpdateCoordinator
from .entity import ScoreboardEntity
from .models import ScoreboardConfigEntry, ScoreboardData

PARALLEL_UPDATES = 0  # No limit since coordinator manages all updates


@dataclass(frozen=True, kw_only=True)
class ScoreboardSensorEntityDescription(SensorEntityDescription):
    """Describes a scoreboard sensor."""

    value_fn: Callable[[ScoreboardData], Any]
    requires_session: bool = True


SENSOR_DESCRIPTIONS: list[ScoreboardSensorEntityDescription] = [
    ScoreboardSensorEntityDescription(
        key="clock",
        translation_key="clock",
        name="Clock",
        icon="mdi:timer-outline",
        value_fn=lambda data: data.game.clock_display,
    ),
    ScoreboardSensorEntityDescription(
        key="clock_state",
        translation_key="clock_state",
        name="Clock state",
        icon="mdi:play-pause",
        device_class=SensorDeviceClass.ENUM,
        options=[state.value for state in GameState],
        value_fn=lambda data: data.state.value,
        requires_session=False,
    ),
    ScoreboardSensorEntityDescription(
        key="saved_sessions",
        translation_key="saved_sessions",
        name="Saved sessions",
        icon="mdi:content-save",
        state_class=SensorStateClass.MEASUREMENT,
        value_fn=lambda data: len(data.sessions),
        requires_session=False,
    ),
    ScoreboardSensorEntityDescription(
        key="rssi",
        translation_key="rssi",
        name="Signal strength",
        device_class=SensorDeviceClass.SIGNAL_STRENGTH,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=SIGNAL_STRENGTH_DECIBELS_MILLIWATT,
        entity_category=EntityCategory.DIAGNOSTIC,
        entity_registry_enabled_default=False,
        value_fn=lambda data: data.rssi,
        requires_session=False,
    ),
]


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ScoreboardConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up BLE Scoreboard sensors based on a config entry."""
    coordinator = config_entry.runtime_data

    async_add_entities(
        ScoreboardSensor(coordinator, config_entry, description)
        for description in SENSOR_DESCRIPTIONS
    )


class ScoreboardSensor(ScoreboardEntity, SensorEntity):
    """Read-only view of the scoreboard."""

    entity_description: ScoreboardSensorEntityDescription
    _unrecorded_attributes = frozenset({"session_id", "home_score", "away_score", "period", "possession"})

    def __init__(
        self,
        coordinator: ScoreboardDataUpdateCoordinator,
        config_entry: ScoreboardConfigEntry,
        description: ScoreboardSensorEntityDescription,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, config_entry, description)
        self._requires_session = description.requires_session

    @property
    def native_value(self) -> Any:
        """Return the sensor value."""
        if not self.coordinator.data:
            return None
        return self.entity_description.value_fn(self.coordinator.data)

    @property
    def extra_state_attributes(self) -> dict[str, Any] | None:
        """Return the full game state on the clock sensor."""
        data = self.coordinator.data
        if self.entity_description.key != "clock" or not data or not data.has_session:
            return None

        return {
            "session_id": data.session_id,
            "home_score": data.game.home_score,
            "away_score": data.game.away_score,
            "period": data.game.selected_period,
            "possession": data.game.possession.value or None,
        }
