"""Number platform for BLE Scoreboard integration."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from homeassistant.components.number import NumberEntity, NumberEntityDescription, NumberMode
from homeassistant.const import UnitOfTime
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from scoreboard_ble import GameData, GameStateMachine
from scoreboard_ble.const import (
    MAX_PERIOD,
    MAX_SCORE,
    MAX_SHOT_CLOCK_ENTRY,
    MIN_PERIOD,
    MIN_SCORE,
    MIN_SHOT_CLOCK_ENTRY,
)

from .const import MAX_CLOCK_SECONDS
from .entity import ScoreboardEntity
from .models import ScoreboardConfigEntry


@dataclass(frozen=True, kw_only=True)
class ScoreboardNumberEntityDescription(NumberEntityDescription):
    """Describes an editable scoreboard value."""

    value_fn: Callable[[GameData], int]
    set_fn: Callable[[GameStateMachine, float], Any]


NUMBER_DESCRIPTIONS: list[ScoreboardNumberEntityDescription] = [
    ScoreboardNumberEntityDescription(
        key="home_score",
        translation_key="home_score",
        name="Home score",
        icon="mdi:numeric",
        native_min_value=MIN_SCORE,
        native_max_value=MAX_SCORE,
        native_step=1,
        mode=NumberMode.BOX,
        value_fn=lambda game: game.home_score,
        set_fn=lambda machine, value: machine.set_home_score(value),
    ),
    ScoreboardNumberEntityDescription(
        key="away_score",
        translation_key="away_score",
        name="Away score",
        icon="mdi:numeric",
        native_min_value=MIN_SCORE,
        native_max_value=MAX_SCORE,
        native_step=1,
        mode=NumberMode.BOX,
        value_fn=lambda game: game.away_score,
        set_fn=lambda machine, value: machine.set_away_score(value),
    ),
    ScoreboardNumberEntityDescription(
        key="period",
        translation_key="period",
        name="Period",
        icon="mdi:counter",
        native_min_value=MIN_PERIOD,
        native_max_value=MAX_PERIOD,
        native_step=1,
        mode=NumberMode.BOX,
        value_fn=lambda game: game.selected_period,
        set_fn=lambda machine, value: machine.set_period(value),
    ),
    ScoreboardNumberEntityDescription(
        key="shot_clock",
        translation_key="shot_clock",
        name="Shot clock",
        icon="mdi:timer-sand",
        native_min_value=MIN_SHOT_CLOCK_ENTRY,
        native_max_value=MAX_SHOT_CLOCK_ENTRY,
        native_step=1,
        native_unit_of_measurement=UnitOfTime.SECONDS,
        mode=NumberMode.BOX,
        value_fn=lambda game: game.shot_clock,
        set_fn=lambda machine, value: machine.set_shot_clock(value),
    ),
    ScoreboardNumberEntityDescription(
        key="game_clock",
        translation_key="game_clock",
        name="Game clock",
        icon="mdi:timer-outline",
        native_min_value=0,
        native_max_value=MAX_CLOCK_SECONDS,
        native_step=1,
        native_unit_of_measurement=UnitOfTime.SECONDS,
        mode=NumberMode.BOX,
        value_fn=lambda game: game.remaining_seconds,
        set_fn=lambda machine, value: machine.set_time(*divmod(int(value), 60)),
    ),
]


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ScoreboardConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up BLE Scoreboard numbers based on a config entry."""
    coordinator = config_entry.runtime_data

    async_add_entities(
        ScoreboardNumber(coordinator, config_entry, description)
        for description in NUMBER_DESCRIPTIONS
    )


class ScoreboardNumber(ScoreboardEntity, NumberEntity):
    """Editable game value."""

    entity_description: ScoreboardNumberEntityDescription

    @property
    def native_value(self) -> int | None:
        """Return the current value."""
        if not self.coordinator.data or not self.coordinator.data.has_session:
            return None
        return self.entity_description.value_fn(self.coordinator.data.game)

    async def async_set_native_value(self, value: float) -> None:
        """Pause the clock and apply the edited value."""

        def edit(machine: GameStateMachine) -> None:
            machine.begin_edit()
            self.entity_description.set_fn(machine, value)

        await self.coordinator.async_game_action(edit)
