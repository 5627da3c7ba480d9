"""Button platform for BLE Scoreboard integration."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from homeassistant.components.button import ButtonEntity, ButtonEntityDescription
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .coordinator import ScoreboardDataUpdateCoordinator
from .entity import ScoreboardEntity
from .models import ScoreboardConfigEntry


@dataclass(frozen=True, kw_only=True)
class ScoreboardButtonEntityDescription(ButtonEntityDescription):
    """Describes a scoreboard button."""

    press_fn: Callable[[ScoreboardDataUpdateCoordinator], Awaitable[Any]]
    requires_session: bool = True


def _game(action: Callable[..., Any], *args: Any) -> Callable[[ScoreboardDataUpdateCoordinator], Awaitable[Any]]:
    """Build a press handler applying a game action."""
    return lambda coordinator: coordinator.async_game_action(lambda game: action(game, *args))


def _score_buttons(team: str, increment: Callable, decrement: Callable) -> list[ScoreboardButtonEntityDescription]:
    buttons = [
        ScoreboardButtonEntityDescription(
            key=f"{team}_plus_{points}",
            translation_key=f"{team}_plus_{points}",
            name=f"{team.capitalize()} +{points}",
            icon="mdi:plus-circle",
            press_fn=_game(increment, points),
        )
        for points in (1, 2, 3)
    ]
    buttons.append(
        ScoreboardButtonEntityDescription(
            key=f"{team}_minus_1",
            translation_key=f"{team}_minus_1",
            name=f"{team.capitalize()} -1",
            icon="mdi:minus-circle",
            press_fn=_game(decrement),
        )
    )
    return buttons


BUTTON_DESCRIPTIONS: list[ScoreboardButtonEntityDescription] = [
    ScoreboardButtonEntityDescription(
        key="new_session",
        translation_key="new_session",
        name="New session",
        icon="mdi:scoreboard",
        press_fn=lambda coordinator: coordinator.async_new_session(),
        requires_session=False,
    ),
    ScoreboardButtonEntityDescription(
        key="resume_session",
        translation_key="resume_session",
        name="Resume last session",
        icon="mdi:history",
        press_fn=lambda coordinator: coordinator.async_resume_latest(),
        requires_session=False,
    ),
    ScoreboardButtonEntityDescription(
        key="clear_sessions",
        translation_key="clear_sessions",
        name="Delete saved sessions",
        icon="mdi:delete-sweep",
        press_fn=lambda coordinator: coordinator.async_clear_sessions(),
        requires_session=False,
    ),
    ScoreboardButtonEntityDescription(
        key="scan",
        translation_key="scan",
        name="Scan",
        icon="mdi:bluetooth-searching",
        press_fn=lambda coordinator: coordinator.async_start_scan(),
        requires_session=False,
    ),
    ScoreboardButtonEntityDescription(
        key="end_session",
        translation_key="end_session",
        name="End session",
        icon="mdi:bluetooth-off",
        press_fn=lambda coordinator: coordinator.async_end_session(),
    ),
    ScoreboardButtonEntityDescription(
        key="start",
        translation_key="start",
        name="Start",
        icon="mdi:play",
        press_fn=_game(lambda game: game.start()),
    ),
    ScoreboardButtonEntityDescription(
        key="pause",
        translation_key="pause",
        name="Pause",
        icon="mdi:pause",
        press_fn=_game(lambda game: game.pause()),
    ),
    ScoreboardButtonEntityDescription(
        key="reset_shot_24",
        translation_key="reset_shot_24",
        name="Reset 24",
        icon="mdi:timer-refresh",
        press_fn=_game(lambda game: game.reset_shot_clock(24)),
    ),
    ScoreboardButtonEntityDescription(
        key="reset_shot_14",
        translation_key="reset_shot_14",
        name="Reset 14",
        icon="mdi:timer-refresh-outline",
        press_fn=_game(lambda game: game.reset_shot_clock(14)),
    ),
    ScoreboardButtonEntityDescription(
        key="reset_all",
        translation_key="reset_all",
        name="Reset all",
        icon="mdi:restore",
        press_fn=_game(lambda game: game.reset_all()),
    ),
    *_score_buttons(
        "home",
        lambda game, points: game.increment_home(points),
        lambda game: game.decrement_home(),
    ),
    *_score_buttons(
        "away",
        lambda game, points: game.increment_away(points),
        lambda game: game.decrement_away(),
    ),
]


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ScoreboardConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up BLE Scoreboard buttons based on a config entry."""
    coordinator = config_entry.runtime_data

    async_add_entities(
        ScoreboardButton(coordinator, config_entry, description)
        for description in BUTTON_DESCRIPTIONS
    )


class ScoreboardButton(ScoreboardEntity, ButtonEntity):
    """Representation of a scoreboard control button."""

    entity_description: ScoreboardButtonEntityDescription

    def __init__(
        self,
        coordinator: ScoreboardDataUpdateCoordinator,
        config_entry: ScoreboardConfigEntry,
        description: ScoreboardButtonEntityDescription,
    ) -> None:
        """Initialize the button."""
        super().__init__(coordinator, config_entry, description)
        self._requires_session = description.requires_session

    async def async_press(self) -> None:
        """Press the button."""
        await self.entity_description.press_fn(self.coordinator)
