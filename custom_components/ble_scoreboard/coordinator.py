"""DataUpdateCoordinator for BLE Scoreboard."""
from __future__ import annotations

from collections.abc import Callable
import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components import bluetooth
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from scoreboard_ble import (
    GameStateMachine,
    ScoreboardConnectionError,
    ScoreboardConnectionManager,
    ScoreboardController,
    ScoreboardNotFoundError,
    SessionStore,
)

from .const import DOMAIN, MANUFACTURER, MODEL
from .models import ScoreboardData
from .storage import HassKeyValueStorage

if TYPE_CHECKING:
    from homeassistant.components.bluetooth import BluetoothServiceInfoBleak

_LOGGER = logging.getLogger(__name__)


class ScoreboardDataUpdateCoordinator(DataUpdateCoordinator[ScoreboardData]):
    """Class to manage the scoreboard session and push its state to entities."""

    def __init__(
        self,
        hass: HomeAssistant,
        address: str,
        config_entry: ConfigEntry,
    ) -> None:
        """Initialize."""
        self.address = address.upper()
        self._config_entry = config_entry
        self.storage = HassKeyValueStorage(hass, config_entry.entry_id)
        self.connection = ScoreboardConnectionManager()
        self.controller = ScoreboardController(self.connection, SessionStore(self.storage))
        self._unsub_controller: Callable[[], None] | None = None

        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=None,
            config_entry=config_entry,
        )

    @property
    def game(self) -> GameStateMachine:
        """Return the game state machine."""
        return self.controller.game

    @property
    def is_connected(self) -> bool:
        """Return True if bound to the scoreboard."""
        return self.connection.is_connected

    @property
    def has_session(self) -> bool:
        """Return True if a game session is active."""
        return self.game.session_id is not None

    @property
    def device_info(self) -> dict[str, Any]:
        """Return device information for all entities."""
        return {
            "identifiers": {(DOMAIN, self.address)},
            "name": self._config_entry.title or MODEL,
            "manufacturer": MANUFACTURER,
            "model": MODEL,
            "connections": {("bluetooth", self.address.lower())},
        }

    async def async_start(self) -> None:
        """Seed discovery from the last advertisement and follow controller changes."""
        self._unsub_controller = self.controller.add_listener(self._async_controller_updated)

        if service_info := bluetooth.async_last_service_info(self.hass, self.address, connectable=True):
            self.connection.handle_discovered(service_info.device, service_info.advertisement)

    @callback
    def async_handle_bluetooth_event(
        self,
        service_info: BluetoothServiceInfoBleak,
        change: bluetooth.BluetoothChange,
    ) -> None:
        """Handle Bluetooth advertisements of the scoreboard."""
        _LOGGER.debug("Bluetooth event received: change=%s, address=%s, rssi=%s",
                      change, service_info.address, service_info.rssi)
        if change == bluetooth.BluetoothChange.ADVERTISEMENT:
            self.connection.handle_discovered(service_info.device, service_info.advertisement)

    @callback
    def _async_controller_updated(self) -> None:
        """Push the controller state to entities."""
        sessions = self.data.sessions if self.data else []
        self.async_set_updated_data(self._build_data(sessions))

    def _build_data(self, sessions: list) -> ScoreboardData:
        discovered = self.connection.discovered.get(self.address)
        return ScoreboardData(
            game=self.game.data,
            state=self.game.state,
            session_id=self.game.session_id,
            transport_mode=self.game.transport_mode,
            sessions=sessions,
            rssi=discovered.rssi if discovered else None,
        )

    async def _async_update_data(self) -> ScoreboardData:
        """Reload stored sessions; game state is pushed by the controller."""
        return self._build_data(await self.controller.async_sessions())

    # ==================== Actions ====================

    async def async_game_action(self, action: Callable[[GameStateMachine], Any]) -> None:
        """Apply an action to the game."""
        if not self.has_session:
            raise HomeAssistantError("No active scoreboard session, start or resume one first")
        action(self.game)

    async def async_new_session(self) -> None:
        """Connect and start a new session."""
        try:
            await self.controller.async_new_session()
        except ScoreboardNotFoundError as err:
            raise HomeAssistantError(
                "Scoreboard not found. Make sure it is turned on and in BLE mode"
            ) from err
        except ScoreboardConnectionError as err:
            raise HomeAssistantError(str(err)) from err
        await self.async_refresh()

    async def async_resume_latest(self) -> None:
        """Connect and resume the most recent stored session."""
        try:
            session = await self.controller.async_resume_latest()
        except ScoreboardNotFoundError as err:
            raise HomeAssistantError(
                "Scoreboard not found. Make sure it is turned on and in BLE mode"
            ) from err
        except ScoreboardConnectionError as err:
            raise HomeAssistantError(str(err)) from err

        if session is None:
            raise HomeAssistantError("No stored session to resume")
        await self.async_refresh()

    async def async_clear_sessions(self) -> None:
        """Delete all stored sessions."""
        await self.controller.async_clear_sessions()
        await self.async_refresh()

    async def async_end_session(self) -> None:
        """End the session and disconnect."""
        await self.controller.async_end_session()
        await self.async_refresh()

    async def async_start_scan(self) -> None:
        """Look for the scoreboard again."""
        await self.connection.async_start_scan()

    async def async_shutdown(self) -> None:
        """Disconnect from the scoreboard."""
        if self._unsub_controller:
            self._unsub_controller()
            self._unsub_controller = None
        await self.controller.async_shutdown()
        await super().async_shutdown()
