"""Config flow for BLE Scoreboard integration."""
from __future__ import annotations

import logging
import re
from typing import Any

from bleak import BleakScanner
from bleak.exc import BleakError
import voluptuous as vol

from homeassistant.components.bluetooth import (
    BluetoothServiceInfoBleak,
    async_ble_device_from_address,
    async_discovered_service_info,
)
from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.const import CONF_ADDRESS

from scoreboard_ble.const import SCAN_DURATION

from .const import DISCOVERY_SERVICE_UUID, DOMAIN, MODEL

_LOGGER = logging.getLogger(__name__)

MANUAL_ENTRY = "manual"

_MAC_DIGITS = re.compile(r"[0-9A-F]{12}")


def _normalize_address(value: str) -> str | None:
    """Return AA:BB:CC:DD:EE:FF for any common MAC spelling, or None."""
    digits = re.sub(r"[^0-9A-F]", "", value.upper())
    if not _MAC_DIGITS.fullmatch(digits):
        return None
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def _advertises_scoreboard(service_uuids: list[str] | None) -> bool:
    return any(uuid.lower() == DISCOVERY_SERVICE_UUID for uuid in service_uuids or [])


class ScoreboardConfigFlow(ConfigFlow, domain=DOMAIN):
    """Set up a scoreboard found over Bluetooth or entered by address."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize."""
        self._candidates: dict[str, str] = {}
        self._discovery: BluetoothServiceInfoBleak | None = None

    async def async_step_bluetooth(
        self, discovery_info: BluetoothServiceInfoBleak
    ) -> ConfigFlowResult:
        """Start from an advertisement matched by the manifest."""
        if not _advertises_scoreboard(discovery_info.service_uuids):
            return self.async_abort(reason="not_supported")

        await self.async_set_unique_id(discovery_info.address.upper())
        self._abort_if_unique_id_configured()

        self._discovery = discovery_info
        self.context["title_placeholders"] = {"name": self._title(discovery_info.name, discovery_info.address)}
        return await self.async_step_bluetooth_confirm()

    async def async_step_bluetooth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Ask the user to confirm the discovered scoreboard."""
        discovery = self._discovery
        assert discovery is not None
        title = self._title(discovery.name, discovery.address)

        if user_input is None:
            self._set_confirm_only()
            return self.async_show_form(
                step_id="bluetooth_confirm",
                description_placeholders={"name": title},
            )

        return self.async_create_entry(title=title, data={CONF_ADDRESS: discovery.address.upper()})

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Pick one of the scoreboards in range."""
        errors: dict[str, str] = {}

        if user_input is not None:
            choice = user_input[CONF_ADDRESS]
            if choice == MANUAL_ENTRY:
                return await self.async_step_manual()

            await self.async_set_unique_id(choice)
            self._abort_if_unique_id_configured()

            device = async_ble_device_from_address(self.hass, choice, connectable=True)
            if device is not None:
                return self.async_create_entry(
                    title=self._title(device.name, choice),
                    data={CONF_ADDRESS: choice},
                )
            errors[CONF_ADDRESS] = "cannot_connect"

        await self._async_find_candidates()
        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema({vol.Required(CONF_ADDRESS): vol.In(self._candidates)}),
            errors=errors,
        )

    async def async_step_manual(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Enter the scoreboard's Bluetooth address by hand."""
        errors: dict[str, str] = {}

        if user_input is not None:
            address = _normalize_address(user_input[CONF_ADDRESS])
            if address is None:
                errors[CONF_ADDRESS] = "invalid_address"
            else:
                await self.async_set_unique_id(address)
                self._abort_if_unique_id_configured()
                return self.async_create_entry(title=f"{MODEL} {address}", data={CONF_ADDRESS: address})

        return self.async_show_form(
            step_id="manual",
            data_schema=vol.Schema({vol.Required(CONF_ADDRESS): str}),
            errors=errors,
        )

    async def _async_find_candidates(self) -> None:
        """Collect unconfigured scoreboards, scanning once if Home Assistant has seen none."""
        configured = self._async_current_ids()
        self._candidates = {}

        def add(address: str, name: str | None, service_uuids: list[str] | None) -> None:
            address = address.upper()
            if address in configured or not _advertises_scoreboard(service_uuids):
                return
            self._candidates[address] = f"{self._title(name, address)} ({address})"

        for service_info in async_discovered_service_info(self.hass):
            add(service_info.address, service_info.name, service_info.service_uuids)

        if not self._candidates:
            _LOGGER.debug("No cached advertisements, scanning for %.0fs", SCAN_DURATION)
            try:
                found = await BleakScanner.discover(timeout=SCAN_DURATION, return_adv=True)
            except (BleakError, OSError) as err:
                _LOGGER.error("Error scanning for scoreboards: %s", err)
            else:
                for device, advertisement in found.values():
                    add(device.address, advertisement.local_name or device.name, advertisement.service_uuids)

        self._candidates[MANUAL_ENTRY] = "Enter address manually"

    @staticmethod
    def _title(name: str | None, address: str) -> str:
        return name or f"{MODEL} {address}"
