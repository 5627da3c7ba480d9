"""Connection session manager for BLE scoreboards."""
from __future__ import annotations

import asyncio
from collections.abc import Callable
import contextlib
from datetime import datetime
from functools import partial
import logging
from typing import TYPE_CHECKING, Any

from bleak import BleakScanner
from bleak.exc import BleakError
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from .const import (
    NOTIFY_CHARACTERISTIC_UUID,
    RECEIVE_CHARACTERISTIC_UUID,
    SCAN_DURATION,
    SERVICE_UUID,
    SETTLE_DELAY,
    TRANSFER_CHARACTERISTIC_UUID,
)
from .exceptions import ScoreboardConnectionError, ScoreboardNotFoundError
from .models import DiscoveredScoreboard, ScoreboardBinding
from .protocol import TelemetryUpdate, decode_telemetry
from .util import subscribe

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData, AdvertisementDataCallback

_LOGGER = logging.getLogger(__name__)

NO_NAME = "NO NAME"

type ScannerFactory = Callable[[AdvertisementDataCallback], BleakScanner]
type BindingListener = Callable[[ScoreboardBinding | None], None]
type TelemetryListener = Callable[[TelemetryUpdate], None]


def default_scanner_factory(callback: AdvertisementDataCallback) -> BleakScanner:
    """Create a scanner filtered on the scoreboard service."""
    return BleakScanner(detection_callback=callback, service_uuids=[SERVICE_UUID])


class ScoreboardConnectionManager:
    """Discovers scoreboards and owns the binding to the connected one.

    Lifecycle::

        async_start_scan -> handle_discovered (per advertisement)
        async_connect -> settle delay -> resolve services -> bind
            -> notifications, descriptor reads (best effort)
        async_disconnect / unsolicited disconnect -> unbind

    At most one binding is published at a time. It is replaced as a whole,
    so readers see either the previous or the new binding.
    """

    def __init__(
        self,
        *,
        scanner_factory: ScannerFactory = default_scanner_factory,
        scan_duration: float = SCAN_DURATION,
        settle_delay: float = SETTLE_DELAY,
    ) -> None:
        """Initialize."""
        self._scanner_factory = scanner_factory
        self._scan_duration = scan_duration
        self._settle_delay = settle_delay

        self._discovered: dict[str, DiscoveredScoreboard] = {}
        self._scanning = False
        self._scanner: BleakScanner | None = None
        self._scan_task: asyncio.Task | None = None

        self._client: BleakClientWithServiceCache | None = None
        self._binding: ScoreboardBinding | None = None
        self._notification_enabled = False
        self._connect_lock = asyncio.Lock()

        self._connection_attempts = 0
        self._total_disconnections = 0
        self._last_successful_connection: datetime | None = None

        self._listeners: list[Callable[[], None]] = []
        self._binding_listeners: list[BindingListener] = []
        self._telemetry_listeners: list[TelemetryListener] = []

    # ==================== Properties ====================

    @property
    def is_scanning(self) -> bool:
        """Return True while a scan is in progress."""
        return self._scanning

    @property
    def is_connected(self) -> bool:
        """Return True if bound to a connected scoreboard."""
        return (
            self._binding is not None
            and self._client is not None
            and self._client.is_connected
        )

    @property
    def binding(self) -> ScoreboardBinding | None:
        """Return the published binding, if any."""
        return self._binding

    @property
    def notification_enabled(self) -> bool:
        """Return True if telemetry notifications are enabled."""
        return self._notification_enabled

    @property
    def discovered(self) -> dict[str, DiscoveredScoreboard]:
        """Return discovered scoreboards keyed by address."""
        return dict(self._discovered)

    @property
    def connection_stats(self) -> dict[str, Any]:
        """Return connection statistics for diagnostics."""
        return {
            "connection_attempts": self._connection_attempts,
            "total_disconnections": self._total_disconnections,
            "last_successful_connection": (
                self._last_successful_connection.isoformat()
                if self._last_successful_connection
                else None
            ),
        }

    # ==================== Listeners ====================

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to any change of scan, discovery or connection state."""
        return subscribe(self._listeners, listener)

    def add_binding_listener(self, listener: BindingListener) -> Callable[[], None]:
        """Subscribe to binding publication and removal."""
        return subscribe(self._binding_listeners, listener)

    def add_telemetry_listener(self, listener: TelemetryListener) -> Callable[[], None]:
        """Subscribe to decoded telemetry from the bound scoreboard."""
        return subscribe(self._telemetry_listeners, listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ==================== Discovery ====================

    async def async_start_scan(self) -> bool:
        """Start a time-boxed scan. Returns False if one is already running or it failed to start."""
        if self._scanning:
            _LOGGER.debug("Scan already in progress")
            return False

        self._discovered.clear()
        self._scanning = True
        self._notify()

        _LOGGER.debug("Starting %.0fs scan for scoreboards", self._scan_duration)
        try:
            self._scanner = self._scanner_factory(self.handle_discovered)
            await self._scanner.start()
        except (BleakError, OSError) as err:
            _LOGGER.error("Failed to start scan: %s", err)
            self._scanner = None
            self._scanning = False
            self._notify()
            return False

        self._scan_task = asyncio.create_task(self._async_stop_scan_later())
        return True

    async def _async_stop_scan_later(self) -> None:
        try:
            await asyncio.sleep(self._scan_duration)
        finally:
            await self._async_stop_scan()

    async def _async_stop_scan(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is not None:
            try:
                await scanner.stop()
            except (BleakError, OSError) as err:
                _LOGGER.error("Failed to stop scan: %s", err)

        self._scanning = False
        _LOGGER.debug("Scan stopped, %d scoreboard(s) found", len(self._discovered))
        self._notify()

    def handle_discovered(self, device: BLEDevice, advertisement: AdvertisementData) -> None:
        """Record a peripheral if it advertises the scoreboard service."""
        service_uuids = {uuid.lower() for uuid in advertisement.service_uuids or []}
        if SERVICE_UUID not in service_uuids:
            return

        previous = self._discovered.get(device.address)
        self._discovered[device.address] = DiscoveredScoreboard(
            address=device.address,
            name=advertisement.local_name or device.name or NO_NAME,
            rssi=advertisement.rssi,
            device=device,
            connecting=previous.connecting if previous else False,
            connected=previous.connected if previous else False,
        )
        if previous is None:
            _LOGGER.debug("Discovered scoreboard %s (rssi=%s)", device.address, advertisement.rssi)
        self._notify()

    # ==================== Connection ====================

    async def async_connect_first(self) -> ScoreboardBinding:
        """Connect to the first discovered scoreboard.

        Raises:
            ScoreboardNotFoundError: Nothing has been discovered; scan again
            ScoreboardConnectionError: The scoreboard could not be bound
        """
        if not self._discovered:
            raise ScoreboardNotFoundError("No scoreboard found nearby")

        address = next(iter(self._discovered))
        binding = await self.async_connect(address)
        if binding is None:
            raise ScoreboardConnectionError(f"Could not connect to scoreboard {address}")
        return binding

    async def async_connect(self, address: str) -> ScoreboardBinding | None:
        """Connect to a discovered scoreboard and publish its binding.

        Returns the binding, or None when connecting or service resolution failed.
        Concurrent callers are serialized; while bound, the current binding is
        returned without opening a second connection.
        """
        async with self._connect_lock:
            if (binding := self._binding) is not None:
                _LOGGER.debug("Already bound to %s, not connecting to %s", binding.peripheral_id, address)
                return binding
            return await self._async_connect(address)

    async def _async_connect(self, address: str) -> ScoreboardBinding | None:
        entry = self._discovered.get(address)
        if entry is None or entry.device is None:
            _LOGGER.error("Cannot connect to %s: not discovered", address)
            return None

        entry.connecting = True
        self._notify()

        _LOGGER.debug("Connecting to scoreboard at %s", address)
        self._connection_attempts += 1
        try:
            client = await establish_connection(
                BleakClientWithServiceCache,
                entry.device,
                entry.name,
                disconnected_callback=self._on_disconnect,
            )
        except (TimeoutError, BleakError) as err:
            _LOGGER.error("Failed to connect to scoreboard %s: %s", address, err)
            entry.connecting = False
            self._notify()
            return None

        self._client = client
        entry.connecting = False
        entry.connected = True
        self._last_successful_connection = datetime.now()
        _LOGGER.info("Connected to scoreboard %s (attempt %d)", address, self._connection_attempts)
        self._notify()

        # Let bonding finish before touching the GATT table
        await asyncio.sleep(self._settle_delay)

        binding = self._resolve_binding(client, address)
        if binding is None:
            _LOGGER.error("Scoreboard %s does not expose the expected characteristics", address)
            self._client = None
            entry.connected = False
            with contextlib.suppress(BleakError, TimeoutError):
                await client.disconnect()
            self._notify()
            return None

        self._publish_binding(binding)

        await self._async_start_notifications(client, binding)
        await self._async_read_descriptors(client)
        _LOGGER.debug("Scoreboard %s ready (rssi=%s)", address, entry.rssi)
        return binding

    def _resolve_binding(self, client: BleakClientWithServiceCache, address: str) -> ScoreboardBinding | None:
        try:
            service = client.services.get_service(SERVICE_UUID)
        except BleakError as err:
            _LOGGER.error("Failed to resolve services of %s: %s", address, err)
            return None

        if service is None:
            return None

        if (
            service.get_characteristic(TRANSFER_CHARACTERISTIC_UUID) is None
            or service.get_characteristic(NOTIFY_CHARACTERISTIC_UUID) is None
        ):
            return None

        return ScoreboardBinding(
            peripheral_id=address,
            service_id=SERVICE_UUID,
            transfer=TRANSFER_CHARACTERISTIC_UUID,
            receive=RECEIVE_CHARACTERISTIC_UUID,
            notify_transfer=NOTIFY_CHARACTERISTIC_UUID,
        )

    async def _async_start_notifications(self, client: BleakClientWithServiceCache, binding: ScoreboardBinding) -> None:
        try:
            await client.start_notify(
                binding.notify_transfer,
                partial(self._handle_notify, binding.peripheral_id),
            )
        except (BleakError, TimeoutError) as err:
            _LOGGER.error("Failed to enable notifications: %s", err)
            return

        self._notification_enabled = True
        _LOGGER.debug("Notifications enabled for characteristic %s", binding.notify_transfer)

    async def _async_read_descriptors(self, client: BleakClientWithServiceCache) -> None:
        for service in client.services:
            for characteristic in service.characteristics:
                for descriptor in characteristic.descriptors:
                    try:
                        await client.read_gatt_descriptor(descriptor.handle)
                    except (BleakError, TimeoutError) as err:
                        _LOGGER.error(
                            "Failed to read descriptor %s of characteristic %s: %s",
                            descriptor.uuid,
                            characteristic.uuid,
                            err,
                        )

    def _publish_binding(self, binding: ScoreboardBinding | None) -> None:
        if binding is None and self._binding is None:
            return
        self._binding = binding
        if binding is None:
            self._notification_enabled = False
        for listener in list(self._binding_listeners):
            listener(binding)
        self._notify()

    # ==================== Disconnection ====================

    async def async_disconnect(self, address: str | None = None) -> None:
        """Disconnect and forget discovered peripherals, whatever the transport reports."""
        client, self._client = self._client, None
        if client is not None:
            if address is not None and client.address.upper() != address.upper():
                _LOGGER.debug("Disconnect requested for %s, connected to %s", address, client.address)
            try:
                await client.disconnect()
            except (BleakError, TimeoutError) as err:
                _LOGGER.error("Failed to disconnect from %s: %s", client.address, err)
            else:
                _LOGGER.info("Disconnected from scoreboard %s", client.address)

        self._discovered.clear()
        self._publish_binding(None)
        self._notify()

    def _on_disconnect(self, client: BleakClientWithServiceCache) -> None:
        """Handle a disconnect reported by the transport."""
        if self._client is not client:
            # Requested through async_disconnect or a failed bind, already cleaned up
            _LOGGER.debug("Scoreboard %s disconnected on request", client.address)
            return

        self._total_disconnections += 1
        _LOGGER.info("Scoreboard %s disconnected (total: %d)", client.address, self._total_disconnections)

        self._client = None
        entry = self._discovered.get(client.address)
        if entry is not None:
            entry.connected = False
            entry.connecting = False

        self._publish_binding(None)
        self._notify()

    async def async_shutdown(self) -> None:
        """Stop scanning and disconnect."""
        if self._scan_task and not self._scan_task.done():
            self._scan_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._scan_task

        client, binding = self._client, self._binding
        if client is not None and binding is not None and self._notification_enabled:
            with contextlib.suppress(BleakError, TimeoutError):
                await client.stop_notify(binding.notify_transfer)

        await self.async_disconnect()

    # ==================== I/O ====================

    async def async_write(self, payload: bytes) -> bool:
        """Write a command frame to the transfer characteristic. Returns True on success."""
        binding, client = self._binding, self._client
        if binding is None or client is None:
            _LOGGER.debug("Not bound, dropping %r", payload)
            return False

        try:
            await client.write_gatt_char(binding.transfer, payload, response=True)
        except (BleakError, TimeoutError) as err:
            _LOGGER.error("Failed to send %r: %s", payload, err)
            return False

        _LOGGER.debug("Sent %r", payload)
        return True

    async def async_read(self) -> bytes | None:
        """Read the receive characteristic of the bound scoreboard."""
        binding, client = self._binding, self._client
        if binding is None or client is None:
            return None

        try:
            return bytes(await client.read_gatt_char(binding.receive))
        except (BleakError, TimeoutError) as err:
            _LOGGER.error("Failed to read from %s: %s", binding.peripheral_id, err)
            return None

    def _handle_notify(self, address: str, characteristic: BleakGATTCharacteristic, data: bytearray) -> None:
        self.handle_notification(address, characteristic.uuid, data)

    def handle_notification(self, peripheral_id: str, characteristic_id: str, data: bytes | bytearray) -> None:
        """Decode a notification if it comes from the bound notify characteristic."""
        binding = self._binding
        if binding is None or not binding.matches(peripheral_id, characteristic_id):
            _LOGGER.debug("Ignoring notification from %s/%s", peripheral_id, characteristic_id)
            return

        update = decode_telemetry(data)
        if update is None:
            return

        for listener in list(self._telemetry_listeners):
            listener(update)
