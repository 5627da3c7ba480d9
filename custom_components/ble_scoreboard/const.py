"""Constants for the BLE Scoreboard integration."""

from scoreboard_ble.const import SERVICE_UUID

DOMAIN = "ble_scoreboard"

# Session storage (Home Assistant .storage)
STORAGE_VERSION = 1
STORAGE_KEY_PREFIX = f"{DOMAIN}_sessions"

# Manufacturer shown on the device card
MANUFACTURER = "Generic"
MODEL = "BLE Scoreboard"

# Service advertised by every supported scoreboard
DISCOVERY_SERVICE_UUID = SERVICE_UUID

# Upper bound of the game clock number entity (99:59)
MAX_CLOCK_SECONDS = 99 * 60 + 59
