"""Game session state machine.

The machine owns the authoritative ``GameData`` of the active session. Every
operation applies the local change synchronously, then publishes the wire
commands it produced to the command listeners and, when the game data
changed, a snapshot of the session to the change listeners. It does no I/O:
sending commands, persisting snapshots and driving the clock tick belong to
whoever listens (see ``controller.ScoreboardController``).

States::

    IDLE --new_session/resume_session--> PAUSED <--start/pause--> RUNNING
    any --end_session--> IDLE
"""
from __future__ import annotations

from collections.abc import Callable
import logging
import time

from . import protocol
from .const import (
    MAX_CLOCK_SECONDS_FIELD,
    MAX_PERIOD,
    MAX_SCORE,
    MAX_SHOT_CLOCK,
    MIN_PERIOD,
    MIN_SCORE,
    MIN_SHOT_CLOCK,
    SCORE_INCREMENTS,
    SESSION_ID_PREFIX,
    SHOT_CLOCK_RESETS,
)
from .models import GameData, GameState, Possession, Session, TransportMode
from .protocol import TelemetryUpdate
from .util import clamp, subscribe

_LOGGER = logging.getLogger(__name__)

type CommandListener = Callable[[str], None]
type ChangeListener = Callable[[Session], None]
type StateListener = Callable[[GameState], None]


class GameStateMachine:
    """Applies user intents and telemetry to the active game session."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize."""
        self._clock = clock
        self._state = GameState.IDLE
        self._data = GameData()
        self._session_id: str | None = None
        self._last_id_millis = 0
        self._transport_mode = TransportMode.BLE

        self._command_listeners: list[CommandListener] = []
        self._change_listeners: list[ChangeListener] = []
        self._state_listeners: list[StateListener] = []

    # ==================== Properties ====================

    @property
    def state(self) -> GameState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Return True if the game clock is running."""
        return self._state is GameState.RUNNING

    @property
    def session_id(self) -> str | None:
        """Return the id of the bound session, if any."""
        return self._session_id

    @property
    def data(self) -> GameData:
        """Return a snapshot of the game data."""
        return self._data.copy()

    @property
    def transport_mode(self) -> TransportMode:
        """Return the last transport mode sent to the scoreboard."""
        return self._transport_mode

    def snapshot(self) -> Session | None:
        """Return the active session, or None when idle."""
        if self._session_id is None:
            return None
        return Session(id=self._session_id, game=self._data.copy())

    # ==================== Listeners ====================

    def add_command_listener(self, listener: CommandListener) -> Callable[[], None]:
        """Subscribe to outbound commands. Returns an unsubscribe callback."""
        return subscribe(self._command_listeners, listener)

    def add_change_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Subscribe to game data changes. Returns an unsubscribe callback."""
        return subscribe(self._change_listeners, listener)

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        """Subscribe to lifecycle state changes. Returns an unsubscribe callback."""
        return subscribe(self._state_listeners, listener)

    # ==================== Session lifecycle ====================

    def new_session(self) -> Session:
        """Bind a fresh session with default game data."""
        self._session_id = self._mint_session_id()
        self._data = GameData()
        _LOGGER.info("Started new session %s", self._session_id)
        self._set_state(GameState.PAUSED)
        self._changed()
        return Session(id=self._session_id, game=self._data.copy())

    def resume_session(self, session: Session) -> None:
        """Bind a stored session, keeping its id and game data."""
        self._session_id = session.id
        self._data = session.game.copy()
        _LOGGER.info("Resumed session %s", session.id)
        self._set_state(GameState.PAUSED)

    def end_session(self) -> None:
        """Unbind the session and stop the clock."""
        if self._session_id is not None:
            _LOGGER.info("Ended session %s", self._session_id)
        self._session_id = None
        self._set_state(GameState.IDLE)

    def _mint_session_id(self) -> str:
        millis = int(self._clock() * 1000)
        # Keep ids unique when two sessions are minted within the same millisecond
        millis = max(millis, self._last_id_millis + 1)
        self._last_id_millis = millis
        return f"{SESSION_ID_PREFIX}{millis}"

    # ==================== Clock ====================

    def start(self) -> list[str]:
        """Start the game clock."""
        if not self._require_session("start"):
            return []
        if self._state is GameState.RUNNING:
            return []
        self._set_state(GameState.RUNNING)
        return self._emit(protocol.start())

    def pause(self) -> list[str]:
        """Stop the game clock. Always tells the scoreboard, even if already paused."""
        if not self._require_session("pause"):
            return []
        self._set_state(GameState.PAUSED)
        return self._emit(protocol.pause())

    def begin_edit(self) -> list[str]:
        """Pause before a manual edit of the game values."""
        return self.pause()

    def tick(self) -> list[str]:
        """Advance both clocks by one second and resync the scoreboard."""
        if self._state is not GameState.RUNNING:
            return []

        self._data.remaining_seconds = max(self._data.remaining_seconds - 1, 0)
        self._data.shot_clock = max(self._data.shot_clock - 1, 0)
        self._changed()
        return self._emit(
            protocol.set_time(self._data.remaining_seconds),
            protocol.set_shot_clock(self._data.shot_clock),
        )

    def set_time(self, minutes: float | str | None, seconds: float | str | None) -> list[str]:
        """Set the game clock from minutes and seconds fields."""
        if not self._require_session("set_time"):
            return []
        mins = protocol.coerce_int(minutes, 0)
        secs = protocol.coerce_int(seconds, 0, MAX_CLOCK_SECONDS_FIELD)
        total = mins * 60 + secs
        self._data.remaining_seconds = total
        self._changed()
        return self._emit(protocol.set_time(total))

    def set_shot_clock(self, value: float | str | None) -> list[str]:
        """Set the shot clock to an absolute value."""
        if not self._require_session("set_shot_clock"):
            return []
        shot = protocol.coerce_int(value, MIN_SHOT_CLOCK, MAX_SHOT_CLOCK)
        self._data.shot_clock = shot
        self._changed()
        return self._emit(protocol.set_shot_clock(shot))

    def reset_shot_clock(self, value: int) -> list[str]:
        """Reset the shot clock to 24 or 14 and pause."""
        if value not in SHOT_CLOCK_RESETS:
            raise ValueError(f"shot clock resets to one of {SHOT_CLOCK_RESETS}, got {value}")
        if not self._require_session("reset_shot_clock"):
            return []
        self._data.shot_clock = value
        self._changed()
        return self._emit(protocol.set_shot_clock(value)) + self.pause()

    # ==================== Scores ====================

    def increment_home(self, value: int) -> list[str]:
        """Add 1, 2 or 3 points to the home team."""
        self._check_increment(value)
        if not self._require_session("increment_home"):
            return []
        self._data.home_score = min(MAX_SCORE, self._data.home_score + value)
        self._changed()
        return self._emit(protocol.home_score(value))

    def decrement_home(self) -> list[str]:
        if not self._require_session("decrement_home"):
            return []
        self._data.home_score = max(MIN_SCORE, self._data.home_score - 1)
        self._changed()
        return self._emit(protocol.home_score(-1))

    def increment_away(self, value: int) -> list[str]:
        """Add 1, 2 or 3 points to the away team."""
        self._check_increment(value)
        if not self._require_session("increment_away"):
            return []
        self._data.away_score = min(MAX_SCORE, self._data.away_score + value)
        self._changed()
        return self._emit(protocol.away_score(value))

    def decrement_away(self) -> list[str]:
        if not self._require_session("decrement_away"):
            return []
        self._data.away_score = max(MIN_SCORE, self._data.away_score - 1)
        self._changed()
        return self._emit(protocol.away_score(-1))

    def set_home_score(self, value: float | str | None) -> list[str]:
        """Set the home score; the scoreboard receives the difference."""
        if not self._require_session("set_home_score"):
            return []
        score = protocol.coerce_int(value, MIN_SCORE, MAX_SCORE)
        delta = score - self._data.home_score
        self._data.home_score = score
        self._changed()
        return self._emit(protocol.home_score(delta))

    def set_away_score(self, value: float | str | None) -> list[str]:
        """Set the away score; the scoreboard receives the difference."""
        if not self._require_session("set_away_score"):
            return []
        score = protocol.coerce_int(value, MIN_SCORE, MAX_SCORE)
        delta = score - self._data.away_score
        self._data.away_score = score
        self._changed()
        return self._emit(protocol.away_score(delta))

    @staticmethod
    def _check_increment(value: int) -> None:
        if value not in SCORE_INCREMENTS:
            raise ValueError(f"score increments are {SCORE_INCREMENTS}, got {value}")

    # ==================== Period, possession, horn ====================

    def set_period(self, value: float | str | None) -> list[str]:
        """Set the period; the scoreboard receives the difference."""
        if not self._require_session("set_period"):
            return []
        period = protocol.coerce_int(value, MIN_PERIOD, MAX_PERIOD, fallback=MIN_PERIOD)
        delta = period - self._data.selected_period
        self._data.selected_period = period
        self._changed()
        return self._emit(protocol.change_period(delta))

    def set_possession(self, team: Possession) -> list[str]:
        if team is Possession.NONE:
            raise ValueError("possession can only be given to HOME or AWAY")
        if not self._require_session("set_possession"):
            return []
        self._data.possession = team
        self._changed()
        return self._emit(protocol.possession(team))

    def press_horn(self) -> list[str]:
        if not self._require_session("press_horn"):
            return []
        return self._emit(protocol.horn(True))

    def release_horn(self) -> list[str]:
        if not self._require_session("release_horn"):
            return []
        return self._emit(protocol.horn(False))

    def set_transport_mode(self, mode: TransportMode) -> list[str]:
        """Switch the scoreboard's display link between BLE and ESP-NOW."""
        if not self._require_session("set_transport_mode"):
            return []
        self._transport_mode = mode
        return self._emit(protocol.transport_mode(mode))

    def reset_all(self) -> list[str]:
        """Restore default game data, keeping the session id."""
        if not self._require_session("reset_all"):
            return []
        self._data = GameData()
        self._changed()
        return self._emit(protocol.reset())

    # ==================== Telemetry ====================

    def apply_telemetry(self, update: TelemetryUpdate) -> None:
        """Take the scoreboard's clocks as authoritative until the next local edit."""
        if self._session_id is None:
            _LOGGER.debug("Ignoring telemetry without an active session")
            return

        self._data.remaining_seconds = clamp(update.remaining_seconds, 0)
        self._data.shot_clock = clamp(update.shot_clock, MIN_SHOT_CLOCK, MAX_SHOT_CLOCK)
        self._changed()

    # ==================== Internals ====================

    def _require_session(self, operation: str) -> bool:
        if self._session_id is None:
            _LOGGER.warning("Ignoring %s: no active session", operation)
            return False
        return True

    def _set_state(self, state: GameState) -> None:
        if state is self._state:
            return
        _LOGGER.debug("Game state %s -> %s", self._state, state)
        self._state = state
        for listener in list(self._state_listeners):
            listener(state)

    def _changed(self) -> None:
        snapshot = self.snapshot()
        if snapshot is None:
            return
        for listener in list(self._change_listeners):
            listener(snapshot)

    def _emit(self, *commands: str) -> list[str]:
        for command in commands:
            _LOGGER.debug("Command: %s", command)
            for listener in list(self._command_listeners):
                listener(command)
        return list(commands)
