"""Session controller tying the game, the scoreboard link and the session store together."""
from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
import logging
from typing import TYPE_CHECKING, Any

from .const import TICK_INTERVAL
from .exceptions import ScoreboardNotFoundError
from .game import GameStateMachine
from .models import GameState, ScoreboardBinding, Session
from .protocol import encode_command
from .util import subscribe

if TYPE_CHECKING:
    from .connection import ScoreboardConnectionManager
    from .session_store import SessionStore

_LOGGER = logging.getLogger(__name__)


class ScoreboardController:
    """Explicit context of one scoreboard session.

    Wires the state machine to its side effects:
        - commands are written to the bound scoreboard, one task per command,
          in the order they were emitted; failed writes are logged and the
          local state is kept
        - every game data change is upserted into the session store
        - the clock ticks once per interval while the game is running
        - telemetry from the scoreboard is merged into the game data
        - losing the binding ends the session (it stays resumable from the store)
    """

    def __init__(
        self,
        connection: ScoreboardConnectionManager,
        store: SessionStore,
        *,
        game: GameStateMachine | None = None,
        tick_interval: float = TICK_INTERVAL,
    ) -> None:
        """Initialize."""
        self.connection = connection
        self.store = store
        self.game = game or GameStateMachine()
        self._tick_interval = tick_interval
        self._tick_task: asyncio.Task | None = None
        self._background_tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[[], None]] = []

        self._unsubscribers = [
            self.game.add_command_listener(self._send_command),
            self.game.add_change_listener(self._persist),
            self.game.add_state_listener(self._on_state_changed),
            self.connection.add_binding_listener(self._on_binding_changed),
            self.connection.add_telemetry_listener(self.game.apply_telemetry),
            self.game.add_change_listener(lambda _: self._notify()),
            self.connection.add_listener(self._notify),
        ]

    @property
    def clock_running(self) -> bool:
        """Return True while the tick task is alive."""
        return self._tick_task is not None and not self._tick_task.done()

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to any change in game, session or connection state."""
        return subscribe(self._listeners, listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ==================== Sessions ====================

    async def async_new_session(self) -> Session:
        """Connect if needed and start a session with default game data.

        Raises:
            ScoreboardNotFoundError: No scoreboard discovered; a new scan was started
            ScoreboardConnectionError: The scoreboard could not be bound
        """
        await self._async_ensure_connected()
        return self.game.new_session()

    async def async_resume_session(self, session: Session) -> None:
        """Connect if needed, continue a stored session and drop it from the store.

        Raises the same errors as async_new_session; the store is untouched then.
        """
        await self._async_ensure_connected()
        self.game.resume_session(session)
        await self.store.async_remove(session.id)
        self._notify()

    async def async_resume_latest(self) -> Session | None:
        """Resume the most recently stored session, if any."""
        sessions = await self.store.async_load()
        if not sessions:
            return None
        session = sessions[-1]
        await self.async_resume_session(session)
        return session

    async def async_sessions(self) -> list[Session]:
        """Return stored sessions, oldest first."""
        return await self.store.async_load()

    async def async_clear_sessions(self) -> None:
        """Forget every stored session."""
        await self.store.async_clear()
        self._notify()

    async def async_end_session(self) -> None:
        """Stop the clock, leave the session resumable and disconnect."""
        self.game.end_session()
        binding = self.connection.binding
        await self.connection.async_disconnect(binding.peripheral_id if binding else None)

    async def _async_ensure_connected(self) -> ScoreboardBinding:
        if (binding := self.connection.binding) is not None:
            return binding
        try:
            return await self.connection.async_connect_first()
        except ScoreboardNotFoundError:
            _LOGGER.warning("No scoreboard found, scanning again")
            await self.connection.async_start_scan()
            raise

    # ==================== Side effects ====================

    def _send_command(self, command: str) -> None:
        if self.connection.binding is None:
            _LOGGER.debug("Not connected, not sending %s", command)
            return
        self._create_task(self.connection.async_write(encode_command(command)))

    def _persist(self, session: Session) -> None:
        self._create_task(self._async_persist(session))

    async def _async_persist(self, session: Session) -> None:
        try:
            await self.store.async_upsert(session)
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Error storing session %s", session.id)

    def _create_task(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    # ==================== Clock ====================

    def _on_state_changed(self, state: GameState) -> None:
        if state is GameState.RUNNING:
            self._start_clock()
        else:
            self._stop_clock()
        self._notify()

    def _on_binding_changed(self, binding: ScoreboardBinding | None) -> None:
        if binding is None:
            self._stop_clock()
            self.game.end_session()

    def _start_clock(self) -> None:
        if self.clock_running:
            return
        self._tick_task = asyncio.get_running_loop().create_task(self._async_run_clock())

    def _stop_clock(self) -> None:
        task, self._tick_task = self._tick_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _async_run_clock(self) -> None:
        _LOGGER.debug("Clock started")
        try:
            while True:
                await asyncio.sleep(self._tick_interval)
                self.game.tick()
        finally:
            _LOGGER.debug("Clock stopped")

    # ==================== Shutdown ====================

    async def async_shutdown(self) -> None:
        """Stop the clock, flush pending writes and disconnect."""
        self._stop_clock()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

        await self.connection.async_shutdown()
