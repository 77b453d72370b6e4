from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional
import logging

from ..script.repository import IScriptRepository
from .adapters.assets import IAssets
from .adapters.audio import IAudio
from .adapters.storage import IKeyValueStore, MemoryKeyValueStore
from .config_io import PlaybackConfig
from .events import EventSystem, SlotDeleteCompleteEvent
from .playback import Playback
from .renderer import HeadlessSurface, IRenderSurface
from .save_manager import SlotMeta
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

# step applied by ADJUST_AUTO_SPEED for "+" and "-"
AUTO_SPEED_STEP_MS = 250


class InputSignal(Enum):
    PROGRESS = "progress"
    TOGGLE_AUTO = "toggle_auto"
    TOGGLE_SKIP = "toggle_skip"
    TOGGLE_HIDDEN = "toggle_hidden"
    OPEN_SAVE = "open_save"
    CLOSE_SAVE = "close_save"
    OPEN_LOAD = "open_load"
    CLOSE_LOAD = "close_load"
    OPEN_SETTINGS = "open_settings"
    CLOSE_SETTINGS = "close_settings"
    SAVE_SLOT = "save_slot"
    LOAD_SLOT = "load_slot"
    DELETE_SLOT = "delete_slot"
    ADJUST_AUTO_SPEED = "adjust_auto_speed"
    START = "start"
    EXIT_TO_MENU = "exit_to_menu"


class Screen(Enum):
    MENU = "menu"
    GAME = "game"


class Overlay(Enum):
    SETTINGS = "settings"
    SAVE = "save"
    LOAD = "load"


class Engine:
    """Owns one playback session and routes input signals to it.

    Screen/overlay bookkeeping mirrors a title menu with a game screen and
    three modal overlays (settings, save menu, load menu).
    """

    def __init__(
        self,
        repository: IScriptRepository,
        surface: Optional[IRenderSurface] = None,
        store: Optional[IKeyValueStore] = None,
        config: Optional[PlaybackConfig] = None,
        scheduler: Optional[Scheduler] = None,
        events: Optional[EventSystem] = None,
        assets: Optional[IAssets] = None,
        audio: Optional[IAudio] = None,
    ) -> None:
        self.scheduler = scheduler or Scheduler()
        self.surface = surface or HeadlessSurface()
        self.events = events or EventSystem()
        self.store = store if store is not None else MemoryKeyValueStore()
        self.playback = Playback(
            self.scheduler, self.surface, repository,
            store=self.store, config=config, events=self.events,
            assets=assets, audio=audio,
        )
        self.screen = Screen.MENU
        self.overlay: Optional[Overlay] = None

    @property
    def cursor(self):
        return self.playback.cursor

    @property
    def in_game(self) -> bool:
        return self.screen is Screen.GAME

    # =========================================
    # Signal routing
    # =========================================

    def handle(self, signal: InputSignal, value: Any = None) -> bool:
        """Route one input signal. Returns True when it did something."""
        self._sync_screen()
        handler = getattr(self, f"_on_{signal.value}", None)
        if handler is None:  # pragma: no cover - every signal has a handler
            logger.warning(f"Unhandled input signal {signal}")
            return False
        result = bool(handler(value))
        self._sync_screen()
        return result

    def tick(self, ms: int) -> None:
        """Advance virtual time; front ends call this once per frame."""
        self.scheduler.advance(ms)
        self._sync_screen()

    def slot_listing(self) -> List[Optional[SlotMeta]]:
        return self.playback.snapshots.list_slots()

    def _sync_screen(self) -> None:
        # content ending drops the session back to idle behind our back
        if self.screen is Screen.GAME and self.playback.is_idle:
            self.screen = Screen.MENU
            self.overlay = None

    def _open(self, overlay: Overlay) -> bool:
        if self.overlay is not None and self.overlay is not overlay:
            return False
        self.overlay = overlay
        return True

    def _close(self, overlay: Overlay) -> bool:
        if self.overlay is not overlay:
            return False
        self.overlay = None
        return True

    # --- handlers (one per InputSignal value) ---

    def _on_progress(self, _value) -> bool:
        if self.screen is not Screen.GAME or self.overlay is not None:
            return False
        self.playback.advance()
        return True

    def _on_toggle_auto(self, _value) -> bool:
        if self.screen is not Screen.GAME:
            return False
        self.playback.set_auto_mode(not self.cursor.auto_mode)
        return True

    def _on_toggle_skip(self, _value) -> bool:
        if self.screen is not Screen.GAME:
            return False
        self.playback.set_skip_mode(not self.cursor.skip_mode)
        return True

    def _on_toggle_hidden(self, _value) -> bool:
        if self.screen is not Screen.GAME or self.overlay is not None:
            return False
        self.playback.set_hidden(not self.cursor.hidden)
        return True

    def _on_open_save(self, _value) -> bool:
        # saving needs a running session
        if self.screen is not Screen.GAME:
            return False
        return self._open(Overlay.SAVE)

    def _on_close_save(self, _value) -> bool:
        return self._close(Overlay.SAVE)

    def _on_open_load(self, _value) -> bool:
        return self._open(Overlay.LOAD)

    def _on_close_load(self, _value) -> bool:
        return self._close(Overlay.LOAD)

    def _on_open_settings(self, _value) -> bool:
        return self._open(Overlay.SETTINGS)

    def _on_close_settings(self, _value) -> bool:
        return self._close(Overlay.SETTINGS)

    def _on_save_slot(self, value) -> bool:
        if self.screen is not Screen.GAME or value is None:
            return False
        ok = self.playback.save_to_slot(int(value))
        if ok:
            self.overlay = None
        return ok

    def _on_load_slot(self, value) -> bool:
        if value is None:
            return False
        ok = self.playback.load_from_slot(int(value))
        if ok:
            self.overlay = None
            self.screen = Screen.GAME
        return ok

    def _on_delete_slot(self, value) -> bool:
        if value is None:
            return False
        slot = int(value)
        ok = self.playback.snapshots.delete(slot)
        self.events.emit(SlotDeleteCompleteEvent(slot=slot, success=ok))
        return ok

    def _on_adjust_auto_speed(self, value) -> bool:
        """``value`` is the new delay in ms, or "+" / "-" to step it."""
        if value is None:
            return False
        current = self.cursor.auto_speed_ms
        if value in ("+", "-"):
            step = AUTO_SPEED_STEP_MS if value == "+" else -AUTO_SPEED_STEP_MS
            target = current + step
        else:
            target = int(value)
        self.playback.set_auto_advance_delay(target)
        return True

    def _on_start(self, _value) -> bool:
        self.overlay = None
        self.screen = Screen.GAME
        return self.playback.start_session()

    def _on_exit_to_menu(self, _value) -> bool:
        self.overlay = None
        self.screen = Screen.MENU
        self.playback.exit_to_menu()
        return True
