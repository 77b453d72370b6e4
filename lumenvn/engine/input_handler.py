"""
Input handler for the pygame front end

Translates raw pygame events into engine input signals. The mapping depends
on where the player is (title menu, game screen, open overlay), so it reads
the engine's screen state but never touches playback directly.
"""
from __future__ import annotations

from typing import Any, List, Optional, Tuple

import pygame

from .engine import Engine, InputSignal, Overlay, Screen

Signal = Tuple[InputSignal, Any]


class InputHandler:
    # Default key bindings
    PROGRESS_KEYS = {pygame.K_RETURN, pygame.K_KP_ENTER}
    AUTO_MODE_KEY = pygame.K_a
    SKIP_MODE_KEY = pygame.K_s
    UI_HIDE_KEY = pygame.K_h
    SETTINGS_KEY = pygame.K_F6
    SAVE_MENU_KEY = pygame.K_F7
    LOAD_MENU_KEY = pygame.K_F8
    SPEED_UP_KEYS = {pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS}
    SPEED_DOWN_KEYS = {pygame.K_MINUS, pygame.K_KP_MINUS}
    # digits 1-9 pick slots up to the configured slot count
    FIRST_SLOT_KEY = pygame.K_1

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.quit_requested = False

    def process_pygame_event(self, event: pygame.event.Event) -> bool:
        """Feed one pygame event to the engine. Returns False once the player quits."""
        for signal, value in self.signals_for(event):
            self.engine.handle(signal, value)
        return not self.quit_requested

    def signals_for(self, event: pygame.event.Event) -> List[Signal]:
        if event.type == pygame.QUIT:
            self.quit_requested = True
            return []
        if event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            return self._on_click()
        if event.type == pygame.KEYDOWN:
            return self._on_key(event.key, getattr(event, "mod", 0))
        return []

    def _on_click(self) -> List[Signal]:
        eng = self.engine
        if eng.screen is Screen.MENU and eng.overlay is None:
            return [(InputSignal.START, None)]
        if eng.screen is Screen.GAME and eng.overlay is None:
            return [(InputSignal.PROGRESS, None)]
        return []

    def _on_key(self, key: int, mod: int) -> List[Signal]:
        eng = self.engine
        overlay = eng.overlay

        if key == pygame.K_ESCAPE:
            return self._on_escape()

        slot = self.slot_for_key(key)
        if overlay in (Overlay.SAVE, Overlay.LOAD) and slot is not None:
            if mod & pygame.KMOD_SHIFT:
                return [(InputSignal.DELETE_SLOT, slot)]
            if overlay is Overlay.SAVE:
                return [(InputSignal.SAVE_SLOT, slot)]
            return [(InputSignal.LOAD_SLOT, slot)]

        if key == self.SAVE_MENU_KEY:
            return [self._toggle(Overlay.SAVE, InputSignal.OPEN_SAVE, InputSignal.CLOSE_SAVE)]
        if key == self.LOAD_MENU_KEY:
            return [self._toggle(Overlay.LOAD, InputSignal.OPEN_LOAD, InputSignal.CLOSE_LOAD)]
        if key == self.SETTINGS_KEY:
            return [self._toggle(Overlay.SETTINGS, InputSignal.OPEN_SETTINGS, InputSignal.CLOSE_SETTINGS)]

        if overlay is Overlay.SETTINGS or (eng.screen is Screen.GAME and overlay is None):
            if key in self.SPEED_UP_KEYS:
                return [(InputSignal.ADJUST_AUTO_SPEED, "+")]
            if key in self.SPEED_DOWN_KEYS:
                return [(InputSignal.ADJUST_AUTO_SPEED, "-")]

        if overlay is not None:
            return []

        if eng.screen is Screen.MENU:
            if key in self.PROGRESS_KEYS:
                return [(InputSignal.START, None)]
            return []

        if key in self.PROGRESS_KEYS:
            return [(InputSignal.PROGRESS, None)]
        if key == self.AUTO_MODE_KEY:
            return [(InputSignal.TOGGLE_AUTO, None)]
        if key == self.SKIP_MODE_KEY:
            return [(InputSignal.TOGGLE_SKIP, None)]
        if key == self.UI_HIDE_KEY:
            return [(InputSignal.TOGGLE_HIDDEN, None)]
        return []

    def slot_for_key(self, key: int) -> Optional[int]:
        slot = key - self.FIRST_SLOT_KEY + 1
        if 1 <= slot <= min(self.engine.playback.snapshots.max_slots, 9):
            return slot
        return None

    def _on_escape(self) -> List[Signal]:
        eng = self.engine
        closers = {
            Overlay.SAVE: InputSignal.CLOSE_SAVE,
            Overlay.LOAD: InputSignal.CLOSE_LOAD,
            Overlay.SETTINGS: InputSignal.CLOSE_SETTINGS,
        }
        if eng.overlay is not None:
            return [(closers[eng.overlay], None)]
        if eng.screen is Screen.GAME:
            return [(InputSignal.EXIT_TO_MENU, None)]
        self.quit_requested = True
        return []

    def _toggle(self, overlay: Overlay, open_signal: InputSignal, close_signal: InputSignal) -> Signal:
        if self.engine.overlay is overlay:
            return (close_signal, None)
        return (open_signal, None)


BINDINGS_HINT = ("Enter/click: next  A: auto  S: skip  H: hide  F6: settings  "
                 "F7: save  F8: load  digit: slot (Shift: delete)  +/-: auto speed  Esc: back")
