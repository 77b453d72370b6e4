from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Tuple

import pygame

from ..ui.textwrap import wrap_text
from .asset_cache import AssetLoadFailure
from .effects import SHAKE_CLASSES
from .engine import Engine, InputSignal, Overlay, Screen
from .input_handler import BINDINGS_HINT, InputHandler
from .renderer import HeadlessSurface

logger = logging.getLogger(__name__)

# Logical canvas size (16:9)
LOGICAL_SIZE: Tuple[int, int] = (1280, 720)

TEXT_BOX_RECT = pygame.Rect(60, 470, 1160, 220)
CHARACTER_X = {"left": 0.22, "center": 0.5, "right": 0.78}
# pixel amplitude per shake class
SHAKE_AMPLITUDE: Dict[str, int] = dict(zip(SHAKE_CLASSES, (4, 8, 14, 22)))

_PLACEHOLDER_BG = (40, 40, 40)
_TEXT_COLOR = (240, 240, 240)
_HINT_COLOR = (170, 170, 170)


class PygameSurface(HeadlessSurface):
    """Keeps render state like HeadlessSurface and draws it onto a pygame canvas.

    ``image_for`` maps an asset ref to a loaded ``pygame.Surface``; refs that
    fail to load are drawn as placeholders.
    """

    def __init__(self, image_for: Callable[[str], Any], font: pygame.font.Font,
                 hint_font: Optional[pygame.font.Font] = None) -> None:
        super().__init__()
        self._image_for = image_for
        self.font = font
        self.hint_font = hint_font or font
        self._scaled: Dict[Tuple[str, Tuple[int, int]], pygame.Surface] = {}

    def _image(self, path: Optional[str]) -> Optional[pygame.Surface]:
        if not path:
            return None
        try:
            img = self._image_for(path)
        except AssetLoadFailure:
            return None
        return img if isinstance(img, pygame.Surface) else None

    def reset_state(self) -> None:
        super().reset_state()
        self._scaled.clear()

    def _cover(self, path: Optional[str]) -> Optional[pygame.Surface]:
        """Background scaled to fill the canvas (cached per ref)."""
        img = self._image(path)
        if img is None:
            return None
        key = (path or "", LOGICAL_SIZE)
        if key not in self._scaled:
            self._scaled[key] = pygame.transform.smoothscale(img, LOGICAL_SIZE)
        return self._scaled[key]

    def _shake_offset(self, now_ms: int) -> Tuple[int, int]:
        amp = SHAKE_AMPLITUDE.get(self.shake_class or "", 0)
        if not amp:
            return 0, 0
        return int(amp * math.sin(now_ms / 23.0)), int(amp * 0.5 * math.cos(now_ms / 31.0))

    def draw(self, canvas: pygame.Surface, now_ms: int) -> None:
        ox, oy = self._shake_offset(now_ms)
        canvas.fill(_PLACEHOLDER_BG)

        base = self._cover(self.background)
        if base is not None:
            canvas.blit(base, (ox, oy))
        over = self._cover(self.overlay)
        if over is not None and self.overlay_opacity > 0:
            layer = over.copy()
            layer.set_alpha(int(255 * self.overlay_opacity))
            canvas.blit(layer, (ox, oy))

        char = self._image(self.character)
        if char is not None:
            frac = CHARACTER_X.get(self.character_position or "center", 0.5)
            rect = char.get_rect()
            rect.midbottom = (int(LOGICAL_SIZE[0] * frac) + ox, LOGICAL_SIZE[1] + oy)
            canvas.blit(char, rect)

        if self.fade_opacity > 0:
            veil = pygame.Surface(LOGICAL_SIZE, pygame.SRCALPHA)
            veil.fill((0, 0, 0, int(255 * self.fade_opacity)))
            canvas.blit(veil, (0, 0))

        if self.text_visible and self.lines:
            self._draw_text(canvas)
        if self.controls_visible:
            hint = self.hint_font.render(BINDINGS_HINT, True, _HINT_COLOR)
            canvas.blit(hint, (TEXT_BOX_RECT.x, LOGICAL_SIZE[1] - hint.get_height() - 4))

    def visible_rows(self) -> List[str]:
        """Wrapped text rows that fit the text box, newest kept."""
        measure = lambda s: self.font.size(s)[0]
        rows = [row for line in self.lines for row in wrap_text(line, measure, TEXT_BOX_RECT.width)]
        fit = max(1, TEXT_BOX_RECT.height // self.font.get_linesize())
        return rows[-fit:]

    def _draw_text(self, canvas: pygame.Surface) -> None:
        box = TEXT_BOX_RECT
        y = box.y
        line_h = self.font.get_linesize()
        for row in self.visible_rows():
            canvas.blit(self.font.render(row, True, _TEXT_COLOR), (box.x, y))
            y += line_h


def _draw_menu(canvas: pygame.Surface, font: pygame.font.Font, title: str) -> None:
    canvas.fill((10, 10, 20))
    head = font.render(title, True, _TEXT_COLOR)
    canvas.blit(head, head.get_rect(center=(LOGICAL_SIZE[0] // 2, LOGICAL_SIZE[1] // 2 - 40)))
    sub = font.render("Enter: start   F8: load   Esc: quit", True, _HINT_COLOR)
    canvas.blit(sub, sub.get_rect(center=(LOGICAL_SIZE[0] // 2, LOGICAL_SIZE[1] // 2 + 20)))


def _draw_overlay(canvas: pygame.Surface, font: pygame.font.Font, engine: Engine) -> None:
    panel = pygame.Surface(LOGICAL_SIZE, pygame.SRCALPHA)
    panel.fill((0, 0, 0, 200))
    canvas.blit(panel, (0, 0))
    x, y = 160, 120
    if engine.overlay is Overlay.SETTINGS:
        rows = [
            "Settings",
            f"Auto speed: {engine.cursor.auto_speed_ms / 1000:.1f}s  (+/-)",
            "F6 / Esc: close",
        ]
    else:
        label = "Save" if engine.overlay is Overlay.SAVE else "Load"
        last = engine.playback.snapshots.max_slots
        rows = [f"{label} (1-{min(last, 9)}, Shift+digit deletes, Esc closes)"]
        for n, meta in enumerate(engine.slot_listing(), start=1):
            if meta is None:
                rows.append(f"{n}. (empty)")
            else:
                rows.append(f"{n}. {meta.display_time}  {meta.short_preview}")
    for row in rows:
        canvas.blit(font.render(row, True, _TEXT_COLOR), (x, y))
        y += font.get_linesize() + 12


def run_pygame(engine: Engine, surface: PygameSurface, title: str = "LumenVN",
               fps: int = 60, autostart: bool = True) -> None:
    """Window loop: events -> engine signals, ``clock.tick`` -> virtual time, then draw."""
    pygame.display.set_caption(title)
    screen = pygame.display.get_surface() or pygame.display.set_mode(LOGICAL_SIZE, pygame.RESIZABLE)
    canvas = pygame.Surface(LOGICAL_SIZE)
    clock = pygame.time.Clock()
    handler = InputHandler(engine)
    if autostart:
        engine.handle(InputSignal.START)

    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.VIDEORESIZE:
                continue
            if not handler.process_pygame_event(event):
                running = False
                break
        engine.tick(clock.tick(fps))

        if engine.screen is Screen.GAME:
            surface.draw(canvas, pygame.time.get_ticks())
        else:
            _draw_menu(canvas, surface.font, title)
        if engine.overlay is not None:
            _draw_overlay(canvas, surface.font, engine)

        win_w, win_h = screen.get_size()
        scale = min(win_w / LOGICAL_SIZE[0], win_h / LOGICAL_SIZE[1])
        dst = (int(LOGICAL_SIZE[0] * scale), int(LOGICAL_SIZE[1] * scale))
        screen.fill((0, 0, 0))
        screen.blit(pygame.transform.smoothscale(canvas, dst), ((win_w - dst[0]) // 2, (win_h - dst[1]) // 2))
        pygame.display.flip()

    engine.handle(InputSignal.EXIT_TO_MENU)
    logger.debug("Window closed")
