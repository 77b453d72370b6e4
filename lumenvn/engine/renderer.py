from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..script.model import DEFAULT_POSITION


class IRenderSurface:
    """Rendering contract consumed by playback.

    Fire-and-forget: no method returns a completion signal; effects that
    need to wait schedule their own timers.
    """

    # --- background ---
    def set_background(self, path: Optional[str]) -> None:
        """Hard swap of the base background layer."""
        raise NotImplementedError

    def get_background(self) -> Optional[str]:
        raise NotImplementedError

    def show_background_overlay(self, path: str) -> None:
        """Place a fully transparent copy of ``path`` above the base layer."""
        raise NotImplementedError

    def set_overlay_opacity(self, value: float) -> None:
        raise NotImplementedError

    def commit_background_overlay(self) -> None:
        """Move the overlay into the base layer and discard it."""
        raise NotImplementedError

    def flush(self) -> None:
        """Force pending layout/drawing so the next opacity change animates."""
        pass

    # --- character portrait ---
    def set_character(self, path: Optional[str]) -> None:
        raise NotImplementedError

    def get_character(self) -> Optional[str]:
        raise NotImplementedError

    def set_character_position(self, position: Optional[str]) -> None:
        raise NotImplementedError

    def get_character_position(self) -> Optional[str]:
        raise NotImplementedError

    # --- text area ---
    def begin_line(self) -> None:
        """Append an empty line to the text area; ``update_line`` writes into it."""
        raise NotImplementedError

    def update_line(self, text: str) -> None:
        raise NotImplementedError

    def clear_text(self) -> None:
        raise NotImplementedError

    # --- layers & flags ---
    def set_fade_opacity(self, value: float) -> None:
        raise NotImplementedError

    def get_fade_opacity(self) -> float:
        raise NotImplementedError

    def set_shake(self, shake_class: Optional[str]) -> None:
        """Apply one shake class, or None to clear it."""
        raise NotImplementedError

    def set_text_visible(self, visible: bool) -> None:
        pass

    def set_controls_visible(self, visible: bool) -> None:
        pass

    # --- snapshots ---
    def get_snapshot(self) -> Dict[str, Any]:
        raise NotImplementedError

    def apply_snapshot(self, snap: Dict[str, Any]) -> None:
        raise NotImplementedError

    def reset_state(self) -> None:
        """Reset transient visual state; may be a no-op for headless implementations."""
        pass


class HeadlessSurface(IRenderSurface):
    """In-memory surface; useful for tests, the CLI and as the state model of real surfaces."""

    def __init__(self) -> None:
        self.background: Optional[str] = None
        self.overlay: Optional[str] = None
        self.overlay_opacity: float = 0.0
        self.character: Optional[str] = None
        self.character_position: Optional[str] = None
        self.lines: List[str] = []
        self.fade_opacity: float = 1.0
        self.shake_class: Optional[str] = None
        self.text_visible = True
        self.controls_visible = True
        self.flush_count = 0

    def set_background(self, path: Optional[str]) -> None:
        self.background = path

    def get_background(self) -> Optional[str]:
        return self.background

    def show_background_overlay(self, path: str) -> None:
        self.overlay = path
        self.overlay_opacity = 0.0

    def set_overlay_opacity(self, value: float) -> None:
        self.overlay_opacity = max(0.0, min(1.0, float(value)))

    def commit_background_overlay(self) -> None:
        if self.overlay is not None:
            self.background = self.overlay
        self.overlay = None
        self.overlay_opacity = 0.0

    def flush(self) -> None:
        self.flush_count += 1

    def set_character(self, path: Optional[str]) -> None:
        self.character = path or None

    def get_character(self) -> Optional[str]:
        return self.character

    def set_character_position(self, position: Optional[str]) -> None:
        self.character_position = position

    def get_character_position(self) -> Optional[str]:
        return self.character_position

    def begin_line(self) -> None:
        self.lines.append("")

    def update_line(self, text: str) -> None:
        if not self.lines:
            self.lines.append("")
        self.lines[-1] = text

    def clear_text(self) -> None:
        self.lines = []

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def set_fade_opacity(self, value: float) -> None:
        self.fade_opacity = max(0.0, min(1.0, float(value)))

    def get_fade_opacity(self) -> float:
        return self.fade_opacity

    def set_shake(self, shake_class: Optional[str]) -> None:
        self.shake_class = shake_class

    def set_text_visible(self, visible: bool) -> None:
        self.text_visible = bool(visible)

    def set_controls_visible(self, visible: bool) -> None:
        self.controls_visible = bool(visible)

    def get_snapshot(self) -> Dict[str, Any]:
        return {
            "bg": self.background,
            "char": self.character,
            "pos": self.character_position or DEFAULT_POSITION,
            "lines": list(self.lines),
        }

    def apply_snapshot(self, snap: Dict[str, Any]) -> None:
        self.background = snap.get("bg")
        self.overlay = None
        self.overlay_opacity = 0.0
        self.character = snap.get("char") or None
        self.character_position = snap.get("pos") or DEFAULT_POSITION
        self.lines = [str(s) for s in (snap.get("lines") or [])]

    def reset_state(self) -> None:
        self.overlay = None
        self.overlay_opacity = 0.0
        self.character = None
        self.character_position = None
        self.lines = []
        self.shake_class = None
        self.text_visible = True
        self.controls_visible = True
