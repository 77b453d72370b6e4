"""
Typewriter - character-by-character text reveal

Features:
- one character per step, base delay per character
- punctuation-aware pacing (longer pause after sentence ends and commas)
- cancellable mid-reveal through ``cursor.skip_requested``
"""
from __future__ import annotations

from typing import Callable, Dict, Optional, TYPE_CHECKING

from .events import EventSystem, TypewriterCompleteEvent, TypewriterSkipEvent, TypewriterStartEvent
from .scheduler import TaskBody

if TYPE_CHECKING:
    from .cursor import PlaybackCursor


# delay multiplier after the character
PUNCTUATION_PAUSES: Dict[str, int] = {
    # sentence ends
    '.': 3,
    '!': 3,
    '?': 3,
    '…': 3,
    '。': 3,
    '！': 3,
    '？': 3,
    # commas
    ',': 2,
    '，': 2,
    '、': 2,
}


def char_delay(char: str, base_ms: int) -> int:
    return base_ms * PUNCTUATION_PAUSES.get(char, 1)


def reveal_duration(text: str, base_ms: int) -> int:
    """Total time a full, uninterrupted reveal of ``text`` takes."""
    if not (text or "").strip():
        return 0
    return sum(char_delay(ch, base_ms) for ch in text)


class Typewriter:
    def __init__(self, base_delay_ms: int = 15, events: Optional[EventSystem] = None) -> None:
        self.base_delay_ms = base_delay_ms
        self._events = events

    def reveal(self, text: str, write: Callable[[str], None], cursor: "PlaybackCursor") -> TaskBody:
        """Reveal ``text`` through ``write`` (called with the text shown so far).

        A generator task body: yields the pause after each character. Raising
        ``cursor.skip_requested`` makes the next step write everything and finish.
        """
        cursor.typing = True
        cursor.skip_requested = False
        write("")
        text = text or ""
        try:
            if not text.strip():
                return
            self._emit(TypewriterStartEvent(text=text, total_chars=len(text)))
            shown = 0
            while True:
                if cursor.skip_requested:
                    cursor.skip_requested = False
                    write(text)
                    self._emit(TypewriterSkipEvent(revealed_chars=shown))
                    break
                if shown >= len(text):
                    break
                ch = text[shown]
                shown += 1
                write(text[:shown])
                yield char_delay(ch, self.base_delay_ms)
            self._emit(TypewriterCompleteEvent(text=text))
        finally:
            cursor.typing = False

    def _emit(self, event) -> None:
        if self._events is not None:
            self._events.emit(event)
