"""Tests for the typewriter reveal."""
import pytest

from lumenvn.engine.cursor import PlaybackCursor
from lumenvn.engine.events import EventSystem, TypewriterCompleteEvent, TypewriterSkipEvent
from lumenvn.engine.scheduler import Scheduler
from lumenvn.engine.typewriter import Typewriter, char_delay, reveal_duration


class Buffer:
    def __init__(self):
        self.writes = []

    def __call__(self, text):
        self.writes.append(text)

    @property
    def text(self):
        return self.writes[-1] if self.writes else None


def start(text, base=15, events=None):
    s = Scheduler()
    cursor = PlaybackCursor()
    buf = Buffer()
    task = s.spawn(Typewriter(base, events).reveal(text, buf, cursor))
    return s, cursor, buf, task


class TestPacing:
    @pytest.mark.parametrize("ch,mult", [
        (".", 3), ("!", 3), ("?", 3), ("…", 3), ("。", 3),
        (",", 2), ("，", 2), ("a", 1), ("가", 1),
    ])
    def test_char_delay(self, ch, mult):
        assert char_delay(ch, 10) == 10 * mult

    def test_plain_text_takes_n_times_base(self):
        s, cursor, buf, task = start("abcdef", base=15)
        assert cursor.typing
        elapsed = s.run_until_idle()
        assert task.done
        assert elapsed == 6 * 15
        assert buf.text == "abcdef"
        assert not cursor.typing

    def test_punctuation_pauses(self):
        assert reveal_duration("a, b.", 10) == 10 + 20 + 10 + 10 + 30
        s, _, _, _ = start("a, b.", base=10)
        assert s.run_until_idle() == 80

    def test_reveals_one_character_per_step(self):
        s, _, buf, _ = start("abc", base=15)
        assert buf.writes == ["", "a"]
        s.advance(15)
        assert buf.writes[-1] == "ab"
        s.run_until_idle()
        assert buf.writes == ["", "a", "ab", "abc"]


class TestCancellation:
    def test_skip_request_writes_full_text(self):
        events = EventSystem()
        skipped = []
        events.subscribe(TypewriterSkipEvent, skipped.append)
        s, cursor, buf, task = start("a long line of text", events=events)
        s.advance(30)
        cursor.skip_requested = True
        s.advance(15)
        assert task.done
        assert buf.text == "a long line of text"
        assert not cursor.skip_requested
        assert len(skipped) == 1

    def test_stale_skip_flag_is_cleared_at_start(self):
        s = Scheduler()
        cursor = PlaybackCursor(skip_requested=True)
        buf = Buffer()
        s.spawn(Typewriter(15).reveal("abc", buf, cursor))
        assert buf.text == "a"
        assert not cursor.skip_requested

    @pytest.mark.parametrize("text", ["", "   ", "\n"])
    def test_blank_text_completes_immediately(self, text):
        s, cursor, buf, task = start(text)
        assert task.done
        assert buf.writes == [""]
        assert not cursor.typing

    def test_complete_event(self):
        events = EventSystem()
        done = []
        events.subscribe(TypewriterCompleteEvent, done.append)
        s, _, _, _ = start("hi", events=events)
        s.run_until_idle()
        assert [e.text for e in done] == ["hi"]
