"""
Tests for the audio cue player
"""
from lumenvn.engine.audio_utils import AudioCuePlayer
from lumenvn.engine.events import AudioCueStopEvent, ErrorEvent, EventSystem
from lumenvn.engine.scheduler import Scheduler

from conftest import FakeAudio, collect


class TestAudioCuePlayer:
    def test_plays_each_repetition(self):
        s = Scheduler()
        audio = FakeAudio(length_ms=100)
        player = AudioCuePlayer(audio)
        task = s.spawn(player.play("se/bell.ogg", 3))

        assert audio.plays == [("se/bell.ogg", 0)]
        s.advance(100)
        assert len(audio.plays) == 2
        s.advance(199)
        assert len(audio.plays) == 3
        assert not task.done
        s.advance(1)
        assert task.done
        assert player.current_path is None

    def test_infinite_loop_resolves_at_start(self):
        s = Scheduler()
        audio = FakeAudio()
        player = AudioCuePlayer(audio)
        task = s.spawn(player.play("bgm/theme.ogg", -1))
        assert task.done
        assert audio.plays == [("bgm/theme.ogg", -1)]
        assert player.current_path == "bgm/theme.ogg"

    def test_new_cue_stops_previous(self):
        s = Scheduler()
        audio = FakeAudio()
        player = AudioCuePlayer(audio)
        s.spawn(player.play("a.ogg", -1))
        s.spawn(player.play("b.ogg", -1))
        assert audio.stops == ["a.ogg"]
        assert player.current_path == "b.ogg"

    def test_clips_are_cached(self):
        s = Scheduler()
        audio = FakeAudio(length_ms=10)
        player = AudioCuePlayer(audio)
        s.spawn(player.play("a.ogg", 1))
        s.run_until_idle()
        s.spawn(player.play("a.ogg", 1))
        s.run_until_idle()
        assert audio.loads == ["a.ogg"]
        assert len(player.clips) == 1

    def test_load_failure_resolves(self):
        s = Scheduler()
        events = EventSystem()
        errors = collect(events, ErrorEvent)
        audio = FakeAudio(broken={"bad.ogg"})
        player = AudioCuePlayer(audio, events)
        task = s.spawn(player.play("bad.ogg", 2))
        assert task.done
        assert audio.plays == []
        assert errors[0].kind == "asset"

    def test_stop_is_idempotent(self):
        s = Scheduler()
        events = EventSystem()
        stopped = collect(events, AudioCueStopEvent)
        audio = FakeAudio()
        player = AudioCuePlayer(audio, events)
        player.stop()
        s.spawn(player.play("a.ogg", -1))
        player.stop()
        player.stop()
        assert audio.stops == ["a.ogg"]
        assert len(stopped) == 1

    def test_stop_ends_repetitions(self):
        s = Scheduler()
        audio = FakeAudio(length_ms=100)
        player = AudioCuePlayer(audio)
        task = s.spawn(player.play("a.ogg", 5))
        s.advance(50)
        player.stop()
        s.run_until_idle()
        assert task.done
        assert len(audio.plays) == 1

    def test_cleanup_clears_cache(self):
        s = Scheduler()
        player = AudioCuePlayer(FakeAudio())
        s.spawn(player.play("a.ogg", -1))
        player.cleanup()
        assert len(player.clips) == 0
        assert player.current_path is None
