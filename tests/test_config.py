import json

from lumenvn.engine.adapters.storage import MemoryKeyValueStore, StorageFailure
from lumenvn.engine.config_io import (
    AUTO_SPEED_KEY, PlaybackConfig, load_auto_speed, load_config, save_auto_speed, save_config,
)


class TestPlaybackConfig:
    def test_defaults(self):
        cfg = PlaybackConfig()
        assert cfg.char_limit == 200
        assert cfg.typing_speed_ms == 15
        assert cfg.fade_duration_ms == 1000
        assert cfg.background_transition_ms == 1000
        assert cfg.default_auto_speed_ms == 1500
        assert cfg.scene_transition_delay_ms == 1500
        assert cfg.skip_delay_ms == 50
        assert cfg.max_save_slots == 5

    def test_partial_override_merges_over_defaults(self):
        cfg = PlaybackConfig.from_dict({"typing_speed_ms": 30, "unknown": 1})
        assert cfg.typing_speed_ms == 30
        assert cfg.char_limit == 200

    def test_invalid_values_ignored(self):
        cfg = PlaybackConfig.from_dict({"char_limit": -5, "skip_delay_ms": "fast", "max_save_slots": True})
        assert cfg.char_limit == 200
        assert cfg.skip_delay_ms == 50
        assert cfg.max_save_slots == 5


class TestConfigFile:
    def test_load_from_directory(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"playback": {"char_limit": 120}}), encoding="utf-8")
        assert load_config(tmp_path).char_limit == 120

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.json") == PlaybackConfig()

    def test_broken_file_gives_defaults(self, tmp_path):
        p = tmp_path / "config.json"
        p.write_text("[1, 2", encoding="utf-8")
        assert load_config(p) == PlaybackConfig()

    def test_save_then_load(self, tmp_path):
        p = tmp_path / "sub" / "config.json"
        assert save_config(PlaybackConfig(fade_duration_ms=400), p)
        assert load_config(p).fade_duration_ms == 400


class FailingStore(MemoryKeyValueStore):
    def set(self, key, value):
        raise StorageFailure("disk full")


class TestAutoSpeedPreference:
    def test_default_when_absent(self):
        assert load_auto_speed(MemoryKeyValueStore(), 1500) == 1500

    def test_persisted_value(self):
        store = MemoryKeyValueStore()
        assert save_auto_speed(store, 2200)
        assert store.get(AUTO_SPEED_KEY) == "2200"
        assert load_auto_speed(store, 1500) == 2200

    def test_garbage_value_falls_back(self):
        assert load_auto_speed(MemoryKeyValueStore({AUTO_SPEED_KEY: "soon"}), 1500) == 1500
        assert load_auto_speed(MemoryKeyValueStore({AUTO_SPEED_KEY: "-3"}), 1500) == 1500

    def test_storage_failure_reported(self):
        assert save_auto_speed(FailingStore(), 1000) is False
