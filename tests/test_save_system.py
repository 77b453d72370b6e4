"""
Tests for numbered save slots
"""
import json
from datetime import datetime

import pytest

from lumenvn.engine.adapters.storage import FileKeyValueStore, MemoryKeyValueStore, StorageFailure
from lumenvn.engine.save_manager import RenderSummary, SlotMeta, SnapshotStore, slot_key


CURSOR = {
    "currentChapter": "01",
    "currentSceneIndex": 2,
    "lineIndex": 4,
    "charCount": 37,
    "autoSpeed": 1800,
}


def summary(**kw):
    base = dict(background="bg/room.png", character="ch/a.png", character_position="left",
                text_lines=["Hello", "World"], preview_text="World")
    base.update(kw)
    return RenderSummary(**base)


class BrokenStore(MemoryKeyValueStore):
    def get(self, key):
        raise StorageFailure("unreadable")

    def set(self, key, value):
        raise StorageFailure("read-only")

    def remove(self, key):
        raise StorageFailure("read-only")


class TestSnapshotStore:
    def test_save_writes_record_layout(self):
        store = MemoryKeyValueStore()
        snaps = SnapshotStore(store, clock=lambda: 1700000000000)
        assert snaps.save(1, CURSOR, summary())

        data = json.loads(store.get("vnSave_1"))
        assert data["timestamp"] == 1700000000000
        assert data["gameState"] == CURSOR
        assert data["uiState"] == {
            "backgroundImage": "bg/room.png",
            "characterImage": "ch/a.png",
            "characterPosition": "left",
            "textContent": ["Hello", "World"],
            "currentText": "World",
        }

    def test_load_returns_what_was_saved(self):
        snaps = SnapshotStore(MemoryKeyValueStore(), clock=lambda: 5)
        snaps.save(3, CURSOR, summary())
        record = snaps.load(3)
        assert record.slot == 3
        assert record.created_at == 5
        assert record.cursor == CURSOR
        assert record.render == summary()

    def test_overwrite_keeps_latest(self):
        snaps = SnapshotStore(MemoryKeyValueStore())
        snaps.save(1, CURSOR, summary(preview_text="first"))
        snaps.save(1, dict(CURSOR, lineIndex=9), summary(preview_text="second"))
        record = snaps.load(1)
        assert record.cursor["lineIndex"] == 9
        assert record.render.preview_text == "second"

    def test_unknown_cursor_keys_dropped(self):
        store = MemoryKeyValueStore()
        SnapshotStore(store).save(1, dict(CURSOR, extra="x"), summary())
        assert "extra" not in json.loads(store.get(slot_key(1)))["gameState"]

    @pytest.mark.parametrize("slot", [0, 6, -1, True, "1", None])
    def test_invalid_slots_refused(self, slot):
        store = MemoryKeyValueStore()
        snaps = SnapshotStore(store)
        assert snaps.save(slot, CURSOR, summary()) is False
        assert snaps.load(slot) is None
        assert snaps.delete(slot) is False
        assert store.data == {}

    def test_max_slots_configurable(self):
        snaps = SnapshotStore(MemoryKeyValueStore(), max_slots=8)
        assert snaps.save(8, CURSOR, summary())
        assert len(snaps.list_slots()) == 8

    def test_empty_slot(self):
        snaps = SnapshotStore(MemoryKeyValueStore())
        assert snaps.load(2) is None
        assert snaps.describe(2) is None

    @pytest.mark.parametrize("raw", ["{not json", "[]", '{"uiState": {}}', '{"gameState": 3}'])
    def test_corrupt_slot_reads_as_empty(self, raw):
        snaps = SnapshotStore(MemoryKeyValueStore({"vnSave_1": raw}))
        assert snaps.load(1) is None

    def test_text_content_as_string_is_split(self):
        raw = json.dumps({"timestamp": 1, "gameState": CURSOR,
                          "uiState": {"textContent": "a\nb"}})
        record = SnapshotStore(MemoryKeyValueStore({"vnSave_1": raw})).load(1)
        assert record.render.text_lines == ["a", "b"]
        assert record.render.character_position == "center"
        assert record.render.preview_text == "In progress"

    def test_delete(self):
        snaps = SnapshotStore(MemoryKeyValueStore())
        snaps.save(4, CURSOR, summary())
        assert snaps.delete(4)
        assert snaps.load(4) is None
        # deleting an empty slot is fine
        assert snaps.delete(4)

    def test_list_slots_marks_empty(self):
        snaps = SnapshotStore(MemoryKeyValueStore(), clock=lambda: 1000)
        snaps.save(2, CURSOR, summary(preview_text="two"))
        listing = snaps.list_slots()
        assert len(listing) == 5
        assert listing[0] is None
        assert listing[1] == SlotMeta(slot=2, timestamp=1000, preview_text="two")
        assert listing[2:] == [None, None, None]

    def test_storage_failures_are_reported(self):
        snaps = SnapshotStore(BrokenStore())
        assert snaps.save(1, CURSOR, summary()) is False
        assert snaps.load(1) is None
        assert snaps.delete(1) is False

    def test_file_store_roundtrip(self, tmp_path):
        snaps = SnapshotStore(FileKeyValueStore(tmp_path / "saves"))
        assert snaps.save(1, CURSOR, summary(preview_text="안녕하세요"))
        assert (tmp_path / "saves" / "vnSave_1.json").exists()
        again = SnapshotStore(FileKeyValueStore(tmp_path / "saves"))
        assert again.describe(1).preview_text == "안녕하세요"


class TestSlotMeta:
    def test_display_time(self):
        ts = 1700000000000
        expected = datetime.fromtimestamp(ts / 1000).strftime("%Y-%m-%d %H:%M")
        assert SlotMeta(slot=1, timestamp=ts).display_time == expected

    def test_short_preview(self):
        assert SlotMeta(1, 0, "short").short_preview == "short"
        long = "x" * 60
        assert SlotMeta(1, 0, long).short_preview == "x" * 50 + "..."


class TestRenderSummary:
    def test_snapshot_conversion(self):
        snap = {"bg": "bg/a.png", "char": None, "pos": "right", "lines": ["one"]}
        s = RenderSummary.from_snapshot(snap, preview_text="one")
        assert s.to_snapshot() == snap
        assert s.preview_text == "one"

    def test_missing_preview_uses_placeholder(self):
        assert RenderSummary.from_snapshot({}).preview_text == "In progress"
