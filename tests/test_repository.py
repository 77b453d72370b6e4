"""Tests for script repositories and the key-value stores."""
import json

import pytest

from lumenvn.engine.adapters.storage import FileKeyValueStore, MemoryKeyValueStore, StorageFailure
from lumenvn.script.errors import ContentMissing, InvalidDirective
from lumenvn.script.model import Dialogue, SceneIndex
from lumenvn.script.repository import FileScriptRepository, MemoryScriptRepository


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


class TestFileScriptRepository:
    def test_reads_index_and_scene(self, tmp_path):
        write_json(tmp_path / "scenes.json", {"01": ["01_001.json"]})
        write_json(tmp_path / "01_001.json", {"lines": [{"text": "안녕"}]})
        repo = FileScriptRepository(tmp_path)

        idx = repo.get_scene_index()
        assert idx == SceneIndex({"01": ["01_001.json"]})
        script = repo.get_scene_script("01_001.json")
        assert script.lines == (Dialogue(text="안녕"),)

    def test_scene_in_subdirectory(self, tmp_path):
        write_json(tmp_path / "scenes" / "a.json", {"lines": []})
        repo = FileScriptRepository(tmp_path)
        assert len(repo.get_scene_script("scenes/a.json")) == 0

    def test_missing_index_raises(self, tmp_path):
        with pytest.raises(ContentMissing):
            FileScriptRepository(tmp_path).get_scene_index()

    def test_missing_index_uses_fallback(self, tmp_path):
        repo = FileScriptRepository(tmp_path, fallback_index={"01": ["x.json"]})
        assert repo.get_scene_index().scene_file("01", 0) == "x.json"

    def test_broken_index_uses_fallback(self, tmp_path):
        (tmp_path / "scenes.json").write_text("{oops", encoding="utf-8")
        repo = FileScriptRepository(tmp_path, fallback_index={"02": []})
        assert repo.get_scene_index().chapters == ("02",)

    def test_missing_scene_file(self, tmp_path):
        with pytest.raises(ContentMissing):
            FileScriptRepository(tmp_path).get_scene_script("nope.json")

    def test_invalid_directive_surfaces(self, tmp_path):
        write_json(tmp_path / "bad.json", {"lines": [{"clear": True, "text": "x"}]})
        with pytest.raises(InvalidDirective):
            FileScriptRepository(tmp_path).get_scene_script("bad.json")


class TestMemoryScriptRepository:
    def test_counts_index_loads(self):
        repo = MemoryScriptRepository({"01": ["a"]}, {"a": {"lines": []}})
        repo.get_scene_index()
        repo.get_scene_index()
        assert repo.index_loads == 2

    def test_missing_scene(self):
        repo = MemoryScriptRepository({"01": ["a"]})
        with pytest.raises(ContentMissing):
            repo.get_scene_script("a")
        repo.add_scene("a", {"lines": [{"text": "hi"}]})
        assert repo.get_scene_script("a").line_at(0) == Dialogue(text="hi")


class TestKeyValueStores:
    def test_memory_store(self):
        store = MemoryKeyValueStore()
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None

    def test_file_store_roundtrip(self, tmp_path):
        store = FileKeyValueStore(tmp_path / "saves")
        store.set("vnSave_1", '{"a": 1}')
        assert store.get("vnSave_1") == '{"a": 1}'
        assert list(store.keys()) == ["vnSave_1"]
        assert not list((tmp_path / "saves").glob("*.tmp"))
        store.remove("vnSave_1")
        assert store.get("vnSave_1") is None

    def test_file_store_rejects_unsafe_keys(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        with pytest.raises(StorageFailure):
            store.set("../escape", "x")

    def test_file_store_failed_write_keeps_old_value(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        store.set("autoSpeed", "1500")
        # a directory where the temp file should go makes the write fail
        (tmp_path / "autoSpeed.json.tmp").mkdir()
        with pytest.raises(StorageFailure):
            store.set("autoSpeed", "2000")
        assert store.get("autoSpeed") == "1500"


def test_repository_module_docstring():
    from lumenvn.script import repository
    assert repository.__doc__.startswith("Script repositories")
