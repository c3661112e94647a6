"""
Tests for archive write/append/read/remove/list.
"""
import zipfile
from pathlib import Path
from unittest.mock import patch

import pygame
import pytest

from higanzip import archive_io
from higanzip.archive_io import append, list_entries, read, remove, write
from higanzip.config_io import load_config, save_config
from higanzip.entry_codec import encode
from higanzip.errors import ArchiveCloseError, ArchiveError, ArchiveOpenError
from higanzip.events import (
    ArchiveEntryFailedEvent, ArchiveRemoveCompleteEvent, ArchiveWriteCompleteEvent, EventSystem,
)
from higanzip.options import EncodeOptions
from higanzip.resources import Node, PackedScene


def _names(path: Path) -> list:
    with zipfile.ZipFile(path) as zf:
        return zf.namelist()


class TestWrite:
    """write() / append()"""

    def test_round_trip_values(self, tmp_path, surface):
        path = tmp_path / "save.zip"
        data = {"label": "第一章", "vars": {"n": 1}}
        report = write(path, {
            "state.json": data,
            "state.var": {"pos": (1, 2)},
            "note.txt": "黄昏",
            "shot.png": surface,
        })
        assert report.ok
        assert report.succeeded == ["state.json", "state.var", "note.txt", "shot.png"]
        assert read(path, "state.json") == data
        assert read(path, "state.var") == {"pos": (1, 2)}
        assert read(path, "note.txt") == "黄昏"
        shot = read(path, "shot.png")
        assert isinstance(shot, pygame.Surface)
        assert shot.get_size() == surface.get_size()

    def test_pairs_accepted(self, tmp_path):
        path = tmp_path / "save.zip"
        report = write(path, [("a.txt", "1"), ("b.txt", "2")])
        assert report.succeeded == ["a.txt", "b.txt"]

    def test_fresh_write_truncates(self, tmp_path):
        path = tmp_path / "save.zip"
        write(path, {"old.txt": "old"})
        write(path, {"new.txt": "new"})
        assert _names(path) == ["new.txt"]

    def test_append_preserves(self, tmp_path):
        path = tmp_path / "save.zip"
        write(path, {"a.txt": "A", "b.json": {"b": 1}})
        report = append(path, {"c.txt": "C"})
        assert report.ok and report.append
        assert _names(path) == ["a.txt", "b.json", "c.txt"]
        assert read(path, "b.json") == {"b": 1}

    def test_unknown_extension_does_not_abort(self, tmp_path, surface):
        path = tmp_path / "save.zip"
        report = write(path, {
            "first.txt": "1",
            "bad.yaml": {"a": 1},
            "bad.gif": surface,
            "vector.svg": surface,
            "wrong.json": 42,
            "last.json": {"ok": True},
        })
        assert report.succeeded == ["first.txt", "last.json"]
        assert set(report.failed) == {"bad.yaml", "bad.gif", "vector.svg", "wrong.json"}
        assert "yaml" in report.failed["bad.yaml"]
        assert report.partial and not report.ok
        assert _names(path) == ["first.txt", "last.json"]

    def test_all_failed_still_closes(self, tmp_path):
        path = tmp_path / "save.zip"
        report = write(path, {"a.yaml": {}, "b.yaml": {}})
        assert report.succeeded == []
        assert not report.partial
        assert zipfile.is_zipfile(path)

    def test_open_failure_raises(self, tmp_path):
        path = tmp_path / "not.zip"
        path.write_bytes(b"plain")
        with pytest.raises(ArchiveOpenError):
            append(path, {"a.txt": "A"})
        assert path.read_bytes() == b"plain"

    def test_close_failure_raises(self, tmp_path):
        path = tmp_path / "save.zip"
        with patch.object(zipfile.ZipFile, "close", side_effect=OSError("disk full")):
            with pytest.raises(ArchiveCloseError):
                write(path, {"a.txt": "A"})

    def test_entry_write_failure_skips(self, tmp_path):
        path = tmp_path / "save.zip"
        real_close_entry = archive_io.ZipWriter.close_entry

        def flaky(self):
            if self._entry.filename == "b.txt":
                from higanzip.errors import EntryWriteError
                self.abandon_entry()
                raise EntryWriteError("boom", "b.txt")
            return real_close_entry(self)

        with patch.object(archive_io.ZipWriter, "close_entry", flaky):
            report = write(path, {"a.txt": "A", "b.txt": "B", "c.txt": "C"})
        assert report.succeeded == ["a.txt", "c.txt"]
        assert report.failed == {"b.txt": "boom [b.txt]"}

    def test_events(self, tmp_path):
        es = EventSystem()
        failed, done = [], []
        es.subscribe(ArchiveEntryFailedEvent, failed.append)
        es.subscribe(ArchiveWriteCompleteEvent, done.append)
        write(tmp_path / "s.zip", {"a.txt": "A", "b.yaml": {}}, events=es)
        assert [e.name for e in failed] == ["b.yaml"]
        assert done[0].written == ["a.txt"]
        assert done[0].failed == ["b.yaml"]

    def test_scene_entries(self, tmp_path):
        path = tmp_path / "level.zip"
        root = Node("level", {"size": (20, 15)})
        root.add_child(Node("spawn", {"pos": (3, 4)}))
        write(path, {"level.tscn": root, "level.scn": root})
        for name in ("level.tscn", "level.scn"):
            scene = read(path, name)
            assert isinstance(scene, PackedScene)
            assert scene.instantiate().get_node("spawn").properties == {"pos": (3, 4)}


class TestRead:
    """read() returns the caller's default on any failure"""

    def test_missing_entry(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"a.txt": "A"})
        assert read(path, "nope.txt", default="fallback") == "fallback"

    def test_missing_archive(self, tmp_path):
        assert read(tmp_path / "missing.zip", "a.txt", default=123) == 123

    def test_corrupt_archive(self, tmp_path):
        path = tmp_path / "bad.zip"
        path.write_bytes(b"nope")
        assert read(path, "a.txt", default=None) is None

    def test_unknown_extension(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"blob.bin": b"\x00\x01"})
        assert read(path, "blob.bin", default="d") == "d"

    def test_decode_failure(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"broken.json": b"{nope"})
        assert read(path, "broken.json", default={}) == {}


class TestRemove:
    def test_remove_one(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"A.txt": "a", "B.txt": "b", "C.bin": b"\x00\xff" * 50})
        with zipfile.ZipFile(path) as zf:
            before = {n: zf.read(n) for n in zf.namelist()}

        removed = remove(path, {"B.txt"})

        assert removed == ["B.txt"]
        assert _names(path) == ["A.txt", "C.bin"]
        with zipfile.ZipFile(path) as zf:
            assert zf.read("A.txt") == before["A.txt"]
            assert zf.read("C.bin") == before["C.bin"]
        # no temporary left behind
        assert sorted(p.name for p in tmp_path.iterdir()) == ["s.zip"]

    def test_remove_single_name_string(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"a.txt": "a", "b.txt": "b"})
        assert remove(path, "a.txt") == ["a.txt"]
        assert _names(path) == ["b.txt"]

    def test_remove_nothing(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"a.txt": "a"})
        before = path.read_bytes()
        assert remove(path, ["zzz.txt"]) == []
        assert path.read_bytes() == before

    def test_duplicate_names_reported_once(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"a.txt": "old", "b.txt": "b"})
        append(path, {"a.txt": "new"})

        assert remove(path, ["a.txt"]) == ["a.txt"]
        assert _names(path) == ["b.txt"]

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ArchiveOpenError):
            remove(tmp_path / "missing.zip", ["a"])

    def test_temp_open_failure_leaves_original(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"a.txt": "a", "b.txt": "b"})
        before = path.read_bytes()
        with patch("higanzip.archive_io.tempfile.mkstemp", side_effect=OSError("read-only")):
            with pytest.raises(ArchiveOpenError):
                remove(path, ["a.txt"])
        assert path.read_bytes() == before

    def test_copy_failure_cleans_up(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"a.txt": "a", "b.txt": "b", "c.txt": "c"})
        before = path.read_bytes()
        with patch.object(archive_io.ZipWriter, "copy_entry", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                remove(path, ["a.txt"])
        assert path.read_bytes() == before
        assert sorted(p.name for p in tmp_path.iterdir()) == ["s.zip"]

    def test_copy_entry_error_is_archive_error(self, tmp_path):
        from higanzip.errors import EntryWriteError

        path = tmp_path / "s.zip"
        write(path, {"a.txt": "a", "b.txt": "b"})
        with patch.object(archive_io.ZipWriter, "copy_entry", side_effect=EntryWriteError("bad", "b.txt")):
            with pytest.raises(ArchiveError):
                remove(path, ["a.txt"])
        assert _names(path) == ["a.txt", "b.txt"]

    def test_remove_event(self, tmp_path):
        es = EventSystem()
        seen = []
        es.subscribe(ArchiveRemoveCompleteEvent, seen.append)
        path = tmp_path / "s.zip"
        write(path, {"a.txt": "a", "b.txt": "b"})
        remove(path, ["a.txt", "x.txt"], events=es)
        assert seen[0].removed == ["a.txt"]


class TestListEntries:
    @pytest.fixture
    def archive(self, tmp_path):
        path = tmp_path / "s.zip"
        write(path, {"a/x.json": {}, "a/y.txt": "y", "b/z.json": {}})
        return path

    def test_all(self, archive):
        assert list_entries(archive) == ["a/x.json", "a/y.txt", "b/z.json"]

    def test_prefix(self, archive):
        assert list_entries(archive, prefix="a/") == ["a/x.json", "a/y.txt"]

    def test_suffix(self, archive):
        assert list_entries(archive, suffix=".json") == ["a/x.json", "b/z.json"]

    def test_both(self, archive):
        assert list_entries(archive, prefix="b/", suffix=".json") == ["b/z.json"]

    def test_missing_archive(self, tmp_path):
        assert list_entries(tmp_path / "missing.zip") == []


class TestConfiguredDefaults:
    """archive.json supplies compression and image options when none are passed"""

    def _compress_type(self, path, name):
        with zipfile.ZipFile(path) as zf:
            return zf.getinfo(name).compress_type

    def test_stored_compression_from_saved_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert save_config({"archive": {"compression": "stored"}})

        write("out.zip", {"a.txt": "x" * 500})

        assert self._compress_type(tmp_path / "out.zip", "a.txt") == zipfile.ZIP_STORED

    def test_default_is_deflated(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        write("out.zip", {"a.txt": "x" * 500})
        assert self._compress_type(tmp_path / "out.zip", "a.txt") == zipfile.ZIP_DEFLATED

    def test_image_options_from_saved_config(self, tmp_path, monkeypatch, surface):
        monkeypatch.chdir(tmp_path)
        assert save_config({"image": {"lossy": True, "quality": 0.1}})

        write("out.zip", {"a.webp": surface})

        expected = encode("a.webp", surface, EncodeOptions(lossy=True, quality=0.1))
        with zipfile.ZipFile(tmp_path / "out.zip") as zf:
            assert zf.read("a.webp") == expected

    def test_explicit_cfg(self, tmp_path, surface):
        cfg = load_config(lambda: tmp_path / "none")
        cfg["archive"]["compression"] = "stored"
        cfg["image"] = {"lossy": True, "quality": 0.1}
        path = tmp_path / "out.zip"

        append(path, {"a.txt": "x" * 500, "b.webp": surface}, cfg=cfg)

        assert self._compress_type(path, "a.txt") == zipfile.ZIP_STORED
        with zipfile.ZipFile(path) as zf:
            assert zf.read("b.webp") == encode("b.webp", surface, EncodeOptions(lossy=True, quality=0.1))

    def test_partial_options_keep_config_values(self, tmp_path, surface):
        cfg = {"image": {"lossy": True, "quality": 0.1}}
        path = tmp_path / "out.zip"

        write(path, {"b.webp": surface}, {"quality": 0.9}, cfg=cfg)

        with zipfile.ZipFile(path) as zf:
            assert zf.read("b.webp") == encode("b.webp", surface, EncodeOptions(lossy=True, quality=0.9))
