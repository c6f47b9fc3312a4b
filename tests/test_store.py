"""Tests for the folder and in-memory slice stores."""
from __future__ import annotations

from pathlib import Path

import pytest

from cloudnoise import FolderNoiseStore, InvalidNameError, MemoryNoiseStore, validate_name
from cloudnoise import store as store_module


@pytest.mark.parametrize("name", ["clouds", "clouds_64", "detail-noise", "v1.2"])
def test_validate_name_accepts_plain_names(name):
    assert validate_name(name) == name


@pytest.mark.parametrize("name", ["", ".hidden", "..", "a/b", "a\\b", "../up", "a..b", "x" * 129, None, 5])
def test_validate_name_rejects_unsafe_names(name):
    with pytest.raises(InvalidNameError):
        validate_name(name)


def test_invalid_name_error_is_value_error():
    assert issubclass(InvalidNameError, ValueError)


@pytest.fixture(params=["memory", "folder"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryNoiseStore()
    return FolderNoiseStore(tmp_path / "noise")


def test_read_missing_entry_returns_none(store):
    assert store.read("clouds") is None
    assert not store.exists("clouds")
    assert store.names() == []


def test_replace_then_read(store):
    store.replace("clouds", {"ZSlice_0000.png": b"a", "ZSlice_0001.png": b"b"})
    assert store.read("clouds") == {"ZSlice_0000.png": b"a", "ZSlice_0001.png": b"b"}
    assert store.exists("clouds")
    assert store.names() == ["clouds"]


def test_replace_drops_previous_blobs(store):
    store.replace("clouds", {"ZSlice_0000.png": b"a", "ZSlice_0001.png": b"b", "ZSlice_0002.png": b"c"})
    store.replace("clouds", {"ZSlice_0000.png": b"z"})
    assert store.read("clouds") == {"ZSlice_0000.png": b"z"}


def test_delete(store):
    store.replace("clouds", {"ZSlice_0000.png": b"a"})
    assert store.delete("clouds") is True
    assert store.delete("clouds") is False
    assert store.read("clouds") is None


def test_blob_names_are_validated(store):
    with pytest.raises(InvalidNameError):
        store.replace("clouds", {"../escape.png": b"a"})
    assert store.read("clouds") is None


def test_lock_is_per_name(store):
    assert store.lock("a") is store.lock("a")
    assert store.lock("a") is not store.lock("b")


def test_memory_store_copies_entries():
    store = MemoryNoiseStore()
    blobs = {"ZSlice_0000.png": b"a"}
    store.replace("clouds", blobs)
    blobs["ZSlice_0001.png"] = b"b"
    read = store.read("clouds")
    read["extra.png"] = b"c"
    assert store.read("clouds") == {"ZSlice_0000.png": b"a"}


def test_folder_store_layout(tmp_path):
    store = FolderNoiseStore(tmp_path)
    store.replace("clouds", {"ZSlice_0000.png": b"a"})
    assert (tmp_path / "clouds" / "ZSlice_0000.png").read_bytes() == b"a"
    assert [p.name for p in tmp_path.iterdir()] == ["clouds"]


def test_folder_store_ignores_hidden_directories(tmp_path):
    (tmp_path / ".clouds.tmp-123").mkdir()
    (tmp_path / "detail").mkdir()
    (tmp_path / "stray.txt").write_text("x")
    assert FolderNoiseStore(tmp_path).names() == ["detail"]


def test_folder_store_failed_write_keeps_previous_entry(tmp_path, monkeypatch):
    store = FolderNoiseStore(tmp_path)
    store.replace("clouds", {"ZSlice_0000.png": b"old"})

    original = Path.write_bytes
    calls = []

    def failing_write(self, data):
        calls.append(self.name)
        if len(calls) == 2:
            raise OSError("disk full")
        return original(self, data)

    monkeypatch.setattr(Path, "write_bytes", failing_write)
    with pytest.raises(OSError):
        store.replace("clouds", {"ZSlice_0000.png": b"new", "ZSlice_0001.png": b"new"})
    monkeypatch.undo()

    assert store.read("clouds") == {"ZSlice_0000.png": b"old"}
    assert [p.name for p in tmp_path.iterdir()] == ["clouds"]


_needs_dir_fd = pytest.mark.skipif(not store_module._DIR_FD_SUPPORTED, reason="directory handles unavailable")


@_needs_dir_fd
def test_folder_read_never_mixes_entries(tmp_path, monkeypatch):
    store = FolderNoiseStore(tmp_path)
    old = {f"ZSlice_000{i}.png": b"old" for i in range(4)}
    new = {f"ZSlice_000{i}.png": b"new" for i in range(4)}
    store.replace("clouds", old)

    original = store_module._read_at
    calls = []

    def replacing_read(dir_fd, key):
        data = original(dir_fd, key)
        calls.append(key)
        if len(calls) == 1:
            store.replace("clouds", new)
        return data

    monkeypatch.setattr(store_module, "_read_at", replacing_read)
    result = store.read("clouds")
    monkeypatch.undo()

    assert calls
    assert result is None or result == old or result == new
    assert store.read("clouds") == new


@_needs_dir_fd
def test_folder_read_of_removed_entry_is_a_miss(tmp_path, monkeypatch):
    store = FolderNoiseStore(tmp_path)
    store.replace("clouds", {"ZSlice_0000.png": b"a", "ZSlice_0001.png": b"b"})

    original = store_module._read_at

    def deleting_read(dir_fd, key):
        data = original(dir_fd, key)
        store.delete("clouds")
        return data

    monkeypatch.setattr(store_module, "_read_at", deleting_read)
    assert store.read("clouds") is None


def test_replace_sweeps_leftover_directories(tmp_path):
    store = FolderNoiseStore(tmp_path)
    (tmp_path / ".clouds.tmp-abc123_x").mkdir()
    (tmp_path / f".clouds.old-{'0' * 32}").mkdir()
    (tmp_path / ".clouds.tmp-x.tmp-abcdefgh").mkdir()
    (tmp_path / ".detail.tmp-abc123").mkdir()

    store.replace("clouds", {"ZSlice_0000.png": b"a"})

    assert sorted(p.name for p in tmp_path.iterdir()) == [
        ".clouds.tmp-x.tmp-abcdefgh", ".detail.tmp-abc123", "clouds",
    ]
