"""
Named blob stores holding one slice sequence per entry.

A store entry maps slice file names to encoded bytes. Replacing an entry is
atomic from a reader's point of view: readers see either the previous entry,
the new one, or (for the folder store, during the final rename) no entry at
all, never a partially written one.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import stat
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from .errors import InvalidNameError

LOGGER = logging.getLogger(__name__)

_ENTRY_NAME = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]{0,127}$")

# Directory-handle reads need O_DIRECTORY and dir_fd support (not on Windows)
_DIR_FD_SUPPORTED = (hasattr(os, "O_DIRECTORY") and os.open in os.supports_dir_fd
                     and os.stat in os.supports_dir_fd and os.listdir in os.supports_fd)


def _read_at(dir_fd: int, key: str) -> bytes:
    fd = os.open(key, os.O_RDONLY, dir_fd=dir_fd)
    with os.fdopen(fd, "rb") as handle:
        return handle.read()


def validate_name(name: str) -> str:
    """Entry and blob names: non-empty, not hidden, no separators, no '..'."""
    if not isinstance(name, str) or not _ENTRY_NAME.match(name) or ".." in name:
        raise InvalidNameError(f"Invalid noise name {name!r}")
    return name


class NoiseStore:
    """Interface of a named slice store with per-name writer locks"""

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def lock(self, name: str) -> threading.RLock:
        """Lock serializing writers of one entry"""
        validate_name(name)
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.RLock()
            return lock

    def read(self, name: str) -> Optional[Dict[str, bytes]]:
        raise NotImplementedError

    def replace(self, name: str, blobs: Mapping[str, bytes]) -> None:
        raise NotImplementedError

    def delete(self, name: str) -> bool:
        raise NotImplementedError

    def names(self) -> List[str]:
        raise NotImplementedError

    def exists(self, name: str) -> bool:
        return self.read(name) is not None


class MemoryNoiseStore(NoiseStore):
    """Store keeping entries in a dict, for tests and runtime-only hosts"""

    def __init__(self):
        super().__init__()
        self._entries: Dict[str, Dict[str, bytes]] = {}

    def read(self, name: str) -> Optional[Dict[str, bytes]]:
        entry = self._entries.get(validate_name(name))
        return dict(entry) if entry is not None else None

    def replace(self, name: str, blobs: Mapping[str, bytes]) -> None:
        validate_name(name)
        entry = {validate_name(key): bytes(value) for key, value in blobs.items()}
        with self.lock(name):
            self._entries[name] = entry

    def delete(self, name: str) -> bool:
        with self.lock(name):
            return self._entries.pop(name, None) is not None

    def names(self) -> List[str]:
        return sorted(self._entries)


class FolderNoiseStore(NoiseStore):
    """
    One directory per entry under `root`, one file per blob.

    Entries are written to a hidden staging directory and renamed into place;
    hidden directories are never listed or read as entries.
    """

    def __init__(self, root: Union[str, Path]):
        super().__init__()
        self.root = Path(root)

    def _entry_path(self, name: str) -> Path:
        return self.root / validate_name(name)

    def exists(self, name: str) -> bool:
        return self._entry_path(name).is_dir()

    def names(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir()
                      if p.is_dir() and not p.name.startswith("."))

    def read(self, name: str) -> Optional[Dict[str, bytes]]:
        """
        Read every file of an entry.

        The entry directory is opened once and all blobs are resolved against
        that handle, so a concurrent `replace` cannot mix old and new files
        into one result. If the retired entry is deleted mid-read the result
        is a miss.
        """
        path = self._entry_path(name)
        if not _DIR_FD_SUPPORTED:
            with self.lock(name):
                return self._read_by_path(path)
        try:
            dir_fd = os.open(path, os.O_RDONLY | os.O_DIRECTORY)
        except (FileNotFoundError, NotADirectoryError):
            return None
        try:
            blobs = {}
            for key in sorted(os.listdir(dir_fd)):
                if not stat.S_ISREG(os.stat(key, dir_fd=dir_fd, follow_symlinks=False).st_mode):
                    continue
                blobs[key] = _read_at(dir_fd, key)
            if os.fstat(dir_fd).st_nlink == 0:
                return None
            return blobs
        except FileNotFoundError:
            # Entry was swapped out and removed mid-read
            return None
        finally:
            os.close(dir_fd)

    @staticmethod
    def _read_by_path(path: Path) -> Optional[Dict[str, bytes]]:
        if not path.is_dir():
            return None
        try:
            return {item.name: item.read_bytes()
                    for item in sorted(path.iterdir()) if item.is_file()}
        except FileNotFoundError:
            return None

    def _sweep_leftovers(self, name: str) -> None:
        """Remove staging and retired directories a crashed writer left for `name`"""
        pattern = re.compile(rf"^\.{re.escape(name)}\.(tmp-[a-z0-9_]+|old-[0-9a-f]{{32}})$")
        for item in self.root.iterdir():
            if pattern.match(item.name) and item.is_dir():
                LOGGER.warning("Removing leftover directory %s", item)
                shutil.rmtree(item, ignore_errors=True)

    def replace(self, name: str, blobs: Mapping[str, bytes]) -> None:
        target = self._entry_path(name)
        for key in blobs:
            validate_name(key)

        with self.lock(name):
            self.root.mkdir(parents=True, exist_ok=True)
            self._sweep_leftovers(name)
            staging = Path(tempfile.mkdtemp(prefix=f".{name}.tmp-", dir=self.root))
            try:
                for key, data in blobs.items():
                    (staging / key).write_bytes(data)
            except Exception:
                shutil.rmtree(staging, ignore_errors=True)
                raise

            retired = None
            if target.exists():
                retired = self.root / f".{name}.old-{uuid.uuid4().hex}"
                os.replace(target, retired)
            try:
                os.replace(staging, target)
            except Exception:
                if retired is not None:
                    os.replace(retired, target)
                shutil.rmtree(staging, ignore_errors=True)
                raise
            if retired is not None:
                shutil.rmtree(retired, ignore_errors=True)
            LOGGER.debug("Replaced %s with %d blobs", target, len(blobs))

    def delete(self, name: str) -> bool:
        path = self._entry_path(name)
        with self.lock(name):
            if not path.is_dir():
                return False
            shutil.rmtree(path)
            return True
