"""
Storage Backends

Key-value persistence behind the LayoutStore. JSON records hold layout
documents; byte records hold images. Keys are slash-separated paths such
as "default/original".

- InMemoryBackend: dict-backed, used in tests
- JsonFileBackend: one file per key under a root directory
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)

_KEY_PART = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def check_key(key: str) -> str:
    parts = key.split("/")
    if not all(_KEY_PART.match(part) for part in parts):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class StorageBackend:
    """Interface every backend implements."""

    def get_json(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def put_json(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def get_bytes(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def put_bytes(self, key: str, data: bytes) -> None:
        raise NotImplementedError


class InMemoryBackend(StorageBackend):
    """Process-local backend. Values are copied in and out through JSON."""

    def __init__(self):
        self._json: Dict[str, str] = {}
        self._bytes: Dict[str, bytes] = {}

    def get_json(self, key: str) -> Optional[Any]:
        raw = self._json.get(check_key(key))
        return None if raw is None else json.loads(raw)

    def put_json(self, key: str, value: Any) -> None:
        self._json[check_key(key)] = json.dumps(value)

    def get_bytes(self, key: str) -> Optional[bytes]:
        return self._bytes.get(check_key(key))

    def put_bytes(self, key: str, data: bytes) -> None:
        self._bytes[check_key(key)] = bytes(data)


class JsonFileBackend(StorageBackend):
    """
    File-per-key backend.

    JSON records are stored as "<root>/<key>.json", byte records as
    "<root>/<key>". Writes land in a temp file in the same directory and
    are moved into place with os.replace, so a reader sees either the old
    record or the new one.
    """

    def __init__(self, root: os.PathLike):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str, suffix: str = "") -> Path:
        path = self.root.joinpath(*check_key(key).split("/"))
        return path.with_name(path.name + suffix)

    def _write_atomic(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get_json(self, key: str) -> Optional[Any]:
        path = self._path(key, ".json")
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def put_json(self, key: str, value: Any) -> None:
        path = self._path(key, ".json")
        self._write_atomic(path, json.dumps(value, indent=2).encode("utf-8"))
        logger.debug("Wrote %s", path)

    def get_bytes(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def put_bytes(self, key: str, data: bytes) -> None:
        path = self._path(key)
        self._write_atomic(path, data)
        logger.debug("Wrote %s (%d bytes)", path, len(data))
