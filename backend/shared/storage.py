"""Durable key/value storage for client-side state.

Plays the role a browser's localStorage plays for the web front-end: a flat
mapping of string keys to string values that survives restarts. One storage
file is one profile; two files never see each other's keys.

The file is JSON, rewritten atomically (temp file, fsync, rename) with
owner-only permissions, since it holds the client id and auth tokens.
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

_STORAGE_DIR_MODE = 0o700
_STORAGE_FILE_MODE = 0o600


class KeyValueStorage(Protocol):
    """Protocol for the durable key/value storage used by the client caches."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Non-durable storage, for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class LocalStorage:
    """JSON-file backed storage.

    Every write reloads the file, applies the change and rewrites it whole, so
    two LocalStorage objects on the same path stay consistent between calls.
    A missing or corrupt file reads as empty.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).resolve()

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if key not in items:
            return
        del items[key]
        self._write(items)

    def keys(self) -> list[str]:
        return list(self._read())

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("storage file is not valid JSON, starting empty", path=str(self._path))
            return {}
        if not isinstance(data, dict):
            logger.warning("storage file is not a JSON object, starting empty", path=str(self._path))
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, items: dict[str, str]) -> None:
        directory = self._path.parent
        directory.mkdir(mode=_STORAGE_DIR_MODE, parents=True, exist_ok=True)

        payload = json.dumps(items, indent=2, sort_keys=True).encode("utf-8")

        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp", prefix=".storage_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen closes fd from here on
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _STORAGE_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(self._path)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
