"""Key/value property stores backing the registration settings.

The pipeline only depends on the ``PropertyStore`` protocol. Two
implementations are provided: a JSON file store with atomic saves for real
deployments, and an in-memory store for tests and previews.
"""

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class PropertyStore(Protocol):
    """String key/value persistence."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def items(self) -> Iterator[tuple[str, str]]: ...


class InMemoryPropertyStore:
    """Dict-backed property store. Nothing is persisted."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def items(self) -> Iterator[tuple[str, str]]:
        with self._lock:
            snapshot = sorted(self._values.items())
        return iter(snapshot)


class JsonPropertyStore:
    """Property store persisted as a flat JSON object.

    Usage::

        store = JsonPropertyStore.load("data/properties.json")
        store.set("welcome-enabled", "true")
        store.get("welcome-enabled")  # "true"

    Every mutation rewrites the whole file atomically. Other processes (the
    ``herald`` CLI) write the same file, so each access first checks the
    file's identity (inode, mtime, size) and re-reads it when it changed.
    """

    def __init__(self, values: dict[str, str], path: Path) -> None:
        self._values = values
        self._path = path
        self._stamp = _file_stamp(path)
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: str | Path) -> "JsonPropertyStore":
        """Load properties from a JSON file.

        If the file does not exist, returns an empty store bound to *path*.
        """
        path = Path(path)
        if not path.exists():
            logger.info("Property file not found at %s, starting empty", path)
            return cls({}, path)

        values = _read_values(path)
        logger.info("Loaded %d propert(ies) from %s", len(values), path)
        return cls(values, path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        with self._lock:
            self._refresh()
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._refresh()
            self._values[key] = value
            self._save()

    def delete(self, key: str) -> None:
        with self._lock:
            self._refresh()
            if key not in self._values:
                return
            del self._values[key]
            self._save()

    def items(self) -> Iterator[tuple[str, str]]:
        with self._lock:
            self._refresh()
            snapshot = sorted(self._values.items())
        return iter(snapshot)

    def _refresh(self) -> None:
        """Re-read the file if another writer replaced it. Caller holds the lock."""
        stamp = _file_stamp(self._path)
        if stamp == self._stamp:
            return
        self._values = _read_values(self._path) if stamp is not None else {}
        self._stamp = stamp
        logger.debug("Reloaded %d propert(ies) from %s", len(self._values), self._path)

    def _save(self) -> None:
        """Atomic write: temp file + rename. Caller holds the lock."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(self._values, indent=2, sort_keys=True) + "\n"

        fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.replace(tmp_path, str(self._path))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self._stamp = _file_stamp(self._path)
        logger.debug("Saved %d propert(ies) to %s", len(self._values), self._path)


def _file_stamp(path: Path) -> tuple[int, int, int] | None:
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return (st.st_ino, st.st_mtime_ns, st.st_size)


def _read_values(path: Path) -> dict[str, str]:
    raw = json.loads(path.read_text())
    if not isinstance(raw, dict):
        raise ValueError(f"Property file {path} must contain a JSON object")
    return {str(k): str(v) for k, v in raw.items()}
