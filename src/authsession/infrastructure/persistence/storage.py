"""Key-value storage backends for the persisted session.

Hey future me - these are the two stock IKeyValueStore adapters:
- MemoryStorage: dict in process memory. Survives as long as the process does,
  which is what a browser's localStorage gives a single page. Default backend.
- FileStorage: one small JSON document on disk ({key: value, ...}). Use this
  when a CLI or desktop app should stay signed in across restarts.

Both are async because the port is async. FileStorage pushes the blocking file
I/O into a worker thread with asyncio.to_thread so the event loop never stalls.
"""

import asyncio
import json
import logging
import os
from pathlib import Path

from authsession.domain.exceptions import PersistenceError
from authsession.domain.ports import IKeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "token"


def resolve_storage_key(key: str | None = None, scope: str | None = None) -> str:
    """Build the effective storage key.

    Args:
        key: Base key name (default: "token")
        scope: Optional namespace; the key becomes "<scope>:<key>"

    Returns:
        Effective key used for every storage access

    Example:
        >>> resolve_storage_key(scope="app")
        'app:token'
    """
    base = key or DEFAULT_STORAGE_KEY
    return f"{scope}:{base}" if scope else base


class MemoryStorage(IKeyValueStore):
    """In-process dict storage."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class FileStorage(IKeyValueStore):
    """JSON file storage - one document holding every key.

    Hey future me - writes go to a temp file next to the target and then
    os.replace() it over the real file. That swap is atomic on POSIX and
    Windows, so a crash mid-write leaves the OLD document, never half a file.
    The asyncio.Lock serializes read-modify-write cycles inside one process.
    Multiple processes sharing the file are NOT coordinated.
    """

    def __init__(self, path: Path | str) -> None:
        """Initialize file storage.

        Args:
            path: Location of the JSON document (created on first write)
        """
        self.path = Path(path)
        self._lock: asyncio.Lock | None = None

    def _ensure_lock(self) -> asyncio.Lock:
        # Created lazily so the lock binds to the running event loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _read_document(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise PersistenceError(f"Cannot read session file {self.path}: {e}") from e

        if not raw.strip():
            return {}

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Session file {self.path} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise PersistenceError(f"Session file {self.path} does not hold a JSON object")
        return document

    def _write_document(self, document: dict[str, str]) -> None:
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write session file {self.path}: {e}") from e

    async def get(self, key: str) -> str | None:
        document = await asyncio.to_thread(self._read_document)
        value = document.get(key)
        if value is not None and not isinstance(value, str):
            raise PersistenceError(f"Stored value at {key!r} is not a string", key=key)
        return value

    async def set(self, key: str, value: str) -> None:
        async with self._ensure_lock():
            document = await asyncio.to_thread(self._read_document)
            document[key] = value
            await asyncio.to_thread(self._write_document, document)
        logger.debug("Persisted key %s to %s", key, self.path)

    async def remove(self, key: str) -> None:
        async with self._ensure_lock():
            document = await asyncio.to_thread(self._read_document)
            if key not in document:
                return
            del document[key]
            await asyncio.to_thread(self._write_document, document)
        logger.debug("Removed key %s from %s", key, self.path)
