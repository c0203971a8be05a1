"""Infrastructure persistence layer."""

from .storage import (
    DEFAULT_STORAGE_KEY,
    FileStorage,
    MemoryStorage,
    resolve_storage_key,
)

__all__ = [
    "DEFAULT_STORAGE_KEY",
    "FileStorage",
    "MemoryStorage",
    "resolve_storage_key",
]
