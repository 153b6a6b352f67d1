"""Repository-based persistence for game-economy state."""

from bassball.storage.repository import (
    InMemoryRepository,
    InMemoryStorage,
    JsonFileRepository,
    JsonFileStorage,
    ModelStore,
    Repository,
    StorageBackend,
)

__all__ = [
    "InMemoryRepository",
    "InMemoryStorage",
    "JsonFileRepository",
    "JsonFileStorage",
    "ModelStore",
    "Repository",
    "StorageBackend",
    "create_storage",
]


def create_storage(backend: str, directory: str = "data") -> StorageBackend:
    """Build the backend named by the ``storage_backend`` setting."""
    if backend == "memory":
        return InMemoryStorage()
    if backend == "json":
        return JsonFileStorage(directory)
    raise ValueError(f"Unknown storage backend: {backend!r}")
