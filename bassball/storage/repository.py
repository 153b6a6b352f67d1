"""Key-value repositories for the game-economy managers.

Values are JSON-compatible dicts keyed by string ids. Managers mutate
repositories freely; ``flush()`` is the only point at which a file-backed
repository touches disk, so the caller decides the persistence cadence.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_NAMESPACE_RE = re.compile(r"^[a-z0-9_]+$")


class Repository(ABC):
    """Mapping of string keys to JSON-compatible dicts."""

    @abstractmethod
    def get(self, key: str) -> dict | None: ...

    @abstractmethod
    def put(self, key: str, value: dict) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def keys(self) -> list[str]: ...

    def values(self) -> list[dict]:
        return [value for key in self.keys() if (value := self.get(key)) is not None]

    def flush(self) -> None:
        """Persist pending changes. No-op for memory-only repositories."""

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self.keys())


class InMemoryRepository(Repository):
    def __init__(self) -> None:
        self._data: dict[str, dict] = {}

    def get(self, key: str) -> dict | None:
        value = self._data.get(key)
        return json.loads(json.dumps(value)) if value is not None else None

    def put(self, key: str, value: dict) -> None:
        # Stored as a deep copy so callers cannot mutate state behind our back
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileRepository(InMemoryRepository):
    """In-memory repository mirrored to a single JSON file.

    The file is read once on construction. ``flush()`` writes a temporary file
    in the same directory and renames it over the target, so readers never
    observe a partial write.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)
        self._dirty = False
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            logger.error("Could not parse JSON from %s: %s", self._path, exc)
            raise

        if not isinstance(raw, dict):
            raise ValueError(f"{self._path} must contain a JSON object")
        self._data = raw
        logger.debug("Loaded %d records from %s", len(raw), self._path)

    def put(self, key: str, value: dict) -> None:
        super().put(key, value)
        self._dirty = True

    def delete(self, key: str) -> bool:
        removed = super().delete(key)
        self._dirty = self._dirty or removed
        return removed

    def flush(self) -> None:
        if not self._dirty:
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self._dirty = False
        logger.debug("Flushed %d records to %s", len(self._data), self._path)


class StorageBackend(ABC):
    """Hands out one repository per namespace."""

    def __init__(self) -> None:
        self._repositories: dict[str, Repository] = {}

    def repository(self, namespace: str) -> Repository:
        if not _NAMESPACE_RE.match(namespace):
            raise ValueError(f"Invalid storage namespace: {namespace!r}")
        repo = self._repositories.get(namespace)
        if repo is None:
            repo = self._create(namespace)
            self._repositories[namespace] = repo
        return repo

    def flush(self) -> None:
        for repo in self._repositories.values():
            repo.flush()

    @abstractmethod
    def _create(self, namespace: str) -> Repository: ...


class InMemoryStorage(StorageBackend):
    def _create(self, namespace: str) -> Repository:
        return InMemoryRepository()


class JsonFileStorage(StorageBackend):
    """One ``<namespace>.json`` file per namespace under *directory*."""

    def __init__(self, directory: str | Path) -> None:
        super().__init__()
        self._directory = Path(directory)

    def _create(self, namespace: str) -> Repository:
        return JsonFileRepository(self._directory / f"{namespace}.json")


class ModelStore(Generic[M]):
    """Typed view of a repository holding one pydantic model type."""

    def __init__(self, repository: Repository, model: type[M]) -> None:
        self._repository = repository
        self._model = model

    def get(self, key: str) -> M | None:
        raw = self._repository.get(key)
        return self._model.model_validate(raw) if raw is not None else None

    def put(self, key: str, item: M) -> M:
        self._repository.put(key, item.model_dump(mode="json"))
        return item

    def delete(self, key: str) -> bool:
        return self._repository.delete(key)

    def keys(self) -> list[str]:
        return self._repository.keys()

    def all(self) -> list[M]:
        return [self._model.model_validate(raw) for raw in self._repository.values()]

    def __iter__(self) -> Iterator[M]:
        return iter(self.all())

    def __contains__(self, key: object) -> bool:
        return key in self._repository

    def __len__(self) -> int:
        return len(self._repository)
