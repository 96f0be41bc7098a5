from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from .errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Protocol describing the durable storage the recipe store relies on."""

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or ``None`` if it was never set."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key`` or raise :class:`StorageError`."""


class InMemoryKeyValueStore:
    """Process-local backend, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileKeyValueStore:
    """Stores each key as ``<directory>/<key>.json`` on the local disk."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._directory = Path(directory)

    @classmethod
    def from_env(cls) -> "JsonFileKeyValueStore":
        """Build a file backend from environment variables."""

        return cls(os.environ.get("RECIPES_DATA_DIR", "data"))

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file first so readers never see half a list.
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc

        logger.debug("Wrote %d bytes to %s", len(value), path)


__all__ = ["InMemoryKeyValueStore", "JsonFileKeyValueStore", "KeyValueStore"]
