"""Key/value persistence backing labs and preferences.

Values are JSON strings stored under string keys, mirroring the browser
``localStorage`` contract the notebook was designed around. Corrupt stored
data never propagates: it is logged as a warning and a default is used.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Generic, Protocol, TypeVar

from .exceptions import StorageError
from .filesystem import atomic_write_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueStore(Protocol):
    """Minimal string key/value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store, used in tests and for throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Store persisted as a single JSON object on disk.

    A missing file reads as an empty store. An unreadable or corrupt file is
    logged and treated as empty; the next write replaces it.

    Args:
        path: Location of the JSON file.

    Examples:
        store = JsonFileStore(Path(".labnotes.json"))
        store.set("theme", "dark")
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="UTF-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as error:
            logger.warning("Failed to read storage file %s: %s", self.path, error)
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as error:
            logger.warning("Failed to parse storage file %s: %s", self.path, error)
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: top-level value is not an object", self.path)
            return {}

        # Tolerate hand-edited files holding raw JSON values instead of strings
        return {
            str(key): value if isinstance(value, str) else json.dumps(value)
            for key, value in data.items()
        }

    def _write(self, data: dict[str, str]) -> None:
        try:
            atomic_write_text(self.path, json.dumps(data, indent=2, sort_keys=True) + "\n")
        except OSError as error:
            raise StorageError(f"Failed to write storage file {self.path}: {error}") from error

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class PersistentValue(Generic[T]):
    """A typed value stored as JSON under one key.

    Args:
        store: Backing key/value store.
        key: Storage key.
        default: Value returned when nothing usable is stored. A deep copy is
            returned each time.
        decode: Converts parsed JSON into `T`; may raise `ValueError` or
            `TypeError` to reject the stored data.
        encode: Converts `T` into a JSON-serializable value.

    Examples:
        labs = PersistentValue(store, "my-advanced-labs", [])
        labs.save(labs.load() + [{"name": "Lame"}])
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        default: T,
        decode: Callable[[object], T] | None = None,
        encode: Callable[[T], object] | None = None,
    ):
        self.store = store
        self.key = key
        self.default = default
        self.decode = decode
        self.encode = encode

    def _default(self) -> T:
        return copy.deepcopy(self.default)

    def load(self) -> T:
        """Return the stored value, or the default when missing or corrupt."""
        raw = self.store.get(self.key)
        if raw is None:
            return self._default()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as error:
            logger.warning("Failed to parse stored value for %r: %s", self.key, error)
            return self._default()

        if self.decode is None:
            return data

        try:
            return self.decode(data)
        except (TypeError, ValueError) as error:
            logger.warning("Discarding stored value for %r: %s", self.key, error)
            return self._default()

    def save(self, value: T) -> None:
        """Serialize `value` to JSON and write it to the store.

        Raises:
            StorageError: If the backing store cannot be written.
        """
        data = value if self.encode is None else self.encode(value)
        self.store.set(self.key, json.dumps(data))
