"""Named-group key-value storage for small client-side state.

Values are strings or booleans grouped under a name (e.g. "PlayFabBuddy.Auth").
JsonFileStorage keeps every group in a single JSON document written with
owner-only permissions (0o600), since groups may hold credential surrogates.
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

_FILE_PERMISSIONS = 0o600  # owner read/write only

StoredValue = str | bool


class KeyValueStore(Protocol):
    """Protocol for a store that hands out named groups."""

    def edit_group(self, name: str) -> "StorageGroup": ...


class _GroupBackend(Protocol):
    def read(self, group: str) -> dict[str, StoredValue]: ...

    def write(self, group: str, key: str, value: StoredValue) -> None: ...

    def remove(self, group: str, key: str) -> None: ...


class StorageGroup:
    """Typed view over one named group of a store."""

    def __init__(self, backend: _GroupBackend, name: str) -> None:
        _validate_name(name, "Group name")
        self._backend = backend
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the string stored under key, or default when missing."""
        value = self._backend.read(self._name).get(key)
        if value is None or isinstance(value, bool):
            return default
        return value

    def get_bool(self, key: str, *, default: bool = False) -> bool:
        value = self._backend.read(self._name).get(key)
        if isinstance(value, bool):
            return value
        return default

    def put(self, key: str, value: StoredValue) -> None:
        _validate_name(key, "Key")
        self._backend.write(self._name, key, value)

    def delete(self, key: str) -> None:
        """Remove key from the group. Missing keys are ignored."""
        self._backend.remove(self._name, key)

    def keys(self) -> list[str]:
        return sorted(self._backend.read(self._name))


class MemoryStorage:
    """Process-local storage. Nothing survives a restart."""

    def __init__(self) -> None:
        self._groups: dict[str, dict[str, StoredValue]] = {}

    def edit_group(self, name: str) -> StorageGroup:
        return StorageGroup(self, name)

    def read(self, group: str) -> dict[str, StoredValue]:
        return dict(self._groups.get(group, {}))

    def write(self, group: str, key: str, value: StoredValue) -> None:
        self._groups.setdefault(group, {})[key] = value

    def remove(self, group: str, key: str) -> None:
        self._groups.get(group, {}).pop(key, None)


class JsonFileStorage:
    """File-backed storage holding all groups in one JSON document.

    Loads into memory on first access and writes the whole document back on
    every mutation via temp-file-then-rename, so readers never see a partial
    file. A mutation that fails to persist is rolled back in memory.
    """

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)
        self._groups: dict[str, dict[str, StoredValue]] = {}
        self._loaded = False

    @property
    def file_path(self) -> Path:
        return self._file_path

    def edit_group(self, name: str) -> StorageGroup:
        return StorageGroup(self, name)

    def read(self, group: str) -> dict[str, StoredValue]:
        self._ensure_loaded()
        return dict(self._groups.get(group, {}))

    def write(self, group: str, key: str, value: StoredValue) -> None:
        self._ensure_loaded()
        values = self._groups.setdefault(group, {})
        previous = values.get(key)
        values[key] = value
        try:
            self._save_to_file()
        except OSError:
            if previous is None:
                del values[key]
            else:
                values[key] = previous
            raise

    def remove(self, group: str, key: str) -> None:
        self._ensure_loaded()
        values = self._groups.get(group)
        if values is None or key not in values:
            return
        previous = values.pop(key)
        try:
            self._save_to_file()
        except OSError:
            values[key] = previous
            raise

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._groups = self._load_from_file()
        self._loaded = True

    def _load_from_file(self) -> dict[str, dict[str, StoredValue]]:
        """Read the JSON document, starting empty when the file does not exist.

        Raises OSError for an existing file that cannot be read or parsed so
        a later write never clobbers data we failed to load.
        """
        if not self._file_path.exists():
            return {}

        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            msg = f"Failed to load storage from {self._file_path}"
            raise OSError(msg) from exc

        if not isinstance(data, dict) or not all(isinstance(group, dict) for group in data.values()):
            msg = f"Expected JSON object of groups in {self._file_path}"
            raise OSError(msg)

        groups: dict[str, dict[str, StoredValue]] = {}
        for name, values in data.items():
            groups[name] = {k: v for k, v in values.items() if isinstance(v, str | bool)}
            skipped = len(values) - len(groups[name])
            if skipped:
                logger.warning("skipped unsupported storage values", group=name, count=skipped)
        return groups

    def _save_to_file(self) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(self._groups, indent=2, sort_keys=True).encode("utf-8")

        fd, tmp_path = tempfile.mkstemp(
            dir=self._file_path.parent,
            prefix=".storage_",
            suffix=".tmp",
        )
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _FILE_PERMISSIONS)  # noqa: PTH101
            Path(tmp_path).replace(self._file_path)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise


def get_storage(backend: str = "file", path: str | Path | None = None) -> KeyValueStore:
    """Return a KeyValueStore by backend name ("file" or "memory")."""
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        if path is None:
            raise ValueError("File storage requires a path")
        return JsonFileStorage(path)
    raise ValueError(f"Unknown storage backend: {backend!r}")


def _validate_name(value: str, label: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{label} must be a non-empty string")
