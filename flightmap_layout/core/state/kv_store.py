from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Protocol

from flightmap_layout.core.errors import KeyValueStoreError


class KeyValueStore(Protocol):
    """Persistence boundary for layout overrides: plain get/set/remove by string key."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore:
    """All keys live in one JSON object on disk, rewritten wholesale on every change."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return sorted(self._read().keys())

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise KeyValueStoreError(code="E_STORE_READ", message=str(e), file=str(self.path)) from e
        if not isinstance(data, dict):
            raise KeyValueStoreError(
                code="E_STORE_READ",
                message="store document must be a JSON object",
                file=str(self.path),
            )
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            if str(self.path.parent) not in (".", ""):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as e:
            raise KeyValueStoreError(code="E_STORE_WRITE", message=str(e), file=str(self.path)) from e
