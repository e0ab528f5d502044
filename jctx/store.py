"""Key/value configuration store the workflow depends on.

Holds state that has to outlive a single command: a payload whose delivery
failed (picked up again by ``jctx resume``) and the last fetched issue list.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import tomlkit


class ConfigStore(ABC):
    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any: ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def clear(self, key: str) -> None: ...


class MemoryConfigStore(ConfigStore):
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self, key: str) -> None:
        self._data.pop(key, None)


class TomlConfigStore(ConfigStore):
    """Store backed by a TOML file; round-trips comments like the profile config."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> tomlkit.TOMLDocument:
        if not self.path.exists():
            return tomlkit.document()
        return tomlkit.load(self.path.open())

    def _write(self, doc: tomlkit.TOMLDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(tomlkit.dumps(doc))

    def get(self, key: str, default: Any = None) -> Any:
        doc = self._load()
        if key not in doc:
            return default
        return doc[key].unwrap() if hasattr(doc[key], "unwrap") else doc[key]

    def set(self, key: str, value: Any) -> None:
        doc = self._load()
        doc[key] = value
        self._write(doc)

    def clear(self, key: str) -> None:
        doc = self._load()
        if key in doc:
            del doc[key]
            self._write(doc)
