"""Durable string-keyed slots the chat state is mirrored into."""

import logging
import re
from pathlib import Path
from typing import Protocol

from common.jsonio import atomic_write_text, load_text

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self.slots: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.slots.get(key)

    def set(self, key: str, value: str) -> None:
        self.slots[key] = value

    def delete(self, key: str) -> None:
        self.slots.pop(key, None)


class FileStore:
    """One file per slot under ``root``; writes replace the file atomically."""

    suffix = ".slot"

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}{self.suffix}"

    def get(self, key: str) -> str | None:
        return load_text(self.path_for(key))

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        atomic_write_text(path, value)
        logger.debug(f"Wrote {len(value)} chars to {path}")

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob(f"*{self.suffix}"))
