"""Asynchronous named-blob stores the key store persists into."""

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Host-provided persistence substrate holding named JSON-compatible blobs."""

    async def get(self, key: str) -> Any | None:
        """Return the blob stored under ``key`` or None."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous blob."""
        ...


class MemoryKeyValueStore:
    """In-process store; values are deep-copied on the way in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class JsonFileKeyValueStore:
    """All named blobs kept in one JSON document on disk.

    Writes go to a temporary file in the same directory which then replaces
    the document, so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document; created on first write

        """
        self.path = path

    async def get(self, key: str) -> Any | None:
        document = await asyncio.to_thread(self._read_document)
        return document.get(key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write_key, key, value)

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as f:
            document = json.load(f)
        if not isinstance(document, dict):
            error_msg = f"Expected a JSON object in {self.path}"
            raise ValueError(error_msg)
        return document

    def _write_key(self, key: str, value: Any) -> None:
        document = self._read_document()
        document[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
