"""Key-value persistence in a single JSON file."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Optional


class JsonFileStore:
    """AsyncStorage-style string store backed by one JSON object on disk.

    File access runs in a worker thread; writes are serialised so two
    read-modify-write cycles never interleave.  Errors (unreadable file, bad
    JSON, full disk) propagate to the caller.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._write_lock = asyncio.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    def _set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _remove(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)

    async def get_item(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._set, key, value)

    async def remove_item(self, key: str) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._remove, key)
