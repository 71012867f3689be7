from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Protocol

from anyio import to_thread


class WeightConfigSource(Protocol):
    async def read(self) -> Dict[str, Any] | None: ...

    async def write(self, document: Dict[str, Any]) -> None: ...


class FileWeightConfigSource:
    """JSON file on disk; `read` returns None when the file does not exist."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    # ---------- Async facade (runs sync work in threadpool) ----------
    async def read(self) -> Dict[str, Any] | None:
        return await to_thread.run_sync(self._read_sync)

    async def write(self, document: Dict[str, Any]) -> None:
        await to_thread.run_sync(self._write_sync, document)

    # ---------- Private sync implementations ----------
    def _read_sync(self) -> Dict[str, Any] | None:
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text(encoding="utf-8"))

    def _write_sync(self, document: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
        # readers see either the old or the new file, never a partial write
        os.replace(tmp, self.path)
