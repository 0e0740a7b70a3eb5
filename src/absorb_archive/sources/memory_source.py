# absorb_archive/sources/memory_source.py
from __future__ import annotations
import asyncio
import copy
from typing import Any, Dict, List, Mapping, Optional

from ..errors import TransportError


def _key(path: str) -> str:
    return "/" + path.lstrip("/")


class MemorySource:
    """Serves documents from a dict (useful for tests or ephemeral runs)."""

    def __init__(self, files: Optional[Mapping[str, Any]] = None) -> None:
        self._files: Dict[str, Any] = {}
        self.requests: List[str] = []   # every path asked for, in order
        for path, doc in (files or {}).items():
            self.put(path, doc)

    def put(self, path: str, doc: Any) -> None:
        self._files[_key(path)] = doc

    def remove(self, path: str) -> None:
        self._files.pop(_key(path), None)

    async def fetch_json(self, path: str) -> Any:
        key = _key(path)
        self.requests.append(key)
        await asyncio.sleep(0)  # resolve on a later loop turn, like a real fetch
        try:
            doc = self._files[key]
        except KeyError:
            raise TransportError(f"{key}: 404 Not Found") from None
        return copy.deepcopy(doc)

    async def aclose(self) -> None:
        self._files.clear()
