# absorb_archive/sources/api.py
from __future__ import annotations
import os
from typing import Any, Protocol

from .file_source import FileSource
from .memory_source import MemorySource


class ArchiveSource(Protocol):
    # Read one JSON document by its site path, e.g. "/data/user_map/a.json"
    async def fetch_json(self, path: str) -> Any: ...
    # lifecycle
    async def aclose(self) -> None: ...


def make_source(dsn: str) -> ArchiveSource:
    """
    Factory:
      - http://host[/prefix], https://... -> HttpSource
      - file:///abs/site, file://rel/site, or a bare path -> FileSource
      - memory://                         -> MemorySource (empty; fill with put())
    """
    if dsn.startswith(("http://", "https://")):
        # Lazy import keeps httpx off the path for file-only runs
        from .http_source import HttpSource
        return HttpSource(dsn)

    if dsn.startswith("memory://"):
        return MemorySource()

    path = dsn.removeprefix("file://")
    if not os.path.isdir(path):
        raise ValueError(f"Archive root {path!r} is not a directory")
    return FileSource(path)
