# absorb_archive/sources/file_source.py
from __future__ import annotations
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from ..errors import TransportError

log = logging.getLogger(__name__)


class FileSource:
    """Reads archive documents from a local site root (the folder holding ``data/``)."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path.lstrip("/")).resolve()
        # Stay below the site root (no absolute paths / .. traversal)
        if target != self.root and self.root not in target.parents:
            raise TransportError(f"Refusing to read outside the archive: {path!r}")
        return target

    def read_json(self, path: str) -> Any:
        target = self._resolve(path)
        try:
            with open(target, "r", encoding="utf-8") as f:
                return json.load(f)
        except OSError as exc:
            raise TransportError(f"{path}: {exc.strerror or exc}") from exc
        except ValueError as exc:
            raise TransportError(f"{path} is not valid JSON") from exc

    async def fetch_json(self, path: str) -> Any:
        log.debug("Reading %s from %s", path, self.root)
        return await asyncio.to_thread(self.read_json, path)

    async def aclose(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"FileSource({str(self.root)!r})"
