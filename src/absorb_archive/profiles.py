# absorb_archive/profiles.py
from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Any, Dict, List

from . import config as CFG
from .errors import NotFoundError, TransportError, ValidationError
from .shards import locate
from .sources.api import ArchiveSource

log = logging.getLogger(__name__)

# leading decimal integer, the way the site's URL handler reads it ("42abc" -> 42)
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_user_id(raw: Any) -> int:
    """Validate a user id taken from a URL segment or form field."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        user_id = raw
    else:
        m = _LEADING_INT.match(str(raw))
        if not m:
            raise ValidationError(f"Invalid user id: {raw!r}")
        user_id = int(m.group(1))
    if user_id < 1:
        raise ValidationError(f"Invalid user id: {raw!r}")
    return user_id


class ProfileReader:
    """
    Loads full user records from the sharded ``data/users`` files.

    Any failure (network, malformed shard, id past the end of its shard, null
    placeholder) surfaces as NotFoundError; callers render a 404 either way.
    """

    def __init__(
        self,
        source: ArchiveSource,
        *,
        base: str = CFG.USER_DATA_PATH,
        cache_size: int = CFG.SHARD_CACHE_SIZE,
    ) -> None:
        self._source = source
        self.base = base
        self.cache_size = max(0, int(cache_size))
        self._shards: "OrderedDict[str, List[Any]]" = OrderedDict()

    async def get_user(self, user_id: int) -> Dict[str, Any]:
        loc = locate(user_id, self.base)
        try:
            shard = await self._shard(loc.path)
        except TransportError as exc:
            log.warning("User %d: shard %s unavailable: %s", user_id, loc.path, exc)
            raise NotFoundError(f"User {user_id} not found") from exc

        if loc.offset >= len(shard):
            raise NotFoundError(f"User {user_id} not found")
        record = shard[loc.offset]
        if not isinstance(record, dict) or not record:
            raise NotFoundError(f"User {user_id} not found")
        return record

    async def _shard(self, path: str) -> List[Any]:
        cached = self._shards.get(path)
        if cached is not None:
            self._shards.move_to_end(path)
            return cached

        doc = await self._source.fetch_json(path)
        if not isinstance(doc, list):
            raise TransportError(f"{path} is not a JSON array")
        if self.cache_size:
            self._shards[path] = doc
            while len(self._shards) > self.cache_size:
                self._shards.popitem(last=False)
        return doc

    def clear(self) -> None:
        self._shards.clear()
