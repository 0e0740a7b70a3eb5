# absorb_archive/search.py
from __future__ import annotations

import asyncio
import logging
from itertools import islice
from typing import Any, Callable, Coroutine, Dict, List, Mapping, Optional, Union

from . import config as CFG
from .errors import NotFoundError, TransportError, ValidationError
from .models import SearchState, Suggestion
from .normalize import bucket_for, fold
from .sources.api import ArchiveSource

log = logging.getLogger(__name__)

Spawn = Callable[[Coroutine[Any, Any, None]], "asyncio.Future[None]"]

_DIRECTIONS = ("down", "up", "confirm")


class Partition:
    """One user_map bucket: username (as stored) -> user id, in file order."""

    def __init__(self, bucket: str, entries: Mapping[str, int]) -> None:
        self.bucket = bucket
        self._entries: Dict[str, int] = dict(entries)
        # first stored spelling wins when two names differ only by case
        self._folded: Dict[str, int] = {}
        for name, user_id in self._entries.items():
            self._folded.setdefault(fold(name), user_id)

    @classmethod
    def from_json(cls, bucket: str, doc: Any) -> "Partition":
        if not isinstance(doc, dict):
            raise TransportError(f"user_map/{bucket}.json is not a JSON object")
        entries: Dict[str, int] = {}
        for name, user_id in doc.items():
            if isinstance(user_id, bool) or not isinstance(user_id, int):
                raise TransportError(f"user_map/{bucket}.json: bad id for {name!r}")
            entries[name] = user_id
        return cls(bucket, entries)

    def __len__(self) -> int:
        return len(self._entries)

    def complete(self, prefix: str, limit: int = CFG.SUGGESTION_LIMIT) -> List[Suggestion]:
        """First ``limit`` names starting with ``prefix`` (case-insensitive), file order, no ranking."""
        needle = fold(prefix)
        hits = (
            Suggestion(name, user_id)
            for name, user_id in self._entries.items()
            if fold(name).startswith(needle)
        )
        return list(islice(hits, limit))

    def resolve(self, username: str) -> Optional[int]:
        return self._folded.get(fold(username))


class PrefixSearchSession:
    """
    State behind the username search box.

    Driven by UI events:
      * on_query_change(text): filter a cached partition, or start fetching it
      * on_submit():           resolve the query (or highlighted row) to an id
      * on_key_navigate(key):  "down" / "up" move the highlight, "confirm" submits
      * on_pick(suggestion):   pointer selection

    Partition fetches run as background tasks on the running event loop. A
    result only reaches ``suggestions`` if its bucket still matches the live
    query's first character; it is cached either way. Failed fetches are not
    cached, so the next keystroke in that bucket retries.

    ``navigate`` receives the resolved user id; ``on_change`` receives a
    SearchState snapshot after every state change (including async ones).
    """

    def __init__(
        self,
        source: ArchiveSource,
        *,
        navigate: Optional[Callable[[int], None]] = None,
        on_change: Optional[Callable[[SearchState], None]] = None,
        spawn: Optional[Spawn] = None,
        limit: int = CFG.SUGGESTION_LIMIT,
        user_map_path: str = CFG.USER_MAP_PATH,
    ) -> None:
        self._source = source
        self._navigate = navigate
        self._on_change = on_change
        self._spawn: Spawn = spawn or asyncio.ensure_future
        self.limit = limit
        self.user_map_path = user_map_path.rstrip("/")

        self.query: str = ""
        self.suggestions: List[Suggestion] = []
        self.selected: int = -1
        self.error: Optional[str] = None
        self.loading: bool = False

        self._partitions: Dict[str, Partition] = {}
        self._inflight: Dict[str, "asyncio.Future[None]"] = {}

    # ------------- state -------------

    def snapshot(self) -> SearchState:
        return SearchState(
            query=self.query,
            suggestions=tuple(self.suggestions),
            selected=self.selected,
            error=self.error,
            loading=self.loading,
        )

    def is_cached(self, bucket: str) -> bool:
        return bucket in self._partitions

    @property
    def live_bucket(self) -> Optional[str]:
        return bucket_for(self.query)

    # ------------- events -------------

    def on_query_change(self, text: str) -> None:
        self.query = text
        self.error = None
        bucket = bucket_for(text)
        if bucket is None:
            self.suggestions = []
            self.selected = -1
            self.loading = False
            self._notify()
            return

        partition = self._partitions.get(bucket)
        if partition is not None:
            self._publish(partition)
            return

        # rows from another bucket can never match the new first character
        self.suggestions = []
        self.selected = -1
        self.loading = True
        pending = self._inflight.get(bucket)
        if pending is None or pending.done():
            self._inflight[bucket] = self._spawn(self._load_partition(bucket))
        self._notify()

    def on_submit(self) -> Optional[int]:
        """Navigate to the highlighted row, else to the exact username typed.

        Returns the user id navigated to, or None with ``error`` set.
        """
        if 0 <= self.selected < len(self.suggestions):
            return self.on_pick(self.suggestions[self.selected])
        try:
            user_id = self.resolve(self.query)
        except (ValidationError, NotFoundError) as exc:
            self.error = str(exc)
            self._notify()
            return None
        self.error = None
        self._go(user_id)
        return user_id

    def on_key_navigate(self, key: str) -> Optional[int]:
        if key not in _DIRECTIONS:
            raise ValueError(f"Unknown navigation key: {key!r}")
        if key == "confirm":
            return self.on_submit()
        if key == "down" and self.selected < len(self.suggestions) - 1:
            self.selected += 1
        elif key == "up" and self.selected > -1:
            self.selected -= 1
        self._notify()
        return None

    def on_pick(self, suggestion: Union[Suggestion, int]) -> Optional[int]:
        if isinstance(suggestion, int):
            if not 0 <= suggestion < len(self.suggestions):
                return None  # row went away before the click arrived
            suggestion = self.suggestions[suggestion]
        self.error = None
        self._go(suggestion.user_id)
        return suggestion.user_id

    # ------------- lookups -------------

    def resolve(self, query: str) -> int:
        """Exact, case-insensitive username -> id using cached partitions only."""
        name = query.strip()
        if not name:
            raise ValidationError("Please enter a username")
        bucket = bucket_for(name)
        if bucket is None:
            raise ValidationError("Username must start with a letter or number")
        partition = self._partitions.get(bucket)
        if partition is None:
            raise NotFoundError("User not found")
        user_id = partition.resolve(name)
        if user_id is None:
            raise NotFoundError(f'User "{name}" not found')
        return user_id

    async def settle(self) -> None:
        """Wait until no partition fetch is outstanding."""
        while True:
            pending = [f for f in self._inflight.values() if not f.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    # ------------- internals -------------

    async def _load_partition(self, bucket: str) -> None:
        path = f"{self.user_map_path}/{bucket}.json"
        log.info("Fetching partition %s", path)
        try:
            doc = await self._source.fetch_json(path)
            partition = Partition.from_json(bucket, doc)
        except TransportError as exc:
            log.warning("Partition %s unavailable: %s", path, exc)
            if self.live_bucket == bucket:
                self.loading = False
                self.suggestions = []
                self.selected = -1
                self._notify()
            return
        finally:
            if self._inflight.get(bucket) is asyncio.current_task():
                del self._inflight[bucket]

        self._partitions[bucket] = partition
        log.info("Cached partition %r (%d users)", bucket, len(partition))
        if self.live_bucket != bucket:
            log.debug("Discarding stale partition %r (live bucket %r)", bucket, self.live_bucket)
            return
        self._publish(partition)

    def _publish(self, partition: Partition) -> None:
        self.suggestions = partition.complete(self.query, self.limit)
        self.selected = -1
        self.loading = False
        self._notify()

    def _go(self, user_id: int) -> None:
        log.info("Navigating to user %d", user_id)
        if self._navigate is not None:
            self._navigate(user_id)
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())
