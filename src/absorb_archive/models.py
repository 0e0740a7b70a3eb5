from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

@dataclass(frozen=True)
class ShardLocation:
    shard_index: int      # 0-based global shard number
    dir_index: int        # directory holding the shard
    shard_in_dir: int     # file number inside that directory
    path: str             # e.g. "/data/users/01/00.json"
    offset: int           # index of the record inside the shard array

@dataclass(frozen=True)
class Suggestion:
    username: str         # stored casing, used for display
    user_id: int

@dataclass(frozen=True)
class SearchState:
    query: str
    suggestions: Tuple[Suggestion, ...]
    selected: int         # -1 = nothing highlighted
    error: Optional[str]
    loading: bool
