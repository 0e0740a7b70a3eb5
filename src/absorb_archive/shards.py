"""User id -> shard file addressing.

Records live in JSON arrays of ``RECORDS_PER_SHARD`` users, grouped in
directories of ``SHARDS_PER_DIR`` files:

    id 1-500       -> 00/00.json
    id 501-1000    -> 00/01.json
    id 10001-10500 -> 01/00.json

Both constants are baked into the published files; changing them breaks every
existing archive.
"""
from __future__ import annotations
from typing import Final, Tuple

from .config import USER_DATA_PATH
from .models import ShardLocation

RECORDS_PER_SHARD: Final[int] = 500
SHARDS_PER_DIR: Final[int] = 20


def locate(user_id: int, base: str = USER_DATA_PATH) -> ShardLocation:
    """Return the shard file and in-file offset holding ``user_id``.

    ``user_id`` must be >= 1; callers validate before calling.
    """
    shard_index = (user_id - 1) // RECORDS_PER_SHARD
    dir_index, shard_in_dir = divmod(shard_index, SHARDS_PER_DIR)
    return ShardLocation(
        shard_index=shard_index,
        dir_index=dir_index,
        shard_in_dir=shard_in_dir,
        path=f"{base.rstrip('/')}/{dir_index:02d}/{shard_in_dir:02d}.json",
        offset=(user_id - 1) % RECORDS_PER_SHARD,
    )


def user_data_path(user_id: int, base: str = USER_DATA_PATH) -> str:
    return locate(user_id, base).path


def user_index_in_file(user_id: int) -> int:
    return (user_id - 1) % RECORDS_PER_SHARD


def shard_bounds(shard_index: int) -> Tuple[int, int]:
    """Inclusive (first_id, last_id) range stored in a shard."""
    first = shard_index * RECORDS_PER_SHARD + 1
    return first, first + RECORDS_PER_SHARD - 1
