"""
Abs0rb.me archive lookups

Static JSON snapshots of the game's users, addressed two ways:
- by id: ``locate(id)`` names the shard file and offset holding the record
- by name: ``PrefixSearchSession`` suggests and resolves usernames from the
  36 first-character ``user_map`` partitions, fetched on demand and cached

Example Usage:
    source = make_source("file://public")
    session = PrefixSearchSession(source, navigate=print)
    session.on_query_change("ali")
    await session.settle()
    session.on_submit()

    record = await ProfileReader(source).get_user(42)
"""

from .errors import ArchiveError, NotFoundError, TransportError, ValidationError
from .models import SearchState, ShardLocation, Suggestion
from .profiles import ProfileReader, parse_user_id
from .search import Partition, PrefixSearchSession
from .shards import RECORDS_PER_SHARD, SHARDS_PER_DIR, locate, user_data_path, user_index_in_file
from .sources import ArchiveSource, FileSource, MemorySource, make_source

__version__ = "1.0.0"
__all__ = [
    "ArchiveError", "NotFoundError", "TransportError", "ValidationError",
    "SearchState", "ShardLocation", "Suggestion",
    "ProfileReader", "parse_user_id",
    "Partition", "PrefixSearchSession",
    "RECORDS_PER_SHARD", "SHARDS_PER_DIR", "locate", "user_data_path", "user_index_in_file",
    "ArchiveSource", "FileSource", "MemorySource", "make_source",
]
