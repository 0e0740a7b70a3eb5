from __future__ import annotations
import os

# Suggestions shown under the search box
SUGGESTION_LIMIT: int = 5

# Public paths of the static archive (relative to the site root)
USER_DATA_PATH: str = "/data/users"
USER_MAP_PATH: str = "/data/user_map"

# One user_map partition per first character
BUCKETS: str = "abcdefghijklmnopqrstuvwxyz0123456789"

# Where the archive is read from: "file:///path/to/site", "https://host" or "memory://"
SOURCE_DSN: str = os.environ.get("ABSORB_ARCHIVE_SOURCE", "file://public")

# Shard files kept in memory by the profile reader
SHARD_CACHE_SIZE: int = 32

# Seconds before an HTTP fetch gives up
HTTP_TIMEOUT: float = 10.0

# Progress logging (set ABSORB_ARCHIVE_VERBOSE=1 to enable)
VERBOSE: bool = os.environ.get("ABSORB_ARCHIVE_VERBOSE") == "1"
