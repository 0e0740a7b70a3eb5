from __future__ import annotations
import re
from typing import Optional

# Buckets are ASCII letters and digits only
_LEADING = re.compile(r"[A-Za-z0-9]")

def fold(text: str) -> str:
    """Case-fold a username or query for matching (display keeps the original)."""
    return text.lower()

def bucket_for(text: str) -> Optional[str]:
    """
    Return the user_map bucket a query or username belongs to:
      * the lowercased first character when it is a letter or digit
      * None for empty text or any other leading character (nothing to fetch)
    """
    if not text or not _LEADING.fullmatch(text[0]):
        return None
    return text[0].lower()

def is_searchable(username: str) -> bool:
    return bucket_for(username) is not None
