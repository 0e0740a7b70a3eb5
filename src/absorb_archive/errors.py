"""Errors raised by the archive lookups.

None of these is fatal: the UI layers turn them into a message or an empty
state.
"""
from __future__ import annotations


class ArchiveError(Exception):
    """Base class for archive lookup failures."""


class ValidationError(ArchiveError):
    """The query or id was rejected before any lookup happened."""


class NotFoundError(ArchiveError):
    """The user does not exist in the archive (or could not be loaded)."""


class TransportError(ArchiveError):
    """A partition or shard file could not be fetched or parsed."""
