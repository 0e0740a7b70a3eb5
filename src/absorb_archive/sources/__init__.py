"""Archive transports: local site folder, HTTP mirror, or in-memory."""
from .api import ArchiveSource, make_source
from .file_source import FileSource
from .memory_source import MemorySource

__all__ = ["ArchiveSource", "FileSource", "MemorySource", "make_source"]

# HttpSource is imported lazily by make_source().
