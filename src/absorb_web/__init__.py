"""Flask site for the archive: search page, profile pages and the static data files."""
from .web import app, configure

__all__ = ["app", "configure"]
