"""QuietLibrary - local full-text search for personal document libraries."""

__version__ = "0.1.0"
