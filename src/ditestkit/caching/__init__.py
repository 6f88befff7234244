"""Caching services registered by the cache extension."""

from .journal import Journal, SQLiteJournal

__all__ = ["Journal", "SQLiteJournal"]
