"""Bug store implementations."""

from bugtracker.store.base import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, BugFilters, BugStore
from bugtracker.store.memory import InMemoryStore
from bugtracker.store.sqlalchemy_store import SQLAlchemyStore

__all__ = [
    "BugFilters",
    "BugStore",
    "DEFAULT_PAGE",
    "DEFAULT_PAGE_SIZE",
    "InMemoryStore",
    "SQLAlchemyStore",
]
