"""Store capability used by the bug lifecycle engine and the report aggregator.

Two implementations:
    - SQLAlchemyStore (bugtracker.store.sqlalchemy_store): Flask-SQLAlchemy session
    - InMemoryStore   (bugtracker.store.memory):           dict-backed, for tests

All filters are exact-match equality.  Pagination is 1-based.
Mutating methods stage changes; ``commit()`` makes them durable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from bugtracker.models.bug import Bug, BugComment, BugHistory
from bugtracker.models.user import User

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class BugFilters:
    status: str | None = None
    priority: str | None = None
    assigned_to: int | None = None

    def matches(self, bug: Bug) -> bool:
        if self.status is not None and bug.status != self.status:
            return False
        if self.priority is not None and bug.priority != self.priority:
            return False
        if self.assigned_to is not None and bug.assigned_to != self.assigned_to:
            return False
        return True


class BugStore(ABC):
    """Persistence operations the core depends on."""

    # ── Bugs ─────────────────────────────────────────────────────────────

    @abstractmethod
    def get_bug(self, bug_id: int) -> Bug | None:
        ...

    @abstractmethod
    def list_bugs(
        self,
        filters: BugFilters,
        page: int = DEFAULT_PAGE,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Bug], int]:
        """Return one page of matching bugs (newest first) and the total match count."""

    @abstractmethod
    def all_bugs(self) -> list[Bug]:
        """Every bug currently stored. Used by the report aggregator."""

    @abstractmethod
    def add_bug(self, bug: Bug) -> Bug:
        """Stage a new bug and assign its id."""

    @abstractmethod
    def save_bug(self, bug: Bug) -> Bug:
        """Stage field changes made on *bug*."""

    @abstractmethod
    def delete_bug(self, bug: Bug) -> None:
        """Remove *bug* together with its comments and history."""

    # ── History / comments ───────────────────────────────────────────────

    @abstractmethod
    def add_history(self, entries: Iterable[BugHistory]) -> list[BugHistory]:
        ...

    @abstractmethod
    def list_history(self, bug_id: int) -> list[BugHistory]:
        """History entries of a bug, newest first."""

    @abstractmethod
    def add_comment(self, comment: BugComment) -> BugComment:
        ...

    @abstractmethod
    def list_comments(self, bug_id: int) -> list[BugComment]:
        """Comments of a bug, oldest first."""

    # ── Users ────────────────────────────────────────────────────────────

    @abstractmethod
    def get_user(self, user_id: int) -> User | None:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None:
        ...

    @abstractmethod
    def add_user(self, user: User) -> User:
        ...

    @abstractmethod
    def list_users(self) -> list[User]:
        ...

    @abstractmethod
    def list_developers(self) -> list[User]:
        """All users with role ``developer``, ordered by id."""

    # ── Unit of work ─────────────────────────────────────────────────────

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...
