"""SQLAlchemy-backed store.

Transaction policy: mutating methods use flush() for id generation; the
lifecycle engine decides when to commit().
"""

import logging

from bugtracker.models.bug import Bug, BugComment, BugHistory
from bugtracker.models.user import User
from bugtracker.store.base import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, BugFilters, BugStore

logger = logging.getLogger(__name__)


class SQLAlchemyStore(BugStore):
    """Store over a SQLAlchemy session (normally ``db.session``)."""

    def __init__(self, session):
        self.session = session

    # ── Bugs ─────────────────────────────────────────────────────────────

    def get_bug(self, bug_id):
        return self.session.get(Bug, bug_id)

    def list_bugs(self, filters: BugFilters, page=DEFAULT_PAGE, per_page=DEFAULT_PAGE_SIZE):
        q = self.session.query(Bug)
        if filters.status is not None:
            q = q.filter(Bug.status == filters.status)
        if filters.priority is not None:
            q = q.filter(Bug.priority == filters.priority)
        if filters.assigned_to is not None:
            q = q.filter(Bug.assigned_to == filters.assigned_to)
        total = q.count()
        items = (
            q.order_by(Bug.created_at.desc(), Bug.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return items, total

    def all_bugs(self):
        return self.session.query(Bug).order_by(Bug.id).all()

    def add_bug(self, bug):
        self.session.add(bug)
        self.session.flush()
        return bug

    def save_bug(self, bug):
        self.session.flush()
        return bug

    def delete_bug(self, bug):
        # ORM cascade removes comments and history rows
        self.session.delete(bug)
        self.session.flush()

    # ── History / comments ───────────────────────────────────────────────

    def add_history(self, entries):
        entries = list(entries)
        self.session.add_all(entries)
        self.session.flush()
        return entries

    def list_history(self, bug_id):
        return (
            self.session.query(BugHistory)
            .filter(BugHistory.bug_id == bug_id)
            .order_by(BugHistory.changed_at.desc(), BugHistory.id.desc())
            .all()
        )

    def add_comment(self, comment):
        self.session.add(comment)
        self.session.flush()
        return comment

    def list_comments(self, bug_id):
        return (
            self.session.query(BugComment)
            .filter(BugComment.bug_id == bug_id)
            .order_by(BugComment.created_at, BugComment.id)
            .all()
        )

    # ── Users ────────────────────────────────────────────────────────────

    def get_user(self, user_id):
        return self.session.get(User, user_id)

    def get_user_by_email(self, email):
        return self.session.query(User).filter(User.email == email).first()

    def add_user(self, user):
        self.session.add(user)
        self.session.flush()
        return user

    def list_users(self):
        return self.session.query(User).order_by(User.id).all()

    def list_developers(self):
        return self.session.query(User).filter(User.role == "developer").order_by(User.id).all()

    # ── Unit of work ─────────────────────────────────────────────────────

    def commit(self):
        self.session.commit()

    def rollback(self):
        logger.debug("Rolling back bug store session")
        self.session.rollback()
