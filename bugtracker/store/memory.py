"""In-memory store for deterministic tests.

Holds transient model instances in dicts and hands out sequential ids.
There is no isolation: staged changes are visible immediately, and
``rollback()`` only counts calls.
"""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import count

from bugtracker.store.base import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, BugFilters, BugStore

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryStore(BugStore):
    def __init__(self) -> None:
        self.bugs = {}
        self.users = {}
        self.comments = {}
        self.history = {}
        self.commits = 0
        self.rollbacks = 0
        self._ids = {kind: count(1) for kind in ("bug", "user", "comment", "history")}

    def _next_id(self, kind: str) -> int:
        return next(self._ids[kind])

    # ── Bugs ─────────────────────────────────────────────────────────────

    def get_bug(self, bug_id):
        return self.bugs.get(bug_id)

    def list_bugs(self, filters: BugFilters, page=DEFAULT_PAGE, per_page=DEFAULT_PAGE_SIZE):
        matching = [b for b in self.bugs.values() if filters.matches(b)]
        matching.sort(key=lambda b: (b.created_at or _EPOCH, b.id), reverse=True)
        start = (page - 1) * per_page
        return matching[start:start + per_page], len(matching)

    def all_bugs(self):
        return sorted(self.bugs.values(), key=lambda b: b.id)

    def add_bug(self, bug):
        bug.id = self._next_id("bug")
        self.bugs[bug.id] = bug
        return bug

    def save_bug(self, bug):
        self.bugs[bug.id] = bug
        return bug

    def delete_bug(self, bug):
        self.bugs.pop(bug.id, None)
        self.comments = {k: c for k, c in self.comments.items() if c.bug_id != bug.id}
        self.history = {k: h for k, h in self.history.items() if h.bug_id != bug.id}

    # ── History / comments ───────────────────────────────────────────────

    def add_history(self, entries):
        added = []
        for entry in entries:
            entry.id = self._next_id("history")
            self.history[entry.id] = entry
            added.append(entry)
        return added

    def list_history(self, bug_id):
        rows = [h for h in self.history.values() if h.bug_id == bug_id]
        return sorted(rows, key=lambda h: (h.changed_at or _EPOCH, h.id), reverse=True)

    def add_comment(self, comment):
        comment.id = self._next_id("comment")
        self.comments[comment.id] = comment
        return comment

    def list_comments(self, bug_id):
        rows = [c for c in self.comments.values() if c.bug_id == bug_id]
        return sorted(rows, key=lambda c: (c.created_at or _EPOCH, c.id))

    # ── Users ────────────────────────────────────────────────────────────

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_user_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def add_user(self, user):
        user.id = self._next_id("user")
        self.users[user.id] = user
        return user

    def list_users(self):
        return sorted(self.users.values(), key=lambda u: u.id)

    def list_developers(self):
        return [u for u in self.list_users() if u.role == "developer"]

    # ── Unit of work ─────────────────────────────────────────────────────

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1
