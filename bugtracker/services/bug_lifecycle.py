"""Bug lifecycle service — every mutation of a bug goes through here.

Transaction policy: each public mutating method is one unit of work and
commits exactly once.  History entries are committed together with the
field changes they describe; notifications are handed to the dispatcher
only after that commit, so the audit trail exists even when a send fails.

Operations:
- create:       new bug, status open, default priority/severity
- update:       sparse patch, field-level history, assignment and
                status-change notifications
- delete:       bug plus its comments and history
- add_comment:  append-only comment joined with the author's name
- get / get_detail / list_bugs / history: read paths
"""
import logging
import math

from bugtracker.core.exceptions import InvalidStateError, NotFoundError
from bugtracker.models.bug import (
    DEFAULT_PRIORITY,
    DEFAULT_SEVERITY,
    INITIAL_STATUS,
    Bug,
    BugComment,
)
from bugtracker.services.audit import record_changes
from bugtracker.services.bug_patch import BugPatch, diff_snapshot, snapshot_bug
from bugtracker.services.notification import BugMessage, Recipient
from bugtracker.store.base import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, BugFilters
from bugtracker.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class BugLifecycle:
    """
    Args:
        store: BugStore implementation.
        dispatcher: NotificationDispatcher (anything with notify_assignment /
                    notify_status_change taking BugMessage, Recipient).
        clock: zero-argument callable returning an aware UTC datetime.
    """

    def __init__(self, store, dispatcher, *, clock=utcnow):
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock

    # ═════════════════════════════════════════════════════════════════════
    # READ
    # ═════════════════════════════════════════════════════════════════════

    def get(self, bug_id) -> Bug:
        bug = self.store.get_bug(bug_id)
        if bug is None:
            raise NotFoundError("Bug", bug_id)
        return bug

    def get_detail(self, bug_id) -> dict:
        """Bug with reporter/assignee names and e-mails plus its comments, oldest first."""
        bug = self.get(bug_id)
        reporter = self.store.get_user(bug.reporter_id)
        assignee = self.store.get_user(bug.assigned_to) if bug.assigned_to is not None else None

        detail = bug.to_dict()
        detail["reporter_name"] = reporter.name if reporter else None
        detail["reporter_email"] = reporter.email if reporter else None
        detail["assigned_to_name"] = assignee.name if assignee else None
        detail["assigned_to_email"] = assignee.email if assignee else None
        names = {}
        detail["comments"] = [
            self._comment_dict(c, names) for c in self.store.list_comments(bug.id)
        ]
        return detail

    def list_bugs(self, filters=None, page=DEFAULT_PAGE, per_page=DEFAULT_PAGE_SIZE) -> dict:
        """One page of bugs, newest first, with pagination metadata."""
        filters = filters or BugFilters()
        bugs, total = self.store.list_bugs(filters, page=page, per_page=per_page)
        names = {}
        items = []
        for bug in bugs:
            d = bug.to_dict()
            d["reporter_name"] = self._user_name(bug.reporter_id, names)
            d["assigned_to_name"] = self._user_name(bug.assigned_to, names)
            items.append(d)
        return {
            "bugs": items,
            "pagination": {
                "page": page,
                "limit": per_page,
                "total": total,
                "pages": math.ceil(total / per_page) if per_page else 0,
            },
        }

    def history(self, bug_id) -> list:
        """Audit trail of a bug, newest first."""
        bug = self.get(bug_id)
        return self.store.list_history(bug.id)

    # ═════════════════════════════════════════════════════════════════════
    # MUTATIONS
    # ═════════════════════════════════════════════════════════════════════

    def create(self, reporter_id, data) -> Bug:
        """Create a bug reported by *reporter_id*.

        Any status or assignee in *data* is ignored: new bugs are always
        open and unassigned.  No notification is sent.
        """
        if self.store.get_user(reporter_id) is None:
            raise NotFoundError("User", reporter_id)

        now = self.clock()
        bug = Bug(
            title=data["title"],
            description=data.get("description") or "",
            priority=data.get("priority") or DEFAULT_PRIORITY,
            severity=data.get("severity") or DEFAULT_SEVERITY,
            status=INITIAL_STATUS,
            reporter_id=reporter_id,
            assigned_to=None,
            created_at=now,
            updated_at=now,
            resolved_at=None,
        )
        try:
            self.store.add_bug(bug)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("Bug #%s created by user#%s [%s/%s]",
                    bug.id, reporter_id, bug.priority, bug.severity,
                    extra={"bug_id": bug.id, "user_id": reporter_id})
        return bug

    def update(self, bug_id, acting_user_id, patch: BugPatch) -> Bug:
        """Apply a sparse patch to a bug.

        Raises:
            NotFoundError: bug, or the requested assignee, does not exist.
            InvalidStateError: the patch carries no recognised field.
        """
        bug = self.get(bug_id)
        if patch.is_empty():
            raise InvalidStateError("No updates provided")

        requested = patch.present()
        new_assignee = None
        if requested.get("assigned_to") is not None:
            new_assignee = self.store.get_user(requested["assigned_to"])
            if new_assignee is None:
                raise NotFoundError("User", requested["assigned_to"])

        # ── Diff against the pre-update snapshot ──
        before = snapshot_bug(bug)
        changes = diff_snapshot(before, patch)
        now = self.clock()

        try:
            for change in changes:
                setattr(bug, change.field, change.new)
            # resolved_at is stamped once and never refreshed
            if requested.get("status") == "resolved" and before["resolved_at"] is None:
                bug.resolved_at = now
            if changes:
                bug.updated_at = now
            self.store.save_bug(bug)
            record_changes(
                self.store,
                bug_id=bug.id,
                user_id=acting_user_id,
                changes=changes,
                changed_at=now,
            )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        if changes:
            logger.info("Bug #%s updated by user#%s: %s", bug_id, acting_user_id,
                        ", ".join(c.field for c in changes),
                        extra={"bug_id": bug_id, "user_id": acting_user_id})
        else:
            logger.debug("Bug #%s update by user#%s changed nothing", bug_id, acting_user_id,
                         extra={"bug_id": bug_id, "user_id": acting_user_id})

        updated = self.get(bug_id)
        self._notify(updated, before, {c.field for c in changes}, new_assignee)
        return updated

    def delete(self, bug_id) -> None:
        bug = self.get(bug_id)
        try:
            self.store.delete_bug(bug)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("Bug #%s deleted", bug_id, extra={"bug_id": bug_id})

    def add_comment(self, bug_id, acting_user_id, body) -> dict:
        """Append a comment; returns it joined with the author's name as ``user_name``."""
        bug = self.get(bug_id)
        author = self.store.get_user(acting_user_id)
        if author is None:
            raise NotFoundError("User", acting_user_id)

        comment = BugComment(
            bug_id=bug.id,
            user_id=author.id,
            comment=body,
            created_at=self.clock(),
        )
        try:
            self.store.add_comment(comment)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("Bug #%s commented by user#%s", bug.id, author.id,
                    extra={"bug_id": bug.id, "user_id": author.id})
        d = comment.to_dict()
        d["user_name"] = author.name
        return d

    # ── Internal ──────────────────────────────────────────────────────────

    def _notify(self, bug, before, changed_fields, new_assignee):
        """Hand qualifying notifications to the dispatcher.

        The update is already committed here; nothing below may fail it.
        """
        if not changed_fields & {"assigned_to", "status"}:
            return
        try:
            message = BugMessage.from_bug(bug)
            if "assigned_to" in changed_fields and bug.assigned_to is not None:
                self.dispatcher.notify_assignment(message, Recipient.from_user(new_assignee))
            if "status" in changed_fields:
                reporter = self.store.get_user(before["reporter_id"])
                if reporter is None:
                    logger.warning("Bug #%s: reporter user#%s missing, status notification skipped",
                                   bug.id, before["reporter_id"])
                else:
                    self.dispatcher.notify_status_change(message, Recipient.from_user(reporter))
        except Exception:
            logger.exception("Bug #%s: could not hand notifications to dispatcher", bug.id)

    def _comment_dict(self, comment, names):
        d = comment.to_dict()
        d["user_name"] = self._user_name(comment.user_id, names)
        return d

    def _user_name(self, user_id, cache):
        if user_id is None:
            return None
        if user_id not in cache:
            user = self.store.get_user(user_id)
            cache[user_id] = user.name if user else None
        return cache[user_id]
