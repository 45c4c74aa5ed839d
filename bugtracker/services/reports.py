"""
Bug Tracker
Report aggregator — read-only summaries of the bug set.

Every report is recomputed from the store on each call; nothing is cached,
so results always reflect the latest committed mutation.  Grouping is done
in Python over the current rows, which keeps date bucketing and hour
arithmetic identical on SQLite and PostgreSQL.

Reports:
    - by_priority:            counts per priority, fixed critical→low order
    - per_day:                bugs created per UTC day in a trailing window
    - developer_performance:  assignment / resolution metrics per developer
    - sla_violations:         open bugs past their priority's SLA threshold
    - status_summary:         counts per status with priority breakdown
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone

from bugtracker.models.bug import (
    PRIORITY_RANK,
    SLA_ACTIVE_STATUSES,
    SLA_THRESHOLD_HOURS,
    STATUS_RANK,
)
from bugtracker.utils.helpers import as_utc, utcnow, whole_hours

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
MAX_WINDOW_DAYS = 3650


def _count_where(bugs, attr, value):
    return sum(1 for b in bugs if getattr(b, attr) == value)


class BugReports:
    """
    Args:
        store: BugStore implementation.
        clock: zero-argument callable returning an aware UTC datetime.
    """

    def __init__(self, store, *, clock=utcnow):
        self.store = store
        self.clock = clock

    # ── By priority ──────────────────────────────────────────────────────

    def by_priority(self) -> list[dict]:
        groups = defaultdict(list)
        for bug in self.store.all_bugs():
            groups[bug.priority].append(bug)

        rows = [
            {
                "priority": priority,
                "count": len(bugs),
                "open_count": _count_where(bugs, "status", "open"),
                "in_progress_count": _count_where(bugs, "status", "in_progress"),
                "resolved_count": _count_where(bugs, "status", "resolved"),
            }
            for priority, bugs in groups.items()
        ]
        rows.sort(key=lambda r: PRIORITY_RANK.get(r["priority"], len(PRIORITY_RANK) + 1))
        return rows

    # ── Per day ──────────────────────────────────────────────────────────

    def per_day(self, days=DEFAULT_WINDOW_DAYS) -> list[dict]:
        """Bugs created in the last *days* days (inclusive), newest date first."""
        if days is None:
            days = DEFAULT_WINDOW_DAYS
        try:
            since = self.clock() - timedelta(days=days)
        except OverflowError:
            since = datetime.min.replace(tzinfo=timezone.utc)

        groups = defaultdict(list)
        for bug in self.store.all_bugs():
            created = as_utc(bug.created_at)
            if created is None or created < since:
                continue
            groups[created.date()].append(bug)

        return [
            {
                "date": day.isoformat(),
                "count": len(bugs),
                "critical_count": _count_where(bugs, "priority", "critical"),
                "high_count": _count_where(bugs, "priority", "high"),
            }
            for day, bugs in sorted(groups.items(), reverse=True)
        ]

    # ── Developer performance ────────────────────────────────────────────

    def developer_performance(self) -> list[dict]:
        """One row per developer, including developers with nothing assigned.

        ``avg_resolution_time_hours`` averages whole created→resolved hours
        over bugs that have a resolution stamp; ``None`` when there are none.
        """
        assigned = defaultdict(list)
        for bug in self.store.all_bugs():
            if bug.assigned_to is not None:
                assigned[bug.assigned_to].append(bug)

        rows = []
        for dev in self.store.list_developers():
            bugs = assigned.get(dev.id, [])
            durations = [
                whole_hours(b.created_at, b.resolved_at)
                for b in bugs
                if b.resolved_at is not None and b.created_at is not None
            ]
            rows.append({
                "id": dev.id,
                "name": dev.name,
                "total_assigned": len(bugs),
                "resolved_count": _count_where(bugs, "status", "resolved"),
                "in_progress_count": _count_where(bugs, "status", "in_progress"),
                "open_count": _count_where(bugs, "status", "open"),
                "avg_resolution_time_hours": (
                    round(sum(durations) / len(durations), 2) if durations else None
                ),
            })
        # stable sort: ties keep developer id order
        rows.sort(key=lambda r: r["resolved_count"], reverse=True)
        return rows

    # ── SLA violations ───────────────────────────────────────────────────

    def sla_violations(self) -> list[dict]:
        """Open / in-progress bugs older than their priority's threshold, most overdue first."""
        now = self.clock()
        breaches = []
        for bug in self.store.all_bugs():
            if bug.status not in SLA_ACTIVE_STATUSES:
                continue
            threshold = SLA_THRESHOLD_HOURS.get(bug.priority)
            if threshold is None or bug.created_at is None:
                continue
            hours_open = whole_hours(bug.created_at, now)
            if hours_open > threshold:
                breaches.append((bug, hours_open))

        breaches.sort(key=lambda pair: (-pair[1], pair[0].id))
        names = {}
        rows = []
        for bug, hours_open in breaches:
            row = bug.to_dict()
            row["reporter_name"] = self._user_name(bug.reporter_id, names)
            row["assigned_to_name"] = self._user_name(bug.assigned_to, names)
            row["hours_open"] = hours_open
            rows.append(row)
        if rows:
            logger.info("SLA report: %d bug(s) in breach", len(rows))
        return rows

    # ── Status summary ───────────────────────────────────────────────────

    def status_summary(self) -> list[dict]:
        groups = defaultdict(list)
        for bug in self.store.all_bugs():
            groups[bug.status].append(bug)

        rows = [
            {
                "status": status,
                "count": len(bugs),
                "critical_count": _count_where(bugs, "priority", "critical"),
                "high_count": _count_where(bugs, "priority", "high"),
                "medium_count": _count_where(bugs, "priority", "medium"),
                "low_count": _count_where(bugs, "priority", "low"),
            }
            for status, bugs in groups.items()
        ]
        rows.sort(key=lambda r: STATUS_RANK.get(r["status"], len(STATUS_RANK) + 1))
        return rows

    # ── Internal ──────────────────────────────────────────────────────────

    def _user_name(self, user_id, cache):
        if user_id is None:
            return None
        if user_id not in cache:
            user = self.store.get_user(user_id)
            cache[user_id] = user.name if user else None
        return cache[user_id]
