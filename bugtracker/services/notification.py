"""
Bug Tracker
Notification Service.

Sends the two lifecycle notifications:
    - assignment:     to the developer a bug was just assigned to
    - status change:  to the bug's reporter when its status moves

Layers:
    - Notifier:               transport capability; may raise DispatchError
    - EmailNotifier:          SMTP transport with HTML templates.  When
                              MAIL_SERVER is not configured, messages are
                              logged but not sent (dev/test mode).
    - NotificationDispatcher: best-effort wrapper the lifecycle engine calls.
                              Runs each send on a background executor, logs
                              failures, never raises into the caller.

Messages handed to the worker are frozen snapshots (BugMessage, Recipient)
so the worker thread never touches the database session.
"""

from __future__ import annotations

import html
import logging
import smtplib
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from bugtracker.core.exceptions import DispatchError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Message snapshots
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BugMessage:
    id: int
    title: str
    priority: str
    severity: str
    status: str
    description: str = ""

    @classmethod
    def from_bug(cls, bug) -> BugMessage:
        return cls(
            id=bug.id,
            title=bug.title,
            priority=bug.priority,
            severity=bug.severity,
            status=bug.status,
            description=bug.description or "",
        )


@dataclass(frozen=True)
class Recipient:
    id: int
    name: str
    email: str

    @classmethod
    def from_user(cls, user) -> Recipient:
        return cls(id=user.id, name=user.name, email=user.email)


# ═══════════════════════════════════════════════════════════════════════════
#  Transport capability
# ═══════════════════════════════════════════════════════════════════════════

class Notifier(ABC):
    """Delivers a single notification.  Raises DispatchError on failure."""

    @abstractmethod
    def notify_assignment(self, bug: BugMessage, user: Recipient) -> bool:
        ...

    @abstractmethod
    def notify_status_change(self, bug: BugMessage, user: Recipient) -> bool:
        ...


# ═══════════════════════════════════════════════════════════════════════════
#  Email Templates
# ═══════════════════════════════════════════════════════════════════════════

_TEMPLATES: dict[str, dict[str, str]] = {
    "bug_assigned": {
        "subject": "Bug Assigned: {title}",
        "html": """
        <h2>New Bug Assigned to You</h2>
        <p><strong>Bug ID:</strong> {id}</p>
        <p><strong>Title:</strong> {title}</p>
        <p><strong>Priority:</strong> {priority}</p>
        <p><strong>Severity:</strong> {severity}</p>
        <p><strong>Description:</strong></p>
        <p>{description}</p>
        <p>Please review and update the status accordingly.</p>
        """,
    },
    "bug_status_changed": {
        "subject": "Bug Status Updated: {title}",
        "html": """
        <h2>Your Bug Has Been Updated</h2>
        <p><strong>Bug ID:</strong> {id}</p>
        <p><strong>Title:</strong> {title}</p>
        <p><strong>New Status:</strong> {status}</p>
        <p>Thank you for reporting this issue.</p>
        """,
    },
}


class _SafeDict(dict):
    """Dict that returns {key} for missing keys instead of raising."""

    def __missing__(self, key):
        return f"{{{key}}}"


def render_template(template_name: str, bug: BugMessage) -> tuple[str, str]:
    """Return ``(subject, html_body)`` for *bug*.  Body values are HTML-escaped."""
    template = _TEMPLATES[template_name]
    fields = {
        "id": bug.id,
        "title": bug.title,
        "priority": bug.priority,
        "severity": bug.severity,
        "status": bug.status,
        "description": bug.description,
    }
    subject = template["subject"].format_map(_SafeDict(fields))
    escaped = {k: html.escape(str(v)) for k, v in fields.items()}
    body = template["html"].format_map(_SafeDict(escaped))
    return subject, body


@dataclass(frozen=True)
class MailSettings:
    server: str | None = None
    port: int = 587
    use_tls: bool = True
    username: str | None = None
    password: str | None = None
    sender: str = "noreply@bugtracker.local"
    timeout: int = 30

    @classmethod
    def from_config(cls, cfg) -> MailSettings:
        return cls(
            server=cfg.get("MAIL_SERVER"),
            port=cfg.get("MAIL_PORT", 587),
            use_tls=cfg.get("MAIL_USE_TLS", True),
            username=cfg.get("MAIL_USERNAME"),
            password=cfg.get("MAIL_PASSWORD"),
            sender=cfg.get("MAIL_DEFAULT_SENDER", "noreply@bugtracker.local"),
        )


class EmailNotifier(Notifier):
    """
    SMTP notifier.

    In development/test mode (no MAIL_SERVER configured), emails are
    logged but not actually sent.
    """

    def __init__(self, settings: MailSettings):
        self.settings = settings

    def is_configured(self) -> bool:
        return bool(self.settings.server)

    def notify_assignment(self, bug, user):
        subject, body = render_template("bug_assigned", bug)
        return self.send(kind="assignment", to_email=user.email, to_name=user.name,
                         subject=subject, html_body=body)

    def notify_status_change(self, bug, user):
        subject, body = render_template("bug_status_changed", bug)
        return self.send(kind="status_change", to_email=user.email, to_name=user.name,
                         subject=subject, html_body=body)

    def send(self, *, kind: str, to_email: str, to_name: str | None,
             subject: str, html_body: str) -> bool:
        if not self.is_configured():
            logger.info("Email (dev mode): to=%s subject='%s'", to_email, subject)
            return True
        try:
            self._send_smtp(to_email=to_email, to_name=to_name,
                            subject=subject, html_body=html_body)
        except (smtplib.SMTPException, OSError) as exc:
            raise DispatchError(kind, to_email, str(exc)) from exc
        logger.info("Email sent: to=%s subject='%s'", to_email, subject)
        return True

    def _send_smtp(self, *, to_email: str, to_name: str | None,
                   subject: str, html_body: str) -> None:
        cfg = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = cfg.sender
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(cfg.server, cfg.port, timeout=cfg.timeout) as smtp:
            if cfg.use_tls:
                smtp.starttls()
            if cfg.username and cfg.password:
                smtp.login(cfg.username, cfg.password)
            smtp.send_message(msg)


# ═══════════════════════════════════════════════════════════════════════════
#  Best-effort dispatcher
# ═══════════════════════════════════════════════════════════════════════════

class NotificationDispatcher:
    """
    Fire-and-forget front for a Notifier.

    Each call returns a Future resolving to True (delivered) or False
    (failed).  Failures are logged and counted in ``stats``; nothing is
    retried and nothing is raised into the caller.

    Args:
        notifier: transport doing the actual send.
        run_async: run sends on a worker thread.  When False the send runs
                   inline (tests) with the same failure handling.
        max_workers: worker threads for async mode.
    """

    def __init__(self, notifier: Notifier, *, run_async: bool = True, max_workers: int = 2):
        self.notifier = notifier
        self.run_async = run_async
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="bug-notify")
            if run_async else None
        )
        self._lock = threading.Lock()
        self.stats = {"sent": 0, "failed": 0}

    def notify_assignment(self, bug: BugMessage, user: Recipient) -> Future:
        return self._submit("assignment", self.notifier.notify_assignment, bug, user)

    def notify_status_change(self, bug: BugMessage, user: Recipient) -> Future:
        return self._submit("status_change", self.notifier.notify_status_change, bug, user)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    # ── Internal ──────────────────────────────────────────────────────────

    def _submit(self, kind, send, bug, user) -> Future:
        if self._executor is not None:
            try:
                return self._executor.submit(self._deliver, kind, send, bug, user)
            except RuntimeError:
                # executor already shut down
                logger.error("Notification %s for bug#%s dropped: dispatcher is shut down",
                             kind, bug.id)
                self._count(False)
                return _completed(False)
        return _completed(self._deliver(kind, send, bug, user))

    def _deliver(self, kind, send, bug, user) -> bool:
        try:
            ok = bool(send(bug, user))
        except DispatchError as exc:
            logger.warning("Notification failed: bug#%s %s", bug.id, exc)
            ok = False
        except Exception:
            logger.exception("Notification %s for bug#%s to user#%s raised", kind, bug.id, user.id)
            ok = False
        else:
            if ok:
                logger.debug("Notification %s for bug#%s sent to user#%s", kind, bug.id, user.id)
            else:
                logger.warning("Notification %s for bug#%s to user#%s was not delivered",
                               kind, bug.id, user.id)
        self._count(ok)
        return ok

    def _count(self, ok: bool) -> None:
        with self._lock:
            self.stats["sent" if ok else "failed"] += 1


def _completed(result: bool) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future
