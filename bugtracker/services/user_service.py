"""
User Service — registration, authentication, lookup, demo seed data.
"""

import logging

from email_validator import EmailNotValidError, validate_email

from bugtracker.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from bugtracker.models.bug import Bug, BugComment
from bugtracker.models.user import USER_ROLES, User
from bugtracker.utils.crypto import hash_password, verify_password
from bugtracker.utils.helpers import utcnow

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "reporter"


def normalize_email(email: str) -> str:
    """Validate an address and return its normalised form."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", {"email": str(e)}) from e


# ═══════════════════════════════════════════════════════════════
# Registration / login
# ═══════════════════════════════════════════════════════════════
def register_user(
    store,
    name: str,
    email: str,
    password: str,
    role: str = None,
    *,
    bcrypt_rounds: int = 12,
) -> User:
    """Create a new user. E-mail addresses are unique across the system."""
    email = normalize_email(email)
    role = role or DEFAULT_ROLE
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")

    if store.get_user_by_email(email) is not None:
        raise ConflictError("User", "email", email)

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        role=role,
        created_at=utcnow(),
    )
    try:
        store.add_user(user)
        store.commit()
    except Exception:
        store.rollback()
        raise
    logger.info("User registered: user#%s (%s)", user.id, role)
    return user


def authenticate_user(store, email: str, password: str) -> User:
    """Return the user owning *email* if *password* matches.

    Unknown address and wrong password raise the same error so callers
    cannot tell which accounts exist.
    """
    try:
        email = normalize_email(email)
    except ValidationError:
        raise AuthenticationError() from None

    user = store.get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt for %s", email)
        raise AuthenticationError()
    return user


# ═══════════════════════════════════════════════════════════════
# Lookup
# ═══════════════════════════════════════════════════════════════
def get_user(store, user_id: int) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def list_users(store) -> list[User]:
    return store.list_users()


# ═══════════════════════════════════════════════════════════════
# Demo seed
# ═══════════════════════════════════════════════════════════════
DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("Admin User", "admin@bugtracker.com", "admin"),
    ("John Developer", "john@bugtracker.com", "developer"),
    ("Jane Developer", "jane@bugtracker.com", "developer"),
    ("Bob Reporter", "bob@bugtracker.com", "reporter"),
]

# (title, description, priority, severity, status, reporter email, assignee email)
DEMO_BUGS = [
    ("Login page not loading",
     "The login page shows a blank screen on Safari browsers.",
     "critical", "critical", "open", "bob@bugtracker.com", "john@bugtracker.com"),
    ("Dashboard charts broken",
     "Charts on the dashboard fail to render when the data set is empty.",
     "high", "major", "in_progress", "bob@bugtracker.com", "jane@bugtracker.com"),
    ("Typo in footer",
     "The footer says 'Copyrigth' instead of 'Copyright'.",
     "low", "minor", "resolved", "admin@bugtracker.com", "john@bugtracker.com"),
    ("Export to CSV times out",
     "Exporting more than 10,000 rows to CSV times out after 30 seconds.",
     "medium", "major", "open", "bob@bugtracker.com", None),
    ("Password reset email not sent",
     "Users do not receive the password reset email after submitting the form.",
     "high", "critical", "open", "admin@bugtracker.com", "jane@bugtracker.com"),
]

# (bug index, author email, body)
DEMO_COMMENTS = [
    (0, "john@bugtracker.com", "I can reproduce this on Safari 17. Looking into it."),
    (1, "jane@bugtracker.com", "The fix is in progress, should be ready tomorrow."),
    (2, "john@bugtracker.com", "Fixed the typo and deployed."),
]


def seed_demo_data(store, *, bcrypt_rounds: int = 12) -> dict:
    """Insert demo users, bugs and comments. Existing users are reused.

    Returns counts of the rows created.
    """
    users = {}
    created_users = 0
    for name, email, role in DEMO_USERS:
        user = store.get_user_by_email(email)
        if user is None:
            user = User(
                name=name,
                email=email,
                password_hash=hash_password(DEMO_PASSWORD, rounds=bcrypt_rounds),
                role=role,
                created_at=utcnow(),
            )
            store.add_user(user)
            created_users += 1
        users[email] = user

    bugs = []
    for title, description, priority, severity, status, reporter, assignee in DEMO_BUGS:
        now = utcnow()
        bug = Bug(
            title=title,
            description=description,
            priority=priority,
            severity=severity,
            status=status,
            reporter_id=users[reporter].id,
            assigned_to=users[assignee].id if assignee else None,
            created_at=now,
            updated_at=now,
            resolved_at=now if status == "resolved" else None,
        )
        store.add_bug(bug)
        bugs.append(bug)

    for index, author, body in DEMO_COMMENTS:
        store.add_comment(BugComment(
            bug_id=bugs[index].id,
            user_id=users[author].id,
            comment=body,
            created_at=utcnow(),
        ))

    try:
        store.commit()
    except Exception:
        store.rollback()
        raise
    counts = {"users": created_users, "bugs": len(bugs), "comments": len(DEMO_COMMENTS)}
    logger.info("Demo data seeded: %s", counts)
    return counts
