"""
Server-side session store.

Sessions are rows in the ``sessions`` table keyed by an opaque random id.
The id is the only thing the client ever holds (as an HTTP-only cookie).
Expiry is sliding: every successful resolve pushes the deadline to
now + ttl and persists it.

A session without identity is anonymous and is never written until
something calls ``save`` or ``set_identity``.
"""
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from api import config
from api.errors import SessionInvalid
from notes_database.models import WebSession, utcnow

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Denormalized copy of who is logged in."""
    user_id: int
    username: str


@dataclass
class SessionHandle:
    """
    In-request view of one session.

    Attributes:
        id: Opaque session identifier (cookie value)
        identity: Logged-in user, or None for an anonymous session
        created_at: When the session was first created
        last_access: Last successful resolve or save
        expires_at: Sliding deadline
        persisted: A row for ``id`` exists in the store
        destroyed: The session was deleted during this request
    """
    id: str
    identity: Optional[Identity] = None
    created_at: datetime = field(default_factory=utcnow)
    last_access: datetime = field(default_factory=utcnow)
    expires_at: datetime = field(default_factory=utcnow)
    persisted: bool = False
    destroyed: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None and not self.destroyed

    @property
    def user_id(self) -> Optional[int]:
        return self.identity.user_id if self.is_authenticated else None


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def _ttl(ttl):
    return timedelta(seconds=config.SESSION_TTL_SECONDS if ttl is None else ttl)


def _to_handle(row: WebSession) -> SessionHandle:
    if (row.user_id is None) != (row.username is None):
        raise SessionInvalid("half-populated identity on session row")
    identity = None
    if row.user_id is not None:
        identity = Identity(user_id=row.user_id, username=row.username)
    return SessionHandle(
        id=row.id,
        identity=identity,
        created_at=row.created_at,
        last_access=row.last_access,
        expires_at=row.expires_at,
        persisted=True,
    )


# PUBLIC_INTERFACE
def create_anonymous(ttl: Optional[int] = None) -> SessionHandle:
    """A fresh, unsaved session with no identity."""
    now = utcnow()
    return SessionHandle(
        id=new_session_id(),
        created_at=now,
        last_access=now,
        expires_at=now + _ttl(ttl),
    )


# PUBLIC_INTERFACE
def resolve(db, session_id: Optional[str], ttl: Optional[int] = None) -> Optional[SessionHandle]:
    """
    Load a session and renew its expiry.

    Returns None when the id is empty, unknown, expired or the stored row
    is corrupt. Expired and corrupt rows are deleted.
    """
    if not session_id:
        return None

    try:
        row = db.get(WebSession, session_id)
    except (ValueError, TypeError) as e:
        # column values SQLAlchemy cannot parse (e.g. a bad timestamp)
        db.rollback()
        _logger.warning("Dropping unreadable session row: %s", type(e).__name__)
        db.query(WebSession).filter(WebSession.id == session_id).delete(synchronize_session=False)
        db.commit()
        return None
    if row is None:
        return None

    now = utcnow()
    try:
        if row.expires_at is None or row.expires_at <= now:
            raise SessionInvalid("expired")
        handle = _to_handle(row)
    except SessionInvalid as e:
        _logger.info("Dropping session row: %s", e)
        db.delete(row)
        db.commit()
        return None

    handle.last_access = now
    handle.expires_at = now + _ttl(ttl)
    row.last_access = handle.last_access
    row.expires_at = handle.expires_at
    db.commit()
    return handle


# PUBLIC_INTERFACE
def save(db, handle: SessionHandle, ttl: Optional[int] = None) -> SessionHandle:
    """Durably write the handle (insert or update) and refresh its expiry."""
    now = utcnow()
    handle.last_access = now
    handle.expires_at = now + _ttl(ttl)

    row = db.get(WebSession, handle.id)
    if row is None:
        row = WebSession(id=handle.id, created_at=handle.created_at)
        db.add(row)
    row.user_id = handle.identity.user_id if handle.identity else None
    row.username = handle.identity.username if handle.identity else None
    row.last_access = handle.last_access
    row.expires_at = handle.expires_at
    db.commit()

    handle.persisted = True
    handle.destroyed = False
    return handle


# PUBLIC_INTERFACE
def set_identity(db, handle: SessionHandle, identity: Identity, ttl: Optional[int] = None) -> SessionHandle:
    """
    Promote a session to authenticated and save it before returning.

    The id is rotated so an id handed out before login cannot be reused
    to ride the authenticated session. Expired rows are swept in the same
    transaction so abandoned sessions do not pile up between restarts.
    """
    _delete_expired(db)
    if handle.persisted:
        old = db.get(WebSession, handle.id)
        if old is not None:
            db.delete(old)
    handle.id = new_session_id()
    handle.created_at = utcnow()
    handle.persisted = False
    handle.identity = identity
    return save(db, handle, ttl)


# PUBLIC_INTERFACE
def destroy(db, handle: SessionHandle) -> None:
    """Delete the session; resolving its id afterwards yields None."""
    row = db.get(WebSession, handle.id)
    if row is not None:
        db.delete(row)
        db.commit()
    handle.identity = None
    handle.persisted = False
    handle.destroyed = True


def _delete_expired(db) -> int:
    return (
        db.query(WebSession)
        .filter(WebSession.expires_at <= utcnow())
        .delete(synchronize_session=False)
    )


def purge_expired(db) -> int:
    """Remove every expired session row. Returns the number removed."""
    count = _delete_expired(db)
    db.commit()
    if count:
        _logger.info("Purged %d expired sessions", count)
    return count
