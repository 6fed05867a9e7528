"""
Note queries, scoped to the logged-in owner.

The owner always comes from the session identity. Nothing here accepts an
owner id taken from the request body, query string or path.
"""
import logging

from api.errors import InvalidInput, NotOwner
from api.sessions import Identity
from notes_database.models import Note

_logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def create_note(db, owner: Identity, title: str, content: str = "") -> Note:
    """Create a note owned by owner. Blank titles are rejected."""
    if not title or not title.strip():
        raise InvalidInput("Title is required.")
    note_obj = Note(
        title=title,
        content=content or "",
        user_id=owner.user_id,
    )
    db.add(note_obj)
    db.commit()
    db.refresh(note_obj)
    return note_obj


# PUBLIC_INTERFACE
def list_notes(db, owner: Identity):
    """All notes belonging to owner, newest first."""
    return (
        db.query(Note)
        .filter(Note.user_id == owner.user_id)
        .order_by(Note.created_at.desc(), Note.id.desc())
        .all()
    )


# PUBLIC_INTERFACE
def search_notes(db, owner: Identity, title: str):
    """Owner's notes whose title equals title exactly."""
    if not title:
        return []
    return (
        db.query(Note)
        .filter(Note.user_id == owner.user_id, Note.title == title)
        .order_by(Note.created_at.desc(), Note.id.desc())
        .all()
    )


# PUBLIC_INTERFACE
def get_note(db, note_id: int):
    """
    Fetch one note by id WITHOUT an ownership check.

    Anyone holding the id can read the note (shareable link). Do not use
    this for anything that lists, searches or writes notes.
    """
    return db.query(Note).filter(Note.id == note_id).first()


def ensure_owner(owner: Identity, claimed_user_id) -> None:
    """Reject a request body that names a different owner than the session."""
    if claimed_user_id in (None, ""):
        return
    if str(claimed_user_id) != str(owner.user_id):
        _logger.warning(
            "User id=%s tried to write a note as user id=%s", owner.user_id, claimed_user_id
        )
        raise NotOwner(claimed_user_id)
