from datetime import timedelta

from sqlalchemy import text

from api import sessions
from api.sessions import Identity
from notes_database.models import WebSession, utcnow

from conftest import insert_unreadable_session

ALICE = Identity(user_id=1, username="alice")


def test_create_anonymous_is_not_persisted(db_session):
    handle = sessions.create_anonymous(ttl=60)
    assert handle.id
    assert handle.identity is None
    assert not handle.is_authenticated
    assert handle.user_id is None
    assert handle.persisted is False
    assert db_session.get(WebSession, handle.id) is None

def test_session_ids_are_unique():
    ids = {sessions.create_anonymous().id for _ in range(50)}
    assert len(ids) == 50

def test_resolve_missing_or_unknown(db_session):
    assert sessions.resolve(db_session, None) is None
    assert sessions.resolve(db_session, "") is None
    assert sessions.resolve(db_session, "no-such-session") is None

def test_set_identity_persists_and_resolves(db_session):
    handle = sessions.create_anonymous(ttl=60)
    sessions.set_identity(db_session, handle, ALICE, ttl=60)
    assert handle.persisted
    assert handle.is_authenticated

    resolved = sessions.resolve(db_session, handle.id, ttl=60)
    assert resolved is not None
    assert resolved.identity == ALICE
    assert resolved.user_id == 1

def test_set_identity_rotates_session_id(db_session):
    handle = sessions.save(db_session, sessions.create_anonymous(ttl=60), ttl=60)
    anonymous_id = handle.id
    assert db_session.get(WebSession, anonymous_id) is not None

    sessions.set_identity(db_session, handle, ALICE, ttl=60)
    assert handle.id != anonymous_id
    assert sessions.resolve(db_session, anonymous_id) is None
    assert sessions.resolve(db_session, handle.id).identity == ALICE

def test_resolve_slides_expiry(db_session):
    handle = sessions.set_identity(db_session, sessions.create_anonymous(), ALICE, ttl=3600)
    row = db_session.get(WebSession, handle.id)
    row.expires_at = utcnow() + timedelta(seconds=5)
    db_session.commit()

    resolved = sessions.resolve(db_session, handle.id, ttl=3600)
    assert resolved.expires_at - utcnow() > timedelta(seconds=3500)
    db_session.expire_all()
    assert db_session.get(WebSession, handle.id).expires_at == resolved.expires_at

def test_resolve_expired_session_deletes_it(db_session):
    handle = sessions.set_identity(db_session, sessions.create_anonymous(), ALICE, ttl=3600)
    row = db_session.get(WebSession, handle.id)
    row.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    assert sessions.resolve(db_session, handle.id) is None
    db_session.expire_all()
    assert db_session.get(WebSession, handle.id) is None

def test_resolve_corrupt_identity_is_anonymous(db_session):
    db_session.add(WebSession(id="half", user_id=7, username=None, expires_at=utcnow() + timedelta(hours=1)))
    db_session.commit()
    assert sessions.resolve(db_session, "half") is None

def test_anonymous_row_resolves_unauthenticated(db_session):
    handle = sessions.save(db_session, sessions.create_anonymous(ttl=60), ttl=60)
    resolved = sessions.resolve(db_session, handle.id, ttl=60)
    assert resolved is not None
    assert not resolved.is_authenticated

def test_destroy(db_session):
    handle = sessions.set_identity(db_session, sessions.create_anonymous(), ALICE, ttl=60)
    sessions.destroy(db_session, handle)
    assert handle.destroyed
    assert not handle.is_authenticated
    assert sessions.resolve(db_session, handle.id) is None

def test_purge_expired(db_session):
    live = sessions.set_identity(db_session, sessions.create_anonymous(), ALICE, ttl=3600)
    now = utcnow()
    for i in range(3):
        db_session.add(WebSession(id=f"old-{i}", expires_at=now - timedelta(minutes=1)))
    db_session.commit()

    assert sessions.purge_expired(db_session) == 3
    assert db_session.query(WebSession).count() == 1
    assert sessions.resolve(db_session, live.id) is not None

def _row_count(db_session, session_id):
    return db_session.execute(
        text("SELECT COUNT(*) FROM sessions WHERE id = :id"), {"id": session_id}
    ).scalar()

def test_resolve_unreadable_row_is_anonymous(db_session):
    insert_unreadable_session(db_session, "bad-timestamps")
    assert sessions.resolve(db_session, "bad-timestamps") is None
    assert _row_count(db_session, "bad-timestamps") == 0

def test_login_sweeps_expired_rows(db_session):
    db_session.add(WebSession(id="abandoned", user_id=2, username="bob",
                              expires_at=utcnow() - timedelta(days=1)))
    db_session.commit()

    handle = sessions.set_identity(db_session, sessions.create_anonymous(), ALICE, ttl=3600)
    assert _row_count(db_session, "abandoned") == 0
    assert _row_count(db_session, handle.id) == 1
