import os
import pytest

# Must be set before the app (and its engine) is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"

from fastapi.testclient import TestClient
from sqlalchemy import text

from api import config
from api.main import app
from notes_database.db import engine, SessionLocal
from notes_database.models import Base

@pytest.fixture
def tables():
    """Create tables for one test and drop them afterwards."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(tables):
    """Provide a SQLAlchemy session on the test database."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def client(tables):
    """Fixture for FastAPI TestClient on the in-memory database."""
    with TestClient(app) as c:
        yield c

@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "username": "alice",
        "password": "pw1"
    }

@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {
        "username": "bob",
        "password": "bobpassword456"
    }

def register_and_login(client, username, password):
    """Helper for registering then logging in; leaves the session cookie on the client."""
    r1 = client.post("/new", data={"username": username, "password": password}, follow_redirects=False)
    assert r1.status_code == 303

    r2 = client.post("/login", data={"username": username, "password": password}, follow_redirects=False)
    assert r2.status_code == 303
    assert r2.headers["location"] == "/members-only"
    return client.cookies.get(config.SESSION_COOKIE_NAME)

@pytest.fixture
def logged_in_client(client, user_data):
    """TestClient holding an authenticated session for the default user."""
    register_and_login(client, user_data["username"], user_data["password"])
    return client

@pytest.fixture
def second_client(tables, second_user_data):
    """A separate TestClient (own cookie jar) logged in as the second user."""
    with TestClient(app) as c:
        register_and_login(c, second_user_data["username"], second_user_data["password"])
        yield c

def insert_unreadable_session(db, session_id):
    """Write a sessions row whose timestamps SQLAlchemy cannot parse back."""
    db.execute(
        text(
            "INSERT INTO sessions (id, user_id, username, created_at, last_access, expires_at) "
            "VALUES (:id, 1, 'alice', 'garbage', 'garbage', 'garbage')"
        ),
        {"id": session_id},
    )
    db.commit()
