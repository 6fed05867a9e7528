"""
Credential store: user registration and password login.
"""
import logging

from sqlalchemy.exc import IntegrityError

from api.errors import InvalidInput, UnknownUser, UsernameTaken, WrongPassword
from api.passwords import dummy_verify, hash_password, verify_password
from notes_database.models import User

_logger = logging.getLogger(__name__)


def get_user_by_username(db, username: str):
    """Exact, case-sensitive lookup."""
    return db.query(User).filter(User.username == username).first()


# PUBLIC_INTERFACE
def register(db, username: str, password: str) -> User:
    """
    Create a user.

    Raises:
        InvalidInput: blank username or empty password; nothing is written.
        UsernameTaken: the unique constraint on username rejected the insert.
    """
    if not username or not username.strip() or not password:
        raise InvalidInput("Username and password are required.")

    user = User(username=username, hashed_password=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent registrations for the same name are settled here.
        db.rollback()
        raise UsernameTaken(username)
    db.refresh(user)
    _logger.info("Registered user id=%s", user.id)
    return user


# PUBLIC_INTERFACE
def authenticate(db, username: str, password: str) -> User:
    """
    Return the user whose stored hash matches password.

    Raises:
        UnknownUser: no user with that username.
        WrongPassword: user exists, password does not match.
    """
    user = get_user_by_username(db, username) if username else None
    if user is None:
        dummy_verify()
        _logger.warning("Login attempt for unknown username")
        raise UnknownUser(username)
    if not verify_password(password, user.hashed_password):
        _logger.warning("Wrong password for user id=%s", user.id)
        raise WrongPassword(username)
    _logger.info("User id=%s authenticated", user.id)
    return user
