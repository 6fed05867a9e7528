"""
Salted one-way password hashing (bcrypt through passlib).
"""
import logging

from passlib.context import CryptContext

from api import config
from api.errors import InvalidInput

_logger = logging.getLogger(__name__)

# Password hashing. bcrypt alone only reads the first 72 bytes; bcrypt_sha256
# prehashes so every byte counts. Plain bcrypt hashes still verify.
pwd_context = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    deprecated="auto",
    bcrypt_sha256__rounds=config.BCRYPT_ROUNDS,
    bcrypt__rounds=config.BCRYPT_ROUNDS,
)


# PUBLIC_INTERFACE
def hash_password(password):
    """Return a bcrypt-sha256 hash embedding a fresh salt and the cost factor."""
    if not password:
        raise InvalidInput("Password cannot be empty.")
    return pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(plain_password, hashed_password):
    """
    Check plain_password against a stored hash in constant time.
    A malformed hash counts as a mismatch.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        _logger.warning("Stored password hash is not usable: %s", type(e).__name__)
        return False


def dummy_verify():
    """Spend the same time as a real verification (unknown-user logins)."""
    pwd_context.dummy_verify()
