import pytest

from api.errors import InvalidInput
from api.passwords import dummy_verify, hash_password, verify_password


def test_hash_is_salted_bcrypt():
    h1 = hash_password("correct horse")
    h2 = hash_password("correct horse")
    assert h1.startswith("$bcrypt-sha256$")
    assert h1 != h2  # fresh salt each time
    assert "correct horse" not in h1

def test_verify_matches_only_hashed_password():
    hashed = hash_password("pw1")
    assert verify_password("pw1", hashed) is True
    assert verify_password("pw2", hashed) is False
    assert verify_password("PW1", hashed) is False

def test_empty_password_cannot_be_hashed():
    with pytest.raises(InvalidInput):
        hash_password("")

@pytest.mark.parametrize("bad_hash", ["", "plaintext", "$2b$04$tooshort", "$argon2id$v=19$m=65536$garbage"])
def test_malformed_hash_fails_closed(bad_hash):
    assert verify_password("pw1", bad_hash) is False

def test_empty_attempt_never_verifies():
    assert verify_password("", hash_password("pw1")) is False

def test_dummy_verify_runs():
    dummy_verify()

def test_long_passwords_compare_every_byte():
    prefix = "a" * 72
    hashed = hash_password(prefix + "correct-suffix")
    assert verify_password(prefix + "correct-suffix", hashed) is True
    assert verify_password(prefix + "totally-different", hashed) is False
    assert verify_password(prefix, hashed) is False

def test_legacy_bcrypt_hash_still_verifies():
    from api.passwords import pwd_context

    legacy = pwd_context.handler("bcrypt").using(rounds=4).hash("pw1")
    assert legacy.startswith("$2b$")
    assert verify_password("pw1", legacy) is True
    assert verify_password("pw2", legacy) is False
