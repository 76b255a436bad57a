import hashlib

import bcrypt

from app.features.auth.utils.security import hash_password


def prehashed(password: str) -> bytes:
    return hashlib.sha256(password.encode("utf-8")).digest()


def test_password_hash_is_salted_bcrypt():
    hashed = hash_password("Courts2025")

    assert hashed != "Courts2025"
    assert hashed.startswith("$2")
    assert hash_password("Courts2025") != hashed
    assert bcrypt.checkpw(prehashed("Courts2025"), hashed.encode("utf-8"))
    assert not bcrypt.checkpw(prehashed("Courts2026"), hashed.encode("utf-8"))


def test_long_passwords_use_every_character():
    base = "x" * 80
    hashed = hash_password(base + "A").encode("utf-8")

    assert bcrypt.checkpw(prehashed(base + "A"), hashed)
    assert not bcrypt.checkpw(prehashed(base + "B"), hashed)
