"""Tests for bcrypt password hashing."""

from deepresearch.auth.password import hash_password, verify_password


def test_hash_and_verify():
    hashed = hash_password("secure_password_123")
    assert hashed.startswith("$2b$")
    assert hashed != "secure_password_123"
    assert verify_password("secure_password_123", hashed)
    assert not verify_password("wrong_password", hashed)


def test_salted():
    assert hash_password("same") != hash_password("same")


def test_long_password_truncated_to_72_bytes():
    base = "x" * 72
    hashed = hash_password(base + "tail-one")
    assert verify_password(base + "tail-two", hashed)


def test_malformed_hash_is_mismatch():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
