"""
Tests for credential encryption and password/JWT helpers.
"""

import pytest
from cryptography.fernet import Fernet

from eventdesk.core.crypto import CredentialCipher, CredentialError
from eventdesk.core.security import create_access_token, decode_access_token, hash_password, verify_password


def test_payload_round_trip():
    cipher = CredentialCipher(secret="conference-secret")
    payload = cipher.encrypt("6f1c2a9e-0000-4000-8000-1234567890ab")
    assert payload != "6f1c2a9e-0000-4000-8000-1234567890ab"
    assert cipher.decrypt(payload) == "6f1c2a9e-0000-4000-8000-1234567890ab"


def test_payload_from_other_key_is_rejected():
    payload = CredentialCipher(secret="one").encrypt("token")
    with pytest.raises(CredentialError):
        CredentialCipher(secret="two").decrypt(payload)


def test_garbage_payload_is_rejected():
    with pytest.raises(CredentialError):
        CredentialCipher(secret="conference-secret").decrypt("ASEAN-AB12-CD34")


def test_explicit_key_takes_precedence():
    key = Fernet.generate_key().decode()
    payload = CredentialCipher(key=key, secret="ignored").encrypt("token")
    assert CredentialCipher(key=key).decrypt(payload) == "token"


def test_key_or_secret_required():
    with pytest.raises(ValueError):
        CredentialCipher()


def test_password_hashing():
    hashed = hash_password("securepassword123")
    assert hashed != "securepassword123"
    assert verify_password("securepassword123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("securepassword123", "not-a-bcrypt-hash")


def test_access_token_claims():
    claims = decode_access_token(create_access_token({"sub": "42", "staff": True}))
    assert claims.participant_id == 42
    assert claims.staff is True
    assert decode_access_token("not.a.token") is None
