"""
Fernet encryption of stored courier / platform tokens.
"""
from __future__ import annotations

import os

import pytest
from cryptography.fernet import InvalidToken

import courier_bridge.admin.crypto as crypto_mod
from courier_bridge.admin.crypto import decrypt, encrypt, mask


@pytest.fixture(autouse=True)
def reset_fernet():
    """Reset cached Fernet instance so key changes take effect."""
    crypto_mod._fernet = None
    yield
    crypto_mod._fernet = None


def test_courier_token_roundtrip():
    token = encrypt("bobgo_live_3f9a2c")
    assert token != "bobgo_live_3f9a2c"
    assert decrypt(token) == "bobgo_live_3f9a2c"


def test_same_token_encrypts_differently_each_time():
    t1 = encrypt("platform-access-token")
    t2 = encrypt("platform-access-token")
    assert t1 != t2
    assert decrypt(t1) == decrypt(t2) == "platform-access-token"


def test_tampered_ciphertext_raises():
    with pytest.raises(InvalidToken):
        decrypt("not-a-valid-fernet-token")


def test_empty_and_none_are_passthrough():
    assert encrypt("") == ""
    assert encrypt(None) == ""
    assert decrypt("") == ""
    assert decrypt(None) == ""


def test_passphrase_key_is_accepted(monkeypatch):
    monkeypatch.setenv("CONFIG_ENCRYPTION_KEY", "not-a-fernet-key")
    assert decrypt(encrypt("secret")) == "secret"


def test_missing_key_raises_runtime_error():
    original = os.environ.pop("CONFIG_ENCRYPTION_KEY", None)
    try:
        with pytest.raises(RuntimeError, match="CONFIG_ENCRYPTION_KEY"):
            encrypt("test")
    finally:
        if original:
            os.environ["CONFIG_ENCRYPTION_KEY"] = original


@pytest.mark.parametrize(
    "secret, expected",
    [
        (None, ""),
        ("", ""),
        ("abc", "****"),
        ("bobgo_live_3f9a2c", "********9a2c"),
    ],
)
def test_mask(secret, expected):
    assert mask(secret) == expected
