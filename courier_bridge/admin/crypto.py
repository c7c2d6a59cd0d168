"""
Fernet symmetric encryption for courier API tokens and platform OAuth tokens.
Never logs plaintext values.
"""
from __future__ import annotations

import base64
import logging
import os

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_fernet: Fernet | None = None


def _get_fernet() -> Fernet:
    global _fernet
    if _fernet is None:
        raw = os.environ.get("CONFIG_ENCRYPTION_KEY", "").strip()
        if not raw:
            raise RuntimeError(
                "CONFIG_ENCRYPTION_KEY is not set. "
                "Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
            )
        try:
            _fernet = Fernet(raw.encode())
        except ValueError:
            # Not a Fernet key: pad/truncate a passphrase to 32 bytes
            padded = base64.urlsafe_b64encode(raw[:32].ljust(32).encode())
            _fernet = Fernet(padded)
    return _fernet


def encrypt(plaintext: str | None) -> str:
    """Encrypt a plaintext string; returns a URL-safe base64 token string."""
    if not plaintext:
        return ""
    token = _get_fernet().encrypt(plaintext.encode())
    return token.decode()


def decrypt(token: str | None) -> str:
    """Decrypt a Fernet token back to plaintext. Raises InvalidToken if tampered."""
    if not token:
        return ""
    try:
        return _get_fernet().decrypt(token.encode()).decode()
    except InvalidToken:
        logger.error("Failed to decrypt token – possible key mismatch or tampered data")
        raise


def mask(secret: str | None) -> str:
    """Render a secret for display: last four characters only."""
    if not secret:
        return ""
    if len(secret) <= 4:
        return "****"
    return "*" * 8 + secret[-4:]
