"""AES-256-GCM sealing of TOTP secrets kept at rest.

A sealed secret is ``v1:`` + base64(nonce + ciphertext). The owning user id
is bound in as associated data, so a sealed value copied onto another user's
row does not open.
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from twofactor.config import settings

_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM
_PREFIX = "v1:"


def load_key(raw: str | None = None) -> bytes:
    """Decode TWOFACTOR_MASTER_KEY (or ``raw``) into a 32-byte AES key."""
    raw = settings.twofactor_master_key if raw is None else raw
    if not raw:
        raise RuntimeError("TWOFACTOR_MASTER_KEY not set")
    try:
        key = base64.b64decode(raw, validate=True)
    except binascii.Error as exc:
        raise ValueError("TWOFACTOR_MASTER_KEY is not valid base64") from exc
    if len(key) != 32:
        raise ValueError("TWOFACTOR_MASTER_KEY must be 32 bytes (base64-encoded)")
    return key


def generate_key() -> str:
    """Fresh base64 key for TWOFACTOR_MASTER_KEY."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode()


def seal(user_id: str, secret: str, key: bytes | None = None) -> str:
    nonce = os.urandom(_NONCE_SIZE)
    ct = AESGCM(key or load_key()).encrypt(nonce, secret.encode(), user_id.encode())
    return _PREFIX + base64.b64encode(nonce + ct).decode()


def unseal(user_id: str, sealed: str, key: bytes | None = None) -> str:
    """Reverse :func:`seal`. Raises ValueError or InvalidTag on tampering."""
    if not sealed.startswith(_PREFIX):
        raise ValueError("not a sealed secret")
    raw = base64.b64decode(sealed[len(_PREFIX):])
    nonce, ct = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
    return AESGCM(key or load_key()).decrypt(nonce, ct, user_id.encode()).decode()
