"""TOTP (Time-based One-Time Password) engine for 2FA.

Uses pyotp for the RFC 6238 code derivation. Secrets are 20 random bytes
(160 bits), carried around as 32-character unpadded Base32 text.
"""

from __future__ import annotations

import base64
import binascii
import secrets
import time
from dataclasses import dataclass

import pyotp
import pyotp.utils

from twofactor.config import Settings, settings
from twofactor.errors import ConfigurationError
from twofactor.models import VerificationResult

SECRET_BYTES = 20


@dataclass(frozen=True)
class TotpPolicy:
    period: int = 30
    digits: int = 6
    window: int = 2

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> TotpPolicy:
        s = s or settings
        return cls(period=s.totp_period, digits=s.totp_digits, window=s.totp_window)


def encode_secret(raw: bytes) -> str:
    """Encode raw key bytes as unpadded Base32."""
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def decode_secret(secret: str | bytes | None) -> bytes:
    """Decode a Base32 secret, tolerating spaces, lower case and missing padding."""
    if isinstance(secret, bytes):
        if not secret:
            raise ConfigurationError()
        return secret
    if not secret:
        raise ConfigurationError()
    normalized = secret.replace(" ", "").upper()
    normalized += "=" * (-len(normalized) % 8)
    try:
        raw = base64.b32decode(normalized)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError() from exc
    if not raw:
        raise ConfigurationError()
    return raw


class TotpEngine:
    """Generates secrets and computes/verifies time-stepped codes."""

    def __init__(self, policy: TotpPolicy | None = None) -> None:
        self.policy = policy or TotpPolicy.from_settings()

    def generate_secret(self) -> bytes:
        """Fresh 20-byte key from the OS CSPRNG."""
        return secrets.token_bytes(SECRET_BYTES)

    def time_step(self, timestamp: float) -> int:
        return int(timestamp) // self.policy.period

    def _otp(self, secret: str | bytes) -> pyotp.TOTP:
        raw = decode_secret(secret)
        return pyotp.TOTP(encode_secret(raw), digits=self.policy.digits, interval=self.policy.period)

    def compute_code(self, secret: str | bytes, timestamp: float | None = None) -> str:
        """Code for the step containing ``timestamp`` (now by default)."""
        if timestamp is None:
            timestamp = time.time()
        return self._otp(secret).generate_otp(self.time_step(timestamp))

    def verify_code(
        self,
        secret: str | bytes,
        code: str | None,
        timestamp: float | None = None,
    ) -> VerificationResult:
        """Accept ``code`` if it matches any step within the tolerance window.

        Every step in the window is compared, so the time taken does not
        depend on which step (if any) matched.
        """
        otp = self._otp(secret)
        if timestamp is None:
            timestamp = time.time()

        candidate = (code or "").replace(" ", "")
        if len(candidate) != self.policy.digits or not (candidate.isascii() and candidate.isdigit()):
            return VerificationResult(valid=False)

        current = self.time_step(timestamp)
        matched: int | None = None
        for offset in range(-self.policy.window, self.policy.window + 1):
            step = current + offset
            if step < 0:
                continue
            if pyotp.utils.strings_equal(otp.generate_otp(step), candidate) and matched is None:
                matched = offset

        if matched is None:
            return VerificationResult(valid=False)
        return VerificationResult(valid=True, matched_step=matched, time_step=current + matched)
