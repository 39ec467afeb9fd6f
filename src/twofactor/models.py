"""Pydantic models for data flowing through enrollment and login."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class EnrollmentState(StrEnum):
    NOT_PROVISIONED = "not_provisioned"
    PROVISIONED = "provisioned"


class ChallengeState(StrEnum):
    PASSWORD_VERIFIED = "password_verified"
    AWAITING_CODE = "awaiting_code"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


class Account(BaseModel):
    """A user record owned by the external identity subsystem."""

    id: str
    user_name: str
    email: str | None = None

    @property
    def label(self) -> str:
        """Account label shown in authenticator apps."""
        return self.email or self.user_name


class TwoFactorSecret(BaseModel):
    """The one persisted record per user: Base32 secret plus enabled flag."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    secret: str = Field(repr=False)  # Base32
    enabled: bool = False


class VerificationResult(BaseModel):
    valid: bool
    matched_step: int | None = None  # offset from the current step
    time_step: int | None = None  # absolute counter that matched


class Enrollment(BaseModel):
    """What the caller presents after enrollment.

    ``qr_data_uri`` is None when rendering failed; the caller then falls back
    to manual entry of ``secret``.
    """

    user_id: str
    state: EnrollmentState = EnrollmentState.PROVISIONED
    secret: str = Field(repr=False)
    provisioning_uri: str = Field(repr=False)
    qr_data_uri: str | None = Field(default=None, repr=False)
    render_error: str | None = None

    @property
    def needs_manual_entry(self) -> bool:
        return self.qr_data_uri is None


class LoginOutcome(BaseModel):
    state: ChallengeState
    account: Account
    challenge_token: str | None = Field(default=None, repr=False)


class ChallengeOutcome(BaseModel):
    state: ChallengeState
    user_id: str
    matched_step: int | None = None
