"""Interface of the external identity/credential subsystem.

Password hashing, account storage and session cookies live behind this
protocol; the two-factor flows only ever talk to it through these calls.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, Field

from twofactor.models import Account


class RegistrationResult(BaseModel):
    succeeded: bool
    account: Account | None = None
    errors: list[str] = Field(default_factory=list)


def normalize_name(name: str) -> str:
    """Lookup key for user names and emails."""
    return name.strip().upper()


class IdentityProvider(Protocol):
    async def create_account(self, email: str, password: str) -> RegistrationResult: ...

    async def verify_password(self, account: Account, password: str) -> bool: ...

    async def sign_in(self, account: Account) -> None: ...

    async def sign_out(self, account: Account) -> None: ...

    async def find_by_id(self, user_id: str) -> Account | None: ...

    async def find_by_name(self, normalized_name: str) -> Account | None: ...
