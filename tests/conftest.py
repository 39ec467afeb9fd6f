"""Shared fixtures: an in-memory identity collaborator and a fixed clock."""

from __future__ import annotations

import pytest

from twofactor.auth.qr import QrRenderer
from twofactor.auth.totp import TotpEngine, TotpPolicy
from twofactor.identity import RegistrationResult, normalize_name
from twofactor.models import Account
from twofactor.store import InMemorySecretStore

NOW = 1_700_000_000.0


class FakeIdentity:
    """Stands in for the external account/password subsystem."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.passwords: dict[str, str] = {}
        self.signed_in: list[str] = []
        self.signed_out: list[str] = []

    def add(self, email: str, password: str) -> Account:
        account = Account(id=f"user-{len(self.accounts) + 1}", user_name=email, email=email)
        self.accounts[account.id] = account
        self.passwords[account.id] = password
        return account

    async def create_account(self, email: str, password: str) -> RegistrationResult:
        if len(password) < 6:
            return RegistrationResult(succeeded=False, errors=["Passwords must be at least 6 characters."])
        if await self.find_by_name(normalize_name(email)) is not None:
            return RegistrationResult(succeeded=False, errors=[f"Username '{email}' is already taken."])
        return RegistrationResult(succeeded=True, account=self.add(email, password))

    async def verify_password(self, account: Account, password: str) -> bool:
        return self.passwords.get(account.id) == password

    async def sign_in(self, account: Account) -> None:
        self.signed_in.append(account.id)

    async def sign_out(self, account: Account) -> None:
        self.signed_out.append(account.id)

    async def find_by_id(self, user_id: str) -> Account | None:
        return self.accounts.get(user_id)

    async def find_by_name(self, normalized_name: str) -> Account | None:
        for account in self.accounts.values():
            if normalize_name(account.user_name) == normalized_name:
                return account
        return None


class Clock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def store() -> InMemorySecretStore:
    return InMemorySecretStore()


@pytest.fixture
def engine() -> TotpEngine:
    return TotpEngine(TotpPolicy(period=30, digits=6, window=2))


@pytest.fixture
def renderer() -> QrRenderer:
    return QrRenderer(box_size=2, border=1)


@pytest.fixture
def clock() -> Clock:
    return Clock()
