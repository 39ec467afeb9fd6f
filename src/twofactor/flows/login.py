"""Register / login / logout glue around the identity collaborator."""

from __future__ import annotations

import logging

from twofactor.errors import InvalidCredentials, RegistrationFailed
from twofactor.flows.challenge import ChallengeFlow
from twofactor.identity import IdentityProvider, normalize_name
from twofactor.models import Account, ChallengeState, LoginOutcome
from twofactor.store import SecretStore

logger = logging.getLogger(__name__)


class LoginFlow:
    def __init__(self, identity: IdentityProvider, store: SecretStore, challenges: ChallengeFlow) -> None:
        self.identity = identity
        self.store = store
        self.challenges = challenges

    async def register(self, email: str, password: str) -> Account:
        """Create the account and sign it in; the caller continues to enrollment."""
        result = await self.identity.create_account(email, password)
        if not result.succeeded or result.account is None:
            raise RegistrationFailed(result.errors)
        await self.identity.sign_in(result.account)
        logger.info("Registered user %s", result.account.id)
        return result.account

    async def login(self, name: str, password: str, *, timeout: float | None = None) -> LoginOutcome:
        account = await self.identity.find_by_name(normalize_name(name))
        if account is None or not await self.identity.verify_password(account, password):
            raise InvalidCredentials()

        record = await self.store.find(account.id, timeout=timeout)
        if record is not None and record.enabled:
            challenge = self.challenges.begin(account.id)
            return LoginOutcome(
                state=ChallengeState.AWAITING_CODE,
                account=account,
                challenge_token=challenge.token,
            )

        await self.identity.sign_in(account)
        return LoginOutcome(state=ChallengeState.AUTHENTICATED, account=account)

    async def logout(self, account: Account) -> None:
        await self.identity.sign_out(account)
