"""Login-time code challenge: AwaitingCode → Authenticated | Rejected.

The password step opens a PendingChallenge and hands its token to the
client. Submitting a code looks the slot up by token, verifies the code
against the stored secret and, on success, clears the slot and tells the
identity collaborator to complete sign-in. A wrong code leaves the slot in
place so the user can retry.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from twofactor.auth.totp import TotpEngine
from twofactor.config import settings
from twofactor.errors import (
    CodePreviewDisabled,
    ConfigurationError,
    InvalidCode,
    SessionExpired,
    TooManyAttempts,
)
from twofactor.identity import IdentityProvider
from twofactor.models import Account, ChallengeOutcome, ChallengeState, TwoFactorSecret
from twofactor.sessions import ChallengeSessions, PendingChallenge
from twofactor.store import SecretStore

logger = logging.getLogger(__name__)


class ChallengeFlow:
    def __init__(
        self,
        store: SecretStore,
        identity: IdentityProvider,
        sessions: ChallengeSessions | None = None,
        engine: TotpEngine | None = None,
        *,
        max_attempts: int | None = None,
        allow_code_preview: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.identity = identity
        self.sessions = sessions or ChallengeSessions(clock=clock)
        self.engine = engine or TotpEngine()
        self.max_attempts = settings.max_code_attempts if max_attempts is None else max_attempts
        self.allow_code_preview = (
            settings.code_preview_enabled if allow_code_preview is None else allow_code_preview
        )
        self._clock = clock

    def begin(self, user_id: str) -> PendingChallenge:
        """Password already verified; wait for the second factor."""
        challenge = self.sessions.open(user_id)
        logger.info("Awaiting 2FA code for user %s", user_id)
        return challenge

    async def _load(
        self, token: str | None, *, timeout: float | None = None
    ) -> tuple[PendingChallenge, Account, TwoFactorSecret]:
        challenge = self.sessions.get(token)
        if challenge is None:
            raise SessionExpired()

        account = await self.identity.find_by_id(challenge.user_id)
        if account is None:
            self.sessions.clear(challenge.token)
            raise SessionExpired()

        record = await self.store.find(account.id, timeout=timeout)
        if record is None or not record.enabled or not record.secret:
            raise ConfigurationError()
        return challenge, account, record

    async def submit(self, token: str | None, code: str, *, timeout: float | None = None) -> ChallengeOutcome:
        """Verify ``code`` for the challenge behind ``token``.

        Raises InvalidCode (retry allowed), TooManyAttempts (slot cleared),
        SessionExpired or ConfigurationError.
        """
        challenge, account, record = await self._load(token, timeout=timeout)

        # Other submits on this token may have run while we awaited the
        # lookups. Nothing below awaits until the slot is taken or counted.
        if self.sessions.get(challenge.token) is not challenge:
            raise SessionExpired()
        if self.max_attempts and challenge.attempts >= self.max_attempts:
            self.sessions.clear(challenge.token)
            raise SessionExpired()

        result = self.engine.verify_code(record.secret, code, self._clock())
        if not result.valid:
            challenge.attempts += 1
            if self.max_attempts and challenge.attempts >= self.max_attempts:
                self.sessions.clear(challenge.token)
                logger.warning(
                    "2FA locked out for user %s after %d attempts", account.id, challenge.attempts
                )
                raise TooManyAttempts()
            logger.info("Rejected 2FA code for user %s (attempt %d)", account.id, challenge.attempts)
            remaining = self.max_attempts - challenge.attempts if self.max_attempts else None
            raise InvalidCode(attempts_remaining=remaining)

        if self.sessions.take(challenge.token) is None:
            raise SessionExpired()
        await self.identity.sign_in(account)
        logger.info("2FA succeeded for user %s (step offset %d)", account.id, result.matched_step)
        return ChallengeOutcome(
            state=ChallengeState.AUTHENTICATED,
            user_id=account.id,
            matched_step=result.matched_step,
        )

    async def preview_code(self, token: str | None, *, timeout: float | None = None) -> str:
        """Current server-side code for a pending challenge. Development only."""
        if not self.allow_code_preview:
            raise CodePreviewDisabled()
        _, account, record = await self._load(token, timeout=timeout)
        logger.warning("Code preview used for user %s", account.id)
        return self.engine.compute_code(record.secret, self._clock())
