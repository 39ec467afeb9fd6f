"""Short-lived pending-challenge slots between password and code checks.

A slot is created once the password has been verified and is addressed by a
server-issued random token. Holding a token never signs anyone in by itself;
it only lets the code-check step run for the user it names.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass

from twofactor.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PendingChallenge:
    token: str
    user_id: str
    expires_at: float
    attempts: int = 0

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class ChallengeSessions:
    """In-process registry of pending challenges, one per issued token."""

    def __init__(self, ttl_s: float | None = None, clock: Callable[[], float] = time.time) -> None:
        self.ttl_s = settings.challenge_ttl_s if ttl_s is None else ttl_s
        self._clock = clock
        self._pending: dict[str, PendingChallenge] = {}

    def open(self, user_id: str) -> PendingChallenge:
        self.purge_expired()
        challenge = PendingChallenge(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            expires_at=self._clock() + self.ttl_s,
        )
        self._pending[challenge.token] = challenge
        return challenge

    def get(self, token: str | None) -> PendingChallenge | None:
        """Live challenge for ``token``; expired slots are dropped on access."""
        if not token:
            return None
        challenge = self._pending.get(token)
        if challenge is None:
            return None
        if challenge.expired(self._clock()):
            logger.info("Challenge for user %s expired", challenge.user_id)
            del self._pending[token]
            return None
        return challenge

    def take(self, token: str | None) -> PendingChallenge | None:
        """Remove and return the live challenge for ``token``.

        At most one caller ever gets a given slot back.
        """
        challenge = self.get(token)
        if challenge is not None:
            del self._pending[challenge.token]
        return challenge

    def clear(self, token: str) -> None:
        self._pending.pop(token, None)

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [t for t, c in self._pending.items() if c.expired(now)]
        for token in stale:
            del self._pending[token]
        return len(stale)

    def __len__(self) -> int:
        return len(self._pending)
