"""Durable mapping from user id to TOTP secret + enabled flag.

Every backend exposes one atomic upsert and one point lookup. Upserts are
merge-on-conflict, so exactly one row exists per user after any sequence of
calls (last writer wins).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import psycopg
from cryptography.exceptions import InvalidTag

from twofactor import crypto, db
from twofactor.config import Settings, StoreBackend, settings
from twofactor.errors import PersistenceError
from twofactor.models import TwoFactorSecret

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS two_factor_secrets (
    user_id     TEXT PRIMARY KEY,
    secret_key  TEXT NOT NULL,
    is_enabled  BOOLEAN NOT NULL DEFAULT FALSE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

UPSERT_SQL = """
INSERT INTO two_factor_secrets (user_id, secret_key, is_enabled)
VALUES (%s, %s, %s)
ON CONFLICT (user_id) DO UPDATE SET
    secret_key = EXCLUDED.secret_key,
    is_enabled = EXCLUDED.is_enabled,
    updated_at = now()
"""

FIND_SQL = "SELECT user_id, secret_key, is_enabled FROM two_factor_secrets WHERE user_id = %s"


class SecretStore(Protocol):
    async def upsert(
        self, user_id: str, secret: str, enabled: bool, *, timeout: float | None = None
    ) -> None: ...

    async def find(self, user_id: str, *, timeout: float | None = None) -> TwoFactorSecret | None: ...


class PostgresSecretStore:
    """Secret store backed by the shared psycopg pool."""

    def __init__(self, *, timeout: float | None = None, encrypt_secrets: bool | None = None) -> None:
        self.timeout = settings.store_timeout_s if timeout is None else timeout
        self.encrypt_secrets = settings.encrypt_secrets if encrypt_secrets is None else encrypt_secrets

    async def ensure_schema(self) -> None:
        try:
            async with db.transaction() as cur:
                await cur.execute(SCHEMA_SQL)
        except psycopg.Error as exc:
            logger.error("Failed to create two_factor_secrets table", exc_info=True)
            raise PersistenceError() from exc

    async def upsert(
        self, user_id: str, secret: str, enabled: bool, *, timeout: float | None = None
    ) -> None:
        stored = self._seal(user_id, secret) if self.encrypt_secrets else secret
        try:
            async with asyncio.timeout(self._deadline(timeout)):
                async with db.transaction() as cur:
                    await cur.execute(UPSERT_SQL, (user_id, stored, enabled))
        except TimeoutError as exc:
            logger.error("Secret upsert timed out for user %s", user_id)
            raise PersistenceError() from exc
        except psycopg.Error as exc:
            logger.error("Secret upsert failed for user %s", user_id, exc_info=True)
            raise PersistenceError() from exc

    async def find(self, user_id: str, *, timeout: float | None = None) -> TwoFactorSecret | None:
        try:
            async with asyncio.timeout(self._deadline(timeout)):
                row = await db.fetch_one(FIND_SQL, (user_id,))
        except TimeoutError as exc:
            logger.error("Secret lookup timed out for user %s", user_id)
            raise PersistenceError() from exc
        except psycopg.Error as exc:
            logger.error("Secret lookup failed for user %s", user_id, exc_info=True)
            raise PersistenceError() from exc

        if row is None:
            return None
        secret = row["secret_key"]
        if self.encrypt_secrets and secret:
            secret = self._unseal(user_id, secret)
        return TwoFactorSecret(user_id=row["user_id"], secret=secret, enabled=row["is_enabled"])

    def _seal(self, user_id: str, secret: str) -> str:
        try:
            return crypto.seal(user_id, secret)
        except (RuntimeError, ValueError) as exc:
            logger.error("Cannot seal secret for user %s: %s", user_id, exc)
            raise PersistenceError() from exc

    def _unseal(self, user_id: str, sealed: str) -> str:
        try:
            return crypto.unseal(user_id, sealed)
        except (InvalidTag, RuntimeError, ValueError) as exc:
            logger.error("Stored secret for user %s could not be decrypted", user_id)
            raise PersistenceError() from exc

    def _deadline(self, timeout: float | None) -> float | None:
        return self.timeout if timeout is None else timeout


class InMemorySecretStore:
    """Process-local store for tests and single-process demos."""

    def __init__(self) -> None:
        self._rows: dict[str, TwoFactorSecret] = {}

    async def upsert(
        self, user_id: str, secret: str, enabled: bool, *, timeout: float | None = None
    ) -> None:
        # Single assignment, no await in between: a cancelled caller never
        # leaves a half-written record behind.
        self._rows[user_id] = TwoFactorSecret(user_id=user_id, secret=secret, enabled=enabled)

    async def find(self, user_id: str, *, timeout: float | None = None) -> TwoFactorSecret | None:
        return self._rows.get(user_id)

    def __len__(self) -> int:
        return len(self._rows)


def create_store(s: Settings | None = None) -> SecretStore:
    """Build the store selected by ``store_backend``."""
    s = s or settings
    if s.store_backend == StoreBackend.MEMORY:
        return InMemorySecretStore()
    return PostgresSecretStore(timeout=s.store_timeout_s, encrypt_secrets=s.encrypt_secrets)
