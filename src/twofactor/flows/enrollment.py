"""Enrollment: issue a secret to a signed-in user and present it as a QR code.

Flow: generate secret → persist (enabled) → build otpauth URI → render QR.
Re-enrolling replaces the secret, which unlinks any previously provisioned
authenticator. The new secret is active immediately; there is no
confirm-code step.
"""

from __future__ import annotations

import logging

from twofactor.auth.provisioning import build_provisioning_uri
from twofactor.auth.qr import QrRenderer
from twofactor.auth.totp import TotpEngine, encode_secret
from twofactor.config import settings
from twofactor.errors import NotAuthenticated, RenderError
from twofactor.models import Account, Enrollment, EnrollmentState
from twofactor.store import SecretStore

logger = logging.getLogger(__name__)


class EnrollmentFlow:
    def __init__(
        self,
        store: SecretStore,
        engine: TotpEngine | None = None,
        renderer: QrRenderer | None = None,
        issuer: str | None = None,
    ) -> None:
        self.store = store
        self.engine = engine or TotpEngine()
        self.renderer = renderer or QrRenderer.from_settings()
        self.issuer = issuer or settings.totp_issuer

    async def status(self, user_id: str, *, timeout: float | None = None) -> EnrollmentState:
        record = await self.store.find(user_id, timeout=timeout)
        if record is not None and record.enabled:
            return EnrollmentState.PROVISIONED
        return EnrollmentState.NOT_PROVISIONED

    async def enroll(self, account: Account | None, *, timeout: float | None = None) -> Enrollment:
        """Provision a fresh secret for ``account`` (the signed-in caller)."""
        if account is None:
            raise NotAuthenticated()

        secret = encode_secret(self.engine.generate_secret())
        await self.store.upsert(account.id, secret, True, timeout=timeout)
        logger.info("Provisioned 2FA secret for user %s", account.id)

        uri = build_provisioning_uri(self.issuer, account.label, secret, self.engine.policy)
        try:
            qr_data_uri = self.renderer.render(uri)
        except RenderError as exc:
            logger.warning("Falling back to manual secret entry for user %s", account.id)
            return Enrollment(
                user_id=account.id,
                secret=secret,
                provisioning_uri=uri,
                render_error=exc.user_message,
            )
        return Enrollment(
            user_id=account.id,
            secret=secret,
            provisioning_uri=uri,
            qr_data_uri=qr_data_uri,
        )
