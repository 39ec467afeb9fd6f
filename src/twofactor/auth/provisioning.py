"""otpauth:// provisioning URIs for authenticator apps."""

from __future__ import annotations

from urllib.parse import quote

from twofactor.auth.totp import TotpPolicy

# '@' is legal in both the path label and query values; ':' separates issuer
# from account in the label so it must be escaped inside either part.
_SAFE = "@"


def build_provisioning_uri(
    issuer: str,
    account_label: str,
    secret_base32: str,
    policy: TotpPolicy | None = None,
) -> str:
    """Build ``otpauth://totp/{issuer}:{account}?secret=..&issuer=..&digits=..&period=..``."""
    if not issuer:
        raise ValueError("issuer must not be empty")
    if not account_label:
        raise ValueError("account_label must not be empty")
    policy = policy or TotpPolicy()
    enc_issuer = quote(issuer, safe=_SAFE)
    enc_account = quote(account_label, safe=_SAFE)
    return (
        f"otpauth://totp/{enc_issuer}:{enc_account}"
        f"?secret={secret_base32}&issuer={enc_issuer}"
        f"&digits={policy.digits}&period={policy.period}"
    )
