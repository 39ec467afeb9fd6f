"""CLI entry point for twofactor."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console

from twofactor.config import StoreBackend, settings

console = Console()


@click.group()
def main() -> None:
    """Two-factor (TOTP) enrollment and verification tools."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


async def _with_store(fn):
    """Run ``fn(store)`` against the configured store, managing the pool."""
    from twofactor.db import close_pool, init_pool
    from twofactor.store import create_store

    store = create_store()
    if settings.store_backend != StoreBackend.POSTGRES:
        return await fn(store)
    await init_pool(min_size=1, max_size=1)
    try:
        return await fn(store)
    finally:
        await close_pool()


@main.command()
def status() -> None:
    """Show configuration."""
    console.print("[bold]Two-factor status[/bold]")
    console.print(f"  Environment: {settings.environment}")
    console.print(f"  Store: {settings.store_backend}")
    console.print(f"  Database: {settings.database_url.split('@')[-1]}")
    console.print(f"  Issuer: {settings.totp_issuer}")
    console.print(
        f"  Policy: period={settings.totp_period}s digits={settings.totp_digits} "
        f"window=±{settings.totp_window}"
    )
    console.print(f"  Encrypt secrets: {settings.encrypt_secrets}")
    console.print(f"  Code preview: {'on' if settings.code_preview_enabled else 'off'}")


@main.command()
def db_check() -> None:
    """Verify database connectivity."""
    from twofactor.db import close_pool, init_pool, ping

    async def _check() -> None:
        await init_pool(min_size=1, max_size=1)
        try:
            ok = await ping()
        finally:
            await close_pool()
        if ok:
            console.print("[green]Database connection OK[/green]")
        else:
            console.print("[red]Database check failed[/red]")

    asyncio.run(_check())


@main.command()
def init_db() -> None:
    """Create the two_factor_secrets table."""
    from twofactor.db import close_pool, init_pool
    from twofactor.store import PostgresSecretStore

    async def _init() -> None:
        await init_pool(min_size=1, max_size=1)
        try:
            await PostgresSecretStore().ensure_schema()
        finally:
            await close_pool()

    asyncio.run(_init())
    console.print("[green]Schema ready[/green]")


@main.command()
@click.argument("user_id")
@click.option("--label", required=True, help="Account label (email or user name).")
@click.option("--qr-out", type=click.Path(dir_okay=False, path_type=Path), help="Write the QR PNG here.")
def enroll(user_id: str, label: str, qr_out: Path | None) -> None:
    """Issue (or replace) the TOTP secret for USER_ID."""
    import base64

    from twofactor.auth.qr import DATA_URI_PREFIX
    from twofactor.flows.enrollment import EnrollmentFlow
    from twofactor.models import Account

    account = Account(id=user_id, user_name=label)
    enrollment = asyncio.run(_with_store(lambda store: EnrollmentFlow(store).enroll(account)))

    console.print(f"[green]Provisioned[/green] {user_id}")
    if enrollment.needs_manual_entry:
        console.print(f"[yellow]{enrollment.render_error}[/yellow]")
    elif qr_out is not None:
        qr_out.write_bytes(base64.b64decode(enrollment.qr_data_uri.removeprefix(DATA_URI_PREFIX)))
        console.print(f"  QR code written to {qr_out}")
        return
    console.print(f"  Manual entry key: {enrollment.secret}")


@main.command()
@click.argument("user_id")
@click.argument("code")
def verify(user_id: str, code: str) -> None:
    """Check CODE against the stored secret for USER_ID."""
    from twofactor.auth.totp import TotpEngine

    record = asyncio.run(_with_store(lambda store: store.find(user_id)))
    if record is None or not record.enabled:
        console.print("[red]2FA not configured.[/red]")
        raise SystemExit(2)
    result = TotpEngine().verify_code(record.secret, code)
    if result.valid:
        console.print(f"[green]Valid[/green] (step offset {result.matched_step:+d})")
    else:
        console.print("[red]Invalid TOTP code.[/red]")
        raise SystemExit(1)


@main.command()
@click.argument("user_id")
def secret_status(user_id: str) -> None:
    """Show whether USER_ID has 2FA enabled."""
    record = asyncio.run(_with_store(lambda store: store.find(user_id)))
    if record is None:
        console.print("not provisioned")
    else:
        console.print("enabled" if record.enabled else "disabled")


if __name__ == "__main__":
    main()
