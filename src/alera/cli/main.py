"""Alera CLI — database setup, admin bootstrap and server control.

Usage:
    alera init-db                                  # Create all tables
    alera create-admin ops@label.com s3cret!pass   # Create or promote an admin
    alera serve --reload                           # Run the API with uvicorn
    alera health                                   # Ask a running server for its status
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("ALERA_API_URL", DEFAULT_API_URL).rstrip("/")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Inside an already running loop (click's CliRunner under pytest-asyncio)
    the coroutine is run on a separate thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(prog_name="alera", package_name="alera-portal")
def main():
    """Alera — artist portal administration."""


# ---------------------------------------------------------------------------
# alera init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create every table that doesn't exist yet.

    Production deployments should run `alembic upgrade head` instead.
    """
    _run(_init_db_impl())
    click.secho("Database tables created.", fg="green")


async def _init_db_impl():
    from alera.db.engine import engine
    from alera.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


# ---------------------------------------------------------------------------
# alera create-admin
# ---------------------------------------------------------------------------


@main.command("create-admin")
@click.argument("email")
@click.argument("password")
@click.option("--artist-name", "-n", help="Display name for a new account")
def create_admin(email: str, password: str, artist_name: Optional[str]):
    """Create a verified admin account, or promote an existing user.

    An existing user keeps their password; PASSWORD is only used for new
    accounts.
    """
    if len(password) < 8:
        click.secho("Password must be at least 8 characters.", fg="red", err=True)
        sys.exit(1)
    created = _run(_create_admin_impl(email.strip().lower(), password, artist_name))
    verb = "Created" if created else "Promoted"
    click.secho(f"{verb} admin {email.strip().lower()}", fg="green")


async def _create_admin_impl(email: str, password: str, artist_name: Optional[str]) -> bool:
    from sqlalchemy import select

    from alera.auth.password import hash_password
    from alera.db.engine import async_session_factory, engine
    from alera.db.models import User
    from alera.services.subscription_service import SubscriptionService

    try:
        async with async_session_factory() as db:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalars().first()
            created = user is None
            if created:
                user = User(
                    email=email,
                    password_hash=hash_password(password),
                    artist_name=artist_name,
                )
                db.add(user)
                await db.flush()
            user.is_admin = True
            user.is_verified = True
            user.verification_token = None
            await SubscriptionService(db).get_or_create(user.id)
            await db.commit()
            return created
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# alera serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: ALERA_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: ALERA_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server with uvicorn."""
    import uvicorn

    from alera.config import settings

    uvicorn.run(
        "alera.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# alera health
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw response")
def health(as_json: bool):
    """Query /api/health on a running server (ALERA_API_URL)."""
    data = _run(_health_impl())
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return
    color = "green" if data.get("status") == "healthy" else "yellow"
    click.secho(f"Status: {data.get('status')}", fg=color, bold=True)
    for key in ("server", "database", "redis", "version"):
        click.echo(f"  {key:10s} {data.get(key, '—')}")


async def _health_impl() -> dict:
    try:
        async with httpx.AsyncClient(base_url=_api_url(), timeout=10.0) as c:
            r = await c.get("/api/health")
            r.raise_for_status()
            return r.json()
    except httpx.HTTPError as e:
        click.secho(f"Cannot reach {_api_url()}: {e}", fg="red", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
