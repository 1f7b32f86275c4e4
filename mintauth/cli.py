#!/usr/bin/env python3
"""
mintauth - Command line entry point

Thin layer over AuthApi:
1. Loads configuration from the environment
2. Builds the auth stack
3. Runs one session operation

Sessions survive between invocations only with MINTAUTH_STORE=redis.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import click

from mintauth.config.provider import EnvConfigProvider
from mintauth.logging_config import configure_logging
from mintauth.modules.auth import AuthApi, AuthFactory
from mintauth.modules.session import AuthSessionError, AuthSessionExpiredError
from mintauth.modules.session.errors import CredentialProviderError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def auth_api() -> AsyncIterator[AuthApi]:
    """Build AuthApi from the environment and release its resources afterwards."""
    config_provider = EnvConfigProvider()
    store = AuthFactory.build_store(config_provider)
    api = AuthFactory.build(config_provider, store=store)
    try:
        yield api
    finally:
        await api.aclose()
        if hasattr(store, "disconnect"):
            await store.disconnect()


async def _login(endpoint_url: str, timeout: int) -> None:
    async with auth_api() as api:
        flow = await api.start_device_auth(endpoint_url)

        click.echo("")
        click.echo("========================================")
        click.echo("  OIDC Device Code Authorization")
        click.echo("========================================")
        click.echo(f"  Visit: {flow.verification_uri_complete or flow.verification_uri}")
        click.echo(f"  Code:  {flow.user_code}")
        click.echo("  Waiting for authorization...")
        click.echo("========================================")
        click.echo("")

        await flow.poll(timeout=timeout)
        session = await api.get_session(endpoint_url)
        click.echo(f"Logged in to {session.endpoint_url} (expires in {session.remaining_seconds()}s)")


async def _status(endpoint_url: str) -> int:
    async with auth_api() as api:
        if not await api.has_session(endpoint_url):
            click.echo(f"{endpoint_url}: not logged in")
            return 1
        try:
            session = await api.get_session(endpoint_url)
        except AuthSessionExpiredError:
            click.echo(f"{endpoint_url}: session expired")
            return 2
        refresh = "yes" if session.refresh_token else "no"
        click.echo(
            f"{session.endpoint_url}: logged in, expires in {session.remaining_seconds()}s, refresh: {refresh}"
        )
        return 0


async def _logout(endpoint_url: str) -> None:
    async with auth_api() as api:
        await api.logout(endpoint_url)
        click.echo(f"Logged out of {endpoint_url}")


async def _restore() -> None:
    async with auth_api() as api:
        results = await api.restore_all()
        if not results:
            click.echo("No stored sessions")
        for endpoint_url, restored in results.items():
            click.echo(f"{endpoint_url}: {'restored' if restored else 'expired'}")


@click.group()
@click.option("--log-level", "log_level", default="WARNING", show_default=True)
def main(log_level: str):
    """Manage authenticated sessions with token-issuing endpoints."""
    configure_logging(log_level)


@main.command()
@click.argument("endpoint_url")
@click.option("--timeout", "timeout", default=300, show_default=True, help="Seconds to wait for authorization")
def login(endpoint_url: str, timeout: int):
    """Log in to ENDPOINT_URL with the device-code flow."""
    try:
        asyncio.run(_login(endpoint_url, timeout))
    except (CredentialProviderError, ValueError) as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("endpoint_url")
def status(endpoint_url: str):
    """Show the session state for ENDPOINT_URL."""
    try:
        code = asyncio.run(_status(endpoint_url))
    except (AuthSessionError, ValueError) as e:
        raise click.ClickException(str(e))
    click.get_current_context().exit(code)


@main.command()
@click.argument("endpoint_url")
def logout(endpoint_url: str):
    """Delete the session for ENDPOINT_URL."""
    try:
        asyncio.run(_logout(endpoint_url))
    except ValueError as e:
        raise click.ClickException(str(e))


@main.command()
def restore():
    """Check every stored session."""
    asyncio.run(_restore())


if __name__ == "__main__":
    main()
