"""Command line front-end for the identity clients.

Provider and credentials come from the environment (a ``.env`` file is loaded
first):

    OAUTH_CLIENT_TYPE, OAUTH_ISSUER_URI, OAUTH_HTTP_TIMEOUT, OAUTH_*_ENDPOINT
    OAUTH_CLIENT_ID, OAUTH_CLIENT_SECRET, OAUTH_SIGNING_KEY_FILE, OAUTH_REDIRECT_URI
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, Optional

import httpx
import msgspec
import typer
from dotenv import load_dotenv

from .client.base import AuthClient
from .client.cache import ClientCache
from .client.models import (
    AuthOptions,
    AuthUrlParams,
    GrantOptions,
    IntrospectionParams,
    JwtGrantParams,
    RevocationOptions,
    User,
)
from .config import DEFAULT_HTTP_TIMEOUT, DEFAULT_ISSUER_URI, Environment
from .errors import ConfigurationError, IdentityError
from .flows import request_refresh_token
from .logging_config import get_logger, setup_logging

logger = get_logger("cli")

Operation = Callable[[ClientCache, Environment], Awaitable[Any]]


def _mask_secret(value: str | None) -> str:
    """Mask sensitive values for display."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "****"
    return value[:4] + "****" + value[-4:]


def _print_config() -> None:
    """Log the provider configuration at startup."""
    client_id = os.getenv("OAUTH_CLIENT_ID")

    sections: list[tuple[str, list[tuple[str, str]]]] = [
        (
            "Provider",
            [
                ("Type", os.getenv("OAUTH_CLIENT_TYPE", "Salesforce")),
                ("Issuer URI", os.getenv("OAUTH_ISSUER_URI", DEFAULT_ISSUER_URI)),
                (
                    "HTTP Timeout (ms)",
                    os.getenv("OAUTH_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT)),
                ),
            ],
        ),
        (
            "Credentials",
            [
                ("Client ID", client_id or "(not set)"),
                ("Client Secret", _mask_secret(os.getenv("OAUTH_CLIENT_SECRET"))),
                ("Signing Key File", os.getenv("OAUTH_SIGNING_KEY_FILE") or "(not set)"),
                ("Redirect URI", os.getenv("OAUTH_REDIRECT_URI") or "(not set)"),
            ],
        ),
    ]

    logger.info("=" * 55)
    logger.info("  Salesforce Identity Configuration")
    logger.info("=" * 55)

    for section_name, items in sections:
        logger.info("  [%s]", section_name)
        for key, value in items:
            logger.info("    %-20s %s", key, value)

    logger.info("=" * 55)

    if not client_id:
        logger.warning("  OAUTH_CLIENT_ID is required for grant, introspection and URL commands")


def _create_cache() -> ClientCache:
    return ClientCache()


def _signing_key() -> str | None:
    path = os.getenv("OAUTH_SIGNING_KEY_FILE")
    if not path:
        return None
    try:
        return Path(path).read_text()
    except OSError as e:
        raise ConfigurationError(f"Unable to read signing key file: {path}") from e


def _grant_options() -> GrantOptions:
    return GrantOptions(
        client_secret=os.getenv("OAUTH_CLIENT_SECRET"),
        signing_secret=_signing_key(),
        redirect_uri=os.getenv("OAUTH_REDIRECT_URI"),
    )


async def _with_cache(operation: Operation) -> Any:
    env = Environment.from_env()
    async with _create_cache() as cache:
        return await operation(cache, env)


def _run(operation: Operation) -> Any:
    """Run an operation, turning identity and transport errors into exit code 1."""
    try:
        return asyncio.run(_with_cache(operation))
    except (IdentityError, httpx.HTTPError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


async def _client(cache: ClientCache, env: Environment) -> AuthClient:
    return await cache.find_or_create(env)


def _echo_json(value: Any) -> None:
    if isinstance(value, (bytes, str)):
        typer.echo(value)
        return
    typer.echo(msgspec.json.format(msgspec.json.encode(value), indent=2).decode())


app = typer.Typer(
    name="salesforce-identity",
    help="Salesforce Identity - OAuth 2.0 / OpenID Connect client for Salesforce and other providers.",
    add_completion=False,
)


@app.callback()
def main(
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", "-l", help="Log level (default: from LOG_LEVEL env or INFO)"),
    ] = None,
) -> None:
    """Load the environment and configure logging."""
    load_dotenv()
    setup_logging(log_level)
    _print_config()


@app.command()
def discover() -> None:
    """Print the issuer's OpenID configuration."""

    async def operation(cache: ClientCache, env: Environment) -> Any:
        return await cache.issuer_cache.discover_or_get(env.http_timeout, env.issuer_uri)

    _echo_json(_run(operation))


@app.command("authorize-url")
def authorize_url(
    redirect_uri: Annotated[
        Optional[str],
        typer.Option("--redirect-uri", envvar="OAUTH_REDIRECT_URI", help="Redirect URI"),
    ] = None,
    scope: Annotated[Optional[str], typer.Option("--scope", help="Space separated scopes")] = None,
    state: Annotated[Optional[str], typer.Option("--state", help="Opaque state value")] = None,
    prompt: Annotated[
        Optional[str],
        typer.Option("--prompt", help="none, login, consent or select_account"),
    ] = None,
) -> None:
    """Print the authorization URL that starts the web server flow."""

    async def operation(cache: ClientCache, env: Environment) -> Any:
        client = await _client(cache, env)
        return client.create_authorization_url(
            AuthUrlParams(
                client_id=os.getenv("OAUTH_CLIENT_ID"),
                redirect_uri=redirect_uri,
                scope=scope,
            ),
            AuthOptions(prompt=prompt, state=state),  # type: ignore[arg-type]
        )

    typer.echo(_run(operation))


@app.command()
def refresh(
    refresh_token: Annotated[str, typer.Argument(help="Refresh token to exchange")],
) -> None:
    """Exchange a refresh token and print the access token response."""

    async def operation(cache: ClientCache, env: Environment) -> Any:
        return await request_refresh_token(
            cache,
            env,
            {"client_id": os.getenv("OAUTH_CLIENT_ID"), "refresh_token": refresh_token},
            _grant_options(),
        )

    _echo_json(_run(operation))


@app.command("jwt-grant")
def jwt_grant(
    username: Annotated[str, typer.Argument(help="User to request a token for")],
) -> None:
    """Request a token for a user with a JWT bearer grant (needs OAUTH_SIGNING_KEY_FILE)."""

    async def operation(cache: ClientCache, env: Environment) -> Any:
        client = await _client(cache, env)
        return await client.grant(
            JwtGrantParams(
                client_id=os.getenv("OAUTH_CLIENT_ID"),
                signing_secret=_signing_key(),
                user=User(username=username),
            ),
            # JWT bearer token responses are not signed
            GrantOptions(verify_signature=False),
        )

    _echo_json(_run(operation))


@app.command()
def introspect(
    token: Annotated[str, typer.Argument(help="Access or refresh token")],
) -> None:
    """Introspect a token and print the provider's answer."""

    async def operation(cache: ClientCache, env: Environment) -> Any:
        client = await _client(cache, env)
        return await client.introspect(
            token,
            IntrospectionParams(
                client_id=os.getenv("OAUTH_CLIENT_ID"),
                client_secret=os.getenv("OAUTH_CLIENT_SECRET"),
            ),
        )

    _echo_json(_run(operation))


@app.command()
def revoke(
    token: Annotated[str, typer.Argument(help="Access or refresh token")],
    use_get: Annotated[
        bool, typer.Option("--use-get", help="Send the revocation as a GET request")
    ] = False,
) -> None:
    """Revoke a token. Exits with code 1 if the provider refuses."""

    async def operation(cache: ClientCache, env: Environment) -> Any:
        client = await _client(cache, env)
        return await client.revoke(token, RevocationOptions(use_get=use_get))

    revoked = _run(operation)
    _echo_json({"revoked": revoked})
    if not revoked:
        raise typer.Exit(code=1)


@app.command()
def userinfo(
    token: Annotated[str, typer.Argument(help="Access token")],
) -> None:
    """Print the userinfo for an access token."""

    async def operation(cache: ClientCache, env: Environment) -> Any:
        client = await _client(cache, env)
        return await client.userinfo(token)

    _echo_json(_run(operation))


if __name__ == "__main__":
    app()
