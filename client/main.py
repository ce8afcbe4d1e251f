"""mailpass CLI entry point."""

import sys
import asyncio
from typing import Optional

import click
import httpx

from .credentials import Credentials, DEFAULT_SERVER_URL, normalize_server_url

REQUEST_TIMEOUT = 30.0


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def report_error(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)


def error_message(response: httpx.Response, fallback: str) -> str:
    """Message from a failed result envelope, or the fallback."""
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return fallback


def parse_email(value: str) -> str:
    """Prompt value processor; raising BadParameter makes click ask again."""
    email = value.strip().lower()
    local_part, _, domain = email.partition("@")
    if not local_part or "." not in domain:
        raise click.BadParameter("Please enter a valid email address.")
    return email


def check_server(ctx, param, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return normalize_server_url(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


async def send_verification_code(server_url: str, email: str) -> Optional[dict]:
    """Request verification code from server. Returns the result data."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.post(
                f"{server_url}/auth/send-code",
                json={"email": email},
                timeout=REQUEST_TIMEOUT,
            )
        except httpx.RequestError as e:
            report_error(f"Failed to connect to server: {e}")
            return None

    if response.status_code == 200:
        return response.json()["data"]
    report_error(error_message(response, "Failed to send verification code"))
    return None


async def verify_code_and_get_token(
    server_url: str, email: str, code: str
) -> Optional[dict]:
    """Verify code and get identity plus token from server."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.post(
                f"{server_url}/auth/verify-code",
                json={"email": email, "code": code},
                timeout=REQUEST_TIMEOUT,
            )
        except httpx.RequestError as e:
            report_error(f"Failed to connect to server: {e}")
            return None

    if response.status_code == 200:
        return response.json()["data"]
    report_error(error_message(response, "Verification failed"))
    return None


async def fetch_identity(server_url: str, token: str) -> tuple[int, Optional[dict]]:
    """
    Look up the identity behind a token.
    Returns (status_code, identity); status 0 means the server was unreachable.
    """
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(
                f"{server_url}/auth/me",
                headers={"Authorization": f"Bearer {token}"},
                timeout=REQUEST_TIMEOUT,
            )
        except httpx.RequestError as e:
            report_error(f"Failed to connect to server: {e}")
            return 0, None

    if response.status_code == 200:
        return 200, response.json()["data"]["identity"]
    report_error(error_message(response, "Failed to load identity"))
    return response.status_code, None


def do_login(server_url: str) -> Optional[Credentials]:
    """
    Perform interactive login flow against the auth server.
    Returns the saved credentials on success, None on failure.
    """
    email = click.prompt("Enter your email", value_proc=parse_email)

    click.echo("Sending verification code...")
    sent = run_async(send_verification_code(server_url, email))
    if not sent:
        return None

    click.echo(f"Verification code sent to {sent['maskedIdentifier']}. Check your email.")
    code = click.prompt("Enter code").strip()

    result = run_async(verify_code_and_get_token(server_url, email, code))
    if not result:
        return None

    credentials = Credentials(
        email=email, token=result["token"]["value"], server_url=server_url
    )
    credentials.save()
    click.secho(f"Logged in as {email}", fg="green")
    return credentials


@click.group()
@click.option(
    "--server",
    envvar="MAILPASS_SERVER_URL",
    default=None,
    callback=check_server,
    help="Auth server URL.",
)
@click.pass_context
def cli(ctx, server: Optional[str]):
    """mailpass - passwordless email sign-in"""
    credentials = Credentials.load()
    saved_server = credentials.server_url if credentials else None
    ctx.obj = {
        "credentials": credentials,
        "server_url": server or saved_server or DEFAULT_SERVER_URL,
    }


@cli.command()
@click.pass_context
def login(ctx):
    """Sign in with a one-time email code."""
    if not do_login(ctx.obj["server_url"]):
        sys.exit(1)


@cli.command()
@click.pass_context
def whoami(ctx):
    """Show the identity behind the saved token."""
    credentials: Optional[Credentials] = ctx.obj["credentials"]
    if credentials is None:
        report_error("Not logged in. Run 'mailpass login' first.")
        sys.exit(1)

    status_code, identity = run_async(
        fetch_identity(ctx.obj["server_url"], credentials.token)
    )
    if status_code == 401:
        Credentials.forget()
        click.echo("Saved session is no longer valid. Run 'mailpass login' again.")
        sys.exit(1)
    if identity is None:
        sys.exit(1)

    name = identity.get("displayName")
    click.echo(f"{name} <{identity['email']}>" if name else identity["email"])


@cli.command()
@click.pass_context
def logout(ctx):
    """Clear saved credentials."""
    credentials: Optional[Credentials] = ctx.obj["credentials"]
    Credentials.forget()
    if credentials:
        click.secho(f"Logged out from {credentials.email}", fg="green")
    else:
        click.echo("Not logged in")


@cli.command()
@click.pass_context
def status(ctx):
    """Show current user and server."""
    credentials: Optional[Credentials] = ctx.obj["credentials"]
    if credentials:
        click.echo(f"Logged in as: {credentials.email}")
    else:
        click.echo("Not logged in")
    click.echo(f"Server: {ctx.obj['server_url']}")


if __name__ == "__main__":
    cli()
