"""passgate CLI using Typer.

Maintenance commands that run outside the request path: schema
migrations, purging unconfirmed registrations, and secret generation.
"""

import logging
import secrets

import typer
from psycopg_pool import ConnectionPool
from rich.console import Console

from passgate.adapters.repository.postgres import PostgresCredentialStore, run_migrations
from passgate.api.dependencies import (
    get_notifier,
    get_password_hasher,
    get_policy,
    get_token_issuer,
)
from passgate.config.settings import get_settings
from passgate.domain.credentials import CredentialService
from passgate.domain.exceptions import StoreFailure

app = typer.Typer(
    name="passgate",
    help="passgate - credential lifecycle service CLI",
    no_args_is_help=True,
)
console = Console()


def _open_pool() -> ConnectionPool:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    return ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=2, open=True)


@app.command("migrate")
def migrate() -> None:
    """Apply SQL migrations from the migrations/ directory."""
    pool = _open_pool()
    try:
        run_migrations(pool)
    finally:
        pool.close()
    console.print("[green]Migrations applied[/green]")


@app.command("purge-pending")
def purge_pending() -> None:
    """Delete pending registrations older than PENDING_TTL_SECONDS.

    Unconfirmed registrations keep their email reserved until purged;
    schedule this command (cron, k8s CronJob) to release them.
    """
    pool = _open_pool()
    try:
        service = CredentialService(
            store=PostgresCredentialStore(pool),
            notifier=get_notifier(),
            hasher=get_password_hasher(),
            token_issuer=get_token_issuer(),
            policy=get_policy(),
        )
        purged = service.purge_stale_registrations()
    except StoreFailure as e:
        console.print(f"[red]Purge failed:[/red] {e}")
        raise typer.Exit(code=1) from e
    finally:
        pool.close()
    console.print(f"Purged [bold]{purged}[/bold] stale pending registration(s)")


@app.command("generate-secret")
def generate_secret() -> None:
    """Print a random value suitable for JWT_SECRET_KEY."""
    console.print(f"JWT_SECRET_KEY={secrets.token_urlsafe(48)}")


if __name__ == "__main__":
    app()
