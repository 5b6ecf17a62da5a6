# SPDX-License-Identifier: MPL-2.0
"""Main CLI entry point."""
import sys
from typing import Optional

import click

from vault_crypto.cli.commands import AppContext, document, field, key, secret
from vault_crypto.core.config import LOG_LEVELS, Settings
from vault_crypto.core.exceptions import ConfigurationError
from vault_crypto.core.log import configure_logging


@click.group()  # type: ignore[misc]
@click.option("--vault", "vault_path", type=click.Path(dir_okay=False),
              help="Vault state file (default: $VAULT_CRYPTO_VAULT_PATH or vault.json)")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help="Log level (default: $VAULT_CRYPTO_LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx: click.Context, vault_path: Optional[str], log_level: Optional[str]) -> None:
    """vault-crypto: cached secrets, field encryption and document signing."""
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}: {'; '.join(e.details.get('errors', []))}", err=True)
        sys.exit(1)

    overrides = {}
    if vault_path:
        overrides["vault_path"] = vault_path
    if log_level:
        overrides["log_level"] = log_level.upper()
    settings = settings.model_copy(update=overrides)

    configure_logging(settings.log_level)
    ctx.obj = AppContext(settings)


@cli.command()  # type: ignore[misc]
def version() -> None:
    """Show version information."""
    from vault_crypto import __version__

    click.echo(f"vault-crypto v{__version__}")


cli.add_command(secret)
cli.add_command(key)
cli.add_command(field)
cli.add_command(document)


if __name__ == "__main__":
    cli()
