# SPDX-License-Identifier: MPL-2.0
"""
CLI command implementations for vault-crypto.

Every command works against the JSON-file development vault configured by
``--vault`` or ``VAULT_CRYPTO_VAULT_PATH``.
"""

import asyncio
import json
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Coroutine, NoReturn, Optional, TypeVar

import click
from pydantic import ValidationError as PydanticValidationError

from vault_crypto.core.config import Settings
from vault_crypto.core.exceptions import VaultCryptoError
from vault_crypto.core.models import SignedDocument, VerificationResult
from vault_crypto.services.cipher import FieldCipher
from vault_crypto.services.secrets import SecretCache
from vault_crypto.services.signing import DocumentSigner
from vault_crypto.services.store import FileVault

T = TypeVar("T")


class AppContext:
    """Per-invocation state shared by the commands."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._vault: Optional[FileVault] = None

    @property
    def vault(self) -> FileVault:
        if self._vault is None:
            self._vault = FileVault(self.settings.vault_path)
        return self._vault

    def cache(self) -> SecretCache:
        return SecretCache.from_settings(self.vault, self.settings)

    def signer(self) -> DocumentSigner:
        return DocumentSigner.from_settings(self.vault, self.settings)

    def cipher(self) -> FieldCipher:
        return run(FieldCipher.from_secret_cache(self.cache(), self.settings.field_key_secret))


pass_app = click.make_pass_decorator(AppContext)


# Helper functions
def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a service coroutine to completion."""
    return asyncio.run(coro)


def fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def load_json_file(file_path: str) -> Any:
    """Load a JSON document from a file."""
    try:
        return json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        fail(f"Cannot read JSON from {file_path}: {e}")


def load_signed_document(file_path: str) -> SignedDocument:
    """Load a signed document from a JSON file."""
    try:
        return SignedDocument.from_json(Path(file_path).read_text(encoding="utf-8"))
    except OSError as e:
        fail(f"Cannot read {file_path}: {e}")
    except PydanticValidationError as e:
        fail(f"Invalid signed document in {file_path}: {e.error_count()} validation error(s)")


def print_verification(file_path: str, result: VerificationResult) -> None:
    click.echo(f"Document: {file_path}")
    click.echo(f"Status: {'VALID' if result.is_valid else 'INVALID'}")

    if result.warnings:
        click.echo("\nWarnings:")
        for warning in result.warnings:
            click.echo(f"  ! {warning}")

    if result.errors:
        click.echo("\nErrors:")
        for error in result.errors:
            click.echo(f"  x {error}")

    if result.document_id:
        click.echo("\nDocument ID:")
        click.echo(f"  {result.document_id}")

    if result.certificate:
        click.echo("\nCertificate:")
        click.echo(f"  {result.certificate.thumbprint_hex} (expires {result.certificate.expires_at.isoformat()})")


# Secret commands
@click.group()
def secret() -> None:
    """Read and write secrets."""


@secret.command("get")
@click.argument("name")
@pass_app
def secret_get(app: AppContext, name: str) -> None:
    """Print a secret value."""
    try:
        value = run(app.cache().get(name))
    except VaultCryptoError as e:
        fail(e.message)
    if value is None:
        fail(f"Secret not found: {name}")
    click.echo(value)


@secret.command("set")
@click.argument("name")
@click.argument("value", required=False)
@pass_app
def secret_set(app: AppContext, name: str, value: Optional[str]) -> None:
    """Store a secret (prompts for the value when omitted)."""
    if value is None:
        value = click.prompt("Value", hide_input=True)
    try:
        run(app.cache().set(name, value))
    except VaultCryptoError as e:
        fail(e.message)
    click.echo(f"Secret {name} stored")


@secret.command("delete")
@click.argument("name")
@pass_app
def secret_delete(app: AppContext, name: str) -> None:
    """Delete a secret."""
    try:
        deleted = run(app.cache().delete(name))
    except VaultCryptoError as e:
        fail(e.message)
    if not deleted:
        fail(f"Secret not found: {name}")
    click.echo(f"Secret {name} deleted")


@secret.command("list")
@pass_app
def secret_list(app: AppContext) -> None:
    """List secret names."""
    try:
        properties = run(app.vault.list_secret_properties())
    except VaultCryptoError as e:
        fail(e.message)
    for item in properties:
        click.echo(item.name if item.enabled else f"{item.name} (disabled)")


# Key commands
@click.group()
def key() -> None:
    """Manage signing keys."""


@key.command("create")
@click.argument("name")
@click.option("--days", type=click.IntRange(min=1), default=365, show_default=True,
              help="Certificate validity in days")
@pass_app
def key_create(app: AppContext, name: str, days: int) -> None:
    """Create a signing key with a self-signed certificate."""
    try:
        info = app.vault.create_key(name, timedelta(days=days))
    except VaultCryptoError as e:
        fail(e.message)
    click.echo(f"Key: {name}")
    click.echo(f"Thumbprint: {info.thumbprint_hex}")
    click.echo(f"Expires: {info.expires_at.isoformat()}")


@key.command("show")
@click.argument("name")
@pass_app
def key_show(app: AppContext, name: str) -> None:
    """Show the certificate of a signing key."""
    try:
        info = run(app.vault.get_certificate(name))
    except VaultCryptoError as e:
        fail(e.message)
    click.echo(f"Key: {info.key_reference.name}")
    click.echo(f"Subject: {info.subject}")
    click.echo(f"Thumbprint: {info.thumbprint_hex}")
    click.echo(f"Expires: {info.expires_at.isoformat()}")
    click.echo(f"Enabled: {'yes' if info.enabled else 'no'}")


# Field encryption commands
@click.group()
def field() -> None:
    """Encrypt and decrypt single values."""


@field.command("generate-key")
@click.option("--store", is_flag=True, help="Save the key under the configured field key secret")
@pass_app
def field_generate_key(app: AppContext, store: bool) -> None:
    """Generate a field-encryption master key."""
    material = FieldCipher.generate_key()
    if not store:
        click.echo(material)
        return
    secret_name = app.settings.field_key_secret
    try:
        run(app.cache().set(secret_name, material))
    except VaultCryptoError as e:
        fail(e.message)
    click.echo(f"Field key stored as secret {secret_name}")


@field.command("encrypt")
@click.argument("purpose")
@click.argument("value")
@pass_app
def field_encrypt(app: AppContext, purpose: str, value: str) -> None:
    """Encrypt VALUE for PURPOSE."""
    try:
        click.echo(app.cipher().encrypt(value, purpose))
    except VaultCryptoError as e:
        fail(e.message)


@field.command("decrypt")
@click.argument("purpose")
@click.argument("token")
@pass_app
def field_decrypt(app: AppContext, purpose: str, token: str) -> None:
    """Decrypt TOKEN that was encrypted for PURPOSE."""
    try:
        click.echo(app.cipher().decrypt(token, purpose))
    except VaultCryptoError as e:
        fail(e.message)


# Document commands
@click.group()
def document() -> None:
    """Sign and verify documents."""


@document.command("sign")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--type", "-t", "document_type", required=True, help="Document type label")
@click.option("--signer", "-s", "signer_identity", default="System", show_default=True,
              help="Identity recorded as the signer")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output file (default: stdout)")
@pass_app
def document_sign(
    app: AppContext,
    file: str,
    document_type: str,
    signer_identity: str,
    output: Optional[str],
) -> None:
    """Sign the JSON document in FILE."""
    payload = load_json_file(file)
    try:
        signed = run(app.signer().sign(payload, document_type, signer_identity=signer_identity))
    except VaultCryptoError as e:
        fail(e.message)

    signed_json = signed.to_json(indent=2)
    if output:
        Path(output).write_text(signed_json + "\n", encoding="utf-8")
        click.echo(f"Signed document saved to {output}")
    else:
        click.echo(signed_json)


@document.command("verify")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text",
              help="Output format")
@pass_app
def document_verify(app: AppContext, file: str, output: str) -> None:
    """Verify a signed document; exits with status 1 when it is invalid."""
    signed = load_signed_document(file)
    try:
        result = run(app.signer().verify(signed))
    except VaultCryptoError as e:
        fail(e.message)

    if output == "json":
        click.echo(result.to_json())
    else:
        print_verification(file, result)

    if not result.is_valid:
        sys.exit(1)


@document.command("info")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@pass_app
def document_info(app: AppContext, file: str) -> None:
    """Show signer, signing time and certificate details of a signed document."""
    signed = load_signed_document(file)
    try:
        info = run(app.signer().get_signature_info(signed))
    except VaultCryptoError as e:
        fail(e.message)
    click.echo(json.dumps(info.to_dict(), indent=2))
