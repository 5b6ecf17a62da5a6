# SPDX-License-Identifier: MPL-2.0
"""Services built on top of the secret store."""

from vault_crypto.services.cipher import FieldCipher, KeyRing
from vault_crypto.services.secrets import SecretCache
from vault_crypto.services.signing import DocumentSigner
from vault_crypto.services.store import FileVault, InMemoryVault, SecretStore

__all__ = [
    "DocumentSigner",
    "FieldCipher",
    "FileVault",
    "InMemoryVault",
    "KeyRing",
    "SecretCache",
    "SecretStore",
]
