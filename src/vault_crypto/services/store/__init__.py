# SPDX-License-Identifier: MPL-2.0
"""Secret/key store interface and bundled implementations."""

from vault_crypto.services.store.base import DeleteOperation, SecretStore
from vault_crypto.services.store.file import FileVault
from vault_crypto.services.store.memory import InMemoryVault

__all__ = ["DeleteOperation", "SecretStore", "InMemoryVault", "FileVault"]
