# SPDX-License-Identifier: MPL-2.0
"""
vault-crypto - Secret caching, field encryption and document signing.

This package fronts a remote secret/key store with a TTL cache, encrypts
individual values under purpose-bound keys, and signs structured documents
so they can be verified later by another process.
"""

import contextlib
from importlib.metadata import version

# Set up version
__version__ = "0.1.0"

with contextlib.suppress(Exception):
    __version__ = version("vault-crypto")


# Core components
from vault_crypto.core import canonicalize
from vault_crypto.services import (
    DocumentSigner,
    FieldCipher,
    FileVault,
    InMemoryVault,
    KeyRing,
    SecretCache,
    SecretStore,
)

# Public API
__all__ = [
    "canonicalize",
    "DocumentSigner",
    "FieldCipher",
    "FileVault",
    "InMemoryVault",
    "KeyRing",
    "SecretCache",
    "SecretStore",
    "__version__",
]
