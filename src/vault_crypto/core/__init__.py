# SPDX-License-Identifier: MPL-2.0
"""Core functionality for vault-crypto."""
from vault_crypto.core.canonicalization import canonicalize
from vault_crypto.core.config import Settings
from vault_crypto.core.crypto import compute_digest, hash_sha256
from vault_crypto.core.models import (
    CertificateInfo,
    HashAlgorithm,
    KeyReference,
    SecretEntry,
    SecretProperties,
    SignatureAlgorithm,
    SignatureInfo,
    SignedDocument,
    VerificationResult,
)

__all__ = [
    "canonicalize",
    "Settings",
    "compute_digest",
    "hash_sha256",
    "CertificateInfo",
    "HashAlgorithm",
    "KeyReference",
    "SecretEntry",
    "SecretProperties",
    "SignatureAlgorithm",
    "SignatureInfo",
    "SignedDocument",
    "VerificationResult",
]
