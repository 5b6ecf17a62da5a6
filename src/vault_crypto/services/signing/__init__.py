# SPDX-License-Identifier: MPL-2.0
"""Document signing and verification."""

from vault_crypto.services.signing.signer import (
    CERTIFICATE_DISABLED,
    CERTIFICATE_EXPIRED,
    CERTIFICATE_NOT_FOUND,
    SIGNATURE_MISMATCH,
    DocumentSigner,
)

__all__ = [
    "CERTIFICATE_DISABLED",
    "CERTIFICATE_EXPIRED",
    "CERTIFICATE_NOT_FOUND",
    "SIGNATURE_MISMATCH",
    "DocumentSigner",
]
