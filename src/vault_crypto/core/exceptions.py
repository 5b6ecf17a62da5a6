# SPDX-License-Identifier: MPL-2.0
"""Custom exceptions for vault-crypto.

This module defines the error taxonomy shared by the secret cache, the field
cipher and the document signer. Store implementations raise the ``NotFound``
family; the components translate them into typed outcomes at their own
boundary.
"""

from typing import Any, Dict, Optional


class VaultCryptoError(Exception):
    """Base exception for all vault-crypto errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(VaultCryptoError):
    """Raised when caller input is empty or malformed."""

    pass


class CanonicalizationError(ValidationError):
    """Raised when a document cannot be canonicalized."""

    pass


class NotFoundError(VaultCryptoError):
    """Base exception for absent secrets, keys and certificates."""

    pass


class SecretNotFoundError(NotFoundError):
    """Raised by a store when a named secret does not exist."""

    pass


class KeyNotFoundError(NotFoundError):
    """Raised by a store when a named signing key does not exist."""

    pass


class CertificateNotFoundError(NotFoundError):
    """Raised by a store when no certificate matches the lookup."""

    pass


class TransientError(VaultCryptoError):
    """Raised when the remote store failed in a way a caller may retry."""

    pass


class RateLimitError(TransientError):
    """Raised when the remote store throttled the request."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize the rate limit exception.

        Args:
            message: Error message
            retry_after: Optional number of seconds to wait before retrying
            details: Optional dictionary with additional error details
        """
        super().__init__(message, details)
        self.retry_after = retry_after


class CryptographicError(VaultCryptoError):
    """Raised when ciphertext is corrupt or bound to another purpose or key."""

    pass


class DecodeError(CryptographicError):
    """Raised when decrypted text cannot be parsed into the target type."""

    pass


class SigningError(VaultCryptoError):
    """Raised when any step of the signing pipeline fails."""

    pass


class ConfigurationError(VaultCryptoError):
    """Raised when configuration or key material is invalid or missing."""

    pass
