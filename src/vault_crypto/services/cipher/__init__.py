# SPDX-License-Identifier: MPL-2.0
"""Purpose-bound field encryption and storage converters."""

from vault_crypto.services.cipher.converters import (
    DECRYPTION_ERROR_MARKER,
    EncryptedDecimal,
    EncryptedDecimalConverter,
    EncryptedString,
    EncryptedStringConverter,
)
from vault_crypto.services.cipher.field_cipher import FieldCipher, KeyRing

__all__ = [
    "DECRYPTION_ERROR_MARKER",
    "EncryptedDecimal",
    "EncryptedDecimalConverter",
    "EncryptedString",
    "EncryptedStringConverter",
    "FieldCipher",
    "KeyRing",
]
