# SPDX-License-Identifier: MPL-2.0
"""Storage converters that encrypt values on write and decrypt them on read.

The plain converters are ORM-agnostic. :class:`EncryptedString` and
:class:`EncryptedDecimal` wrap them as SQLAlchemy column types.
"""

import logging
from decimal import Decimal
from typing import Any, Optional, Union

from sqlalchemy.types import Text, TypeDecorator

from vault_crypto.core.exceptions import CryptographicError
from vault_crypto.services.cipher.field_cipher import FieldCipher
from vault_crypto.utils import require_text

logger = logging.getLogger(__name__)

DECRYPTION_ERROR_MARKER = "[ENCRYPTED_DATA_ERROR]"


class EncryptedStringConverter:
    """Encrypt strings for storage; unreadable values read back as a marker."""

    def __init__(
        self,
        cipher: FieldCipher,
        purpose: str,
        error_marker: str = DECRYPTION_ERROR_MARKER,
    ) -> None:
        self.cipher = cipher
        self.purpose = require_text(purpose, "Purpose")
        self.error_marker = error_marker

    def to_storage(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        return self.cipher.encrypt(value, self.purpose)

    def from_storage(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        try:
            return self.cipher.decrypt(value, self.purpose)
        except CryptographicError as exc:
            logger.error("Could not decrypt stored value for purpose %s: %s", self.purpose, exc.message)
            return self.error_marker


class EncryptedDecimalConverter:
    """Encrypt decimals for storage; unreadable values read back as ``None``."""

    def __init__(self, cipher: FieldCipher, purpose: str) -> None:
        self.cipher = cipher
        self.purpose = require_text(purpose, "Purpose")

    def to_storage(self, value: Union[Decimal, int, str, None]) -> Optional[str]:
        if value is None:
            return None
        return self.cipher.encrypt_decimal(value, self.purpose)

    def from_storage(self, value: Optional[str]) -> Optional[Decimal]:
        if not value:
            return None
        try:
            return self.cipher.decrypt_decimal(value, self.purpose)
        except CryptographicError as exc:
            logger.error("Could not decrypt stored decimal for purpose %s: %s", self.purpose, exc.message)
            return None


class EncryptedString(TypeDecorator):
    """Text column holding a field-encrypted string."""

    impl = Text
    cache_ok = True

    def __init__(self, cipher: FieldCipher, purpose: str, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.cipher = cipher
        self.purpose = purpose
        self._converter = EncryptedStringConverter(cipher, purpose)

    def process_bind_param(self, value: Optional[str], dialect: Any) -> Optional[str]:
        return self._converter.to_storage(value)

    def process_result_value(self, value: Optional[str], dialect: Any) -> Optional[str]:
        return self._converter.from_storage(value)


class EncryptedDecimal(TypeDecorator):
    """Text column holding a field-encrypted decimal."""

    impl = Text
    cache_ok = True

    def __init__(self, cipher: FieldCipher, purpose: str, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.cipher = cipher
        self.purpose = purpose
        self._converter = EncryptedDecimalConverter(cipher, purpose)

    def process_bind_param(self, value: Union[Decimal, int, str, None], dialect: Any) -> Optional[str]:
        return self._converter.to_storage(value)

    def process_result_value(self, value: Optional[str], dialect: Any) -> Optional[Decimal]:
        return self._converter.from_storage(value)
