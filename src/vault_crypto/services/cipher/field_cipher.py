# SPDX-License-Identifier: MPL-2.0
"""Field-level encryption for single scalar values.

Each value is encrypted with AES-256-GCM under a data key derived from a
versioned master key and the caller's *purpose* string. The purpose is both
the HKDF ``info`` and part of the associated data, so a token produced for
one purpose never decrypts under another.

Token layout::

    f1.<key-version>.<base64url(nonce || ciphertext || tag)>

Encryption and decryption are synchronous; only loading the key ring from a
secret store is asynchronous and happens once, at construction time.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import threading
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Dict, Mapping, Tuple, Union

from vault_crypto.core import crypto
from vault_crypto.core.exceptions import (
    ConfigurationError,
    CryptographicError,
    DecodeError,
    ValidationError,
)
from vault_crypto.utils import require_text

if TYPE_CHECKING:
    from vault_crypto.services.secrets import SecretCache

logger = logging.getLogger(__name__)

TOKEN_FORMAT = "f1"
DEFAULT_KEY_VERSION = "v1"
DECIMAL_QUANTUM = Decimal("0.0001")  # 4 decimal places

_VERSION_RE = re.compile(r"^[A-Za-z0-9_-]{1,32}$")


def _b64u_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64u_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.b64decode(data + padding, altchars=b"-_", validate=True)


class KeyRing:
    """Versioned field-encryption master keys with one active version.

    New values are always encrypted under the active version; older versions
    stay available for decryption until they are removed from the ring.
    """

    def __init__(self, keys: Mapping[str, bytes], active_version: str) -> None:
        if not keys:
            raise ConfigurationError("Key ring must contain at least one key")
        for version, key in keys.items():
            if not _VERSION_RE.match(version):
                raise ConfigurationError(f"Invalid key version label: {version!r}")
            if len(key) != crypto.FIELD_KEY_SIZE:
                raise ConfigurationError(
                    f"Key {version} must be {crypto.FIELD_KEY_SIZE} bytes",
                    details={"version": version},
                )
        if active_version not in keys:
            raise ConfigurationError(f"Active key version {active_version!r} is not in the ring")
        self._keys: Dict[str, bytes] = dict(keys)
        self._active = active_version

    @classmethod
    def single(cls, key: bytes, version: str = DEFAULT_KEY_VERSION) -> "KeyRing":
        return cls({version: key}, version)

    @classmethod
    def from_secret_value(cls, value: str) -> "KeyRing":
        """Parse a key ring stored as a secret.

        Two layouts are accepted: a bare base64 key (becomes version ``v1``)
        or a JSON object ``{"active": "v2", "keys": {"v1": "...", "v2": "..."}}``.
        """
        value = value.strip()
        try:
            if value.startswith("{"):
                data = json.loads(value)
                keys = {version: base64.b64decode(key, validate=True) for version, key in data["keys"].items()}
                return cls(keys, data["active"])
            return cls.single(base64.b64decode(value, validate=True))
        except (binascii.Error, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ConfigurationError(f"Malformed field-encryption key material: {exc}") from exc

    def to_secret_value(self) -> str:
        return json.dumps(
            {
                "active": self._active,
                "keys": {v: base64.b64encode(k).decode("ascii") for v, k in self._keys.items()},
            },
            sort_keys=True,
        )

    def with_key(self, version: str, key: bytes, activate: bool = True) -> "KeyRing":
        """Return a new ring with ``key`` added, optionally made active."""
        keys = dict(self._keys)
        keys[version] = key
        return KeyRing(keys, version if activate else self._active)

    @property
    def active_version(self) -> str:
        return self._active

    @property
    def versions(self) -> Tuple[str, ...]:
        return tuple(sorted(self._keys))

    def __contains__(self, version: object) -> bool:
        return version in self._keys

    def master_key(self, version: str) -> bytes:
        try:
            return self._keys[version]
        except KeyError:
            raise CryptographicError(
                f"Unknown key version: {version}", details={"version": version}
            ) from None


class FieldCipher:
    """Encrypt and decrypt scalar values under a named purpose."""

    def __init__(self, keyring: KeyRing) -> None:
        self._keyring = keyring
        self._data_keys: Dict[Tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    @classmethod
    async def from_secret_cache(cls, cache: "SecretCache", secret_name: str) -> "FieldCipher":
        """Load the key ring from ``secret_name`` through the secret cache.

        Raises:
            ConfigurationError: If the secret is missing or malformed
            TransientError: If the store could not be reached
        """
        value = await cache.get(secret_name)
        if value is None:
            raise ConfigurationError(
                f"Field-encryption key secret {secret_name!r} not found",
                details={"secret": secret_name},
            )
        keyring = KeyRing.from_secret_value(value)
        logger.info("Field cipher loaded key ring from %s (active %s)", secret_name, keyring.active_version)
        return cls(keyring)

    @staticmethod
    def generate_key() -> str:
        """Return a new base64-encoded 256-bit master key."""
        return base64.b64encode(crypto.generate_field_key()).decode("ascii")

    @property
    def key_version(self) -> str:
        return self._keyring.active_version

    @property
    def keyring(self) -> KeyRing:
        return self._keyring

    def encrypt(self, plaintext: str, purpose: str) -> str:
        """Encrypt ``plaintext`` for ``purpose``.

        Raises:
            ValidationError: If ``plaintext`` or ``purpose`` is empty
        """
        require_text(plaintext, "Plaintext")
        require_text(purpose, "Purpose")

        version = self._keyring.active_version
        blob = crypto.aead_encrypt(
            self._data_key(version, purpose),
            plaintext.encode("utf-8"),
            aad=self._associated_data(version, purpose),
        )
        return f"{TOKEN_FORMAT}.{version}.{_b64u_encode(blob)}"

    def decrypt(self, ciphertext: str, purpose: str) -> str:
        """Decrypt a token produced by :meth:`encrypt` for the same purpose.

        Raises:
            ValidationError: If ``ciphertext`` or ``purpose`` is empty
            CryptographicError: If the token is malformed, was produced under
                another purpose or key, or has been tampered with
        """
        require_text(ciphertext, "Ciphertext")
        require_text(purpose, "Purpose")

        parts = ciphertext.split(".")
        if len(parts) != 3 or parts[0] != TOKEN_FORMAT:
            raise CryptographicError("Malformed ciphertext token")
        _, version, payload = parts
        if version not in self._keyring:
            raise CryptographicError(f"Unknown key version: {version}", details={"version": version})
        try:
            blob = _b64u_decode(payload)
        except (binascii.Error, ValueError) as exc:
            raise CryptographicError("Ciphertext payload is not valid base64") from exc

        plaintext = crypto.aead_decrypt(
            self._data_key(version, purpose),
            blob,
            aad=self._associated_data(version, purpose),
        )
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CryptographicError("Decrypted value is not valid UTF-8") from exc

    def encrypt_decimal(self, value: Union[Decimal, int, str], purpose: str) -> str:
        """Encrypt a number using a fixed 4-decimal textual form."""
        try:
            number = Decimal(value)
            if not number.is_finite():
                raise ValidationError(f"Cannot encrypt non-finite number {value!r}")
            text = format(number.quantize(DECIMAL_QUANTUM, rounding=ROUND_HALF_EVEN), "f")
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise ValidationError(f"Not a decimal value: {value!r}") from exc
        return self.encrypt(text, purpose)

    def decrypt_decimal(self, ciphertext: str, purpose: str) -> Decimal:
        """Decrypt a value produced by :meth:`encrypt_decimal`.

        Raises:
            DecodeError: If the decrypted text is not a finite decimal
        """
        text = self.decrypt(ciphertext, purpose)
        try:
            number = Decimal(text)
        except InvalidOperation as exc:
            raise DecodeError("Decrypted value is not a decimal number") from exc
        if not number.is_finite():
            raise DecodeError("Decrypted value is not a finite decimal number")
        return number

    def _data_key(self, version: str, purpose: str) -> bytes:
        cache_key = (version, purpose)
        with self._lock:
            key = self._data_keys.get(cache_key)
        if key is None:
            key = crypto.derive_purpose_key(self._keyring.master_key(version), purpose)
            with self._lock:
                self._data_keys[cache_key] = key
        return key

    @staticmethod
    def _associated_data(version: str, purpose: str) -> bytes:
        return f"{TOKEN_FORMAT}|{version}|{purpose}".encode("utf-8")
