# SPDX-License-Identifier: MPL-2.0
"""In-memory secret and key store.

Implements :class:`~vault_crypto.services.store.base.SecretStore` entirely in
process. Signing keys are real RSA keys with self-signed certificates, so
signatures produced here verify with any standard RSA implementation.

The store also records how many times each operation ran and can inject
failures, which is what the test-suite uses to observe cache behaviour.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import Counter, defaultdict, deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Deque, Dict, List, Optional

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from vault_crypto.core import crypto
from vault_crypto.core.exceptions import (
    CertificateNotFoundError,
    KeyNotFoundError,
    SecretNotFoundError,
    TransientError,
    ValidationError,
)
from vault_crypto.core.models import (
    CertificateInfo,
    KeyReference,
    SecretProperties,
    SignatureAlgorithm,
)
from vault_crypto.services.store.base import DeleteOperation

logger = logging.getLogger(__name__)

DEFAULT_CERTIFICATE_VALIDITY = timedelta(days=365)


@dataclass
class StoredSecret:
    value: str
    enabled: bool = True
    deleting: bool = False


@dataclass
class SigningKey:
    private_key: rsa.RSAPrivateKey
    certificate: x509.Certificate
    enabled: bool = True


class InMemoryVault:
    """A process-local stand-in for a remote key vault."""

    def __init__(self, latency: float = 0.0, key_size: int = 2048) -> None:
        """Initialize an empty vault.

        Args:
            latency: Seconds every operation sleeps before running
            key_size: RSA modulus size for keys created by :meth:`create_key`
        """
        self.latency = latency
        self.key_size = key_size
        self.calls: Counter = Counter()
        self._secrets: Dict[str, StoredSecret] = {}
        self._keys: Dict[str, SigningKey] = {}
        self._pending: Dict[str, DeleteOperation] = {}
        self._faults: Dict[str, Deque[Exception]] = defaultdict(deque)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Test and administration helpers
    # ------------------------------------------------------------------
    def fail_next(self, operation: str, error: Optional[Exception] = None) -> None:
        """Make the next call of ``operation`` raise ``error``."""
        with self._lock:
            self._faults[operation].append(error or TransientError(f"Injected failure in {operation}"))

    def seed_secret(self, name: str, value: str, enabled: bool = True) -> None:
        """Store a secret without going through the async API."""
        with self._lock:
            self._secrets[name] = StoredSecret(value=value, enabled=enabled)
        self._persist()

    def set_secret_enabled(self, name: str, enabled: bool) -> None:
        with self._lock:
            if name not in self._secrets:
                raise SecretNotFoundError(f"Secret not found: {name}", details={"name": name})
            self._secrets[name].enabled = enabled
        self._persist()

    def create_key(
        self,
        name: str,
        validity: timedelta = DEFAULT_CERTIFICATE_VALIDITY,
    ) -> CertificateInfo:
        """Create (or replace) a signing key and its self-signed certificate."""
        if not name:
            raise ValidationError("Key name must not be empty")
        private_key = crypto.generate_rsa_key(self.key_size)
        certificate = crypto.create_self_signed_certificate(private_key, name, validity)
        with self._lock:
            self._keys[name] = SigningKey(private_key=private_key, certificate=certificate)
            info = self._certificate_info(name, self._keys[name])
        logger.info("Created signing key %s (thumbprint %s)", name, info.thumbprint_hex)
        self._persist()
        return info

    def set_certificate_enabled(self, name: str, enabled: bool) -> None:
        with self._lock:
            self._signing_key(name).enabled = enabled
        self._persist()

    def has_key(self, name: str) -> bool:
        with self._lock:
            return name in self._keys

    def _persist(self) -> None:
        """Hook for subclasses that keep the state somewhere durable."""

    # ------------------------------------------------------------------
    # SecretStore
    # ------------------------------------------------------------------
    async def _enter(self, operation: str) -> None:
        await asyncio.sleep(self.latency)
        with self._lock:
            self.calls[operation] += 1
            faults = self._faults.get(operation)
            error = faults.popleft() if faults else None
        if error is not None:
            raise error

    async def fetch_secret(self, name: str) -> str:
        await self._enter("fetch_secret")
        with self._lock:
            secret = self._secrets.get(name)
            if secret is None or secret.deleting or not secret.enabled:
                raise SecretNotFoundError(f"Secret not found: {name}", details={"name": name})
            return secret.value

    async def write_secret(self, name: str, value: str) -> None:
        await self._enter("write_secret")
        with self._lock:
            existing = self._secrets.get(name)
            if existing is not None and existing.deleting:
                raise TransientError(
                    f"Secret {name} is being deleted", details={"name": name}
                )
            self._secrets[name] = StoredSecret(value=value)
        self._persist()

    async def begin_delete_secret(self, name: str) -> DeleteOperation:
        await self._enter("begin_delete_secret")
        with self._lock:
            secret = self._secrets.get(name)
            if secret is None or secret.deleting:
                raise SecretNotFoundError(f"Secret not found: {name}", details={"name": name})
            secret.deleting = True
            operation = DeleteOperation(name=name)
            self._pending[operation.operation_id] = operation
        return operation

    async def wait_for_completion(self, operation: DeleteOperation) -> None:
        await self._enter("wait_for_completion")
        with self._lock:
            pending = self._pending.pop(operation.operation_id, None)
            if pending is None:
                if operation.completed:
                    return
                raise TransientError(
                    f"Unknown delete operation {operation.operation_id}",
                    details={"name": operation.name},
                )
            self._secrets.pop(pending.name, None)
            pending.completed = True
            operation.completed = True
        self._persist()

    async def list_secret_properties(self) -> List[SecretProperties]:
        await self._enter("list_secret_properties")
        with self._lock:
            return [
                SecretProperties(name=name, enabled=secret.enabled)
                for name, secret in sorted(self._secrets.items())
                if not secret.deleting
            ]

    async def sign(self, key_name: str, digest: bytes, algorithm: SignatureAlgorithm) -> bytes:
        await self._enter("sign")
        with self._lock:
            private_key = self._signing_key(key_name).private_key
        return crypto.rsa_sign_digest(private_key, digest, algorithm)

    async def verify(
        self,
        key_name: str,
        digest: bytes,
        signature: bytes,
        algorithm: SignatureAlgorithm,
    ) -> bool:
        await self._enter("verify")
        with self._lock:
            public_key = self._signing_key(key_name).certificate.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            return False
        return crypto.rsa_verify_digest(public_key, digest, signature, algorithm)

    async def get_certificate(self, key_name_or_thumbprint: str) -> CertificateInfo:
        await self._enter("get_certificate")
        with self._lock:
            key = self._keys.get(key_name_or_thumbprint)
            if key is not None:
                return self._certificate_info(key_name_or_thumbprint, key)
            wanted = key_name_or_thumbprint.upper()
            for name, candidate in self._keys.items():
                info = self._certificate_info(name, candidate)
                if info.thumbprint_hex == wanted:
                    return info
        raise CertificateNotFoundError(
            f"Certificate not found: {key_name_or_thumbprint}",
            details={"lookup": key_name_or_thumbprint},
        )

    # ------------------------------------------------------------------
    # Internals (callers hold self._lock)
    # ------------------------------------------------------------------
    def _signing_key(self, name: str) -> SigningKey:
        key = self._keys.get(name)
        if key is None:
            raise KeyNotFoundError(f"Signing key not found: {name}", details={"name": name})
        return key

    @staticmethod
    def _certificate_info(name: str, key: SigningKey) -> CertificateInfo:
        return CertificateInfo(
            thumbprint=crypto.certificate_thumbprint(key.certificate),
            expires_at=crypto.certificate_not_after(key.certificate),
            enabled=key.enabled,
            key_reference=KeyReference(name=name),
            subject=key.certificate.subject.rfc4514_string(),
        )
