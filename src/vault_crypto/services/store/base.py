# SPDX-License-Identifier: MPL-2.0
"""The narrow interface this package needs from a remote secret/key store.

Anything that implements :class:`SecretStore` can back the cache and the
signer: a cloud key vault client wrapped with its own retry/timeout policy,
or the in-memory and file stores shipped here for tests and development.

Error contract for implementations:

* missing secrets raise :class:`SecretNotFoundError`
* missing keys raise :class:`KeyNotFoundError`
* missing certificates raise :class:`CertificateNotFoundError`
* everything the caller may retry raises :class:`TransientError`
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Protocol, runtime_checkable

from vault_crypto.core.models import CertificateInfo, SecretProperties, SignatureAlgorithm


@dataclass
class DeleteOperation:
    """Handle for a delete the store finishes asynchronously."""

    name: str
    operation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed: bool = False


@runtime_checkable
class SecretStore(Protocol):
    """Async operations offered by the remote store."""

    async def fetch_secret(self, name: str) -> str:
        ...

    async def write_secret(self, name: str, value: str) -> None:
        ...

    async def begin_delete_secret(self, name: str) -> DeleteOperation:
        ...

    async def wait_for_completion(self, operation: DeleteOperation) -> None:
        ...

    async def list_secret_properties(self) -> List[SecretProperties]:
        ...

    async def sign(self, key_name: str, digest: bytes, algorithm: SignatureAlgorithm) -> bytes:
        ...

    async def verify(
        self,
        key_name: str,
        digest: bytes,
        signature: bytes,
        algorithm: SignatureAlgorithm,
    ) -> bool:
        ...

    async def get_certificate(self, key_name_or_thumbprint: str) -> CertificateInfo:
        ...
