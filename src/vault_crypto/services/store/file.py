# SPDX-License-Identifier: MPL-2.0
"""JSON-file backed development store.

Keeps the full :class:`InMemoryVault` state (secrets, PEM private keys,
PEM certificates and enablement flags) in a single file so the CLI can work
across invocations. Private keys are stored unencrypted; the file is written
with owner-only permissions and is meant for local development only.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

from vault_crypto.core import crypto
from vault_crypto.core.exceptions import ConfigurationError
from vault_crypto.services.store.memory import InMemoryVault, SigningKey, StoredSecret

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class FileVault(InMemoryVault):
    """An :class:`InMemoryVault` that reloads and saves a JSON state file."""

    def __init__(self, path: Union[str, Path], key_size: int = 2048) -> None:
        self.path = Path(path)
        self._loading = True
        super().__init__(key_size=key_size)
        if self.path.exists():
            self._load()
        self._loading = False

    def _load(self) -> None:
        try:
            state = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot read vault file {self.path}: {exc}") from exc

        if state.get("version") != STATE_VERSION:
            raise ConfigurationError(
                f"Unsupported vault file version: {state.get('version')!r}",
                details={"path": str(self.path)},
            )

        try:
            for name, item in state.get("secrets", {}).items():
                self._secrets[name] = StoredSecret(value=item["value"], enabled=item.get("enabled", True))
            for name, item in state.get("keys", {}).items():
                self._keys[name] = SigningKey(
                    private_key=crypto.private_key_from_pem(item["private_key"]),
                    certificate=crypto.certificate_from_pem(item["certificate"]),
                    enabled=item.get("enabled", True),
                )
        except (KeyError, ValueError, TypeError) as exc:
            raise ConfigurationError(f"Corrupt vault file {self.path}: {exc}") from exc

        logger.debug("Loaded %d secrets and %d keys from %s", len(self._secrets), len(self._keys), self.path)

    def _snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": STATE_VERSION,
                "secrets": {
                    name: {"value": secret.value, "enabled": secret.enabled}
                    for name, secret in self._secrets.items()
                    if not secret.deleting
                },
                "keys": {
                    name: {
                        "private_key": crypto.private_key_to_pem(key.private_key),
                        "certificate": crypto.certificate_to_pem(key.certificate),
                        "enabled": key.enabled,
                    }
                    for name, key in self._keys.items()
                },
            }

    def _persist(self) -> None:
        if self._loading:
            return
        data = json.dumps(self._snapshot(), indent=2, sort_keys=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".vault-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            try:
                os.chmod(tmp_name, 0o600)
            except OSError as e:
                logger.warning(f"Failed to set restrictive permissions on vault file: {e}")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
