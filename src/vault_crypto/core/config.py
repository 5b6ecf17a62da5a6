# SPDX-License-Identifier: MPL-2.0
"""Runtime configuration for vault-crypto.

Settings are plain pydantic models so they can be built explicitly in code
and tests, or read from ``VAULT_CRYPTO_*`` environment variables with
:meth:`Settings.from_env`.
"""

import os
from datetime import timedelta
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from vault_crypto.core.exceptions import ConfigurationError
from vault_crypto.core.models import SignatureAlgorithm

ENV_PREFIX = "VAULT_CRYPTO_"

# Constants
DEFAULT_CACHE_TTL_SECONDS = 300  # 5 minutes
DEFAULT_SIGNING_KEY = "document-signing"
DEFAULT_FIELD_KEY_SECRET = "field-encryption-key"
DEFAULT_VAULT_PATH = "vault.json"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseModel):
    """Configuration shared by the cache, cipher and signer."""

    cache_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, gt=0)
    signing_key: str = Field(default=DEFAULT_SIGNING_KEY, min_length=1)
    signature_algorithm: SignatureAlgorithm = SignatureAlgorithm.RS256
    field_key_secret: str = Field(default=DEFAULT_FIELD_KEY_SECRET, min_length=1)
    vault_path: str = DEFAULT_VAULT_PATH
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``VAULT_CRYPTO_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None:
                values[name] = raw
        try:
            return cls.model_validate(values)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                "Invalid vault-crypto configuration",
                details={"errors": [e["msg"] for e in exc.errors()]},
            ) from exc
