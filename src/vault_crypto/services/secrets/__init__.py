# SPDX-License-Identifier: MPL-2.0
"""Secret retrieval with a process-local TTL cache."""

from vault_crypto.services.secrets.cache import DEFAULT_TTL, CacheStats, SecretCache

__all__ = ["DEFAULT_TTL", "CacheStats", "SecretCache"]
