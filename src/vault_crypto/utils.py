# SPDX-License-Identifier: MPL-2.0
"""Small helpers shared by the services."""

from datetime import datetime, timezone
from typing import Any

from vault_crypto.core.exceptions import ValidationError


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def require_text(value: Any, what: str) -> str:
    """Return ``value`` if it is a non-empty string, else raise ValidationError."""
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{what} must be a non-empty string", details={"field": what})
    return value
