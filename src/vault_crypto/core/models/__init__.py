# SPDX-License-Identifier: MPL-2.0
"""Data models for vault-crypto."""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class HashAlgorithm(str, Enum):
    """Digest algorithm applied to canonical document bytes."""

    SHA256 = "SHA256"


class SignatureAlgorithm(str, Enum):
    """Asymmetric signature scheme used by the signing key."""

    RS256 = "RS256"  # RSASSA-PKCS1-v1_5 with SHA-256
    PS256 = "PS256"  # RSASSA-PSS with SHA-256


@dataclass(frozen=True)
class SecretEntry:
    """A cached secret value with its absolute expiry."""

    name: str
    value: str = field(repr=False)
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class SecretProperties:
    """One item of a store's secret listing."""

    name: str
    enabled: bool = True


@dataclass(frozen=True)
class KeyReference:
    """Opaque handle naming a key held by the remote store."""

    name: str


@dataclass(frozen=True)
class CertificateInfo:
    """Read-only snapshot of the certificate bound to a signing key."""

    thumbprint: bytes
    expires_at: datetime
    enabled: bool
    key_reference: KeyReference
    subject: Optional[str] = None

    @property
    def thumbprint_hex(self) -> str:
        return self.thumbprint.hex().upper()

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_usable(self, now: datetime) -> bool:
        """A certificate may back a verification only while enabled and unexpired."""
        return self.enabled and not self.is_expired(now)


class SignedDocument(BaseModel):
    """A canonicalized document together with its detached signature.

    The JSON form uses camelCase field names, a standard base64 signature and
    an upper-case hex thumbprint, so signer and verifier processes exchange
    documents without loss.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    document_id: UUID = Field(default_factory=uuid4)
    document_type: str = Field(..., min_length=1)
    canonical_content: str
    signature: bytes
    signing_certificate_thumbprint: bytes
    signed_at: datetime
    signer_identity: str = "System"
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    signature_algorithm: SignatureAlgorithm = SignatureAlgorithm.RS256

    @field_validator("signature", mode="before")
    @classmethod
    def _decode_signature(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise ValueError("signature must be base64 encoded") from exc
        return value

    @field_validator("signing_certificate_thumbprint", mode="before")
    @classmethod
    def _decode_thumbprint(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return bytes.fromhex(value)
            except ValueError as exc:
                raise ValueError("thumbprint must be hex encoded") from exc
        return value

    @field_serializer("signature", when_used="json")
    def _encode_signature(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    @field_serializer("signing_certificate_thumbprint", when_used="json")
    def _encode_thumbprint(self, value: bytes) -> str:
        return value.hex().upper()

    @property
    def thumbprint_hex(self) -> str:
        return self.signing_certificate_thumbprint.hex().upper()

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize with the camelCase wire names."""
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, data: str | bytes) -> "SignedDocument":
        return cls.model_validate_json(data)


@dataclass
class VerificationResult:
    """Result of a signature verification.

    Evaluates truthy only when the signature is valid, so callers can branch
    on the result directly while still reading the diagnostics.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    document_id: Optional[str] = None
    certificate: Optional[CertificateInfo] = None

    def __bool__(self) -> bool:
        return self.is_valid

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary."""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "document_id": self.document_id,
            "certificate_thumbprint": self.certificate.thumbprint_hex if self.certificate else None,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert the result to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)


@dataclass
class SignatureInfo:
    """Audit view of a signed document.

    Intended for display. Security decisions must use ``is_valid`` and not
    the presence or absence of ``validation_errors``.
    """

    is_valid: bool
    signer_identity: str
    signed_at: datetime
    certificate_thumbprint: str
    certificate_expires_at: Optional[datetime] = None
    validation_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "signer_identity": self.signer_identity,
            "signed_at": self.signed_at.isoformat(),
            "certificate_thumbprint": self.certificate_thumbprint,
            "certificate_expires_at": (
                self.certificate_expires_at.isoformat() if self.certificate_expires_at else None
            ),
            "validation_errors": self.validation_errors,
        }
