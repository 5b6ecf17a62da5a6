# SPDX-License-Identifier: MPL-2.0
"""
Document Signing

Signs structured business documents with an asymmetric key held by the secret
store and verifies those signatures later, possibly in another process.

Signing pipeline: canonicalize -> SHA-256 -> store.sign -> attach the
thumbprint of the key's certificate. Verification recomputes the digest from
the stored canonical content, resolves the certificate by thumbprint, checks
its lifecycle and only then asks the store to verify.
"""

import hmac
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

from vault_crypto.core.canonicalization import canonicalize
from vault_crypto.core.config import Settings
from vault_crypto.core.crypto import compute_digest
from vault_crypto.core.exceptions import NotFoundError, SigningError, ValidationError
from vault_crypto.core.models import (
    CertificateInfo,
    HashAlgorithm,
    KeyReference,
    SignatureAlgorithm,
    SignatureInfo,
    SignedDocument,
    VerificationResult,
)
from vault_crypto.services.store.base import SecretStore
from vault_crypto.utils import require_text, utcnow

logger = logging.getLogger(__name__)

# Certificates closer than this to expiry still verify, with a warning.
EXPIRY_WARNING_WINDOW = timedelta(days=30)

CERTIFICATE_NOT_FOUND = "certificate not found"
CERTIFICATE_EXPIRED = "certificate expired"
CERTIFICATE_DISABLED = "certificate disabled"
SIGNATURE_MISMATCH = "signature mismatch"


class DocumentSigner:
    """Sign and verify documents with a key held by a :class:`SecretStore`.

    Example:
        >>> signer = DocumentSigner(vault, KeyReference("document-signing"))
        >>> signed = await signer.sign({"invoice": 42}, "Invoice")
        >>> result = await signer.verify(signed)
        >>> result.is_valid
        True
    """

    def __init__(
        self,
        store: SecretStore,
        key: KeyReference,
        signature_algorithm: SignatureAlgorithm = SignatureAlgorithm.RS256,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the signer.

        Args:
            store: Store holding the signing key and its certificate
            key: Reference to the signing key
            signature_algorithm: Scheme used for new signatures
            clock: Source of the current UTC time
        """
        require_text(key.name, "Signing key name")
        self.store = store
        self.key = key
        self.signature_algorithm = SignatureAlgorithm(signature_algorithm)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        store: SecretStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> "DocumentSigner":
        return cls(
            store,
            KeyReference(settings.signing_key),
            signature_algorithm=settings.signature_algorithm,
            clock=clock,
        )

    async def sign(
        self,
        document: Any,
        document_type: str,
        signer_identity: str = "System",
    ) -> SignedDocument:
        """Canonicalize, hash and sign ``document``.

        Args:
            document: A dict, pydantic model or dataclass
            document_type: Caller-defined label, e.g. ``"Invoice"``
            signer_identity: Who requested the signature

        Returns:
            The signed document

        Raises:
            ValidationError: If ``document_type`` is empty
            SigningError: If any step of the pipeline failed
        """
        require_text(document_type, "Document type")

        try:
            canonical_content = canonicalize(document)
            digest = compute_digest(canonical_content.encode("utf-8"), HashAlgorithm.SHA256)
            signature = await self.store.sign(self.key.name, digest, self.signature_algorithm)
            certificate = await self.store.get_certificate(self.key.name)
            signed = SignedDocument(
                document_type=document_type,
                canonical_content=canonical_content,
                signature=signature,
                signing_certificate_thumbprint=certificate.thumbprint,
                signed_at=self._clock(),
                signer_identity=signer_identity,
                hash_algorithm=HashAlgorithm.SHA256,
                signature_algorithm=self.signature_algorithm,
            )
        except Exception as e:
            logger.error("Failed to sign %s document with key %s", document_type, self.key.name, exc_info=True)
            raise SigningError(
                f"Failed to sign {document_type} document: {e}",
                details={"document_type": document_type, "key": self.key.name},
            ) from e

        logger.info(
            "Signed %s document %s with certificate %s",
            document_type,
            signed.document_id,
            certificate.thumbprint_hex,
        )
        return signed

    async def verify(self, signed: SignedDocument) -> VerificationResult:
        """Verify a signed document.

        Never raises: every failure, including store failures, is reported as
        an invalid result with a human-readable error.
        """
        document_id = str(signed.document_id)
        errors: List[str] = []
        warnings: List[str] = []

        try:
            digest = compute_digest(signed.canonical_content.encode("utf-8"), signed.hash_algorithm)
        except ValidationError as e:
            return VerificationResult(is_valid=False, errors=[e.message], document_id=document_id)

        try:
            certificate = await self._resolve_certificate(signed.signing_certificate_thumbprint)
        except Exception as e:
            logger.error("Could not resolve certificate for document %s", document_id, exc_info=True)
            return VerificationResult(
                is_valid=False, errors=[f"verification error: {e}"], document_id=document_id
            )

        if certificate is None:
            logger.warning(
                "No certificate matches thumbprint %s of document %s", signed.thumbprint_hex, document_id
            )
            return VerificationResult(
                is_valid=False, errors=[CERTIFICATE_NOT_FOUND], document_id=document_id
            )

        now = self._clock()
        if certificate.is_expired(now):
            errors.append(CERTIFICATE_EXPIRED)
        elif certificate.expires_at - now <= EXPIRY_WARNING_WINDOW:
            warnings.append(f"certificate expires at {certificate.expires_at.isoformat()}")
        if not certificate.enabled:
            errors.append(CERTIFICATE_DISABLED)
        if errors:
            logger.warning("Document %s rejected: %s", document_id, ", ".join(errors))
            return VerificationResult(
                is_valid=False,
                errors=errors,
                warnings=warnings,
                document_id=document_id,
                certificate=certificate,
            )

        try:
            matches = await self.store.verify(
                certificate.key_reference.name,
                digest,
                signed.signature,
                signed.signature_algorithm,
            )
        except Exception as e:
            logger.error("Store failed to verify document %s", document_id, exc_info=True)
            errors.append(f"verification error: {e}")
        else:
            if not matches:
                errors.append(SIGNATURE_MISMATCH)

        if errors:
            logger.warning("Document %s rejected: %s", document_id, ", ".join(errors))
        else:
            logger.info("Document %s verified", document_id)
        return VerificationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            document_id=document_id,
            certificate=certificate,
        )

    async def get_signature_info(self, signed: SignedDocument) -> SignatureInfo:
        """Summarize a signed document for audit display."""
        result = await self.verify(signed)
        return SignatureInfo(
            is_valid=result.is_valid,
            signer_identity=signed.signer_identity,
            signed_at=signed.signed_at,
            certificate_thumbprint=signed.thumbprint_hex,
            certificate_expires_at=result.certificate.expires_at if result.certificate else None,
            validation_errors=list(result.errors),
        )

    async def _resolve_certificate(self, thumbprint: bytes) -> Optional[CertificateInfo]:
        # Only the signer key's current certificate is trusted.
        try:
            certificate = await self.store.get_certificate(self.key.name)
        except NotFoundError:
            return None
        if not hmac.compare_digest(certificate.thumbprint, thumbprint):
            return None
        return certificate
