"""Tests for document signing and verification."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from vault_crypto.core.canonicalization import canonicalize
from vault_crypto.core.config import Settings
from vault_crypto.core.exceptions import (
    CanonicalizationError,
    KeyNotFoundError,
    SigningError,
    ValidationError,
)
from vault_crypto.core.models import KeyReference, SignatureAlgorithm, SignedDocument
from vault_crypto.services.signing import (
    CERTIFICATE_DISABLED,
    CERTIFICATE_EXPIRED,
    CERTIFICATE_NOT_FOUND,
    SIGNATURE_MISMATCH,
    DocumentSigner,
)
from vault_crypto.services.store import InMemoryVault

SIGNING_KEY = "document-signing"

INVOICE = {
    "invoiceNumber": "INV-2025-0042",
    "customer": {"name": "Zoë Müller", "id": 981},
    "lines": [{"sku": "A-1", "quantity": 2, "unitPrice": Decimal("19.90")}],
    "dueDate": date(2025, 4, 30),
}


@dataclass
class PurchaseOrder:
    number: str
    total: Decimal


@pytest.fixture
def flaky_vault():
    store = InMemoryVault()
    store.create_key(SIGNING_KEY)
    return store


class TestSign:
    @pytest.mark.asyncio
    async def test_sign_populates_document(self, signer, signing_vault, clock):
        signed = await signer.sign(INVOICE, "Invoice")
        certificate = await signing_vault.get_certificate(SIGNING_KEY)

        assert signed.document_type == "Invoice"
        assert signed.canonical_content == canonicalize(INVOICE)
        assert signed.signing_certificate_thumbprint == certificate.thumbprint
        assert signed.signed_at == clock()
        assert signed.signer_identity == "System"
        assert signed.signature_algorithm is SignatureAlgorithm.RS256
        assert len(signed.signature) == 256

    @pytest.mark.asyncio
    async def test_sign_dataclass_with_identity(self, signer):
        signed = await signer.sign(PurchaseOrder("PO-7", Decimal("100.00")), "PurchaseOrder", "alice")
        assert signed.signer_identity == "alice"
        assert signed.canonical_content == '{"number":"PO-7","total":"100"}'

    @pytest.mark.asyncio
    async def test_empty_document_type_rejected(self, signer):
        with pytest.raises(ValidationError):
            await signer.sign(INVOICE, "")

    @pytest.mark.asyncio
    async def test_uncanonicalizable_document(self, signer):
        with pytest.raises(SigningError):
            await signer.sign({"attachment": object()}, "Invoice")

    @pytest.mark.asyncio
    async def test_keys_colliding_after_normalization(self, signer, signing_vault):
        sign_calls = signing_vault.calls["sign"]
        with pytest.raises(SigningError) as exc_info:
            await signer.sign({"payee": "alice", "pay\u00e9": "mallory", "paye\u0301": "bob"}, "Payment")
        assert isinstance(exc_info.value.__cause__, CanonicalizationError)
        assert signing_vault.calls["sign"] == sign_calls

    @pytest.mark.asyncio
    async def test_missing_key(self, signing_vault):
        signer = DocumentSigner(signing_vault, KeyReference("no-such-key"))
        with pytest.raises(SigningError) as exc_info:
            await signer.sign(INVOICE, "Invoice")
        assert isinstance(exc_info.value.__cause__, KeyNotFoundError)

    @pytest.mark.asyncio
    async def test_store_failure(self, flaky_vault):
        signer = DocumentSigner(flaky_vault, KeyReference(SIGNING_KEY))
        flaky_vault.fail_next("sign")
        with pytest.raises(SigningError):
            await signer.sign(INVOICE, "Invoice")


class TestVerify:
    @pytest.mark.asyncio
    async def test_sign_then_verify(self, signer):
        signed = await signer.sign(INVOICE, "Invoice")
        result = await signer.verify(signed)

        assert result.is_valid, result.errors
        assert result.errors == []
        assert result.warnings == []
        assert result.document_id == str(signed.document_id)
        assert result.certificate.thumbprint == signed.signing_certificate_thumbprint

    @pytest.mark.asyncio
    async def test_ps256(self, signing_vault, clock):
        signer = DocumentSigner(
            signing_vault, KeyReference(SIGNING_KEY), SignatureAlgorithm.PS256, clock=clock
        )
        signed = await signer.sign(INVOICE, "Invoice")

        assert signed.signature_algorithm is SignatureAlgorithm.PS256
        assert (await signer.verify(signed)).is_valid

    @pytest.mark.asyncio
    async def test_survives_json_transport(self, signer):
        signed = await signer.sign(INVOICE, "Invoice")
        received = SignedDocument.from_json(signed.to_json())

        assert (await signer.verify(received)).is_valid

    @pytest.mark.asyncio
    async def test_tampered_content(self, signer):
        signed = await signer.sign(INVOICE, "Invoice")
        tampered = signed.model_copy(
            update={"canonical_content": signed.canonical_content.replace("INV-2025-0042", "INV-2025-0043")}
        )

        result = await signer.verify(tampered)
        assert not result.is_valid
        assert result.errors == [SIGNATURE_MISMATCH]

    @pytest.mark.asyncio
    async def test_tampered_signature(self, signer):
        signed = await signer.sign(INVOICE, "Invoice")
        signature = bytearray(signed.signature)
        signature[10] ^= 0xFF
        tampered = signed.model_copy(update={"signature": bytes(signature)})

        result = await signer.verify(tampered)
        assert result.errors == [SIGNATURE_MISMATCH]

    @pytest.mark.asyncio
    async def test_unknown_thumbprint(self, signer):
        signed = await signer.sign(INVOICE, "Invoice")
        foreign = signed.model_copy(update={"signing_certificate_thumbprint": bytes(20)})

        result = await signer.verify(foreign)
        assert not result.is_valid
        assert result.errors == [CERTIFICATE_NOT_FOUND]
        assert result.certificate is None

    @pytest.mark.asyncio
    async def test_missing_signer_key_is_not_found(self, signer, signing_vault):
        signed = await signer.sign(INVOICE, "Invoice")
        other = DocumentSigner(signing_vault, KeyReference("no-such-key"))

        result = await other.verify(signed)
        assert result.errors == [CERTIFICATE_NOT_FOUND]

    @pytest.mark.asyncio
    async def test_expired_certificate_skips_crypto_check(self, signer, signing_vault, clock):
        signed = await signer.sign(INVOICE, "Invoice")
        verify_calls = signing_vault.calls["verify"]

        clock.advance(days=400)
        result = await signer.verify(signed)

        assert not result.is_valid
        assert result.errors == [CERTIFICATE_EXPIRED]
        assert signing_vault.calls["verify"] == verify_calls

    @pytest.mark.asyncio
    async def test_disabled_certificate(self, signer, signing_vault):
        signed = await signer.sign(INVOICE, "Invoice")
        signing_vault.set_certificate_enabled(SIGNING_KEY, False)

        result = await signer.verify(signed)
        assert not result.is_valid
        assert result.errors == [CERTIFICATE_DISABLED]

    @pytest.mark.asyncio
    async def test_expired_and_disabled(self, signer, signing_vault, clock):
        signed = await signer.sign(INVOICE, "Invoice")
        signing_vault.set_certificate_enabled(SIGNING_KEY, False)
        clock.advance(days=400)

        result = await signer.verify(signed)
        assert result.errors == [CERTIFICATE_EXPIRED, CERTIFICATE_DISABLED]

    @pytest.mark.asyncio
    async def test_expiry_warning(self, signer, clock):
        signed = await signer.sign(INVOICE, "Invoice")
        clock.advance(days=350)

        result = await signer.verify(signed)
        assert result.is_valid
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("certificate expires at")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["get_certificate", "verify"])
    async def test_store_failure_is_invalid_result(self, flaky_vault, operation):
        signer = DocumentSigner(flaky_vault, KeyReference(SIGNING_KEY))
        signed = await signer.sign(INVOICE, "Invoice")

        flaky_vault.fail_next(operation, RuntimeError("vault unreachable"))
        result = await signer.verify(signed)

        assert not result.is_valid
        assert result.errors == ["verification error: vault unreachable"]


class TestSignatureInfo:
    @pytest.mark.asyncio
    async def test_valid_document(self, signer, signing_vault):
        signed = await signer.sign(INVOICE, "Invoice", signer_identity="billing-service")
        certificate = await signing_vault.get_certificate(SIGNING_KEY)

        info = await signer.get_signature_info(signed)

        assert info.is_valid
        assert info.signer_identity == "billing-service"
        assert info.signed_at == signed.signed_at
        assert info.certificate_thumbprint == certificate.thumbprint_hex
        assert info.certificate_expires_at == certificate.expires_at
        assert info.validation_errors == []

    @pytest.mark.asyncio
    async def test_expired_document(self, signer, clock):
        signed = await signer.sign(INVOICE, "Invoice")
        clock.advance(days=400)

        info = await signer.get_signature_info(signed)
        assert not info.is_valid
        assert info.validation_errors == [CERTIFICATE_EXPIRED]


def test_from_settings(signing_vault):
    signer = DocumentSigner.from_settings(
        signing_vault, Settings(signing_key="contracts", signature_algorithm="PS256")
    )
    assert signer.key == KeyReference("contracts")
    assert signer.signature_algorithm is SignatureAlgorithm.PS256


def test_empty_key_name_rejected(signing_vault):
    with pytest.raises(ValidationError):
        DocumentSigner(signing_vault, KeyReference(""))
