"""Tests for the data models."""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from vault_crypto.core.models import (
    CertificateInfo,
    HashAlgorithm,
    KeyReference,
    SecretEntry,
    SignatureAlgorithm,
    SignatureInfo,
    SignedDocument,
    VerificationResult,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_document(**overrides) -> SignedDocument:
    fields = dict(
        document_type="Invoice",
        canonical_content='{"amount":"10.5"}',
        signature=b"\x01\x02\x03",
        signing_certificate_thumbprint=bytes.fromhex("ab" * 20),
        signed_at=NOW,
    )
    fields.update(overrides)
    return SignedDocument(**fields)


class TestSecretEntry:
    def test_expiry_is_inclusive(self):
        entry = SecretEntry(name="db", value="pw", expires_at=NOW)
        assert not entry.is_expired(NOW - timedelta(seconds=1))
        assert entry.is_expired(NOW)

    def test_repr_hides_value(self):
        entry = SecretEntry(name="db", value="hunter2", expires_at=NOW)
        assert "hunter2" not in repr(entry)


class TestCertificateInfo:
    def test_usability(self):
        cert = CertificateInfo(
            thumbprint=bytes.fromhex("0a" * 20),
            expires_at=NOW,
            enabled=True,
            key_reference=KeyReference("signing"),
        )
        assert cert.thumbprint_hex == "0A" * 20
        assert cert.is_usable(NOW - timedelta(days=1))
        assert not cert.is_usable(NOW)

        disabled = CertificateInfo(
            thumbprint=cert.thumbprint,
            expires_at=NOW + timedelta(days=1),
            enabled=False,
            key_reference=cert.key_reference,
        )
        assert not disabled.is_usable(NOW)


class TestSignedDocument:
    def test_defaults(self):
        doc = make_document()
        assert doc.signer_identity == "System"
        assert doc.hash_algorithm is HashAlgorithm.SHA256
        assert doc.signature_algorithm is SignatureAlgorithm.RS256
        assert doc.document_id != make_document().document_id

    def test_json_uses_wire_names_and_encodings(self):
        doc = make_document()
        data = json.loads(doc.to_json())
        assert set(data) == {
            "documentId",
            "documentType",
            "canonicalContent",
            "signature",
            "signingCertificateThumbprint",
            "signedAt",
            "signerIdentity",
            "hashAlgorithm",
            "signatureAlgorithm",
        }
        assert data["signature"] == base64.b64encode(b"\x01\x02\x03").decode("ascii")
        assert data["signingCertificateThumbprint"] == "AB" * 20
        assert data["hashAlgorithm"] == "SHA256"
        assert data["signatureAlgorithm"] == "RS256"

    def test_json_round_trip(self):
        doc = make_document(signature_algorithm=SignatureAlgorithm.PS256)
        restored = SignedDocument.from_json(doc.to_json(indent=2))
        assert restored == doc
        assert restored.signature == b"\x01\x02\x03"

    def test_rejects_bad_encodings(self):
        data = json.loads(make_document().to_json())
        data["signature"] = "not base64!"
        with pytest.raises(ValidationError):
            SignedDocument.from_json(json.dumps(data))

        data = json.loads(make_document().to_json())
        data["signingCertificateThumbprint"] = "zz"
        with pytest.raises(ValidationError):
            SignedDocument.from_json(json.dumps(data))

    def test_rejects_unknown_hash_algorithm(self):
        data = json.loads(make_document().to_json())
        data["hashAlgorithm"] = "MD5"
        with pytest.raises(ValidationError):
            SignedDocument.from_json(json.dumps(data))

    def test_rejects_empty_document_type(self):
        with pytest.raises(ValidationError):
            make_document(document_type="")

    def test_is_immutable(self):
        doc = make_document()
        with pytest.raises(ValidationError):
            doc.canonical_content = "{}"


class TestResults:
    def test_verification_result_truthiness(self):
        assert VerificationResult(is_valid=True)
        assert not VerificationResult(is_valid=False, errors=["signature mismatch"])

    def test_verification_result_to_json(self):
        result = VerificationResult(is_valid=False, errors=["certificate expired"], document_id="d-1")
        data = json.loads(result.to_json())
        assert data == {
            "is_valid": False,
            "errors": ["certificate expired"],
            "warnings": [],
            "document_id": "d-1",
            "certificate_thumbprint": None,
        }

    def test_signature_info_to_dict(self):
        info = SignatureInfo(
            is_valid=True,
            signer_identity="alice",
            signed_at=NOW,
            certificate_thumbprint="AB" * 20,
            certificate_expires_at=NOW + timedelta(days=30),
        )
        data = info.to_dict()
        assert data["signed_at"] == NOW.isoformat()
        assert data["certificate_expires_at"] == (NOW + timedelta(days=30)).isoformat()
        assert data["validation_errors"] == []
