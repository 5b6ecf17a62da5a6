"""Tests for the cryptographic helpers."""

import hashlib
from datetime import timedelta

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from vault_crypto.core import crypto
from vault_crypto.core.exceptions import CryptographicError, ValidationError
from vault_crypto.core.models import HashAlgorithm, SignatureAlgorithm


@pytest.fixture(scope="module")
def rsa_key():
    return crypto.generate_rsa_key()


def test_hash_sha256():
    """hash_sha256 should match hashlib.sha256 output."""
    assert crypto.hash_sha256(b"abc") == hashlib.sha256(b"abc").digest()
    assert crypto.compute_digest(b"abc", HashAlgorithm.SHA256) == hashlib.sha256(b"abc").digest()


@pytest.mark.parametrize("algorithm", list(SignatureAlgorithm))
def test_sign_and_verify_digest(rsa_key, algorithm):
    digest = crypto.hash_sha256(b"document")
    signature = crypto.rsa_sign_digest(rsa_key, digest, algorithm)

    public_key = rsa_key.public_key()
    assert crypto.rsa_verify_digest(public_key, digest, signature, algorithm)
    assert not crypto.rsa_verify_digest(public_key, crypto.hash_sha256(b"other"), signature, algorithm)
    assert not crypto.rsa_verify_digest(public_key, digest, signature[:-1] + bytes([signature[-1] ^ 1]), algorithm)


def test_prehashed_signature_matches_plain_rsa(rsa_key):
    """A digest signature verifies as an ordinary RS256 signature over the message."""
    message = b"interoperable"
    signature = crypto.rsa_sign_digest(rsa_key, crypto.hash_sha256(message), SignatureAlgorithm.RS256)
    rsa_key.public_key().verify(signature, message, padding.PKCS1v15(), hashes.SHA256())


def test_sign_rejects_wrong_digest_size(rsa_key):
    with pytest.raises(ValidationError):
        crypto.rsa_sign_digest(rsa_key, b"short")


def test_certificate_helpers(rsa_key):
    cert = crypto.create_self_signed_certificate(rsa_key, "unit-test", timedelta(days=10))
    thumbprint = crypto.certificate_thumbprint(cert)

    assert len(thumbprint) == 20
    assert crypto.certificate_not_after(cert).tzinfo is not None

    restored = crypto.certificate_from_pem(crypto.certificate_to_pem(cert))
    assert crypto.certificate_thumbprint(restored) == thumbprint

    key = crypto.private_key_from_pem(crypto.private_key_to_pem(rsa_key))
    assert key.private_numbers() == rsa_key.private_numbers()


class TestFieldPrimitives:
    def test_purpose_keys_differ(self):
        master = crypto.generate_field_key()
        assert len(master) == crypto.FIELD_KEY_SIZE
        first = crypto.derive_purpose_key(master, "card.v1")
        assert first == crypto.derive_purpose_key(master, "card.v1")
        assert first != crypto.derive_purpose_key(master, "card.v2")

    def test_derive_requires_256_bit_master_key(self):
        with pytest.raises(ValidationError):
            crypto.derive_purpose_key(b"short", "card.v1")

    def test_aead_round_trip(self):
        key = crypto.generate_field_key()
        blob = crypto.aead_encrypt(key, b"secret", aad=b"ctx")
        assert crypto.aead_decrypt(key, blob, aad=b"ctx") == b"secret"
        # Fresh nonce per call
        assert crypto.aead_encrypt(key, b"secret", aad=b"ctx") != blob

    def test_aead_fails_closed(self):
        key = crypto.generate_field_key()
        blob = crypto.aead_encrypt(key, b"secret", aad=b"ctx")
        with pytest.raises(CryptographicError):
            crypto.aead_decrypt(key, blob, aad=b"other")
        with pytest.raises(CryptographicError):
            crypto.aead_decrypt(key, blob[:-1] + bytes([blob[-1] ^ 1]), aad=b"ctx")
        with pytest.raises(CryptographicError):
            crypto.aead_decrypt(key, b"tiny")
