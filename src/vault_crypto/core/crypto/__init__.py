# SPDX-License-Identifier: MPL-2.0
"""Cryptographic primitives and helpers for vault-crypto.

This module wraps the small set of ``cryptography`` primitives the package
relies on: SHA-256 digests, RSA signatures over precomputed digests, X.509
certificate thumbprints, and AES-256-GCM with per-purpose key derivation for
field encryption. Nothing here talks to a store; the services compose these
helpers with key material they obtained elsewhere.
"""

from __future__ import annotations

import hashlib
import os
from datetime import datetime, timedelta, timezone
from typing import Optional, cast

from cryptography import x509
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa, utils
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.x509.oid import NameOID

from vault_crypto.core.exceptions import CryptographicError, ValidationError
from vault_crypto.core.models import HashAlgorithm, SignatureAlgorithm

FIELD_KEY_SIZE = 32
NONCE_SIZE = 12
FIELD_KDF_INFO = b"vault-crypto/field/"


def hash_sha256(data: bytes) -> bytes:
    """Return the SHA-256 digest of ``data`` as raw bytes."""

    return hashlib.sha256(data).digest()


def compute_digest(data: bytes, algorithm: HashAlgorithm = HashAlgorithm.SHA256) -> bytes:
    """Hash ``data`` with the named algorithm."""

    if algorithm == HashAlgorithm.SHA256:
        return hash_sha256(data)
    raise ValidationError(f"Unsupported hash algorithm: {algorithm}")


# ---------------------------------------------------------------------------
# RSA signatures over precomputed digests
# ---------------------------------------------------------------------------
def _padding_for(algorithm: SignatureAlgorithm) -> padding.AsymmetricPadding:
    if algorithm == SignatureAlgorithm.RS256:
        return padding.PKCS1v15()
    if algorithm == SignatureAlgorithm.PS256:
        return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH)
    raise ValidationError(f"Unsupported signature algorithm: {algorithm}")


def generate_rsa_key(key_size: int = 2048) -> rsa.RSAPrivateKey:
    """Generate a new RSA private key."""

    return rsa.generate_private_key(public_exponent=65537, key_size=key_size)


def rsa_sign_digest(
    private_key: rsa.RSAPrivateKey,
    digest: bytes,
    algorithm: SignatureAlgorithm = SignatureAlgorithm.RS256,
) -> bytes:
    """Sign a SHA-256 digest without hashing it again."""

    if len(digest) != hashlib.sha256().digest_size:
        raise ValidationError("Digest must be a 32-byte SHA-256 value")
    return cast(
        "bytes",
        private_key.sign(digest, _padding_for(algorithm), utils.Prehashed(hashes.SHA256())),
    )


def rsa_verify_digest(
    public_key: rsa.RSAPublicKey,
    digest: bytes,
    signature: bytes,
    algorithm: SignatureAlgorithm = SignatureAlgorithm.RS256,
) -> bool:
    """Verify a signature over a SHA-256 digest."""

    if len(digest) != hashlib.sha256().digest_size:
        return False
    try:
        public_key.verify(signature, digest, _padding_for(algorithm), utils.Prehashed(hashes.SHA256()))
    except InvalidSignature:
        return False
    else:
        return True


# ---------------------------------------------------------------------------
# X.509 certificates
# ---------------------------------------------------------------------------
def create_self_signed_certificate(
    private_key: rsa.RSAPrivateKey,
    common_name: str,
    validity: timedelta = timedelta(days=365),
    not_before: Optional[datetime] = None,
) -> x509.Certificate:
    """Issue a self-signed certificate for ``private_key``."""

    not_before = not_before or datetime.now(timezone.utc)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + validity)
        .sign(private_key, hashes.SHA256())
    )


def certificate_thumbprint(certificate: x509.Certificate) -> bytes:
    """Return the SHA-1 thumbprint of the certificate's DER encoding."""

    return certificate.fingerprint(hashes.SHA1())  # noqa: S303


def certificate_not_after(certificate: x509.Certificate) -> datetime:
    """Return the certificate expiry as an aware UTC datetime."""

    # not_valid_after_utc only exists in cryptography >= 42
    value = getattr(certificate, "not_valid_after_utc", None)
    if value is None:
        value = certificate.not_valid_after.replace(tzinfo=timezone.utc)
    return value


def private_key_to_pem(private_key: rsa.RSAPrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def private_key_from_pem(data: str) -> rsa.RSAPrivateKey:
    key = serialization.load_pem_private_key(data.encode("ascii"), password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValidationError("Only RSA signing keys are supported")
    return key


def certificate_to_pem(certificate: x509.Certificate) -> str:
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


def certificate_from_pem(data: str) -> x509.Certificate:
    return x509.load_pem_x509_certificate(data.encode("ascii"))


# ---------------------------------------------------------------------------
# AES-256-GCM field encryption
# ---------------------------------------------------------------------------
def generate_field_key() -> bytes:
    """Return 32 random bytes suitable as a field-encryption master key."""

    return os.urandom(FIELD_KEY_SIZE)


def derive_purpose_key(master_key: bytes, purpose: str) -> bytes:
    """Derive the data key for ``purpose`` from a master key with HKDF-SHA256."""

    if len(master_key) != FIELD_KEY_SIZE:
        raise ValidationError("Field-encryption master keys must be 32 bytes")
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=FIELD_KEY_SIZE,
        salt=None,
        info=FIELD_KDF_INFO + purpose.encode("utf-8"),
    )
    return hkdf.derive(master_key)


def aead_encrypt(key: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
    """Encrypt and return ``nonce || ciphertext || tag``."""

    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, aad)


def aead_decrypt(key: bytes, blob: bytes, aad: Optional[bytes] = None) -> bytes:
    """Reverse :func:`aead_encrypt`; authentication failures fail closed."""

    if len(blob) < NONCE_SIZE + 16:
        raise CryptographicError("Ciphertext is too short")
    nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, aad)
    except InvalidTag as exc:
        raise CryptographicError("Ciphertext failed authentication") from exc
