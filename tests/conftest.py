"""Shared fixtures for the vault-crypto test-suite."""

from datetime import datetime, timedelta, timezone

import pytest

from vault_crypto.core.models import KeyReference
from vault_crypto.services.cipher import FieldCipher, KeyRing
from vault_crypto.services.secrets import SecretCache
from vault_crypto.services.signing import DocumentSigner
from vault_crypto.services.store import InMemoryVault

SIGNING_KEY = "document-signing"


class FakeClock:
    """A settable UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def vault():
    return InMemoryVault()


@pytest.fixture
def cache(vault, clock):
    return SecretCache(vault, ttl=timedelta(minutes=5), clock=clock)


@pytest.fixture
def field_key():
    return bytes(range(32))


@pytest.fixture
def cipher(field_key):
    return FieldCipher(KeyRing.single(field_key))


@pytest.fixture(scope="session")
def signing_vault():
    """A vault with one RSA signing key; RSA key generation is slow, so share it."""
    store = InMemoryVault()
    store.create_key(SIGNING_KEY)
    return store


@pytest.fixture
def signer(signing_vault, clock):
    signing_vault.set_certificate_enabled(SIGNING_KEY, True)
    return DocumentSigner(signing_vault, KeyReference(SIGNING_KEY), clock=clock)
