"""Tests for the JSON-file store."""

import json
import os
import stat
import sys

import pytest

from vault_crypto.core.crypto import hash_sha256
from vault_crypto.core.exceptions import ConfigurationError
from vault_crypto.core.models import SignatureAlgorithm
from vault_crypto.services.store import FileVault


@pytest.mark.asyncio
async def test_state_survives_reload(tmp_path):
    path = tmp_path / "vault.json"
    first = FileVault(path)
    await first.write_secret("db-password", "s3cret")
    first.create_key("signing")
    certificate = await first.get_certificate("signing")
    signature = await first.sign("signing", hash_sha256(b"doc"), SignatureAlgorithm.RS256)

    second = FileVault(path)
    assert await second.fetch_secret("db-password") == "s3cret"
    assert await second.get_certificate("signing") == certificate
    assert await second.verify("signing", hash_sha256(b"doc"), signature, SignatureAlgorithm.RS256)


@pytest.mark.asyncio
async def test_completed_delete_is_persisted(tmp_path):
    path = tmp_path / "vault.json"
    store = FileVault(path)
    await store.write_secret("temp", "value")
    await store.wait_for_completion(await store.begin_delete_secret("temp"))

    assert "temp" not in json.loads(path.read_text())["secrets"]


def test_missing_file_starts_empty(tmp_path):
    store = FileVault(tmp_path / "absent.json")
    assert not (tmp_path / "absent.json").exists()
    assert not store.has_key("anything")


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_file_is_owner_only(tmp_path):
    path = tmp_path / "vault.json"
    FileVault(path).seed_secret("a", "1")
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"version": 99}),
        json.dumps({"version": 1, "keys": {"k": {"private_key": "nope"}}}),
    ],
)
def test_unreadable_files_are_configuration_errors(tmp_path, content):
    path = tmp_path / "vault.json"
    path.write_text(content)
    with pytest.raises(ConfigurationError):
        FileVault(path)
