"""Tests for credential encryption and custody."""
import base64

import pytest

from truebalance.errors import ConfigurationError, DecryptionError
from truebalance.services.credentials import CredentialVault
from truebalance.utils.crypto import PLACEHOLDER_SECRET, TokenCipher


@pytest.fixture(scope="module")
def cipher():
    return TokenCipher("unit-test-secret")


@pytest.mark.parametrize("plaintext", [
    "token_abc123",
    "",
    "ünïcødé-tøkên",
    "x" * 2048,
])
def test_encrypt_decrypt_round_trip(cipher, plaintext):
    assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext


def test_encrypt_uses_fresh_nonce(cipher):
    """Test the same plaintext never encrypts to the same value."""
    assert cipher.encrypt("token_abc") != cipher.encrypt("token_abc")


def test_ciphertext_does_not_contain_plaintext(cipher):
    encrypted = cipher.encrypt("token_supersecret")
    assert "supersecret" not in encrypted
    assert b"supersecret" not in base64.b64decode(encrypted)


def test_tampered_ciphertext_raises(cipher):
    raw = bytearray(base64.b64decode(cipher.encrypt("token_abc123")))
    raw[-1] ^= 0x01
    with pytest.raises(DecryptionError):
        cipher.decrypt(base64.b64encode(bytes(raw)).decode())


def test_tampered_nonce_raises(cipher):
    raw = bytearray(base64.b64decode(cipher.encrypt("token_abc123")))
    raw[0] ^= 0x01
    with pytest.raises(DecryptionError):
        cipher.decrypt(base64.b64encode(bytes(raw)).decode())


def test_wrong_key_raises(cipher):
    encrypted = cipher.encrypt("token_abc123")
    with pytest.raises(DecryptionError):
        TokenCipher("some-other-secret").decrypt(encrypted)


@pytest.mark.parametrize("garbage", ["not base64!!", "", base64.b64encode(b"short").decode()])
def test_malformed_ciphertext_raises(cipher, garbage):
    with pytest.raises(DecryptionError):
        cipher.decrypt(garbage)


@pytest.mark.parametrize("secret", [None, "", PLACEHOLDER_SECRET])
def test_production_refuses_placeholder_secret(secret):
    with pytest.raises(ConfigurationError):
        TokenCipher(secret, environment="production")


def test_development_falls_back_to_placeholder(caplog):
    cipher = TokenCipher(None, environment="development")
    assert cipher.decrypt(cipher.encrypt("abc")) == "abc"
    assert "weak credential encryption key" in caplog.text.lower()


def test_vault_round_trip(database, user, cipher):
    vault = CredentialVault(database.users, cipher)
    vault.store(user.id, "token_abc")

    stored = database.users.get_provider_token(user.id)
    assert stored and stored != "token_abc"
    assert vault.load(user.id) == "token_abc"


def test_vault_missing_credential_is_none(database, user, cipher):
    assert CredentialVault(database.users, cipher).load(user.id) is None


def test_vault_undecryptable_credential_is_none(database, user, cipher):
    """Test a credential under a rotated key reads as absent instead of failing."""
    CredentialVault(database.users, TokenCipher("old-secret")).store(user.id, "token_abc")
    assert CredentialVault(database.users, cipher).load(user.id) is None


def test_vault_remove(database, user, cipher):
    vault = CredentialVault(database.users, cipher)
    vault.store(user.id, "token_abc")
    vault.remove(user.id)
    assert vault.load(user.id) is None
