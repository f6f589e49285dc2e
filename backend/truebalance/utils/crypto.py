"""AES-256-GCM encryption for provider access credentials at rest."""
import base64
import binascii
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from truebalance.errors import ConfigurationError, DecryptionError

logger = logging.getLogger(__name__)

PLACEHOLDER_SECRET = "fallback-secret"
KEY_SALT = b"teller-token"
NONCE_SIZE = 12
TAG_SIZE = 16


def derive_key(secret: str) -> bytes:
    """Derive a 256-bit key from a server-side secret with scrypt."""
    kdf = Scrypt(salt=KEY_SALT, length=32, n=2**14, r=8, p=1)
    return kdf.derive(secret.encode("utf-8"))


class TokenCipher:
    """
    Encrypts and decrypts access credentials.

    Output format is base64(nonce || tag || ciphertext) with a fresh random
    12-byte nonce per call.
    """

    def __init__(self, secret: Optional[str], environment: str = "development"):
        if not secret or secret == PLACEHOLDER_SECRET:
            if environment.lower() == "production":
                raise ConfigurationError(
                    "TELLER_TOKEN_KEY or a strong SESSION_SECRET is required in production"
                )
            logger.warning(
                "Using weak credential encryption key. Set TELLER_TOKEN_KEY."
            )
            secret = PLACEHOLDER_SECRET
        self._aesgcm = AESGCM(derive_key(secret))

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a value produced by :meth:`encrypt`.

        Raises:
            DecryptionError: If the value is malformed, was tampered with or
                was encrypted under a different key
        """
        try:
            combined = base64.b64decode(token.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise DecryptionError("Stored credential is not valid base64") from e

        if len(combined) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionError("Stored credential is truncated")

        nonce = combined[:NONCE_SIZE]
        tag = combined[NONCE_SIZE:NONCE_SIZE + TAG_SIZE]
        ciphertext = combined[NONCE_SIZE + TAG_SIZE:]

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise DecryptionError("Stored credential failed authentication") from e
        return plaintext.decode("utf-8")
