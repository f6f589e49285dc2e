"""Custody of provider access credentials."""
import logging
from typing import Optional
from truebalance.errors import DecryptionError
from truebalance.storage.database import UserStore
from truebalance.utils.crypto import TokenCipher

logger = logging.getLogger(__name__)


class CredentialVault:
    """Stores each user's provider access credential encrypted at rest."""

    def __init__(self, users: UserStore, cipher: TokenCipher):
        self.users = users
        self.cipher = cipher

    def store(self, user_id: str, access_token: str) -> None:
        self.users.set_provider_token(user_id, self.cipher.encrypt(access_token))

    def load(self, user_id: str) -> Optional[str]:
        """
        Return the decrypted credential, or None if there is none.

        A credential that fails to decrypt is treated as absent so the user
        is asked to reconnect instead of the request failing.
        """
        encrypted = self.users.get_provider_token(user_id)
        if not encrypted:
            return None
        try:
            return self.cipher.decrypt(encrypted)
        except DecryptionError as e:
            logger.error("Failed to decrypt provider credential for user %s: %s", user_id, e)
            return None

    def remove(self, user_id: str) -> None:
        self.users.set_provider_token(user_id, None)
