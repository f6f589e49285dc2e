from .categorizer import categorize, CATEGORIES
from .sync import SyncEngine, SyncResult, SyncState
from .credentials import CredentialVault
from .auth import AuthService, hash_password, verify_password

__all__ = [
    "categorize",
    "CATEGORIES",
    "SyncEngine",
    "SyncResult",
    "SyncState",
    "CredentialVault",
    "AuthService",
    "hash_password",
    "verify_password",
]
