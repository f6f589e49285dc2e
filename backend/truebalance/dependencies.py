"""FastAPI dependency providers.

Every collaborator the routes use is built here so tests can swap any of
them through ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from truebalance.adapters.base import ProviderClient
from truebalance.adapters.factory import get_provider_adapter
from truebalance.config import settings
from truebalance.models.auth import UserRecord
from truebalance.services.auth import AuthService
from truebalance.services.credentials import CredentialVault
from truebalance.services.sync import SyncEngine
from truebalance.storage.database import Database, get_db
from truebalance.utils.crypto import TokenCipher

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_provider_client() -> ProviderClient:
    return get_provider_adapter(settings)


@lru_cache
def get_token_cipher() -> TokenCipher:
    return TokenCipher(
        settings.teller_token_key or settings.session_secret,
        environment=settings.environment,
    )


def get_auth_service(db: Database = Depends(get_db)) -> AuthService:
    return AuthService(
        db.users,
        db.sessions,
        secret=settings.session_secret,
        ttl_days=settings.session_ttl_days,
        bcrypt_rounds=settings.bcrypt_rounds,
    )


def get_credential_vault(
    db: Database = Depends(get_db),
    cipher: TokenCipher = Depends(get_token_cipher),
) -> CredentialVault:
    return CredentialVault(db.users, cipher)


def get_sync_engine(
    db: Database = Depends(get_db),
    provider: ProviderClient = Depends(get_provider_client),
) -> SyncEngine:
    return SyncEngine(provider, db.accounts, db.transactions)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_user(
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> UserRecord:
    """Resolve the request's bearer token to a user (401/403 otherwise)."""
    return auth.authenticate(token)
