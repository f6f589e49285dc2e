"""FastAPI main application."""
import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from truebalance.adapters.base import ProviderClient
from truebalance.config import settings
from truebalance.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_credential_vault,
    get_current_user,
    get_provider_client,
    get_sync_engine,
    get_token_cipher,
)
from truebalance.errors import (
    AuthenticationError,
    ConfigurationError,
    NotFound,
    TrueBalanceError,
)
from truebalance.models.account import Account, AccountBalance
from truebalance.models.auth import AuthResponse, Credentials, MessageResponse, User, UserPublic, UserRecord
from truebalance.models.sync import (
    ConnectConfig,
    ConnectRequest,
    SuccessResponse,
    SyncRequest,
    SyncResponse,
)
from truebalance.models.transaction import Transaction
from truebalance.ratelimit import check_login, limit_api, limit_register, record_failed_login
from truebalance.services.auth import AuthService
from truebalance.services.credentials import CredentialVault
from truebalance.services.sync import SyncEngine
from truebalance.storage.database import Database, get_db
from truebalance.utils.money import to_money
from truebalance.utils.timestamp import utcnow

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger("truebalance")
access_logger = logging.getLogger("truebalance.access")

MAX_TRANSACTIONS_LIMIT = 500
DEFAULT_TRANSACTIONS_LIMIT = 50

SECURITY_HEADERS = {
    "Content-Security-Policy": "frame-ancestors 'none'; object-src 'none'; base-uri 'self'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Origin-Agent-Cluster": "?1",
}
HSTS_HEADER = "max-age=31536000; includeSubDomains; preload"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to start without the secrets sessions and credential custody need."""
    if not settings.session_secret:
        raise ConfigurationError("SESSION_SECRET environment variable is required")
    get_token_cipher()
    logger.info("Starting %s (%s, provider=%s)", settings.app_name, settings.environment, settings.provider)
    yield


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    version="1.0.0",
    lifespan=lifespan,
    dependencies=[Depends(limit_api)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if settings.is_production:
        response.headers.setdefault("Strict-Transport-Security", HSTS_HEADER)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration. Bodies are never logged."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    access_logger.info(
        "%s %s %s in %dms", request.method, request.url.path, response.status_code, duration_ms
    )
    return response


@app.exception_handler(TrueBalanceError)
async def handle_domain_error(request: Request, exc: TrueBalanceError):
    """Render domain errors with a user-safe message."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


def _clamp_limit(limit: int) -> int:
    return min(max(1, limit), MAX_TRANSACTIONS_LIMIT)


async def _require_credential(vault: CredentialVault, user_id: str) -> str:
    access_token = await run_in_threadpool(vault.load, user_id)
    if not access_token:
        raise NotFound("No bank connection found, please connect your bank")
    return access_token


def _sync_response(results) -> SyncResponse:
    accounts_result, transactions_result = results
    return SyncResponse(
        success=True,
        accounts=accounts_result.fetched,
        transactions=transactions_result.inserted,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "TrueBalance API", "version": "1.0.0"}


@app.get("/health", tags=["health"])
async def health():
    """Health check."""
    return {"status": "ok", "timestamp": utcnow().isoformat()}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
# Plain functions: FastAPI runs these in its threadpool.

@app.post(
    "/auth/register",
    response_model=AuthResponse,
    status_code=201,
    tags=["auth"],
    dependencies=[Depends(limit_register)],
)
def register(body: Credentials, auth: AuthService = Depends(get_auth_service)):
    """Create an account and return a session token."""
    user, session = auth.register(body.email, body.password)
    return AuthResponse(user=UserPublic(id=user.id, email=user.email), token=session.token)


@app.post("/auth/login", response_model=AuthResponse, tags=["auth"])
def login(request: Request, body: Credentials, auth: AuthService = Depends(get_auth_service)):
    """Exchange email and password for a session token."""
    check_login(request)
    try:
        user, session = auth.login(body.email, body.password)
    except AuthenticationError:
        record_failed_login(request)
        raise
    return AuthResponse(user=UserPublic(id=user.id, email=user.email), token=session.token)


@app.post("/auth/logout", response_model=MessageResponse, tags=["auth"])
def logout(
    user: UserRecord = Depends(get_current_user),
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke the current session."""
    auth.logout(token)
    return MessageResponse(message="Logged out successfully")


@app.get("/user/profile", response_model=User, tags=["auth"])
def profile(user: UserRecord = Depends(get_current_user)):
    return User(id=user.id, email=user.email, created_at=user.created_at)


# ---------------------------------------------------------------------------
# Bank connection and sync
# ---------------------------------------------------------------------------

@app.get("/connect/config", response_model=ConnectConfig, tags=["sync"])
async def connect_config(provider: ProviderClient = Depends(get_provider_client)):
    """Settings for the provider's connect widget."""
    return provider.connect_config()


@app.post("/connect", response_model=SyncResponse, tags=["sync"])
async def connect(
    body: ConnectRequest,
    user: UserRecord = Depends(get_current_user),
    vault: CredentialVault = Depends(get_credential_vault),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """
    Store the access credential from the connect flow and run a full sync.
    """
    await run_in_threadpool(vault.store, user.id, body.access_credential)
    logger.info("Stored bank connection for user %s", user.id)
    results = await engine.sync_all(user.id, body.access_credential)
    return _sync_response(results)


@app.delete("/connect", response_model=SuccessResponse, tags=["sync"])
def disconnect(
    user: UserRecord = Depends(get_current_user),
    vault: CredentialVault = Depends(get_credential_vault),
):
    """Forget the stored access credential. Synced data is kept."""
    vault.remove(user.id)
    logger.info("Removed bank connection for user %s", user.id)
    return SuccessResponse(success=True)


@app.post("/sync", response_model=SyncResponse, tags=["sync"])
async def sync(
    body: Optional[SyncRequest] = None,
    user: UserRecord = Depends(get_current_user),
    vault: CredentialVault = Depends(get_credential_vault),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """Re-sync accounts, then transactions (optionally for one account)."""
    access_token = await _require_credential(vault, user.id)
    account_id = body.account_id if body else None
    results = await engine.sync_all(user.id, access_token, account_id)
    return _sync_response(results)


# ---------------------------------------------------------------------------
# Accounts and transactions
# ---------------------------------------------------------------------------

@app.get("/accounts", response_model=List[Account], tags=["data"])
def list_accounts(
    user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Locally stored accounts; no provider call."""
    return db.accounts.get_accounts_by_user_id(user.id)


@app.get("/accounts/{account_id}/balance", response_model=AccountBalance, tags=["data"])
async def get_balance(
    account_id: str,
    user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
    vault: CredentialVault = Depends(get_credential_vault),
    provider: ProviderClient = Depends(get_provider_client),
):
    """Live balance straight from the provider, bypassing stored data."""
    account = await run_in_threadpool(db.accounts.get_account, user.id, account_id)
    if account is None:
        raise NotFound("Account not found")
    access_token = await _require_credential(vault, user.id)
    balance = await provider.get_account_balance(access_token, account.external_id)
    return AccountBalance(
        account_id=account.id,
        balance=to_money(balance),
        last_updated=utcnow(),
    )


@app.get("/accounts/{account_id}/transactions", response_model=List[Transaction], tags=["data"])
def list_account_transactions(
    account_id: str,
    limit: int = Query(DEFAULT_TRANSACTIONS_LIMIT, description="Max rows, clamped to 1..500"),
    user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Stored transactions for one account, newest first."""
    account = db.accounts.get_account(user.id, account_id)
    if account is None:
        raise NotFound("Account not found")
    return db.transactions.get_transactions_by_account_id(account.id, _clamp_limit(limit))


@app.get("/transactions", response_model=List[Transaction], tags=["data"])
def list_transactions(
    limit: int = Query(DEFAULT_TRANSACTIONS_LIMIT, description="Max rows, clamped to 1..500"),
    user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Stored transactions across all accounts, newest first."""
    return db.transactions.get_transactions_by_user_id(user.id, _clamp_limit(limit))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
