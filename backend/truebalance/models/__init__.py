from .account import Account, AccountCreate, AccountType, AccountBalance
from .transaction import Transaction, TransactionCreate, TransactionType, TransactionStatus
from .provider import (
    RemoteAccount,
    RemoteBalance,
    RemoteInstitution,
    RemoteTransaction,
    RemoteTransactionDetails,
)
from .auth import Credentials, User, UserRecord, UserPublic, Session, AuthResponse, MessageResponse
from .sync import ConnectRequest, SyncRequest, SyncResponse, ConnectConfig, SuccessResponse

__all__ = [
    "Account",
    "AccountCreate",
    "AccountType",
    "AccountBalance",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "TransactionStatus",
    "RemoteAccount",
    "RemoteBalance",
    "RemoteInstitution",
    "RemoteTransaction",
    "RemoteTransactionDetails",
    "Credentials",
    "User",
    "UserRecord",
    "UserPublic",
    "Session",
    "AuthResponse",
    "MessageResponse",
    "ConnectRequest",
    "SyncRequest",
    "SyncResponse",
    "ConnectConfig",
    "SuccessResponse",
]
