"""Synchronization engine reconciling provider state into local storage.

Each operation runs linearly: fetch from the provider, reconcile against
what is already stored, persist the difference. Store calls run in the
threadpool so SQLite never blocks the event loop. Nothing is retried here;
provider and storage errors propagate to the caller with whatever was
written before the failure left in place. Re-running a sync is always safe.
"""
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from truebalance.adapters.base import ProviderClient
from truebalance.errors import NotFound
from truebalance.models.account import Account, AccountCreate, AccountType
from truebalance.models.provider import RemoteAccount, RemoteTransaction
from truebalance.models.transaction import TransactionCreate, TransactionStatus, TransactionType
from truebalance.services.categorizer import categorize
from truebalance.storage.database import AccountStore, TransactionStore
from truebalance.utils.money import to_money
from truebalance.utils.privacy import obfuscate_merchant
from truebalance.utils.timestamp import utcnow

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING_REMOTE = "fetching_remote"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Result of one sync invocation."""

    operation: str  # 'accounts' or 'transactions'
    state: SyncState = SyncState.IDLE
    fetched: int = 0  # Records returned by the provider
    created: int = 0  # New accounts
    updated: int = 0  # Existing accounts refreshed
    inserted: int = 0  # New transactions
    skipped: int = 0  # Transactions already stored
    account_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None


def map_account_type(remote: RemoteAccount) -> AccountType:
    """Collapse the provider's type/subtype pair into a local account type."""
    if remote.type.lower() == "credit":
        return AccountType.CREDIT
    subtype = (remote.subtype or "").lower()
    if subtype == "checking":
        return AccountType.CHECKING
    if subtype == "savings":
        return AccountType.SAVINGS
    return AccountType.OTHER


def map_transaction_type(remote: RemoteTransaction) -> TransactionType:
    return TransactionType.EXPENSE if remote.type.lower() == "debit" else TransactionType.INCOME


def map_transaction_status(remote: RemoteTransaction) -> TransactionStatus:
    return TransactionStatus.PENDING if remote.status.lower() == "pending" else TransactionStatus.POSTED


class SyncEngine:
    """Reconciles one user's provider accounts and transactions."""

    def __init__(
        self,
        provider: ProviderClient,
        accounts: AccountStore,
        transactions: TransactionStore,
        categorizer: Callable[[str], str] = categorize,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.provider = provider
        self.accounts = accounts
        self.transactions = transactions
        self.categorizer = categorizer
        self.clock = clock

    async def sync_accounts(self, user_id: str, access_token: str) -> SyncResult:
        """
        Create or refresh local accounts from the provider's account list.

        New external ids become new accounts; known ones get their balance,
        active flag and last-sync time updated. Name and type are never
        overwritten.
        """
        result = SyncResult(operation="accounts")
        logger.info("Syncing accounts for user %s", user_id)
        try:
            result.state = SyncState.FETCHING_REMOTE
            remote_accounts = await self.provider.list_accounts(access_token)
            result.fetched = len(remote_accounts)

            for remote in remote_accounts:
                result.state = SyncState.RECONCILING
                now = self.clock()
                balance = to_money(remote.balance.ledger)
                is_active = remote.status == "open"
                existing = await run_in_threadpool(
                    self.accounts.get_account_by_external_id, user_id, remote.id
                )

                result.state = SyncState.PERSISTING
                if existing is None:
                    account, created = await run_in_threadpool(
                        self._create_or_refresh, user_id, remote, balance, is_active, now
                    )
                    if created:
                        result.created += 1
                    else:
                        result.updated += 1
                else:
                    account = await run_in_threadpool(
                        self.accounts.update_account, existing.id, balance, is_active, now
                    )
                    result.updated += 1
                result.account_ids.append(account.id)

            result.state = SyncState.DONE
            logger.info(
                "Synced %d accounts for user %s (%d new, %d updated)",
                result.fetched, user_id, result.created, result.updated,
            )
            return result
        except Exception as e:
            result.state = SyncState.FAILED
            result.error = type(e).__name__
            logger.error("Error syncing accounts for user %s: %s", user_id, type(e).__name__)
            raise

    def _create_or_refresh(
        self,
        user_id: str,
        remote: RemoteAccount,
        balance: Decimal,
        is_active: bool,
        now: datetime,
    ) -> Tuple[Account, bool]:
        try:
            account = self.accounts.create_account(AccountCreate(
                user_id=user_id,
                external_id=remote.id,
                name=remote.name,
                type=map_account_type(remote),
                balance=balance,
                currency=remote.currency,
                is_active=is_active,
                last_sync_at=now,
            ))
            return account, True
        except sqlite3.IntegrityError:
            # A concurrent sync created it between our lookup and insert
            existing = self.accounts.get_account_by_external_id(user_id, remote.id)
            if existing is None:
                raise
            logger.info("Account %s already synced concurrently, updating", existing.id)
            return self.accounts.update_account(existing.id, balance, is_active, now), False

    async def sync_transactions(
        self,
        user_id: str,
        access_token: str,
        account_id: Optional[str] = None,
    ) -> SyncResult:
        """
        Insert provider transactions not yet stored locally.

        Args:
            user_id: Owning user
            access_token: Provider access credential
            account_id: Limit the sync to this local account

        Returns:
            SyncResult with inserted/skipped counts

        Raises:
            NotFound: If ``account_id`` is not one of the user's accounts
        """
        result = SyncResult(operation="transactions")
        logger.info(
            "Syncing transactions for user %s%s",
            user_id, f", account {account_id}" if account_id else "",
        )
        try:
            if account_id:
                account = await run_in_threadpool(self.accounts.get_account, user_id, account_id)
                if account is None:
                    raise NotFound("Account not found")
                targets = [account]
            else:
                targets = await run_in_threadpool(self.accounts.get_accounts_by_user_id, user_id)

            for account in targets:
                result.state = SyncState.FETCHING_REMOTE
                remote_transactions = await self.provider.list_transactions(
                    access_token, account.external_id
                )
                result.fetched += len(remote_transactions)

                result.state = SyncState.RECONCILING
                known = await run_in_threadpool(self.transactions.get_external_ids, account.id)
                new_rows = []
                for remote in remote_transactions:
                    if remote.id in known:
                        result.skipped += 1
                        continue
                    # Also dedups repeats within one response
                    known.add(remote.id)
                    new_rows.append(self._build_transaction(account, remote))

                result.state = SyncState.PERSISTING
                if new_rows:
                    inserted = await run_in_threadpool(self.transactions.create_transactions, new_rows)
                    result.inserted += len(inserted)
                    result.skipped += len(new_rows) - len(inserted)
                    logger.info(
                        "Added %d new transactions for account %s", len(inserted), account.name
                    )
                result.account_ids.append(account.id)

            result.state = SyncState.DONE
            logger.info(
                "Synced transactions for user %s (%d new, %d already stored)",
                user_id, result.inserted, result.skipped,
            )
            return result
        except Exception as e:
            result.state = SyncState.FAILED
            result.error = type(e).__name__
            logger.error("Error syncing transactions for user %s: %s", user_id, type(e).__name__)
            raise

    def _build_transaction(self, account: Account, remote: RemoteTransaction) -> TransactionCreate:
        category = self.categorizer(remote.description)
        logger.debug(
            "Categorized %s as %s", obfuscate_merchant(remote.description), category
        )
        return TransactionCreate(
            account_id=account.id,
            external_id=remote.id,
            amount=to_money(remote.amount),
            description=remote.description,
            category=category,
            date=remote.date,
            type=map_transaction_type(remote),
            status=map_transaction_status(remote),
        )

    async def sync_all(
        self,
        user_id: str,
        access_token: str,
        account_id: Optional[str] = None,
    ) -> List[SyncResult]:
        """Sync accounts, then transactions (optionally for one account)."""
        accounts_result = await self.sync_accounts(user_id, access_token)
        transactions_result = await self.sync_transactions(user_id, access_token, account_id)
        return [accounts_result, transactions_result]
