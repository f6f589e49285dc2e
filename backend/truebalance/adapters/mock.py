"""Mock provider client for development and tests without network calls."""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from truebalance.adapters.base import ProviderClient
from truebalance.errors import NotFound, ProviderAuthError, ProviderError
from truebalance.models.provider import (
    RemoteAccount,
    RemoteBalance,
    RemoteInstitution,
    RemoteTransaction,
)
from truebalance.models.sync import ConnectConfig


class MockProviderClient(ProviderClient):
    """In-memory provider.

    Accounts and transactions can be replaced between calls to simulate the
    remote side changing. Every call is appended to ``calls`` as
    ``(operation, remote_account_id)``.
    """

    name = "mock"

    def __init__(
        self,
        accounts: Optional[Iterable[RemoteAccount]] = None,
        transactions: Optional[Dict[str, List[RemoteTransaction]]] = None,
        valid_tokens: Optional[Iterable[str]] = None,
    ):
        self.accounts: List[RemoteAccount] = list(accounts or [])
        self.transactions: Dict[str, List[RemoteTransaction]] = dict(transactions or {})
        self.valid_tokens = set(valid_tokens) if valid_tokens is not None else None
        self.failures: Dict[Tuple[str, Optional[str]], ProviderError] = {}
        self.calls: List[Tuple[str, Optional[str]]] = []

    def fail(self, operation: str, error: ProviderError, remote_account_id: Optional[str] = None):
        """Make the next matching call raise ``error``."""
        self.failures[(operation, remote_account_id)] = error

    def _enter(self, operation: str, access_token: str, remote_account_id: Optional[str] = None):
        self.calls.append((operation, remote_account_id))
        if self.valid_tokens is not None and access_token not in self.valid_tokens:
            raise ProviderAuthError()
        error = self.failures.pop((operation, remote_account_id), None)
        if error is not None:
            raise error

    async def list_accounts(self, access_token: str) -> List[RemoteAccount]:
        self._enter("list_accounts", access_token)
        return [account.model_copy(deep=True) for account in self.accounts]

    async def list_transactions(
        self,
        access_token: str,
        remote_account_id: str,
    ) -> List[RemoteTransaction]:
        self._enter("list_transactions", access_token, remote_account_id)
        return [tx.model_copy(deep=True) for tx in self.transactions.get(remote_account_id, [])]

    async def get_account_balance(self, access_token: str, remote_account_id: str) -> Decimal:
        self._enter("get_account_balance", access_token, remote_account_id)
        for account in self.accounts:
            if account.id == remote_account_id:
                return account.balance.ledger
        raise NotFound("Account not found at provider")

    def connect_config(self) -> ConnectConfig:
        return ConnectConfig(
            application_id="mock",
            environment="sandbox",
            connect_url="https://connect.teller.io",
        )

    @classmethod
    def with_sample_data(cls) -> "MockProviderClient":
        """A provider with two deterministic accounts and a handful of transactions."""
        institution = RemoteInstitution(id="mock_bank", name="Mock Bank")
        accounts = [
            RemoteAccount(
                id="acc_mock_checking",
                name="Everyday Checking",
                type="depository",
                subtype="checking",
                balance=RemoteBalance(ledger=Decimal("1250.50"), available=Decimal("1200.00")),
                currency="USD",
                status="open",
                enrollment_id="enr_mock",
                institution=institution,
                last_four="1234",
            ),
            RemoteAccount(
                id="acc_mock_credit",
                name="Rewards Card",
                type="credit",
                subtype="credit_card",
                balance=RemoteBalance(ledger=Decimal("-320.15")),
                currency="USD",
                status="open",
                enrollment_id="enr_mock",
                institution=institution,
                last_four="9876",
            ),
        ]
        sample = [
            ("txn_mock_1", "acc_mock_checking", "-45.99", "2024-01-15", "STARBUCKS #1234", "debit"),
            ("txn_mock_2", "acc_mock_checking", "2500.00", "2024-01-14", "ACME CORP PAYROLL", "credit"),
            ("txn_mock_3", "acc_mock_checking", "-1400.00", "2024-01-01", "MONTHLY RENT", "debit"),
            ("txn_mock_4", "acc_mock_credit", "-23.10", "2024-01-13", "UBER TRIP", "debit"),
            ("txn_mock_5", "acc_mock_credit", "-15.99", "2024-01-10", "NETFLIX.COM", "debit"),
        ]
        transactions: Dict[str, List[RemoteTransaction]] = {}
        for tx_id, account_id, amount, date, description, tx_type in sample:
            transactions.setdefault(account_id, []).append(RemoteTransaction(
                id=tx_id,
                account_id=account_id,
                amount=Decimal(amount),
                date=date,
                description=description,
                type=tx_type,
                status="posted",
            ))
        return cls(accounts=accounts, transactions=transactions)
