"""Base bank aggregation provider interface."""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List
from truebalance.models.provider import RemoteAccount, RemoteTransaction
from truebalance.models.sync import ConnectConfig


class ProviderClient(ABC):
    """Abstract base class for aggregation provider clients.

    Implementations perform no retries; failures surface as subclasses of
    :class:`truebalance.errors.ProviderError`.
    """

    name = "base"

    @abstractmethod
    async def list_accounts(self, access_token: str) -> List[RemoteAccount]:
        """
        List the accounts linked under an access credential.

        Args:
            access_token: Opaque credential from the provider connect flow

        Returns:
            Accounts as reported by the provider
        """

    @abstractmethod
    async def list_transactions(
        self,
        access_token: str,
        remote_account_id: str,
    ) -> List[RemoteTransaction]:
        """
        List transactions for one provider account.

        Args:
            access_token: Opaque credential from the provider connect flow
            remote_account_id: Provider-assigned account id

        Returns:
            Transactions in the provider's own order
        """

    @abstractmethod
    async def get_account_balance(self, access_token: str, remote_account_id: str) -> Decimal:
        """Live ledger balance for one provider account."""

    @abstractmethod
    def connect_config(self) -> ConnectConfig:
        """Settings the UI needs to open the provider's connect flow."""
