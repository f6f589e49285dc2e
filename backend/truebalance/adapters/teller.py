"""Teller API client."""
import json
import logging
import ssl
from decimal import Decimal
from typing import Any, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from truebalance.adapters.base import ProviderClient
from truebalance.config import Settings, settings as default_settings
from truebalance.errors import (
    ConfigurationError,
    ProviderAuthError,
    ProviderResponseError,
    ProviderTimeout,
    ProviderUnavailable,
)
from truebalance.models.provider import RemoteAccount, RemoteTransaction
from truebalance.models.sync import ConnectConfig
from truebalance.utils.privacy import mask_token

logger = logging.getLogger(__name__)

USER_AGENT = "TrueBalance/1.0"

ModelT = TypeVar("ModelT", bound=BaseModel)


class TellerClient(ProviderClient):
    """Teller Data API client over mutual TLS."""

    name = "teller"

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Settings carrying the Teller application id, certificate
                and private key paths, base URL and timeout
            transport: Optional httpx transport, replaces the network (tests)
        """
        config = config or default_settings
        if not (
            config.teller_application_id
            and config.teller_certificate_path
            and config.teller_private_key_path
        ):
            raise ConfigurationError("Missing required Teller configuration")

        self.application_id = config.teller_application_id
        self.environment = config.teller_environment
        self.base_url = config.teller_api_base.rstrip("/")
        self.connect_url = config.teller_connect_url
        self.timeout = httpx.Timeout(config.provider_timeout_seconds)
        self._cert_path = config.teller_certificate_path
        self._key_path = config.teller_private_key_path
        self._transport = transport
        self._ssl_context: Optional[ssl.SSLContext] = None

    def _client(self) -> httpx.AsyncClient:
        if self._transport is not None:
            return httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        if self._ssl_context is None:
            context = ssl.create_default_context()
            context.load_cert_chain(self._cert_path, self._key_path)
            self._ssl_context = context
        return httpx.AsyncClient(verify=self._ssl_context, timeout=self.timeout)

    async def _get(self, access_token: str, path: str) -> Any:
        """Make an authenticated GET and return the decoded JSON body."""
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        try:
            async with self._client() as client:
                resp = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            logger.error("Teller request timed out: GET %s", path)
            raise ProviderTimeout() from e
        except httpx.TransportError as e:
            logger.error("Teller request failed: GET %s (%s)", path, type(e).__name__)
            raise ProviderUnavailable() from e

        if resp.status_code in (401, 403):
            logger.warning(
                "Teller rejected credential %s: %s", mask_token(access_token), resp.status_code
            )
            raise ProviderAuthError()
        if resp.status_code == 429 or resp.status_code >= 500:
            logger.error("Teller API error %s on GET %s", resp.status_code, path)
            raise ProviderUnavailable()
        if resp.status_code != 200:
            logger.error("Teller API error %s on GET %s", resp.status_code, path)
            raise ProviderResponseError()

        try:
            # Decimal keeps balances and amounts exact
            return json.loads(resp.text, parse_float=Decimal)
        except ValueError as e:
            logger.error("Teller returned non-JSON body on GET %s", path)
            raise ProviderResponseError() from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error("Malformed Teller payload on GET %s: %d errors", path, e.error_count())
            raise ProviderResponseError() from e

    def _parse_list(self, model: Type[ModelT], data: Any, path: str) -> List[ModelT]:
        if not isinstance(data, list):
            logger.error("Expected a list from Teller on GET %s", path)
            raise ProviderResponseError()
        return [self._parse(model, item, path) for item in data]

    async def list_accounts(self, access_token: str) -> List[RemoteAccount]:
        """Fetch all accounts for the enrollment behind ``access_token``."""
        path = "/accounts"
        data = await self._get(access_token, path)
        return self._parse_list(RemoteAccount, data, path)

    async def list_transactions(
        self,
        access_token: str,
        remote_account_id: str,
    ) -> List[RemoteTransaction]:
        """Fetch transactions for one account."""
        path = f"/accounts/{remote_account_id}/transactions"
        data = await self._get(access_token, path)
        return self._parse_list(RemoteTransaction, data, path)

    async def get_account_balance(self, access_token: str, remote_account_id: str) -> Decimal:
        """Fetch the current ledger balance for one account."""
        path = f"/accounts/{remote_account_id}"
        data = await self._get(access_token, path)
        return self._parse(RemoteAccount, data, path).balance.ledger

    def connect_config(self) -> ConnectConfig:
        """Settings for the Teller Connect widget."""
        return ConnectConfig(
            application_id=self.application_id,
            environment=self.environment,
            connect_url=self.connect_url,
        )
