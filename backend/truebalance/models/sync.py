"""Connect and sync request/response models."""
from typing import Optional
from pydantic import Field
from truebalance.models.base import CamelModel


class ConnectRequest(CamelModel):
    """Request to link a bank connection."""

    access_credential: str = Field(..., min_length=1, description="Access token from the provider connect flow")


class SyncRequest(CamelModel):
    """Request to re-sync, optionally scoped to one account."""

    account_id: Optional[str] = Field(None, description="Local account id to limit transaction sync to")


class SyncResponse(CamelModel):
    """Outcome of a connect or sync call."""

    success: bool
    accounts: int = Field(default=0, description="Accounts reported by the provider")
    transactions: int = Field(default=0, description="New transactions inserted")


class ConnectConfig(CamelModel):
    """Settings the UI needs to open the provider connect widget."""

    application_id: str
    environment: str
    connect_url: str


class SuccessResponse(CamelModel):
    success: bool
