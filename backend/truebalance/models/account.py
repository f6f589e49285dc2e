"""Account data models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import ConfigDict, Field
from truebalance.models.base import CamelModel


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    OTHER = "other"


class AccountCreate(CamelModel):
    """Account creation model."""

    user_id: str = Field(..., description="Owning user")
    external_id: str = Field(..., description="Provider-assigned account id")
    name: str = Field(..., description="Display name")
    type: AccountType = Field(default=AccountType.OTHER, description="Account type")
    balance: Decimal = Field(..., description="Ledger balance, 2 fractional digits")
    currency: str = Field(default="USD", description="Currency code")
    is_active: bool = Field(default=True, description="Whether the provider reports the account open")
    last_sync_at: Optional[datetime] = Field(None, description="Last successful sync")


class Account(AccountCreate):
    """Account model."""

    id: str
    created_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b8f0c3e-8a4e-4f4e-9a55-7c1f3d1e2a10",
                "userId": "7d9c2e1a-53b4-4f1b-bd88-0c6a4b1f9e22",
                "externalId": "acc_oiin624kqjrg2mp2ea000",
                "name": "Everyday Checking",
                "type": "checking",
                "balance": "1250.50",
                "currency": "USD",
                "isActive": True,
                "lastSyncAt": "2024-01-15T10:30:00Z",
                "createdAt": "2024-01-01T09:00:00Z",
            }
        }
    )


class AccountBalance(CamelModel):
    """Live balance for a single account."""

    account_id: str
    balance: Decimal
    last_updated: datetime
