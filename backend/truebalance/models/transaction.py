"""Transaction data models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import ConfigDict, Field
from truebalance.models.base import CamelModel


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    POSTED = "posted"
    PENDING = "pending"


class TransactionCreate(CamelModel):
    """Transaction creation model."""

    account_id: str = Field(..., description="Owning account")
    external_id: str = Field(..., description="Provider-assigned transaction id")
    amount: Decimal = Field(..., description="Signed amount, 2 fractional digits")
    description: str = Field(..., description="Merchant/transaction description")
    category: Optional[str] = Field(None, description="Spending category")
    date: datetime = Field(..., description="When the transaction occurred")
    type: TransactionType = Field(..., description="Income or expense")
    status: TransactionStatus = Field(default=TransactionStatus.POSTED, description="Processing status")


class Transaction(TransactionCreate):
    """Transaction model."""

    id: str
    created_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "4c2f5a0e-1b7d-4a6e-8f3c-2d9e0b1a7c55",
                "accountId": "0b8f0c3e-8a4e-4f4e-9a55-7c1f3d1e2a10",
                "externalId": "txn_oiluj93igokseo0i3a000",
                "amount": "-45.99",
                "description": "STARBUCKS #1234",
                "category": "food",
                "date": "2024-01-15T00:00:00Z",
                "type": "expense",
                "status": "posted",
                "createdAt": "2024-01-15T10:30:00Z",
            }
        }
    )
