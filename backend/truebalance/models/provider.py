"""Aggregation provider (Teller) payload models."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from truebalance.utils.timestamp import parse_timestamp

# Amounts are stored as decimal(12,2)
MAX_DIGITS = 12


class RemoteBalance(BaseModel):
    """Balance block embedded in a provider account."""

    ledger: Decimal = Field(..., max_digits=MAX_DIGITS, decimal_places=2, description="Ledger (current) balance")
    available: Optional[Decimal] = Field(None, max_digits=MAX_DIGITS, decimal_places=2, description="Available balance")


class RemoteInstitution(BaseModel):
    """Institution the account is held at."""

    name: str = Field(..., description="Institution name")
    id: Optional[str] = Field(None, description="Institution identifier")


class RemoteAccount(BaseModel):
    """Account as reported by the provider."""

    id: str = Field(..., description="Provider account id")
    name: str = Field(..., description="Display name")
    type: str = Field(..., description="Account type (depository/credit)")
    subtype: Optional[str] = Field(None, description="Account subtype (checking/savings/...)")
    balance: RemoteBalance = Field(..., description="Ledger and available balances")
    currency: str = Field(default="USD", description="Account currency")
    status: str = Field(..., description="open or closed")
    enrollment_id: Optional[str] = Field(None, description="Enrollment (connection) id")
    institution: Optional[RemoteInstitution] = Field(None, description="Holding institution")
    last_four: Optional[str] = Field(None, description="Last four digits of the account number")


class RemoteTransactionDetails(BaseModel):
    """Provider enrichment for a transaction."""

    processing_status: Optional[str] = Field(None, description="pending or complete")
    category: Optional[str] = Field(None, description="Provider category")


class RemoteTransaction(BaseModel):
    """Transaction as reported by the provider."""

    id: str = Field(..., description="Provider transaction id")
    account_id: Optional[str] = Field(None, description="Provider account id")
    amount: Decimal = Field(..., max_digits=MAX_DIGITS, decimal_places=2, description="Signed amount as a decimal string")
    date: datetime = Field(..., description="Transaction date")
    description: str = Field(..., description="Transaction description")
    type: str = Field(..., description="Debit/credit marker")
    status: str = Field(default="posted", description="posted or pending")
    details: Optional[RemoteTransactionDetails] = Field(None, description="Provider enrichment")

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        """Accept plain dates ("2024-01-15") as well as full timestamps."""
        if isinstance(v, str):
            return parse_timestamp(v)
        return v
