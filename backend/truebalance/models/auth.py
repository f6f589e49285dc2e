"""User, session and authentication models."""
from datetime import datetime
from typing import Optional
from pydantic import Field
from truebalance.models.base import CamelModel


class Credentials(CamelModel):
    """Register/login request."""

    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=254)
    password: str = Field(..., min_length=8, max_length=72)


class User(CamelModel):
    """User record (password hash and provider credential excluded)."""

    id: str
    email: str
    created_at: datetime


class UserRecord(User):
    """User record as stored."""

    password_hash: str = Field(..., exclude=True)
    provider_token: Optional[str] = Field(None, exclude=True, description="Encrypted access credential")


class UserPublic(CamelModel):
    """User fields returned alongside a token."""

    id: str
    email: str


class Session(CamelModel):
    """Bearer session."""

    id: str
    user_id: str
    token: str
    expires_at: datetime
    created_at: datetime


class AuthResponse(CamelModel):
    """Response to register/login."""

    user: UserPublic
    token: str


class MessageResponse(CamelModel):
    message: str
