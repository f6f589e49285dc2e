"""Password hashing and bearer session management."""
import logging
import sqlite3
import uuid
from datetime import timedelta
from typing import Optional, Tuple

import bcrypt
from jose import JWTError, jwt

from truebalance.errors import AlreadyExists, AuthenticationError, ConfigurationError
from truebalance.models.auth import Session, UserRecord
from truebalance.storage.database import SessionStore, UserStore
from truebalance.utils.timestamp import utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


class AuthService:
    """Registers users and issues, validates and revokes bearer sessions."""

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        secret: str,
        ttl_days: int = 7,
        bcrypt_rounds: int = 12,
    ):
        if not secret:
            raise ConfigurationError("SESSION_SECRET environment variable is required")
        self.users = users
        self.sessions = sessions
        self.secret = secret
        self.ttl = timedelta(days=ttl_days)
        self.bcrypt_rounds = bcrypt_rounds

    def issue_token(self, user_id: str) -> Session:
        """Sign a JWT for the user and record it as a session."""
        expires_at = utcnow() + self.ttl
        claims = {"sub": user_id, "exp": expires_at, "jti": uuid.uuid4().hex}
        token = jwt.encode(claims, self.secret, algorithm=ALGORITHM)
        return self.sessions.create_session(user_id, token, self.ttl)

    def register(self, email: str, password: str) -> Tuple[UserRecord, Session]:
        """
        Create a user and log them in.

        Raises:
            AlreadyExists: If the email is already registered (400)
        """
        if self.users.get_user_by_email(email):
            raise AlreadyExists("User already exists")
        try:
            user = self.users.create_user(email, hash_password(password, self.bcrypt_rounds))
        except sqlite3.IntegrityError:
            raise AlreadyExists("User already exists")
        logger.info("Registered user %s", user.id)
        return user, self.issue_token(user.id)

    def login(self, email: str, password: str) -> Tuple[UserRecord, Session]:
        """
        Verify credentials and start a session.

        Raises:
            AuthenticationError: On unknown email or wrong password (401)
        """
        user = self.users.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials", status_code=401)
        return user, self.issue_token(user.id)

    def logout(self, token: str) -> None:
        self.sessions.delete_session(token)

    def authenticate(self, token: Optional[str]) -> UserRecord:
        """
        Resolve a bearer token to its user.

        A token is valid while its signature checks out, its session row
        exists and the session has not expired.

        Raises:
            AuthenticationError: 401 when no token is given, 403 when it is invalid
        """
        if not token:
            raise AuthenticationError("Access token required", status_code=401)
        try:
            claims = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError:
            raise AuthenticationError("Invalid or expired token", status_code=403)

        session = self.sessions.get_session(token)
        if not session or utcnow() >= session.expires_at:
            raise AuthenticationError("Session expired", status_code=403)

        user = self.users.get_user(claims.get("sub", ""))
        if not user or user.id != session.user_id:
            raise AuthenticationError("User not found", status_code=403)
        return user
