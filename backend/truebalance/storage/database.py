"""Database storage layer using SQLite."""
import sqlite3
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional
from contextlib import contextmanager
from truebalance.config import settings
from truebalance.models.account import Account, AccountCreate
from truebalance.models.auth import Session, UserRecord
from truebalance.models.transaction import Transaction, TransactionCreate
from truebalance.utils.money import to_money
from truebalance.utils.timestamp import to_utc, utcnow


def _ts(dt: Optional[datetime]) -> Optional[str]:
    return to_utc(dt).isoformat() if dt else None


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class BaseStore:
    """Shared connection handling; each store owns one table."""

    def __init__(self, db_path: str = "truebalance.db"):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        raise NotImplementedError

    @contextmanager
    def _get_conn(self):
        """Get database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()


class UserStore(BaseStore):
    """Storage for users and their encrypted provider credential."""

    def _init_db(self):
        """Initialize database tables."""
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    provider_token TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.commit()

    @staticmethod
    def _row_to_user(row) -> UserRecord:
        return UserRecord(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            provider_token=row["provider_token"],
            created_at=_dt(row["created_at"]),
        )

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        """Create a user. Raises sqlite3.IntegrityError if the email is taken."""
        user_id = str(uuid.uuid4())
        created_at = utcnow()
        with self._get_conn() as conn:
            conn.execute("""
                INSERT INTO users (id, email, password_hash, provider_token, created_at)
                VALUES (?, ?, ?, NULL, ?)
            """, (user_id, email.lower(), password_hash, _ts(created_at)))
            conn.commit()
        return UserRecord(
            id=user_id,
            email=email.lower(),
            password_hash=password_hash,
            created_at=created_at,
        )

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.lower(),)
            ).fetchone()
            return self._row_to_user(row) if row else None

    def set_provider_token(self, user_id: str, encrypted_token: Optional[str]) -> None:
        """Store (or clear, with None) the encrypted provider credential."""
        with self._get_conn() as conn:
            conn.execute(
                "UPDATE users SET provider_token = ? WHERE id = ?",
                (encrypted_token, user_id),
            )
            conn.commit()

    def get_provider_token(self, user_id: str) -> Optional[str]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT provider_token FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            return row["provider_token"] if row else None


class SessionStore(BaseStore):
    """Storage for bearer sessions."""

    def _init_db(self):
        """Initialize database tables."""
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL REFERENCES users(id),
                    token TEXT NOT NULL UNIQUE,
                    expires_at TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def create_session(self, user_id: str, token: str, ttl: timedelta) -> Session:
        now = utcnow()
        session = Session(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token=token,
            expires_at=now + ttl,
            created_at=now,
        )
        with self._get_conn() as conn:
            conn.execute("""
                INSERT INTO sessions (id, user_id, token, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (
                session.id,
                session.user_id,
                session.token,
                _ts(session.expires_at),
                _ts(session.created_at),
            ))
            conn.commit()
        return session

    def get_session(self, token: str) -> Optional[Session]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM sessions WHERE token = ?", (token,)
            ).fetchone()
            if not row:
                return None
            return Session(
                id=row["id"],
                user_id=row["user_id"],
                token=row["token"],
                expires_at=_dt(row["expires_at"]),
                created_at=_dt(row["created_at"]),
            )

    def delete_session(self, token: str) -> None:
        with self._get_conn() as conn:
            conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
            conn.commit()


class AccountStore(BaseStore):
    """Storage for bank accounts."""

    def _init_db(self):
        """Initialize database tables."""
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL REFERENCES users(id),
                    external_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL,
                    balance TEXT NOT NULL,
                    currency TEXT NOT NULL DEFAULT 'USD',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    last_sync_at TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (user_id, external_id)
                )
            """)
            conn.commit()

    @staticmethod
    def _row_to_account(row) -> Account:
        return Account(
            id=row["id"],
            user_id=row["user_id"],
            external_id=row["external_id"],
            name=row["name"],
            type=row["type"],
            balance=Decimal(row["balance"]),
            currency=row["currency"],
            is_active=bool(row["is_active"]),
            last_sync_at=_dt(row["last_sync_at"]),
            created_at=_dt(row["created_at"]),
        )

    def get_accounts_by_user_id(self, user_id: str) -> List[Account]:
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM accounts WHERE user_id = ? ORDER BY created_at ASC, rowid ASC",
                (user_id,),
            ).fetchall()
            return [self._row_to_account(row) for row in rows]

    def get_account(self, user_id: str, account_id: str) -> Optional[Account]:
        """Get one account, only if it belongs to the user."""
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE id = ? AND user_id = ?",
                (account_id, user_id),
            ).fetchone()
            return self._row_to_account(row) if row else None

    def get_account_by_external_id(self, user_id: str, external_id: str) -> Optional[Account]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE user_id = ? AND external_id = ?",
                (user_id, external_id),
            ).fetchone()
            return self._row_to_account(row) if row else None

    def create_account(self, account: AccountCreate) -> Account:
        """
        Insert a new account.

        Raises:
            sqlite3.IntegrityError: If (user_id, external_id) already exists
        """
        created = Account(
            id=str(uuid.uuid4()),
            created_at=utcnow(),
            **account.model_dump(),
        )
        created.balance = to_money(created.balance)
        with self._get_conn() as conn:
            conn.execute("""
                INSERT INTO accounts
                (id, user_id, external_id, name, type, balance, currency, is_active, last_sync_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                created.id,
                created.user_id,
                created.external_id,
                created.name,
                created.type.value,
                str(created.balance),
                created.currency,
                int(created.is_active),
                _ts(created.last_sync_at),
                _ts(created.created_at),
            ))
            conn.commit()
        return created

    def update_account(
        self,
        account_id: str,
        balance: Decimal,
        is_active: bool,
        last_sync_at: datetime,
    ) -> Optional[Account]:
        """Update the fields a sync is allowed to change."""
        with self._get_conn() as conn:
            conn.execute("""
                UPDATE accounts
                SET balance = ?, is_active = ?, last_sync_at = ?
                WHERE id = ?
            """, (str(to_money(balance)), int(is_active), _ts(last_sync_at), account_id))
            conn.commit()
            row = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
            return self._row_to_account(row) if row else None


class TransactionStore(BaseStore):
    """Storage for transactions."""

    def _init_db(self):
        """Initialize database tables."""
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    account_id TEXT NOT NULL REFERENCES accounts(id),
                    external_id TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    description TEXT NOT NULL,
                    category TEXT,
                    date TEXT NOT NULL,
                    type TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'posted',
                    created_at TEXT NOT NULL,
                    UNIQUE (account_id, external_id)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_account_date
                ON transactions(account_id, date)
            """)
            conn.commit()

    @staticmethod
    def _row_to_transaction(row) -> Transaction:
        return Transaction(
            id=row["id"],
            account_id=row["account_id"],
            external_id=row["external_id"],
            amount=Decimal(row["amount"]),
            description=row["description"],
            category=row["category"],
            date=_dt(row["date"]),
            type=row["type"],
            status=row["status"],
            created_at=_dt(row["created_at"]),
        )

    def create_transactions(self, transactions: List[TransactionCreate]) -> List[Transaction]:
        """
        Bulk-insert transactions in one database transaction.

        Rows whose (account_id, external_id) already exists are skipped, so a
        concurrent sync that got there first is not an error. Returns only the
        rows actually inserted.
        """
        created_at = utcnow()
        inserted = []
        with self._get_conn() as conn:
            for tx in transactions:
                row = Transaction(id=str(uuid.uuid4()), created_at=created_at, **tx.model_dump())
                row.amount = to_money(row.amount)
                cursor = conn.execute("""
                    INSERT INTO transactions
                    (id, account_id, external_id, amount, description, category, date, type, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (account_id, external_id) DO NOTHING
                """, (
                    row.id,
                    row.account_id,
                    row.external_id,
                    str(row.amount),
                    row.description,
                    row.category,
                    _ts(row.date),
                    row.type.value,
                    row.status.value,
                    _ts(row.created_at),
                ))
                if cursor.rowcount:
                    inserted.append(row)
            conn.commit()
        return inserted

    def get_transactions_by_account_id(self, account_id: str, limit: Optional[int] = None) -> List[Transaction]:
        """Transactions for one account, newest first."""
        with self._get_conn() as conn:
            query = "SELECT * FROM transactions WHERE account_id = ? ORDER BY date DESC, created_at DESC"
            params = [account_id]
            if limit is not None:
                query += " LIMIT ?"
                params.append(limit)
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def get_external_ids(self, account_id: str) -> set:
        """External ids already stored for an account."""
        with self._get_conn() as conn:
            rows = conn.execute(
                "SELECT external_id FROM transactions WHERE account_id = ?", (account_id,)
            ).fetchall()
            return {row["external_id"] for row in rows}

    def get_transactions_by_user_id(self, user_id: str, limit: int = 50) -> List[Transaction]:
        """Transactions across all of a user's accounts, newest first."""
        with self._get_conn() as conn:
            rows = conn.execute("""
                SELECT t.* FROM transactions t
                JOIN accounts a ON t.account_id = a.id
                WHERE a.user_id = ?
                ORDER BY t.date DESC, t.created_at DESC
                LIMIT ?
            """, (user_id, limit)).fetchall()
            return [self._row_to_transaction(row) for row in rows]


class Database:
    """All stores backed by one SQLite file."""

    def __init__(self, db_path: str = "truebalance.db"):
        self.db_path = db_path
        # Parent tables first so foreign keys resolve
        self.users = UserStore(db_path)
        self.sessions = SessionStore(db_path)
        self.accounts = AccountStore(db_path)
        self.transactions = TransactionStore(db_path)


# Global instance
_database = None


def get_db() -> Database:
    """Get database store instances."""
    global _database
    if _database is None:
        _database = Database(settings.database_path)
    return _database
