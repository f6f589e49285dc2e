"""Tests for the SQLite stores."""
import sqlite3
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from truebalance.models.account import AccountCreate, AccountType
from truebalance.models.transaction import TransactionCreate, TransactionType


@pytest.fixture
def account(database, user):
    return database.accounts.create_account(AccountCreate(
        user_id=user.id,
        external_id="acc_1",
        name="Everyday Checking",
        type=AccountType.CHECKING,
        balance=Decimal("100"),
    ))


def make_tx(account_id, external_id, day=1, amount="-1.00"):
    return TransactionCreate(
        account_id=account_id,
        external_id=external_id,
        amount=Decimal(amount),
        description="Test",
        date=datetime(2024, 1, day, tzinfo=timezone.utc),
        type=TransactionType.EXPENSE,
    )


def test_account_balance_stored_with_two_places(database, user, account):
    stored = database.accounts.get_account(user.id, account.id)
    assert str(stored.balance) == "100.00"


def test_account_unique_per_user_and_external_id(database, user, account):
    with pytest.raises(sqlite3.IntegrityError):
        database.accounts.create_account(AccountCreate(
            user_id=user.id,
            external_id="acc_1",
            name="Duplicate",
            balance=Decimal("0"),
        ))


def test_same_external_id_allowed_for_different_users(database, account):
    other = database.users.create_user("eve@example.com", "hash")
    created = database.accounts.create_account(AccountCreate(
        user_id=other.id,
        external_id="acc_1",
        name="Eve's Checking",
        balance=Decimal("5"),
    ))
    assert created.id != account.id


def test_get_account_scoped_to_owner(database, account):
    other = database.users.create_user("eve@example.com", "hash")
    assert database.accounts.get_account(other.id, account.id) is None


def test_create_transactions_skips_existing_external_ids(database, account):
    first = database.transactions.create_transactions([make_tx(account.id, "tx_1")])
    second = database.transactions.create_transactions([
        make_tx(account.id, "tx_1"),
        make_tx(account.id, "tx_2"),
    ])
    assert [t.external_id for t in first] == ["tx_1"]
    assert [t.external_id for t in second] == ["tx_2"]
    assert database.transactions.get_external_ids(account.id) == {"tx_1", "tx_2"}


def test_transactions_newest_first_with_limit(database, user, account):
    database.transactions.create_transactions([
        make_tx(account.id, "tx_old", day=1),
        make_tx(account.id, "tx_new", day=20),
        make_tx(account.id, "tx_mid", day=10),
    ])
    by_user = database.transactions.get_transactions_by_user_id(user.id, limit=2)
    assert [t.external_id for t in by_user] == ["tx_new", "tx_mid"]

    by_account = database.transactions.get_transactions_by_account_id(account.id)
    assert [t.external_id for t in by_account] == ["tx_new", "tx_mid", "tx_old"]


def test_transaction_requires_existing_account(database):
    with pytest.raises(sqlite3.IntegrityError):
        database.transactions.create_transactions([make_tx("no-such-account", "tx_1")])


def test_update_account_changes_only_sync_fields(database, user, account):
    synced_at = datetime(2024, 2, 1, tzinfo=timezone.utc)
    updated = database.accounts.update_account(account.id, Decimal("142.5"), False, synced_at)
    assert updated.balance == Decimal("142.50")
    assert updated.is_active is False
    assert updated.last_sync_at == synced_at
    assert updated.name == account.name


def test_session_round_trip(database, user):
    session = database.sessions.create_session(user.id, "tok", timedelta(days=7))
    stored = database.sessions.get_session("tok")
    assert stored.user_id == user.id
    assert stored.expires_at == session.expires_at
    database.sessions.delete_session("tok")
    assert database.sessions.get_session("tok") is None
