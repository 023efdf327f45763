"""SQL issued by the PostgreSQL transfer repository."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import psycopg2
import psycopg2.extras
import pytest

from cardvault import app_context
from cardvault.app.transfers import ClaimStatus
from cardvault.app.transfers.repository import PostgresTransferRepository

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeCursor:
    def __init__(self, *, fetchone_results=(), fetchall_result=None, rowcounts=(), fail_on=None):
        self.fetchone_results = list(fetchone_results)
        self.fetchall_result = list(fetchall_result or [])
        self.rowcounts = list(rowcounts)
        self.fail_on = fail_on
        self.execute_calls = []
        self.rowcount = -1
        self.closed = False

    def execute(self, query, params=None):
        normalized = " ".join(query.split())
        self.execute_calls.append((normalized, params))
        if self.fail_on and self.fail_on in normalized:
            raise psycopg2.OperationalError("server closed the connection unexpectedly")
        self.rowcount = self.rowcounts.pop(0) if self.rowcounts else 1

    def fetchone(self):
        return self.fetchone_results.pop(0) if self.fetchone_results else None

    def fetchall(self):
        return list(self.fetchall_result)

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.cursor_calls = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, *args, **kwargs):
        self.cursor_calls.append(kwargs)
        return self._cursor

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


@pytest.fixture
def connect(monkeypatch):
    def _connect(cursor: FakeCursor) -> FakeConnection:
        conn = FakeConnection(cursor)
        monkeypatch.setattr(app_context, "_get_conn", lambda: conn)
        return conn

    return _connect


def _card_row(**overrides):
    row = {
        "id": 11,
        "user_id": 7,
        "player": "Mickey Mantle",
        "sold_price": Decimal("250.00"),
        "transfer_code": "ab12cd34",
    }
    row.update(overrides)
    return row


def _history_row(**overrides):
    row = {
        "id": 1,
        "card_id": 11,
        "previous_owner_id": 7,
        "new_owner_id": 9,
        "sale_price": Decimal("250.00"),
        "transfer_method": "transfer_code",
        "transfer_code": "ab12cd34",
        "transferred_at": NOW,
    }
    row.update(overrides)
    return row


def test_claim_locks_row_moves_card_and_records_history(connect):
    cursor = FakeCursor(fetchone_results=[_card_row(), _history_row()])
    conn = connect(cursor)

    result = PostgresTransferRepository().claim("AB12CD34", "9", now=NOW)

    assert result.status is ClaimStatus.CLAIMED
    assert result.player == "Mickey Mantle"
    assert result.entry.previous_owner_id == "7"
    assert result.entry.new_owner_id == "9"

    select_sql, select_params = cursor.execute_calls[0]
    assert "FOR UPDATE" in select_sql
    assert "upper(transfer_code) = upper(%s)" in select_sql
    assert "transfer_code_used = FALSE" in select_sql
    assert "transfer_code_expires_at > %s" in select_sql
    assert select_params == ("AB12CD34", NOW)

    update_sql, update_params = cursor.execute_calls[1]
    assert update_sql.startswith("UPDATE cards SET user_id = %s, transfer_code_used = TRUE")
    assert "for_sale = FALSE" in update_sql
    assert update_sql.endswith("WHERE id = %s AND transfer_code_used = FALSE")
    assert update_params == ("9", 11)

    insert_sql, insert_params = cursor.execute_calls[2]
    assert insert_sql.startswith("INSERT INTO card_ownership_history")
    assert insert_params == (11, 7, "9", Decimal("250.00"), "transfer_code", "ab12cd34")

    assert conn.cursor_calls == [{"cursor_factory": psycopg2.extras.RealDictCursor}]
    assert (conn.commits, conn.rollbacks) == (1, 0)
    assert cursor.closed and conn.closed


def test_claim_unknown_code_only_runs_locking_select(connect):
    cursor = FakeCursor(fetchone_results=[None])
    conn = connect(cursor)

    result = PostgresTransferRepository().claim("NOPE2345", "9", now=NOW)

    assert result.status is ClaimStatus.INVALID_CODE
    assert len(cursor.execute_calls) == 1
    assert conn.commits == 1


def test_claim_by_current_owner_writes_nothing(connect):
    cursor = FakeCursor(fetchone_results=[_card_row()])
    conn = connect(cursor)

    result = PostgresTransferRepository().claim("ab12cd34", "7", now=NOW)

    assert result.status is ClaimStatus.SELF_CLAIM
    assert len(cursor.execute_calls) == 1
    assert not any(sql.startswith(("UPDATE", "INSERT")) for sql, _ in cursor.execute_calls)
    assert (conn.commits, conn.rollbacks) == (1, 0)


def test_claim_losing_conditional_update_is_invalid_without_history(connect):
    cursor = FakeCursor(fetchone_results=[_card_row()], rowcounts=[1, 0])
    connect(cursor)

    result = PostgresTransferRepository().claim("ab12cd34", "9", now=NOW)

    assert result.status is ClaimStatus.INVALID_CODE
    assert [sql.split()[0] for sql, _ in cursor.execute_calls] == ["SELECT", "UPDATE"]


def test_claim_history_failure_rolls_back_ownership_change(connect):
    cursor = FakeCursor(
        fetchone_results=[_card_row()],
        fail_on="INSERT INTO card_ownership_history",
    )
    conn = connect(cursor)

    with pytest.raises(psycopg2.OperationalError):
        PostgresTransferRepository().claim("ab12cd34", "9", now=NOW)

    assert (conn.commits, conn.rollbacks) == (0, 1)
    assert cursor.closed and conn.closed


def test_find_offer_matches_case_insensitively_and_joins_seller(connect):
    row = {
        "id": 11,
        "player": "Mickey Mantle",
        "year": 1952,
        "set_name": "Topps",
        "is_graded": True,
        "grade": 8,
        "seller_name": None,
    }
    cursor = FakeCursor(fetchone_results=[row])
    connect(cursor)

    offer = PostgresTransferRepository().find_offer("ab12cd34", now=NOW)

    sql, params = cursor.execute_calls[0]
    assert "JOIN users u ON c.user_id = u.id" in sql
    assert "upper(c.transfer_code) = upper(%s)" in sql
    assert "FOR UPDATE" not in sql
    assert params == ("ab12cd34", NOW)
    assert offer.card_id == "11"
    assert offer.year == "1952"
    assert offer.grade == "8"
    assert offer.seller == "SoleVault User"


def test_store_code_is_scoped_to_owner(connect):
    cursor = FakeCursor(rowcounts=[0])
    connect(cursor)
    expires_at = NOW + timedelta(hours=48)

    stored = PostgresTransferRepository().store_code("11", "8", "QWER2345", expires_at=expires_at)

    sql, params = cursor.execute_calls[0]
    assert stored is False
    assert sql.endswith("WHERE id = %s AND user_id = %s")
    assert "transfer_code_used = FALSE" in sql
    assert params == ("QWER2345", expires_at, "11", "8")


def test_list_history_orders_by_transfer_time(connect):
    cursor = FakeCursor(fetchall_result=[_history_row(), _history_row(id=2, previous_owner_id=9, new_owner_id=12)])
    connect(cursor)

    history = PostgresTransferRepository().list_history("11")

    sql, params = cursor.execute_calls[0]
    assert sql.endswith("ORDER BY transferred_at ASC, id ASC")
    assert params == ("11",)
    assert [entry.new_owner_id for entry in history] == ["9", "12"]


def test_supplied_connection_leaves_transaction_to_caller():
    cursor = FakeCursor(fetchone_results=[None])
    conn = FakeConnection(cursor)

    PostgresTransferRepository(conn=conn).claim("ab12cd34", "9", now=NOW)

    assert (conn.commits, conn.rollbacks) == (0, 0)
    assert conn.closed is False
    assert cursor.closed is True
