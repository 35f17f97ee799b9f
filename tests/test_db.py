from __future__ import annotations

import psycopg2
import pytest
from psycopg2.extras import RealDictCursor

from todo_backend.errors import StoreError

from .fakes import make_fake_database


def test_open_passes_pool_bounds_and_sslmode() -> None:
    db, pools = make_fake_database(minconn=1, maxconn=3, sslmode="require")
    assert not db.is_open
    db.open()
    assert db.is_open
    pool = pools[0]
    assert (pool.minconn, pool.maxconn) == (1, 3)
    assert pool.kwargs == {
        "dsn": "postgresql://u:p@db.example.com:5432/tasks_db",
        "sslmode": "require",
    }


def test_open_twice_keeps_one_pool() -> None:
    db, pools = make_fake_database()
    db.open()
    db.open()
    assert len(pools) == 1


def test_cursor_commits_and_returns_connection() -> None:
    db, pools = make_fake_database()
    db.open()
    with db.cursor() as cur:
        cur.execute("SELECT 1")
    pool = pools[0]
    assert pool.conn.commits == 1
    assert pool.conn.rollbacks == 0
    assert pool.conn.cursor_factories == [RealDictCursor]
    assert pool.checked_out == 0
    assert pool.returned == [(pool.conn, False)]


def test_cursor_wraps_driver_errors_and_rolls_back() -> None:
    db, pools = make_fake_database()
    db.open()
    pool = pools[0]
    pool.conn.fail_with = psycopg2.OperationalError("server closed the connection unexpectedly")

    with pytest.raises(StoreError) as exc:
        with db.cursor() as cur:
            cur.execute("SELECT 1")

    assert "server closed the connection" in str(exc.value)
    assert isinstance(exc.value.__cause__, psycopg2.OperationalError)
    assert pool.conn.rollbacks == 1
    assert pool.conn.commits == 0
    assert pool.checked_out == 0


def test_non_driver_errors_propagate_unchanged() -> None:
    db, pools = make_fake_database()
    db.open()
    with pytest.raises(KeyError):
        with db.cursor():
            raise KeyError("id")
    assert pools[0].conn.rollbacks == 1
    assert pools[0].checked_out == 0


def test_exhausted_pool_fails_fast() -> None:
    db, pools = make_fake_database(maxconn=1)
    db.open()
    with db.cursor():
        with pytest.raises(StoreError, match="exhausted"):
            with db.cursor():
                pass
    assert pools[0].checked_out == 0


def test_cursor_requires_open_pool() -> None:
    db, _ = make_fake_database()
    with pytest.raises(StoreError):
        with db.cursor():
            pass


def test_close_is_idempotent() -> None:
    db, pools = make_fake_database()
    db.open()
    db.close()
    db.close()
    assert pools[0].closed
    assert not db.is_open
