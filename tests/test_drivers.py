# simpledb — chainable facade over DB-API database connections
# Copyright (C) 2024-2026 Dr Horst Herb
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Tests for simpledb.drivers — adapters and registry, with mocked clients."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pymysql
import pytest

from simpledb import SimpleDB
from simpledb.drivers import (
    _REGISTRY,
    SQLiteDriver,
    get_driver,
    list_drivers,
    register_driver,
)
from simpledb.errors import DatabaseConnectionError, StatementError, UnsupportedDriverError


def _mysql(mock_connect, **params):
    params.setdefault("dbname", "test")
    with patch("pymysql.connect", mock_connect):
        return SimpleDB(params)


class TestRegistry:
    def test_builtins_registered(self):
        names = list_drivers()
        assert {"mysql", "pgsql", "sqlite"} <= set(names)

    def test_unknown_driver_raises(self):
        with pytest.raises(UnsupportedDriverError, match="Driver not supported"):
            get_driver("nonexistent_driver_xyz")

    def test_register_custom_driver(self):
        class MemDriver(SQLiteDriver):
            name = "memdb"

        register_driver("memdb", MemDriver)
        try:
            assert "memdb" in list_drivers()
            with SimpleDB("memdb::memory:") as db:
                assert db.prepare("SELECT 3 AS n").execute().fetch() == {"n": 3}
        finally:
            _REGISTRY.pop("memdb", None)


class TestMySQLDriver:
    def test_connect_arguments(self):
        mock_connect = MagicMock()
        db = _mysql(mock_connect, host="localhost", driver="mysql", password="s3cret")

        kwargs = mock_connect.call_args.kwargs
        assert kwargs["host"] == "localhost"
        assert kwargs["port"] == 3306
        assert kwargs["database"] == "test"
        assert kwargs["user"] == "root"
        assert kwargs["password"] == "s3cret"
        assert kwargs["charset"] == "utf8"
        assert kwargs["autocommit"] is True

        assert db.dsn == "mysql:host=localhost;port=3306;dbname=test;charset=utf8"
        assert "s3cret" not in db.dsn
        assert "password" not in db.connection_data

    def test_connection_failure(self):
        mock_connect = MagicMock(
            side_effect=pymysql.err.OperationalError(2003, "Can't connect to MySQL server")
        )
        with pytest.raises(DatabaseConnectionError, match="Could not connect") as excinfo:
            _mysql(mock_connect)
        assert excinfo.value.info.code == 2003
        assert isinstance(excinfo.value.__cause__, pymysql.err.OperationalError)

    def test_query_rendered_for_pyformat(self):
        mock_connect = MagicMock()
        conn = mock_connect.return_value
        cursor = conn.cursor.return_value
        cursor.description = [("id",), ("name",)]
        cursor.fetchone.return_value = (1, "widget")
        cursor.lastrowid = 0

        db = _mysql(mock_connect)
        row = (
            db.prepare(
                "SELECT id, name FROM items WHERE id = :id AND name LIKE 'w%'",
                {"id": (1, "int")},
            )
            .execute()
            .fetch()
        )

        cursor.execute.assert_called_once_with(
            "SELECT id, name FROM items WHERE id = %s AND name LIKE 'w%%'", (1,),
        )
        assert row == {"id": 1, "name": "widget"}
        assert db.last_insert_id() is None

    def test_invalid_port(self):
        mock_connect = MagicMock()
        with pytest.raises(DatabaseConnectionError, match="Invalid port"):
            _mysql(mock_connect, port="abc")
        mock_connect.assert_not_called()

    def test_backslash_escaped_quote_in_literal(self):
        mock_connect = MagicMock()
        cursor = mock_connect.return_value.cursor.return_value
        cursor.description = None

        db = _mysql(mock_connect)
        db.prepare(r"UPDATE t SET note = 'it\'s :not' WHERE id = :id", {"id": (4, "int")})
        db.execute()
        cursor.execute.assert_called_once_with(
            r"UPDATE t SET note = 'it\'s :not' WHERE id = %s", (4,),
        )

    def test_insert_id_reported(self):
        mock_connect = MagicMock()
        cursor = mock_connect.return_value.cursor.return_value
        cursor.description = None
        cursor.lastrowid = 17
        cursor.rowcount = 1

        db = _mysql(mock_connect)
        db.prepare("INSERT INTO items (name) VALUES (?)", {1: ("gadget", "str")}).execute()
        assert db.last_insert_id() == 17
        assert db.row_count() == 1

    def test_statement_error_translated(self):
        mock_connect = MagicMock()
        cursor = mock_connect.return_value.cursor.return_value
        cursor.execute.side_effect = pymysql.err.ProgrammingError(
            1064, "You have an error in your SQL syntax"
        )

        db = _mysql(mock_connect)
        with pytest.raises(StatementError) as excinfo:
            db.prepare("SELEC 1").execute()
        assert excinfo.value.info.code == 1064
        assert db.error_info().message == "You have an error in your SQL syntax"

    def test_transactions(self):
        mock_connect = MagicMock()
        conn = mock_connect.return_value
        db = _mysql(mock_connect)

        db.begin_transaction().begin_transaction()
        conn.begin.assert_called_once()
        db.commit()
        conn.commit.assert_called_once()
        db.begin_transaction().rollback()
        conn.rollback.assert_called_once()
        assert db.is_autocommit()

    def test_close(self):
        mock_connect = MagicMock()
        conn = mock_connect.return_value
        db = _mysql(mock_connect)
        db.prepare("SELECT 1").execute()
        cursor = conn.cursor.return_value

        db.close()
        cursor.close.assert_called_once()
        conn.close.assert_called_once()


class TestPostgreSQLDriver:
    def test_autocommit_toggled_for_transactions(self):
        pytest.importorskip("psycopg2")
        mock_connect = MagicMock()
        conn = mock_connect.return_value
        with patch("psycopg2.connect", mock_connect):
            db = SimpleDB({"driver": "pgsql", "dbname": "app", "port": 5432, "user": "app"})

        kwargs = mock_connect.call_args.kwargs
        assert kwargs["dbname"] == "app"
        assert kwargs["port"] == 5432
        assert kwargs["user"] == "app"
        assert conn.autocommit is True

        db.begin_transaction()
        assert conn.autocommit is False
        db.commit()
        conn.commit.assert_called_once()
        assert conn.autocommit is True

    def test_error_info_uses_sqlstate(self):
        pytest.importorskip("psycopg2")
        exc = MagicMock()
        exc.pgcode = "42601"
        exc.pgerror = "ERROR:  syntax error at or near \"SELEC\"\n"
        info = get_driver("pgsql").error_info(exc)
        assert info.sqlstate == "42601"
        assert info.message.startswith("ERROR:  syntax error")
