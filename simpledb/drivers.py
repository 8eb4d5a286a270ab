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

"""Driver adapters over DB-API 2.0 client libraries.

Each adapter opens a standard DB-API connection in autocommit mode and
knows how to start, commit and roll back an explicit transaction on it.

* ``mysql`` — ``pymysql``
* ``pgsql`` — ``psycopg2`` (optional dependency)
* ``sqlite`` — built-in ``sqlite3``

Additional backends can be plugged in with :func:`register_driver`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import ModuleType
from typing import Any, Type

from simpledb.errors import (
    SQLSTATE_GENERAL_ERROR,
    DatabaseConnectionError,
    ErrorInfo,
    UnsupportedDriverError,
)

logger = logging.getLogger(__name__)


def _port(fields: dict[str, str], default: int) -> int:
    """Return the DSN port as an int, or *default* when absent."""
    value = fields.get("port")
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise DatabaseConnectionError(f"Invalid port in DSN: {value!r}") from None


class Driver:
    """Base adapter.  Subclasses set :attr:`name` and implement
    :meth:`load` and :meth:`connect`."""

    name: str = ""
    # Backslash escapes the next character inside string literals.
    backslash_escapes: bool = False

    def __init__(self) -> None:
        self.module = self.load()

    def load(self) -> ModuleType:
        """Import and return the DB-API module."""
        raise NotImplementedError

    @property
    def paramstyle(self) -> str:
        return self.module.paramstyle

    @property
    def error_class(self) -> Type[Exception]:
        """Base class of every exception the DB-API module raises."""
        return self.module.Error

    def connect(self, fields: dict[str, str], user: str, password: str) -> Any:
        """Open a connection in autocommit mode from parsed DSN *fields*."""
        raise NotImplementedError

    def begin(self, conn: Any) -> None:
        cur = conn.cursor()
        try:
            cur.execute("BEGIN")
        finally:
            cur.close()

    def commit(self, conn: Any) -> None:
        conn.commit()

    def rollback(self, conn: Any) -> None:
        conn.rollback()

    def error_info(self, exc: BaseException) -> ErrorInfo:
        """Translate a driver exception into an :class:`ErrorInfo`."""
        return ErrorInfo(SQLSTATE_GENERAL_ERROR, type(exc).__name__, str(exc))


class MySQLDriver(Driver):
    name = "mysql"
    backslash_escapes = True

    def load(self) -> ModuleType:
        try:
            import pymysql
        except ImportError:
            raise ImportError(
                "PyMySQL not installed. Install with: pip install simpledb"
            )
        return pymysql

    def connect(self, fields: dict[str, str], user: str, password: str) -> Any:
        kwargs: dict[str, Any] = {
            "host": fields.get("host", "127.0.0.1"),
            "port": _port(fields, 3306),
            "user": user or fields.get("user") or None,
            "password": password or fields.get("password", ""),
            "database": fields.get("dbname") or None,
            "charset": fields.get("charset", "utf8mb4"),
            "autocommit": True,
        }
        if fields.get("unix_socket"):
            kwargs["unix_socket"] = fields["unix_socket"]

        conn = self.module.connect(**kwargs)
        logger.debug(
            "MySQL connection opened: %s:%s/%s",
            kwargs["host"], kwargs["port"], kwargs["database"],
        )
        return conn

    def begin(self, conn: Any) -> None:
        conn.begin()

    def error_info(self, exc: BaseException) -> ErrorInfo:
        # pymysql errors carry (errno, message)
        if len(exc.args) >= 2 and isinstance(exc.args[0], int):
            return ErrorInfo(SQLSTATE_GENERAL_ERROR, exc.args[0], str(exc.args[1]))
        return super().error_info(exc)


class PostgreSQLDriver(Driver):
    name = "pgsql"

    def load(self) -> ModuleType:
        try:
            import psycopg2
        except ImportError:
            raise ImportError(
                "psycopg2 not installed. Install with: pip install simpledb[postgresql]"
            )
        return psycopg2

    def connect(self, fields: dict[str, str], user: str, password: str) -> Any:
        host = fields.get("host", "localhost")
        port = _port(fields, 5432)
        dbname = fields.get("dbname", "")
        conn = self.module.connect(
            host=host,
            port=port,
            dbname=dbname,
            user=user or fields.get("user", ""),
            password=password or fields.get("password", ""),
        )
        conn.autocommit = True
        logger.debug("PostgreSQL connection opened: %s:%s/%s", host, port, dbname)
        return conn

    # psycopg2 opens a transaction implicitly once autocommit is off.
    def begin(self, conn: Any) -> None:
        conn.autocommit = False

    def commit(self, conn: Any) -> None:
        conn.commit()
        conn.autocommit = True

    def rollback(self, conn: Any) -> None:
        conn.rollback()
        conn.autocommit = True

    def error_info(self, exc: BaseException) -> ErrorInfo:
        pgcode = getattr(exc, "pgcode", None)
        if pgcode:
            message = getattr(exc, "pgerror", None) or str(exc)
            return ErrorInfo(pgcode, pgcode, message.strip())
        return super().error_info(exc)


class SQLiteDriver(Driver):
    name = "sqlite"

    def load(self) -> ModuleType:
        import sqlite3

        return sqlite3

    def connect(self, fields: dict[str, str], user: str, password: str) -> Any:
        path = fields.get("dbname", "")
        if path not in ("", ":memory:"):
            path = str(Path(path).expanduser())
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        # isolation_level=None leaves transactions to explicit BEGIN
        conn = self.module.connect(path, isolation_level=None, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys=ON")
        logger.debug("SQLite connection opened: %s", path or "<temporary>")
        return conn

    def error_info(self, exc: BaseException) -> ErrorInfo:
        # SQLITE_ERROR when the interpreter does not expose the code
        code = getattr(exc, "sqlite_errorcode", 1)
        return ErrorInfo(SQLSTATE_GENERAL_ERROR, code, str(exc))


# Registry: driver name → class
_REGISTRY: dict[str, Type[Driver]] = {
    MySQLDriver.name: MySQLDriver,
    PostgreSQLDriver.name: PostgreSQLDriver,
    SQLiteDriver.name: SQLiteDriver,
}


def register_driver(name: str, cls: Type[Driver]) -> None:
    """Register a driver class under *name*."""
    _REGISTRY[name] = cls


def list_drivers() -> list[str]:
    """Return names of all registered drivers."""
    return list(_REGISTRY.keys())


def get_driver(name: str) -> Driver:
    """Instantiate and return a driver by name.

    Raises :class:`UnsupportedDriverError` if *name* is not registered.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        raise UnsupportedDriverError(
            f"Driver not supported: {name!r}. Available: {list(_REGISTRY.keys())}"
        )
    return cls()
