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

"""The :class:`SimpleDB` facade: one connection handle, one current statement.

Every statement-dependent method checks for a prepared statement first.
Without one, ``execute()`` does nothing and the fetch methods return
their empty sentinel (``None``, ``[]`` or ``0``); only :meth:`SimpleDB.bind`
raises, since binding to nothing is always a caller bug.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from types import SimpleNamespace
from typing import Any, Union

from simpledb.drivers import Driver, get_driver
from simpledb.errors import (
    NO_ERROR,
    DatabaseConnectionError,
    ErrorInfo,
    NoActiveStatementError,
    SimpleDBError,
    StatementError,
    invalid_parameter,
)
from simpledb.params import ConnectionParams, parse_dsn
from simpledb.statement import ParamKey, ParamType, Statement

logger = logging.getLogger(__name__)

ConnectionData = Union[str, ConnectionParams, Mapping[str, Any]]


class SimpleDB:
    """Chainable wrapper around a DB-API connection and its current statement.

    Args:
        connection_data: A raw DSN string (``"sqlite::memory:"``), a
            :class:`ConnectionParams`, or a mapping merged over the
            defaults (``user="root"``, ``driver="mysql"``,
            ``host="127.0.0.1"``, ``port="3306"``, ``dbname=""``).
        exceptions: Raise :class:`StatementError` on failures.  When
            ``False`` the failure is only recorded; inspect it with
            :meth:`error_info` / :meth:`error_exists`.

    Raises:
        DatabaseConnectionError: Unknown driver, malformed DSN, or the
            driver could not connect.

    Usage::

        with SimpleDB({"dbname": "shop", "user": "app", "password": "s3cret"}) as db:
            row = (
                db.prepare("SELECT name FROM items WHERE id = :id", {"id": (7, "int")})
                .execute()
                .fetch()
            )
    """

    def __init__(self, connection_data: ConnectionData, *, exceptions: bool = True) -> None:
        self.exceptions = exceptions
        self._autocommit = True
        self._statement: Statement | None = None
        self._last_error: ErrorInfo = NO_ERROR
        self._last_insert_id: Any = None
        self._closed = False

        if isinstance(connection_data, str):
            self._params: ConnectionParams | None = None
            self._dsn = connection_data
            user = password = ""
        else:
            if isinstance(connection_data, ConnectionParams):
                params = connection_data
            else:
                params = ConnectionParams.from_mapping(connection_data)
            self._params = params
            self._dsn = params.build_dsn()
            user, password = params.user, params.password

        driver_name, fields = parse_dsn(self._dsn)
        self._driver: Driver = get_driver(driver_name)
        try:
            self._conn = self._driver.connect(fields, user, password)
        except self._driver.error_class as exc:
            raise DatabaseConnectionError(
                f"Could not connect to {driver_name} database: {exc}",
                self._driver.error_info(exc),
            ) from exc

        self._connection_data: str | dict[str, Any] = (
            self._params.without_password() if self._params else self._dsn
        )

    def __repr__(self) -> str:
        return (
            f"<SimpleDB driver={self._driver.name} dbname={self.dbname!r} "
            f"autocommit={self._autocommit}>"
        )

    def __enter__(self) -> SimpleDB:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- error reporting ----------------------------------------------------

    def _fail(self, error: SimpleDBError, cause: BaseException | None = None) -> None:
        """Record *error*, then raise it or log it depending on the error mode."""
        self._last_error = error.info
        if self.exceptions:
            if cause is not None:
                raise error from cause
            raise error
        logger.warning("Suppressed %s: %s", type(error).__name__, error)

    def _driver_call(self, func: Callable[..., Any], *args: Any) -> bool:
        """Run *func*, translating driver errors.  Returns ``True`` on success."""
        self._last_error = NO_ERROR
        try:
            func(*args)
        except StatementError as exc:
            self._fail(exc)
            return False
        except self._driver.error_class as exc:
            self._fail(StatementError(str(exc), self._driver.error_info(exc)), exc)
            return False
        return True

    # --- transactions -------------------------------------------------------

    def begin_transaction(self) -> SimpleDB:
        """Start a transaction; no-op if one is already open."""
        if self._autocommit and self._driver_call(self._driver.begin, self._conn):
            self._autocommit = False
        return self

    def commit(self) -> SimpleDB:
        """Commit the open transaction; no-op in autocommit mode."""
        if not self._autocommit and self._driver_call(self._driver.commit, self._conn):
            self._autocommit = True
        return self

    def rollback(self) -> SimpleDB:
        """Roll back the open transaction; no-op in autocommit mode."""
        if not self._autocommit and self._driver_call(self._driver.rollback, self._conn):
            self._autocommit = True
        return self

    def is_autocommit(self) -> bool:
        return self._autocommit

    @contextmanager
    def transaction(self) -> Generator[SimpleDB, None, None]:
        """Context manager that commits on success, rolls back on exception.

        Usage::

            with db.transaction():
                db.prepare("INSERT INTO t (v) VALUES (?)", {1: ("a", "str")}).execute()

        Inside an already open transaction the block joins it: nothing is
        committed or rolled back on exit, the outer owner decides.
        """
        if not self._autocommit:
            yield self
            return

        self.begin_transaction()
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise

    # --- statements ---------------------------------------------------------

    def prepare(
        self, sql: str, params: Mapping[ParamKey, Any] | None = None,
    ) -> SimpleDB:
        """Compile *sql* into the current statement, replacing the previous one.

        *params* maps parameter names (or 1-based positions) to
        ``(value, type_tag)`` pairs, each passed to :meth:`bind`.
        """
        self._close_statement()
        self._last_error = NO_ERROR
        try:
            self._statement = Statement(self._conn, self._driver, sql)
        except StatementError as exc:
            self._fail(exc)
            return self

        for name, pair in (params or {}).items():
            if not isinstance(pair, (tuple, list)) or len(pair) != 2:
                raise TypeError(f"Parameter {name!r} must be a (value, type) pair, got {pair!r}")
            value, type_tag = pair
            self.bind(name, value, type_tag)
        return self

    def bind(self, name: ParamKey, value: Any, type_tag: str = "str") -> SimpleDB:
        """Bind *value* under *name*.

        *type_tag* is one of ``"null"``, ``"bool"``, ``"int"``, ``"str"``;
        anything else is treated as ``"str"``.

        Raises:
            NoActiveStatementError: :meth:`prepare` has not been called.
        """
        if self._statement is None:
            raise NoActiveStatementError("bind() called before prepare()")
        param_type = ParamType.from_tag(type_tag)
        try:
            self._statement.bind(name, value, param_type)
        except StatementError as exc:
            self._fail(exc)
        except (TypeError, ValueError) as exc:
            self._fail(
                invalid_parameter(f"Cannot bind {value!r} as {param_type.value}: {exc}"),
                exc,
            )
        return self

    @property
    def statement(self) -> Statement | None:
        """The current statement, or ``None`` before the first :meth:`prepare`."""
        return self._statement

    def execute(self) -> SimpleDB:
        """Run the current statement; no-op without one."""
        if self._statement is None:
            return self
        if self._driver_call(self._statement.execute):
            row_id = self._statement.last_row_id()
            if row_id:
                self._last_insert_id = row_id
        return self

    def fetch(self) -> dict[str, Any] | None:
        """Next row keyed by column name, or ``None`` when there is none."""
        if self._statement is None:
            return None
        return self._statement.fetch_one()

    def fetch_object(self) -> SimpleNamespace | None:
        """Next row as an object with one attribute per column, or ``None``."""
        row = self.fetch()
        if row is None:
            return None
        return SimpleNamespace(**row)

    def fetch_all(self, assoc: bool = True) -> list[dict[Any, Any]]:
        """All remaining rows.

        With ``assoc=False`` each row is keyed both by column name and by
        zero-based column index.
        """
        if self._statement is None:
            return []
        return self._statement.fetch_all(assoc)

    def row_count(self) -> int:
        """Rows affected by the last executed statement."""
        if self._statement is None:
            return 0
        return self._statement.row_count()

    def _close_statement(self) -> None:
        if self._statement is not None:
            self._statement.close()
            self._statement = None

    # --- status -------------------------------------------------------------

    def error_info(self) -> ErrorInfo:
        """``(sqlstate, driver_code, message)`` of the last handle operation."""
        return self._last_error

    def error_exists(self) -> bool:
        return self.error_info().code is not None

    def last_insert_id(self) -> Any:
        """Most recent generated id, or ``None`` if the driver reported 0 or nothing."""
        if not self._last_insert_id:
            return None
        return self._last_insert_id

    # --- connection data ----------------------------------------------------

    @property
    def dsn(self) -> str:
        return self._dsn

    @property
    def connection_data(self) -> str | dict[str, Any]:
        """Password-free connection fields, or the raw DSN string."""
        if isinstance(self._connection_data, dict):
            return dict(self._connection_data)
        return self._connection_data

    def _param(self, name: str) -> Any:
        if self._params is None:
            return None
        return getattr(self._params, name)

    @property
    def dbname(self) -> str | None:
        return self._param("dbname")

    @property
    def driver(self) -> str | None:
        return self._param("driver")

    @property
    def host(self) -> str | None:
        return self._param("host")

    @property
    def port(self) -> str | None:
        return self._param("port")

    # --- lifecycle ----------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the statement and the connection.

        An open transaction is rolled back first.  Safe to call twice.
        """
        if self._closed:
            return
        try:
            self._close_statement()
            if not self._autocommit:
                self._driver.rollback(self._conn)
                self._autocommit = True
        finally:
            self._conn.close()
            self._closed = True
            logger.debug("%s connection closed", self._driver.name)
