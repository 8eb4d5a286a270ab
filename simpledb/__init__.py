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

"""Thin chainable facade over one DB-API connection and its current statement.

Supports MySQL (via PyMySQL), SQLite (built-in) and PostgreSQL
(optional, via psycopg2).

Usage::

    from simpledb import SimpleDB

    db = SimpleDB({"dbname": "shop", "user": "app", "password": "s3cret"})
    with db.transaction():
        db.prepare(
            "INSERT INTO items (name, qty) VALUES (:name, :qty)",
            {"name": ("widget", "str"), "qty": (3, "int")},
        ).execute()
    item_id = db.last_insert_id()
    rows = db.prepare("SELECT * FROM items").execute().fetch_all()
"""

from simpledb.connection import SimpleDB
from simpledb.drivers import Driver, get_driver, list_drivers, register_driver
from simpledb.errors import (
    DatabaseConnectionError,
    ErrorInfo,
    NoActiveStatementError,
    SimpleDBError,
    StatementError,
    UnsupportedDriverError,
)
from simpledb.params import DEFAULT_DSN_TEMPLATE, ConnectionParams, build_dsn, parse_dsn
from simpledb.statement import ParamType, Statement

__all__ = [
    "SimpleDB",
    "ConnectionParams",
    "DEFAULT_DSN_TEMPLATE",
    "build_dsn",
    "parse_dsn",
    "ParamType",
    "Statement",
    "Driver",
    "get_driver",
    "list_drivers",
    "register_driver",
    "ErrorInfo",
    "SimpleDBError",
    "DatabaseConnectionError",
    "UnsupportedDriverError",
    "StatementError",
    "NoActiveStatementError",
]
