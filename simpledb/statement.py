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

"""Prepared statement wrapper around a single DB-API cursor."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Union

from simpledb.drivers import Driver
from simpledb.errors import invalid_parameter
from simpledb.placeholders import compile_sql

logger = logging.getLogger(__name__)

ParamKey = Union[str, int]

_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})


class ParamType(str, Enum):
    """Parameter type tags accepted by :meth:`SimpleDB.bind`."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    STR = "str"

    @classmethod
    def from_tag(cls, tag: str | ParamType | None) -> ParamType:
        """Map a tag string to a type; unknown tags fall back to ``STR``."""
        if isinstance(tag, ParamType):
            return tag
        try:
            return cls(tag)
        except ValueError:
            return cls.STR

    def coerce(self, value: Any) -> Any:
        """Convert *value* to the Python type the driver adapts for this tag.

        ``STR`` leaves text and binary values untouched; strings such as
        ``"0"``, ``"false"``, ``"no"`` and ``"off"`` bind as ``False``
        under ``BOOL``.
        """
        if self is ParamType.NULL or value is None:
            return None
        if self is ParamType.BOOL:
            if isinstance(value, str):
                return value.strip().lower() not in _FALSE_STRINGS
            return bool(value)
        if self is ParamType.INT:
            return int(value)
        if isinstance(value, (str, bytes)):
            return value
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        return str(value)


class Statement:
    """One compiled SQL statement and the cursor it last ran on.

    Args:
        conn: Open DB-API connection.
        driver: The :class:`Driver` the connection came from.
        sql: SQL text with ``:name`` or ``?`` placeholders.
    """

    def __init__(self, conn: Any, driver: Driver, sql: str) -> None:
        self.sql = sql
        self._conn = conn
        self._driver = driver
        self._compiled = compile_sql(sql, backslash_escapes=driver.backslash_escapes)
        self._bound: dict[ParamKey, Any] = {}
        self._cursor: Any = None

    @property
    def parameter_names(self) -> list[str]:
        return self._compiled.names

    @property
    def executed(self) -> bool:
        return self._cursor is not None

    def bind(self, name: ParamKey, value: Any, param_type: ParamType) -> None:
        """Bind *value* under *name* (``:name`` / ``name`` or 1-based position)."""
        if isinstance(name, str) and name.startswith(":"):
            name = name[1:]

        if self._compiled.is_named:
            if name not in self._compiled.names:
                raise invalid_parameter(f"Parameter {name!r} is not defined in the statement")
        else:
            count = self._compiled.positional_count
            if count == 0:
                raise invalid_parameter("Statement has no parameters to bind")
            if isinstance(name, int) and not 1 <= name <= count:
                raise invalid_parameter(f"Parameter position {name} out of range 1..{count}")

        self._bound[name] = param_type.coerce(value)

    def _values(self) -> list[Any]:
        """Bound values in placeholder order."""
        if self._compiled.is_named:
            values = []
            for slot in self._compiled.slots:
                if slot not in self._bound:
                    raise invalid_parameter(f"Parameter :{slot} was not bound")
                values.append(self._bound[slot])
            return values

        if all(isinstance(k, int) for k in self._bound):
            values = [self._bound[k] for k in sorted(self._bound)]
        else:
            values = list(self._bound.values())
        expected = self._compiled.positional_count
        if len(values) != expected:
            raise invalid_parameter(
                f"Statement expects {expected} parameter(s), {len(values)} bound"
            )
        return values

    def execute(self) -> None:
        """Run the statement on a fresh cursor.

        Driver exceptions propagate unchanged; the caller decides how to
        report them.
        """
        query, params = self._compiled.render(self._driver.paramstyle, self._values())
        self._close_cursor()
        logger.debug("Executing %s statement: %s", self._driver.name, query)
        self._cursor = self._conn.cursor()
        if params is None:
            self._cursor.execute(query)
        else:
            self._cursor.execute(query, params)

    @property
    def columns(self) -> list[str]:
        if self._cursor is None or self._cursor.description is None:
            return []
        return [d[0] for d in self._cursor.description]

    def fetch_one(self) -> dict[str, Any] | None:
        columns = self.columns
        if not columns:
            return None
        row = self._cursor.fetchone()
        if row is None:
            return None
        return dict(zip(columns, row))

    def fetch_all(self, assoc: bool = True) -> list[dict[Any, Any]]:
        columns = self.columns
        if not columns:
            return []
        rows = self._cursor.fetchall()
        if assoc:
            return [dict(zip(columns, row)) for row in rows]
        return [{**dict(zip(columns, row)), **dict(enumerate(row))} for row in rows]

    def row_count(self) -> int:
        """Affected rows; 0 when unknown (DB-API reports -1)."""
        if self._cursor is None:
            return 0
        return max(self._cursor.rowcount or 0, 0)

    def last_row_id(self) -> Any:
        if self._cursor is None:
            return None
        return getattr(self._cursor, "lastrowid", None)

    def _close_cursor(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None

    def close(self) -> None:
        """Release the cursor."""
        self._close_cursor()
        self._bound.clear()
