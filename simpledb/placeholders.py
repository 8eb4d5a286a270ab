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

"""Placeholder translation between simpledb SQL and driver paramstyles.

SQL handed to :meth:`SimpleDB.prepare` uses ``:name`` or ``?``
placeholders regardless of backend.  :func:`compile_sql` locates them,
skipping string literals, quoted identifiers and comments, and
:meth:`CompiledSQL.render` rewrites the query for the driver's
DB-API ``paramstyle``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from simpledb.errors import invalid_parameter

_QUOTES = ("'", '"', "`")


@dataclass
class CompiledSQL:
    """SQL split around its placeholders.

    Attributes:
        fragments: Literal SQL pieces; always ``len(slots) + 1`` entries.
        slots: One entry per placeholder occurrence, the parameter name
            for ``:name`` or ``None`` for ``?``.
    """

    fragments: list[str] = field(default_factory=list)
    slots: list[str | None] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        """Distinct named placeholders, in order of first appearance."""
        seen: list[str] = []
        for slot in self.slots:
            if slot is not None and slot not in seen:
                seen.append(slot)
        return seen

    @property
    def positional_count(self) -> int:
        return sum(1 for slot in self.slots if slot is None)

    @property
    def is_named(self) -> bool:
        return bool(self.slots) and self.slots[0] is not None

    def render(
        self, paramstyle: str, values: Sequence[Any],
    ) -> tuple[str, Any]:
        """Rewrite for *paramstyle*, with *values* in slot order.

        Returns ``(query, params)``; ``params`` is ``None`` when the SQL
        has no placeholders so the driver does no formatting at all.
        """
        if not self.slots:
            return self.fragments[0], None

        percent = paramstyle in ("format", "pyformat")
        parts: list[str] = []
        named_params: dict[str, Any] = {}
        for i, fragment in enumerate(self.fragments):
            parts.append(fragment.replace("%", "%%") if percent else fragment)
            if i == len(self.slots):
                break
            if paramstyle == "qmark":
                parts.append("?")
            elif percent:
                parts.append("%s")
            elif paramstyle == "numeric":
                parts.append(f":{i + 1}")
            elif paramstyle == "named":
                key = f"p{i + 1}"
                named_params[key] = values[i]
                parts.append(f":{key}")
            else:
                raise ValueError(f"Unsupported paramstyle: {paramstyle!r}")

        query = "".join(parts)
        if paramstyle == "named":
            return query, named_params
        return query, tuple(values)


def compile_sql(sql: str, backslash_escapes: bool = False) -> CompiledSQL:
    """Locate ``:name`` and ``?`` placeholders in *sql*.

    With *backslash_escapes* (MySQL) a backslash inside a quoted string
    escapes the next character; otherwise it is an ordinary character,
    as in standard SQL.

    Raises :class:`StatementError` when named and positional
    placeholders are mixed.
    """
    compiled = CompiledSQL()
    buf: list[str] = []
    i = 0
    n = len(sql)

    while i < n:
        ch = sql[i]

        if ch in _QUOTES:
            end = _skip_quoted(sql, i, ch, backslash_escapes)
            buf.append(sql[i:end])
            i = end
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            end = n if end == -1 else end
            buf.append(sql[i:end])
            i = end
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            buf.append(sql[i:end])
            i = end
        elif ch == "?":
            compiled.fragments.append("".join(buf))
            compiled.slots.append(None)
            buf = []
            i += 1
        elif ch == ":" and sql.startswith("::", i):
            # PostgreSQL cast
            buf.append("::")
            i += 2
        elif ch == ":" and i + 1 < n and (sql[i + 1].isalpha() or sql[i + 1] == "_"):
            j = i + 1
            while j < n and (sql[j].isalnum() or sql[j] == "_"):
                j += 1
            compiled.fragments.append("".join(buf))
            compiled.slots.append(sql[i + 1:j])
            buf = []
            i = j
        else:
            buf.append(ch)
            i += 1

    compiled.fragments.append("".join(buf))

    if compiled.names and compiled.positional_count:
        raise invalid_parameter("Mixed named and positional parameters")
    return compiled


def _skip_quoted(sql: str, start: int, quote: str, backslash_escapes: bool) -> int:
    """Return the index just past the quoted section opened at *start*.

    A doubled quote character inside the section is an escaped quote;
    backslash escapes apply to string literals only when enabled.
    """
    i = start + 1
    n = len(sql)
    while i < n:
        ch = sql[i]
        if backslash_escapes and ch == "\\" and quote != "`":
            i += 2
            continue
        if ch == quote:
            if i + 1 < n and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n
