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

"""Tests for simpledb.placeholders — locating and rewriting parameters."""

from __future__ import annotations

import pytest

from simpledb.errors import StatementError
from simpledb.placeholders import compile_sql


class TestCompileSql:
    def test_named(self):
        c = compile_sql("SELECT * FROM t WHERE a = :a AND b = :b_2")
        assert c.slots == ["a", "b_2"]
        assert c.names == ["a", "b_2"]
        assert c.is_named

    def test_positional(self):
        c = compile_sql("INSERT INTO t (a, b) VALUES (?, ?)")
        assert c.slots == [None, None]
        assert c.positional_count == 2
        assert not c.is_named

    def test_no_placeholders(self):
        c = compile_sql("SELECT 1")
        assert c.slots == []
        assert c.fragments == ["SELECT 1"]

    def test_repeated_name_listed_once(self):
        c = compile_sql("SELECT :x + :x AS y")
        assert c.slots == ["x", "x"]
        assert c.names == ["x"]

    def test_quoted_sections_skipped(self):
        c = compile_sql("SELECT ':a', \"?\", `:b`, 'it''s ?' FROM t WHERE c = :c")
        assert c.slots == ["c"]

    def test_backslash_escape_in_string(self):
        c = compile_sql(r"SELECT 'a\' :no' AS s, :yes AS t", backslash_escapes=True)
        assert c.slots == ["yes"]

    def test_backslash_is_literal_by_default(self):
        c = compile_sql(r"SELECT 'C:\' AS p, :x AS x")
        assert c.slots == ["x"]
        assert c.fragments[0] == r"SELECT 'C:\' AS p, "

    def test_comments_skipped(self):
        sql = "SELECT :a -- what about :b?\nFROM t /* or :c ? */ WHERE d = :d"
        assert compile_sql(sql).slots == ["a", "d"]

    def test_postgres_cast_is_not_a_placeholder(self):
        assert compile_sql("SELECT :v::int").slots == ["v"]

    def test_mixed_raises(self):
        with pytest.raises(StatementError, match="Mixed named and positional"):
            compile_sql("SELECT :a, ?")


class TestRender:
    def test_qmark_expands_named(self):
        c = compile_sql("SELECT :x + :x, :y")
        query, params = c.render("qmark", [1, 1, 2])
        assert query == "SELECT ? + ?, ?"
        assert params == (1, 1, 2)

    def test_format_escapes_percent(self):
        c = compile_sql("SELECT * FROM t WHERE a = :a AND b LIKE '10%'")
        query, params = c.render("pyformat", [5])
        assert query == "SELECT * FROM t WHERE a = %s AND b LIKE '10%%'"
        assert params == (5,)

    def test_numeric(self):
        query, _ = compile_sql("SELECT ?, ?").render("numeric", ["a", "b"])
        assert query == "SELECT :1, :2"

    def test_named_style(self):
        query, params = compile_sql("SELECT :a, :b").render("named", ["x", "y"])
        assert query == "SELECT :p1, :p2"
        assert params == {"p1": "x", "p2": "y"}

    def test_no_placeholders_passes_through(self):
        query, params = compile_sql("SELECT '100%'").render("pyformat", [])
        assert query == "SELECT '100%'"
        assert params is None

    def test_unknown_style_raises(self):
        with pytest.raises(ValueError, match="Unsupported paramstyle"):
            compile_sql("SELECT ?").render("weird", [1])
