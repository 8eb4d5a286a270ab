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

"""Connection parameters and data-source-name (DSN) strings.

A DSN has the form ``driver:key=value;key=value``, e.g.::

    mysql:host=127.0.0.1;port=3306;dbname=shop;charset=utf8

SQLite also accepts the bare path form ``sqlite:/path/to/file.db`` or
``sqlite::memory:``.

Parameters can be supplied directly, from a mapping, or from environment
variables (``SIMPLEDB_HOST``, ``SIMPLEDB_DBNAME``, ...).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any

from simpledb.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

DEFAULT_DSN_TEMPLATE = "$driver:host=$host;port=$port;dbname=$dbname;charset=utf8"
ENV_PREFIX = "SIMPLEDB_"

# Substitution order is fixed: a value containing a later placeholder
# name gets substituted again.
_TEMPLATE_FIELDS = ("driver", "host", "port", "dbname", "user", "password")


@dataclass(frozen=True)
class ConnectionParams:
    """Named connection fields with defaults for everything but the DSN template.

    Attributes:
        dbname: Database name (file path for SQLite).
        user: Login user.
        password: Login password. Dropped from :meth:`without_password`.
        driver: Registered driver name (``mysql``, ``pgsql``, ``sqlite``).
        host: Server host.
        port: Server port, kept as a string as it is substituted into the DSN.
        dsn: Optional DSN template; ``None`` means :data:`DEFAULT_DSN_TEMPLATE`.
    """

    dbname: str = ""
    user: str = "root"
    password: str = ""
    driver: str = "mysql"
    host: str = "127.0.0.1"
    port: str = "3306"
    dsn: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConnectionParams:
        """Merge *data* over the defaults.

        Raises :class:`DatabaseConnectionError` on keys that are not
        connection fields.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise DatabaseConnectionError(f"Unknown connection parameter(s): {sorted(unknown)}")
        values = {k: v for k, v in data.items() if v is not None}
        if "port" in values:
            values["port"] = str(values["port"])
        return cls(**values)

    @classmethod
    def from_env(
        cls, prefix: str = ENV_PREFIX, **overrides: Any,
    ) -> ConnectionParams:
        """Build parameters from ``<prefix><FIELD>`` environment variables.

        Keyword *overrides* win over the environment; unset fields keep
        their defaults.
        """
        data: dict[str, Any] = {}
        for f in fields(cls):
            value = os.environ.get(f"{prefix}{f.name.upper()}")
            if value is not None:
                data[f.name] = value
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_mapping(data)

    @property
    def template(self) -> str:
        return self.dsn or DEFAULT_DSN_TEMPLATE

    def build_dsn(self) -> str:
        return build_dsn(self.template, self)

    def without_password(self) -> dict[str, Any]:
        """Return the fields as a dict with the password removed."""
        data = asdict(self)
        del data["password"]
        if data["dsn"] is None:
            del data["dsn"]
        return data


def build_dsn(template: str, params: ConnectionParams) -> str:
    """Substitute ``$driver``, ``$host``, ``$port``, ``$dbname``, ``$user``
    and ``$password`` into *template*, in that order, by plain string
    replacement."""
    dsn = template
    for name in _TEMPLATE_FIELDS:
        dsn = dsn.replace(f"${name}", str(getattr(params, name)))
    return dsn


def parse_dsn(dsn: str) -> tuple[str, dict[str, str]]:
    """Split a DSN into its driver name and field dict.

    ``key=value`` pairs are separated by ``;``.  A remainder without any
    ``=`` is taken as the ``dbname`` (the SQLite path form).

    Raises :class:`DatabaseConnectionError` if there is no driver prefix.
    """
    driver, sep, rest = dsn.partition(":")
    if not sep or not driver:
        raise DatabaseConnectionError(f"Invalid DSN, missing driver prefix: {dsn!r}")

    if "=" not in rest:
        return driver, {"dbname": rest}

    result: dict[str, str] = {}
    for part in rest.split(";"):
        part = part.strip()
        if not part:
            continue
        key, eq, value = part.partition("=")
        if not eq:
            logger.debug("Ignoring DSN segment without '=': %r", part)
            continue
        result[key.strip()] = value.strip()
    return driver, result
