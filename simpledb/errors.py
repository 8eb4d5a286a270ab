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

"""Exception types and the error-info record."""

from __future__ import annotations

from typing import Any, NamedTuple

# SQLSTATE reported when the last operation succeeded.
SQLSTATE_OK = "00000"
# SQLSTATE for errors raised by simpledb itself (invalid parameter use).
SQLSTATE_INVALID_PARAMETER = "HY093"
SQLSTATE_GENERAL_ERROR = "HY000"


class ErrorInfo(NamedTuple):
    """Three-part error record: SQLSTATE, driver error code, message."""

    sqlstate: str
    code: Any = None
    message: str | None = None


NO_ERROR = ErrorInfo(SQLSTATE_OK, None, None)


class SimpleDBError(Exception):
    """Base class for all simpledb errors.

    Attributes:
        info: The :class:`ErrorInfo` describing the failure.
    """

    def __init__(self, message: str, info: ErrorInfo | None = None) -> None:
        super().__init__(message)
        self.info = info or ErrorInfo(SQLSTATE_GENERAL_ERROR, None, message)


class DatabaseConnectionError(SimpleDBError):
    """The database handle could not be opened."""


class UnsupportedDriverError(DatabaseConnectionError):
    """No driver is registered under the requested name."""


class StatementError(SimpleDBError):
    """A statement failed to prepare, bind or execute."""


class NoActiveStatementError(SimpleDBError):
    """An operation needed a prepared statement but none exists."""


# Driver code used for errors detected by simpledb rather than the driver.
LOCAL_ERROR_CODE = -1


def invalid_parameter(message: str) -> StatementError:
    """Build a :class:`StatementError` for misuse of statement parameters."""
    return StatementError(
        message, ErrorInfo(SQLSTATE_INVALID_PARAMETER, LOCAL_ERROR_CODE, message),
    )
