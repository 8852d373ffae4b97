"""Exception taxonomy for the question-to-SQL pipeline.

Model-path failures (``ModelUnavailableError``, ``ParseError`` and the
``SQLValidationError`` family) are absorbed by the orchestrator and replaced by
a fallback query. ``NoFallbackAvailableError``, ``NoTablesFoundError`` and
``ExecutionError`` are the only errors that reach API callers.
"""
from __future__ import annotations

from typing import Optional


class SmartQueryError(Exception):
    """Base class for every error raised by the pipeline."""

    def __init__(self, message: str, *, sql: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.sql = sql


class SchemaFetchError(SmartQueryError):
    """Introspection of a single table failed; the table is left out."""

    def __init__(self, table_name: str, message: str) -> None:
        super().__init__(f"Could not load schema for table '{table_name}': {message}")
        self.table_name = table_name


class NoTablesFoundError(SmartQueryError):
    """No usable table could be discovered for the request."""


class ModelUnavailableError(SmartQueryError):
    """The language model could not be reached, failed, or timed out."""


class ParseError(SmartQueryError):
    """The model reply contained neither usable JSON nor a SELECT statement."""


class SQLValidationError(SmartQueryError):
    """Base class for rejections raised by the SQL safety gate."""

    reason = "INVALID"


class NotASelectError(SQLValidationError):
    reason = "NOT_A_SELECT"


class InvalidColumnError(SQLValidationError):
    reason = "INVALID_COLUMN"


class MultipleStatementsError(SQLValidationError):
    """More than one statement was submitted in a single query."""

    reason = "MULTIPLE_STATEMENTS"


class ForbiddenOperationError(SQLValidationError):
    reason = "FORBIDDEN_OPERATION"

    def __init__(self, keyword: str, *, sql: Optional[str] = None) -> None:
        super().__init__(f'Dangerous operation "{keyword}" not allowed', sql=sql)
        self.keyword = keyword


class NoFallbackAvailableError(SmartQueryError):
    """Neither a keyword template nor any known table could produce a query."""


class ExecutionError(SmartQueryError):
    """The database rejected or failed to run a validated query."""


__all__ = [
    "SmartQueryError",
    "SchemaFetchError",
    "NoTablesFoundError",
    "ModelUnavailableError",
    "ParseError",
    "SQLValidationError",
    "NotASelectError",
    "InvalidColumnError",
    "MultipleStatementsError",
    "ForbiddenOperationError",
    "NoFallbackAvailableError",
    "ExecutionError",
    "driver_message",
]


def driver_message(exc: BaseException) -> str:
    """First line of a database driver error, without SQLAlchemy's statement dump."""
    orig = getattr(exc, "orig", None)
    message = str(orig if orig is not None else exc).strip()
    return message.splitlines()[0] if message else exc.__class__.__name__
