"""
SQL Validation Module
Safety gate between generated text and execution
"""
import re
from typing import Tuple

from .config import PipelineConfig, pipeline_config
from .errors import (
    ForbiddenOperationError,
    InvalidColumnError,
    MultipleStatementsError,
    NotASelectError,
    SQLValidationError,
)
from .schemas import ValidationOutcome

_FENCE_RE = re.compile(r"```(?:sql)?\n?", re.IGNORECASE)
_SELECT_RE = re.compile(r"select\b", re.IGNORECASE)
_TRAILING_TERMINATORS_RE = re.compile(r"[;\s]+$")
_QUOTED_RE = re.compile(
    r"'(?:[^']|'')*'"
    r'|"(?:[^"]|"")*"'
)


class SQLValidator:
    """Normalizes and safety-checks candidate SQL.

    Validation is pure: it performs no I/O and the same input always yields the
    same outcome. Every query is validated before execution, including the ones
    produced by the fallback generator.
    """

    def __init__(self, config: PipelineConfig = pipeline_config):
        self.config = config
        self._keyword_patterns: Tuple[Tuple[str, re.Pattern], ...] = tuple(
            (keyword, re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE))
            for keyword in config.blocked_sql_keywords
        )
        targets = "|".join(re.escape(target) for target in config.blocked_create_targets)
        self._create_pattern = re.compile(rf"\bcreate\s+({targets})\b", re.IGNORECASE)
        self._fixups = tuple(
            (re.compile(pattern, re.IGNORECASE), replacement)
            for pattern, replacement in config.join_fixups
        )
        self._invalid_columns = tuple(
            (re.compile(pattern, re.IGNORECASE), message)
            for pattern, message in config.invalid_column_patterns
        )

    def validate(self, sql: str) -> str:
        """
        Normalize and validate SQL

        Args:
            sql: Raw SQL text, possibly wrapped in fences or preceded by prose

        Returns:
            The normalized SQL string

        Raises:
            NotASelectError, InvalidColumnError, ForbiddenOperationError,
            MultipleStatementsError
        """
        normalized = self.normalize(sql or "")

        if not _SELECT_RE.match(normalized):
            raise NotASelectError("Only SELECT queries are allowed", sql=normalized or None)

        for pattern, message in self._invalid_columns:
            if pattern.search(normalized):
                raise InvalidColumnError(message, sql=normalized)

        for keyword, pattern in self._keyword_patterns:
            if pattern.search(normalized):
                raise ForbiddenOperationError(keyword, sql=normalized)

        if self._create_pattern.search(normalized):
            raise ForbiddenOperationError("create", sql=normalized)

        # Statement separators inside string literals or quoted identifiers are data
        if ";" in _QUOTED_RE.sub("", normalized):
            raise MultipleStatementsError("Only a single statement is allowed", sql=normalized)

        return normalized

    def check(self, sql: str) -> ValidationOutcome:
        """Non-raising variant of ``validate``."""
        try:
            return ValidationOutcome(sql=self.validate(sql))
        except SQLValidationError as exc:
            return ValidationOutcome(reason=exc.reason, detail=exc.message)

    def normalize(self, sql: str) -> str:
        """Strip fences and preamble, drop trailing ';' terminators, apply join fix-ups."""
        text = _FENCE_RE.sub("", sql).strip()

        lines = text.split("\n")
        for index, line in enumerate(lines):
            if _SELECT_RE.match(line.strip()):
                text = "\n".join(lines[index:]).strip()
                break

        text = _TRAILING_TERMINATORS_RE.sub("", text)

        for pattern, replacement in self._fixups:
            text = pattern.sub(replacement, text)

        return text
