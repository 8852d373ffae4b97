"""Typed records passed between pipeline stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional, Sequence

ChartType = Literal["line", "bar", "pie", "table"]
CHART_TYPES: tuple[str, ...] = ("line", "bar", "pie", "table")


@dataclass(frozen=True)
class ColumnDescriptor:
    """A single column as reported by the schema source."""

    name: str
    data_type: str
    nullable: bool = True
    default: Optional[str] = None
    max_length: Optional[int] = None


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    column: str
    referenced_table: str
    referenced_column: str


@dataclass(frozen=True)
class TableSchema:
    """Snapshot of one table, built fresh for every request."""

    name: str
    columns: tuple[ColumnDescriptor, ...] = ()
    foreign_keys: frozenset[ForeignKeyDescriptor] = frozenset()
    sample_rows: tuple[Mapping[str, Any], ...] = ()
    row_count: int = 0

    MAX_SAMPLE_ROWS = 3

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "foreign_keys", frozenset(self.foreign_keys))
        object.__setattr__(
            self, "sample_rows", tuple(dict(row) for row in self.sample_rows[: self.MAX_SAMPLE_ROWS])
        )

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def sorted_foreign_keys(self) -> list[ForeignKeyDescriptor]:
        """Foreign keys in a stable order so prompts stay deterministic."""
        return sorted(
            self.foreign_keys,
            key=lambda fk: (fk.column, fk.referenced_table, fk.referenced_column),
        )


@dataclass(frozen=True)
class SmartQueryResult:
    """Sole output contract of the orchestrator."""

    sql_query: str
    chart_type: ChartType
    response_message: str
    insights: tuple[str, ...] = ()
    source: Literal["model", "fallback"] = "model"

    MAX_INSIGHTS = 4

    def __post_init__(self) -> None:
        if not self.sql_query or not self.sql_query.lstrip().lower().startswith("select"):
            raise ValueError("sql_query must be a non-empty SELECT statement")
        if self.chart_type not in CHART_TYPES:
            raise ValueError(f"Unsupported chart type: {self.chart_type}")
        object.__setattr__(self, "insights", tuple(self.insights)[: self.MAX_INSIGHTS])

    def to_dict(self) -> dict[str, Any]:
        return {
            "sqlQuery": self.sql_query,
            "chartType": self.chart_type,
            "responseMessage": self.response_message,
            "insights": list(self.insights),
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a non-raising validator check."""

    sql: Optional[str] = None
    reason: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.sql is not None


@dataclass(frozen=True)
class ParsedResponse:
    """Fields recovered from a model reply; any of them may be missing."""

    sql_query: Optional[str] = None
    chart_type: Optional[str] = None
    response_message: Optional[str] = None
    insights: tuple[str, ...] = field(default_factory=tuple)
    # True when JSON decoding failed and only a bare SELECT was salvaged
    recovered: bool = False


def table_names(schemas: Sequence[TableSchema]) -> list[str]:
    return [schema.name for schema in schemas]
