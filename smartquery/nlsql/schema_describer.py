"""Render table metadata as the compact text block used to ground prompts."""
from __future__ import annotations

import json
from typing import Sequence

from .schemas import ColumnDescriptor, TableSchema


class SchemaDescriber:
    """Formats ``TableSchema`` records into prompt-ready text."""

    def __init__(self, sample_rows: int = 2):
        self.sample_rows = sample_rows

    def describe(self, schemas: Sequence[TableSchema]) -> str:
        return "\n\n".join(self.describe_table(schema) for schema in schemas)

    def describe_table(self, schema: TableSchema) -> str:
        lines = [
            f"Table: {schema.name}",
            "Columns: " + ", ".join(self._format_column(col) for col in schema.columns),
        ]

        foreign_keys = schema.sorted_foreign_keys()
        if foreign_keys:
            lines.append(
                "Foreign Keys: "
                + ", ".join(
                    f"{fk.column} -> {fk.referenced_table}.{fk.referenced_column}"
                    for fk in foreign_keys
                )
            )

        if schema.sample_rows:
            sample = json.dumps(
                list(schema.sample_rows[: self.sample_rows]), indent=2, default=str
            )
            lines.append(f"Sample Data ({schema.row_count} total rows): {sample}")
        else:
            lines.append(f"Total Rows: {schema.row_count or 0}")

        return "\n".join(lines)

    @staticmethod
    def _format_column(column: ColumnDescriptor) -> str:
        suffix = "" if column.nullable else " NOT NULL"
        return f"{column.name} ({column.data_type}{suffix})"
