"""
Schema Introspection Module
Reads table metadata, foreign keys and sample rows through SQLAlchemy
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, inspect, select, table, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from smartquery.core.log import timeit

from .config import PipelineConfig, pipeline_config
from .errors import SchemaFetchError, driver_message
from .schemas import ColumnDescriptor, ForeignKeyDescriptor, TableSchema

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Builds fresh ``TableSchema`` snapshots for the tables of one database schema.

    Nothing is cached between calls. Per-table failures never abort a batch:
    the failing table is logged and left out of the result.
    """

    def __init__(
        self,
        engine: Engine,
        schema: Optional[str] = None,
        config: PipelineConfig = pipeline_config,
    ):
        self.engine = engine
        self.schema = schema
        self.config = config

    def list_tables(self) -> List[str]:
        """Return base table names, sorted."""
        names = inspect(self.engine).get_table_names(schema=self.schema)
        return sorted(name for name in names if not name.startswith("pg_"))

    def fetch_table(self, name: str) -> TableSchema:
        """
        Introspect a single table

        Raises:
            SchemaFetchError: The table is unknown or its columns cannot be read
        """
        inspector = inspect(self.engine)
        try:
            raw_columns = inspector.get_columns(name, schema=self.schema)
        except SQLAlchemyError as exc:
            raise SchemaFetchError(name, driver_message(exc)) from exc

        if not raw_columns:
            raise SchemaFetchError(name, "table has no visible columns")

        columns = tuple(
            ColumnDescriptor(
                name=column["name"],
                data_type=str(column["type"]),
                nullable=bool(column.get("nullable", True)),
                default=None if column.get("default") is None else str(column["default"]),
                max_length=getattr(column["type"], "length", None),
            )
            for column in raw_columns
        )

        try:
            foreign_keys = frozenset(
                ForeignKeyDescriptor(
                    column=constrained,
                    referenced_table=fk["referred_table"],
                    referenced_column=referred,
                )
                for fk in inspector.get_foreign_keys(name, schema=self.schema)
                for constrained, referred in zip(fk["constrained_columns"], fk["referred_columns"])
            )
        except SQLAlchemyError as exc:
            logger.warning("Could not read foreign keys for %s: %s", name, driver_message(exc))
            foreign_keys = frozenset()

        sample_rows, row_count = self._sample(name)

        return TableSchema(
            name=name,
            columns=columns,
            foreign_keys=foreign_keys,
            sample_rows=sample_rows,
            row_count=row_count,
        )

    async def fetch_schemas(self, names: Optional[Iterable[str]] = None) -> List[TableSchema]:
        """Introspect ``names`` (all tables when omitted) with bounded concurrency.

        The returned list keeps the order of ``names``.
        """
        if names is None:
            names = await asyncio.to_thread(self.list_tables)
        names = list(dict.fromkeys(names))
        semaphore = asyncio.Semaphore(self.config.introspection_concurrency)

        async def fetch(name: str) -> Optional[TableSchema]:
            async with semaphore:
                try:
                    return await asyncio.to_thread(self.fetch_table, name)
                except SchemaFetchError as exc:
                    logger.warning(exc.message)
                    return None

        with timeit("Schema introspection", logger=logger, unit="tables") as timer:
            results = await asyncio.gather(*(fetch(name) for name in names))
            schemas = [schema for schema in results if schema is not None]
            timer.set_count(len(schemas))
        return schemas

    def describe_tables(self) -> List[Dict[str, Any]]:
        """Table listing for the tables endpoint: name, columns and row count."""
        inspector = inspect(self.engine)
        tables: List[Dict[str, Any]] = []
        for name in self.list_tables():
            try:
                columns = [
                    {
                        "column_name": column["name"],
                        "data_type": str(column["type"]),
                        "is_nullable": "YES" if column.get("nullable", True) else "NO",
                        "column_default": (
                            None if column.get("default") is None else str(column["default"])
                        ),
                    }
                    for column in inspector.get_columns(name, schema=self.schema)
                ]
            except SQLAlchemyError as exc:
                logger.warning("Could not read columns for %s: %s", name, driver_message(exc))
                columns = []
            tables.append({"name": name, "columns": columns, "rowCount": self._count(name)})
        return tables

    def _sample(self, name: str) -> tuple:
        target = table(name, schema=self.schema)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    select(text("*")).select_from(target).limit(self.config.schema_sample_rows)
                ).mappings().all()
            sample = tuple(dict(row) for row in rows)
        except SQLAlchemyError as exc:
            logger.warning("Could not fetch sample data for %s: %s", name, driver_message(exc))
            sample = ()
        return sample, self._count(name)

    def _count(self, name: str) -> int:
        target = table(name, schema=self.schema)
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(select(func.count()).select_from(target)).scalar() or 0)
        except SQLAlchemyError as exc:
            logger.warning("Could not count rows for %s: %s", name, driver_message(exc))
            return 0

