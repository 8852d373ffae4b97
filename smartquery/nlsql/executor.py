"""
Query Execution Module
Runs validated SELECT statements and returns JSON-friendly rows
"""
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from smartquery.core.log import timeit

from .config import PipelineConfig, pipeline_config
from .errors import ExecutionError, driver_message

logger = logging.getLogger(__name__)


class QueryExecutor:
    """Executes already-validated SQL inside a read-only transaction."""

    def __init__(
        self,
        engine: Engine,
        config: PipelineConfig = pipeline_config,
        max_rows: Optional[int] = None,
    ):
        self.engine = engine
        self.max_rows = max_rows or config.max_sql_results

    def execute(self, sql: str) -> List[Dict[str, Any]]:
        """
        Execute SQL query against database

        Args:
            sql: A query that already passed ``SQLValidator``

        Returns:
            List of result rows as dictionaries, at most ``max_rows`` long

        Raises:
            ExecutionError: The database rejected the statement
        """
        try:
            with timeit("SQL execution", logger=logger, unit="rows") as timer:
                with self.engine.connect() as conn:
                    if conn.dialect.name == "postgresql":
                        conn.execute(text("SET TRANSACTION READ ONLY"))
                    result = conn.execute(text(sql))
                    columns = list(result.keys())
                    rows = result.fetchmany(self.max_rows)
                    conn.rollback()
                timer.set_count(len(rows))
        except SQLAlchemyError as e:
            message = driver_message(e)
            logger.error("SQL execution failed: %s", message)
            raise ExecutionError(f"Query execution failed: {message}", sql=sql) from e

        return [self._convert_values(dict(zip(columns, row))) for row in rows]

    @staticmethod
    def _convert_values(row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Decimal and temporal values for JSON serialization"""
        converted = {}
        for key, value in row.items():
            if isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, (datetime, date, time)):
                value = value.isoformat()
            converted[key] = value
        return converted
