"""
Smart Query Service
Request-level operations: discover schema, generate SQL, execute it
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from smartquery.core.log import log_context

from .errors import NoTablesFoundError
from .executor import QueryExecutor
from .introspection import SchemaIntrospector
from .orchestrator import QueryOrchestrator, QueryRun

logger = logging.getLogger(__name__)


class SmartQueryService:
    """Wires introspection, the orchestrator and the executor together.

    Every call builds its schema snapshot from scratch; the service holds no
    per-request state.
    """

    def __init__(
        self,
        introspector: SchemaIntrospector,
        orchestrator: QueryOrchestrator,
        executor: QueryExecutor,
    ):
        self.introspector = introspector
        self.orchestrator = orchestrator
        self.executor = executor

    async def smart_query(self, question: str) -> Dict[str, Any]:
        """Answer ``question`` against every table in the database."""
        with log_context.scope(question_id=uuid.uuid4().hex[:8], mode="smart"):
            logger.info("Smart query: %s", question)
            table_names = await asyncio.to_thread(self.introspector.list_tables)
            if not table_names:
                raise NoTablesFoundError("No tables found in the database")

            run = await self._run(question, table_names)
            return self._envelope(run, await self._execute(run), include_metadata=True)

    async def query(self, question: str, selected_tables: Sequence[str]) -> Dict[str, Any]:
        """Answer ``question`` using only the caller-selected tables."""
        with log_context.scope(question_id=uuid.uuid4().hex[:8], mode="selected"):
            logger.info("Query over %s: %s", ", ".join(selected_tables), question)
            run = await self._run(question, selected_tables)
            return self._envelope(run, await self._execute(run), include_metadata=False)

    async def list_tables(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.introspector.describe_tables)

    async def _run(self, question: str, table_names: Sequence[str]) -> QueryRun:
        schemas = await self.introspector.fetch_schemas(table_names)
        if not schemas:
            raise NoTablesFoundError("No valid tables found or insufficient permissions")

        run = await self.orchestrator.run(question, schemas)
        logger.info("Generated SQL (%s): %s", run.result.source, run.result.sql_query)
        return run

    async def _execute(self, run: QueryRun) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.executor.execute, run.result.sql_query)

    @staticmethod
    def _envelope(
        run: QueryRun,
        rows: List[Dict[str, Any]],
        include_metadata: bool,
    ) -> Dict[str, Any]:
        result = run.result
        payload: Dict[str, Any] = {
            "query": result.sql_query,
            "results": rows,
            "rowCount": len(rows),
            "executionTime": datetime.now(timezone.utc).isoformat(),
        }
        if include_metadata:
            payload.update(
                responseMessage=result.response_message,
                insights=list(result.insights),
                chartType=result.chart_type,
            )
        return payload


def build_service(
    engine,
    provider,
    schema: Optional[str] = None,
) -> SmartQueryService:
    """Assemble a service with default pipeline components for ``engine``."""
    return SmartQueryService(
        introspector=SchemaIntrospector(engine, schema=schema),
        orchestrator=QueryOrchestrator(provider),
        executor=QueryExecutor(engine),
    )
