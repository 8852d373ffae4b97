"""Question-to-SQL pipeline and its HTTP surface."""

from .chart_classifier import ChartTypeClassifier
from .errors import (
    ExecutionError,
    ForbiddenOperationError,
    InvalidColumnError,
    ModelUnavailableError,
    MultipleStatementsError,
    NoFallbackAvailableError,
    NoTablesFoundError,
    NotASelectError,
    ParseError,
    SchemaFetchError,
    SmartQueryError,
    SQLValidationError,
)
from .executor import QueryExecutor
from .fallback import FallbackQueryGenerator
from .introspection import SchemaIntrospector
from .llm_providers import LLMCompletion, LLMProvider, LLMProviderFactory
from .orchestrator import QueryOrchestrator, QueryRun, QueryState
from .prompt_builder import PromptBuilder
from .response_parser import ResponseParser
from .router import configure_dependencies, router
from .schema_describer import SchemaDescriber
from .schemas import ColumnDescriptor, ForeignKeyDescriptor, SmartQueryResult, TableSchema
from .service import SmartQueryService, build_service
from .sql_validator import SQLValidator

__all__ = [
    "ChartTypeClassifier",
    "ColumnDescriptor",
    "ExecutionError",
    "FallbackQueryGenerator",
    "ForbiddenOperationError",
    "ForeignKeyDescriptor",
    "InvalidColumnError",
    "LLMCompletion",
    "LLMProvider",
    "LLMProviderFactory",
    "ModelUnavailableError",
    "MultipleStatementsError",
    "NoFallbackAvailableError",
    "NoTablesFoundError",
    "NotASelectError",
    "ParseError",
    "PromptBuilder",
    "QueryExecutor",
    "QueryOrchestrator",
    "QueryRun",
    "QueryState",
    "ResponseParser",
    "SQLValidationError",
    "SQLValidator",
    "SchemaDescriber",
    "SchemaFetchError",
    "SchemaIntrospector",
    "SmartQueryError",
    "SmartQueryResult",
    "SmartQueryService",
    "TableSchema",
    "build_service",
    "configure_dependencies",
    "router",
]
