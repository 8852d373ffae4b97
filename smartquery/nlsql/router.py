"""
FastAPI Router for natural-language queries
Ready-to-use API endpoints
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .errors import SmartQueryError, driver_message
from .service import SmartQueryService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["Smart Query"])


# Pydantic models for request bodies
class SmartQueryRequest(BaseModel):
    """Request model for an auto-discovered query"""
    question: Optional[str] = None


class SelectedTablesQueryRequest(BaseModel):
    """Request model for a query restricted to chosen tables"""
    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = None
    selected_tables: Optional[List[str]] = Field(default=None, alias="selectedTables")


# Dependency injection placeholder (configured by create_app)
_service: Optional[SmartQueryService] = None


def configure_dependencies(service: Optional[SmartQueryService]) -> None:
    """
    Configure the service used by the router

    Args:
        service: Fully wired SmartQueryService, or None to reset
    """
    global _service
    _service = service


def get_service() -> SmartQueryService:
    """Get service dependency"""
    if _service is None:
        raise RuntimeError("Smart query service not configured. Call configure_dependencies() first.")
    return _service


def _error_response(message: str, sql: Optional[str] = None, status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "query": sql, "results": [], "rowCount": 0},
    )


def _pipeline_error(exc: Exception) -> JSONResponse:
    # ExecutionError, NoFallbackAvailableError and NoTablesFoundError are the expected ones
    if isinstance(exc, SmartQueryError):
        logger.error("Query failed: %s", exc.message)
        return _error_response(exc.message, exc.sql)
    logger.exception("Unexpected error while answering question")
    return _error_response("Failed to execute query")


# Routes
@router.post("/smart-query")
async def smart_query(
    payload: SmartQueryRequest,
    service: SmartQueryService = Depends(get_service),
):
    """
    Answer a question using every table in the database

    Returns query, results, rowCount, executionTime, responseMessage,
    insights and chartType.
    """
    question = (payload.question or "").strip()
    if not question:
        return JSONResponse(status_code=400, content={"error": "Question is required"})

    try:
        return await service.smart_query(question)
    except Exception as exc:
        return _pipeline_error(exc)


@router.post("/query")
async def selected_tables_query(
    payload: SelectedTablesQueryRequest,
    service: SmartQueryService = Depends(get_service),
):
    """Answer a question using only the tables listed in selectedTables"""
    question = (payload.question or "").strip()
    tables = [name for name in (payload.selected_tables or []) if name]
    if not question or not tables:
        return JSONResponse(
            status_code=400,
            content={"error": "Question and selected tables are required"},
        )

    try:
        return await service.query(question, tables)
    except Exception as exc:
        return _pipeline_error(exc)


@router.get("/tables")
async def list_tables(service: SmartQueryService = Depends(get_service)):
    """List tables with their columns and row counts"""
    try:
        return {"tables": await service.list_tables()}
    except Exception as exc:
        logger.exception("Error fetching tables")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch tables", "details": driver_message(exc)},
        )


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service_configured": _service is not None,
        "model_configured": _service is not None and _service.orchestrator.provider is not None,
    }
