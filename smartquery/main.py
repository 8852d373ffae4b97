"""FastAPI application instance and startup hooks."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from smartquery.core import get_logger, get_settings
from smartquery.core.log import init_logging
from smartquery.db import create_sync_engine
from smartquery.nlsql import (
    LLMProviderFactory,
    SmartQueryService,
    build_service,
    configure_dependencies,
    router as smart_query_router,
)

LOGGER = get_logger(__name__)


def _default_service() -> SmartQueryService:
    settings = get_settings()
    engine = create_sync_engine()

    try:
        provider = LLMProviderFactory.create()
        LOGGER.info("Language model provider: %s (%s)", provider.name, provider.model)
    except ValueError as exc:
        # Without a model every question is answered by the fallback templates
        LOGGER.warning("Language model disabled: %s", exc)
        provider = None

    schema = settings.database.schema if engine.dialect.name == "postgresql" else None
    return build_service(engine, provider, schema=schema)


def create_app(service: Optional[SmartQueryService] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    init_logging(level=get_settings().log_level)

    app = FastAPI(title="SmartQuery", version="0.1.0")
    configure_dependencies(service or _default_service())
    app.include_router(smart_query_router)

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("smartquery.main:app", host="0.0.0.0", port=8000)
