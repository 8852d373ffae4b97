"""Database engine factories."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from smartquery.core.config import get_settings
from smartquery.core.log import get_logger

LOGGER = get_logger(__name__)


def create_sync_engine(url: str | None = None, **kwargs) -> Engine:
    """Create a synchronous SQLAlchemy engine using configured defaults."""

    settings = get_settings()
    resolved_url = url or settings.database.sqlalchemy_url

    options = dict(kwargs)
    options.setdefault("echo", settings.sqlalchemy_echo)
    options.setdefault("pool_pre_ping", True)

    LOGGER.debug(
        "Creating SQLAlchemy engine url=%s options=%s",
        settings.database.masked_url if url is None else "<explicit>",
        options,
    )
    return create_engine(resolved_url, future=True, **options)
