"""Shared fixtures for the smartquery test suite."""
from __future__ import annotations

import os

# Importing smartquery.main builds the default app; keep it off PostgreSQL.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import asyncio
from typing import Callable, Optional

import pytest

from smartquery.core.log import shutdown_logging
from smartquery.nlsql.llm_providers import LLMCompletion, LLMProvider
from smartquery.nlsql.schemas import ColumnDescriptor, ForeignKeyDescriptor, TableSchema


class StubProvider(LLMProvider):
    """Provider that replies with canned text instead of calling an API."""

    name = "stub"

    def __init__(
        self,
        reply: str = "",
        *,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.error = error
        self.delay = delay
        self.model = "stub-model"
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> LLMCompletion:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return LLMCompletion(content=self.reply, model=self.model, provider=self.name)

    async def _post(self, client, prompt):  # pragma: no cover - never used
        raise NotImplementedError

    def _extract_text(self, data):  # pragma: no cover - never used
        raise NotImplementedError


def _table(name: str, *columns: str, foreign_keys=(), rows=(), row_count: int = 0) -> TableSchema:
    return TableSchema(
        name=name,
        columns=tuple(ColumnDescriptor(name=col, data_type="text") for col in columns),
        foreign_keys=frozenset(foreign_keys),
        sample_rows=rows,
        row_count=row_count,
    )


@pytest.fixture()
def make_table() -> Callable[..., TableSchema]:
    return _table


@pytest.fixture()
def commerce_schemas() -> list[TableSchema]:
    return [
        _table("users", "id", "first_name", "last_name", "email", "created_at"),
        _table(
            "orders",
            "id",
            "user_id",
            "total_amount",
            "status",
            "created_at",
            foreign_keys=[ForeignKeyDescriptor("user_id", "users", "id")],
        ),
        _table("products", "id", "name", "category", "price", "created_at"),
        _table(
            "order_items",
            "id",
            "order_id",
            "product_id",
            "quantity",
            "price",
            foreign_keys=[
                ForeignKeyDescriptor("order_id", "orders", "id"),
                ForeignKeyDescriptor("product_id", "products", "id"),
            ],
        ),
        _table(
            "invoices",
            "id",
            "order_id",
            "amount",
            "paid_at",
            foreign_keys=[ForeignKeyDescriptor("order_id", "orders", "id")],
        ),
    ]


@pytest.fixture()
def stub_provider() -> Callable[..., StubProvider]:
    return StubProvider


@pytest.fixture(scope="session", autouse=True)
def _stop_log_listener():
    yield
    shutdown_logging()
