"""Introspection and execution against a throwaway SQLite database."""
from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from smartquery.nlsql.errors import ExecutionError, SchemaFetchError
from smartquery.nlsql.executor import QueryExecutor
from smartquery.nlsql.introspection import SchemaIntrospector
from smartquery.nlsql.schemas import ForeignKeyDescriptor


@pytest.fixture()
def engine(tmp_path: Path) -> Engine:
    engine = create_engine(
        f"sqlite:///{tmp_path / 'shop.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    ddl_statements = [
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            first_name VARCHAR(50) NOT NULL,
            email TEXT,
            created_at TEXT
        )
        """,
        """
        CREATE TABLE orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id),
            total_amount NUMERIC(10, 2),
            created_at TEXT
        )
        """,
    ]
    with engine.begin() as conn:
        for ddl in ddl_statements:
            conn.execute(text(ddl))
        for index in range(5):
            conn.execute(
                text("INSERT INTO users (first_name, email) VALUES (:name, :email)"),
                {"name": f"user{index}", "email": f"user{index}@example.com"},
            )
        conn.execute(
            text("INSERT INTO orders (user_id, total_amount) VALUES (1, 19.99), (2, 5.00)")
        )
    yield engine
    engine.dispose()


def test_list_tables_is_sorted(engine):
    assert SchemaIntrospector(engine).list_tables() == ["orders", "users"]


def test_fetch_table_reads_columns_sample_and_count(engine):
    schema = SchemaIntrospector(engine).fetch_table("users")

    assert schema.column_names == ["id", "first_name", "email", "created_at"]
    first_name = schema.columns[1]
    assert first_name.nullable is False
    assert first_name.max_length == 50
    assert len(schema.sample_rows) == 3
    assert schema.row_count == 5


def test_fetch_table_reads_foreign_keys(engine):
    schema = SchemaIntrospector(engine).fetch_table("orders")

    assert schema.foreign_keys == frozenset({ForeignKeyDescriptor("user_id", "users", "id")})


def test_unknown_table_raises_schema_fetch_error(engine):
    with pytest.raises(SchemaFetchError) as excinfo:
        SchemaIntrospector(engine).fetch_table("missing")

    assert excinfo.value.table_name == "missing"


@pytest.mark.asyncio
async def test_fetch_schemas_omits_failing_tables(engine):
    schemas = await SchemaIntrospector(engine).fetch_schemas(["users", "missing", "orders"])

    assert [schema.name for schema in schemas] == ["users", "orders"]


@pytest.mark.asyncio
async def test_fetch_schemas_defaults_to_all_tables(engine):
    schemas = await SchemaIntrospector(engine).fetch_schemas()

    assert [schema.name for schema in schemas] == ["orders", "users"]


def test_describe_tables_shape(engine):
    tables = SchemaIntrospector(engine).describe_tables()

    users = next(table for table in tables if table["name"] == "users")
    assert users["rowCount"] == 5
    assert users["columns"][1] == {
        "column_name": "first_name",
        "data_type": "VARCHAR(50)",
        "is_nullable": "NO",
        "column_default": None,
    }


def test_executor_converts_decimals_and_caps_rows(engine):
    executor = QueryExecutor(engine, max_rows=1)

    rows = executor.execute("SELECT id, total_amount FROM orders ORDER BY id")

    assert rows == [{"id": 1, "total_amount": 19.99}]
    assert isinstance(rows[0]["total_amount"], float)


def test_executor_returns_empty_list_for_no_rows(engine):
    assert QueryExecutor(engine).execute("SELECT id FROM users WHERE id < 0") == []


def test_executor_wraps_driver_errors(engine):
    with pytest.raises(ExecutionError) as excinfo:
        QueryExecutor(engine).execute("SELECT nope FROM users")

    assert excinfo.value.sql == "SELECT nope FROM users"
    assert excinfo.value.message.startswith("Query execution failed: ")
    assert "\n" not in excinfo.value.message
