import pytest

from smartquery.nlsql.errors import (
    ForbiddenOperationError,
    InvalidColumnError,
    MultipleStatementsError,
    NotASelectError,
)
from smartquery.nlsql.sql_validator import SQLValidator


@pytest.fixture()
def validator():
    return SQLValidator()


@pytest.mark.parametrize("keyword", ["drop", "delete", "insert", "update", "alter", "truncate"])
def test_blocked_keyword_is_rejected_and_named(validator, keyword):
    sql = f"SELECT id FROM orders; {keyword.upper()} orders"

    with pytest.raises(ForbiddenOperationError) as excinfo:
        validator.validate(sql)

    assert excinfo.value.keyword == keyword
    assert excinfo.value.reason == "FORBIDDEN_OPERATION"
    assert f'"{keyword}"' in excinfo.value.message


def test_keyword_inside_identifier_is_allowed(validator):
    sql = "SELECT updated_at, deleted_flag FROM orders"

    assert validator.validate(sql) == sql


def test_create_table_is_rejected(validator):
    with pytest.raises(ForbiddenOperationError) as excinfo:
        validator.validate("SELECT 1 FROM users; CREATE TABLE x (id int)")

    assert excinfo.value.keyword == "create"


def test_created_at_column_is_allowed(validator):
    sql = "SELECT created_at FROM users ORDER BY created_at DESC"

    assert validator.validate(sql) == sql


def test_non_select_is_rejected(validator):
    with pytest.raises(NotASelectError):
        validator.validate("WITH x AS (SELECT 1) SELECT * FROM x")


def test_empty_input_is_rejected(validator):
    with pytest.raises(NotASelectError):
        validator.validate("")


def test_normalization_strips_fences_preamble_and_semicolon(validator):
    raw = "```sql\nHere is the query you asked for:\nSELECT id\nFROM orders;\n```"

    assert validator.validate(raw) == "SELECT id\nFROM orders"


def test_validation_is_idempotent(validator):
    once = validator.validate("```sql\nSELECT name FROM products LIMIT 5;\n```")

    assert validator.validate(once) == once


def test_orders_invoice_join_is_rewritten(validator):
    sql = (
        "SELECT SUM(i.amount) FROM orders o JOIN invoices i ON o.order_id = o.id"
    )

    assert validator.validate(sql).endswith("ON o.id = i.order_id")


def test_invalid_order_id_reference_is_rejected(validator):
    with pytest.raises(InvalidColumnError) as excinfo:
        validator.validate("SELECT o.order_id FROM orders o")

    assert "o.order_id does not exist" in excinfo.value.message
    assert excinfo.value.sql == "SELECT o.order_id FROM orders o"


def test_alias_ending_in_o_does_not_trip_column_check(validator):
    sql = "SELECT oo.order_id FROM order_items oo"

    assert validator.validate(sql) == sql


def test_check_reports_reason_without_raising(validator):
    rejected = validator.check("DELETE FROM users")
    accepted = validator.check("SELECT 1 FROM users")

    assert not rejected.ok
    assert rejected.reason == "NOT_A_SELECT"
    assert accepted.ok
    assert accepted.sql == "SELECT 1 FROM users"


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT id FROM users; COMMIT; GRANT ALL ON users TO PUBLIC",
        "SELECT 1 FROM users; COMMIT; CREATE SCHEMA evil",
        "SELECT id FROM users;\nCOPY users TO '/tmp/users.csv';",
    ],
)
def test_stacked_statements_are_rejected(validator, sql):
    with pytest.raises(MultipleStatementsError) as excinfo:
        validator.validate(sql)

    assert excinfo.value.reason == "MULTIPLE_STATEMENTS"
    assert validator.check(sql).reason == "MULTIPLE_STATEMENTS"


def test_semicolon_inside_literal_is_allowed(validator):
    sql = "SELECT id FROM users WHERE notes = 'a;b' AND \"odd;name\" IS NOT NULL"

    assert validator.validate(sql) == sql


def test_repeated_terminators_normalize_idempotently(validator):
    once = validator.validate("SELECT id FROM users;;")

    assert once == "SELECT id FROM users"
    assert validator.validate(once) == once


def test_prose_starting_with_select_is_not_taken_as_sql(validator):
    assert validator.validate("Selecting from users:\nSELECT id FROM users") == "SELECT id FROM users"

    with pytest.raises(NotASelectError):
        validator.validate("Selecting from users: id")
