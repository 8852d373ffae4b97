import pytest

from smartquery.nlsql.errors import NoFallbackAvailableError
from smartquery.nlsql.fallback import FALLBACK_TEMPLATES, FallbackQueryGenerator
from smartquery.nlsql.sql_validator import SQLValidator


@pytest.fixture()
def generator():
    return FallbackQueryGenerator(SQLValidator())


@pytest.mark.parametrize("template", FALLBACK_TEMPLATES, ids=lambda t: t.name)
def test_every_template_passes_validation_unchanged(template):
    assert SQLValidator().validate(template.sql) == template.sql


@pytest.mark.parametrize(
    "question, expected",
    [
        ("What is our total revenue?", "monthly_invoice_revenue"),
        ("Which customer spends the most?", "customers_with_orders"),
        ("How is each product doing?", "product_sales"),
        ("List every order with its buyer's name", "customers_with_orders"),
        ("Find the last purchase", "orders_with_customers"),
        ("Show me recent orders", "orders_last_7_days"),
        ("Who are the best performers?", "top_products"),
        ("Give me an overview", "latest_orders"),
    ],
)
def test_keyword_priority_with_full_schema(generator, commerce_schemas, question, expected):
    assert generator.generate(question, commerce_schemas).name == expected


def test_revenue_without_invoices_uses_orders(generator, make_table):
    schemas = [make_table("orders", "id", "total_amount", "created_at")]

    query = generator.generate("monthly sales", schemas)

    assert query.name == "monthly_order_revenue"
    assert "FROM orders" in query.sql


def test_customer_question_without_orders_lists_users(generator, make_table):
    schemas = [make_table("users", "id", "email", "created_at")]

    assert generator.generate("list every client", schemas).name == "latest_customers"


def test_keywords_match_whole_words_only(generator, make_table):
    schemas = [make_table("products", "id", "name")]

    # "users" is not the keyword "user" and "topic" is not "top"
    query = generator.generate("topic users", schemas)

    assert query.name == "latest_products_default"


def test_unknown_tables_use_first_table(generator, make_table):
    schemas = [make_table("shipments", "id", "carrier"), make_table("carriers", "code")]

    query = generator.generate("what happened?", schemas)

    assert query.sql == "SELECT * FROM shipments ORDER BY id DESC LIMIT 10"


def test_first_table_without_id_is_not_ordered(generator, make_table):
    schemas = [make_table("carriers", "code", "name")]

    assert generator.generate("?", schemas).sql == "SELECT * FROM carriers LIMIT 10"


def test_unsafe_table_names_are_skipped(generator, make_table):
    schemas = [
        make_table("weird name", "id"),
        make_table("delete", "id"),
        make_table("audit_log", "id"),
    ]

    assert generator.generate("?", schemas).sql == "SELECT * FROM audit_log ORDER BY id DESC LIMIT 10"


def test_no_tables_raises(generator):
    with pytest.raises(NoFallbackAvailableError):
        generator.generate("What's our revenue?", [])
