from smartquery.nlsql.prompt_builder import PromptBuilder
from smartquery.nlsql.schema_describer import SchemaDescriber
from smartquery.nlsql.schemas import ColumnDescriptor, ForeignKeyDescriptor, TableSchema


def _invoices() -> TableSchema:
    return TableSchema(
        name="invoices",
        columns=(
            ColumnDescriptor("id", "INTEGER", nullable=False),
            ColumnDescriptor("order_id", "INTEGER"),
            ColumnDescriptor("amount", "NUMERIC(10, 2)"),
            ColumnDescriptor("paid_at", "TIMESTAMP"),
        ),
        foreign_keys=frozenset({ForeignKeyDescriptor("order_id", "orders", "id")}),
        sample_rows=(
            {"id": 1, "order_id": 10, "amount": 25.5, "paid_at": None},
            {"id": 2, "order_id": 11, "amount": 99.0, "paid_at": "2024-01-02"},
            {"id": 3, "order_id": 12, "amount": 10.0, "paid_at": None},
            {"id": 4, "order_id": 13, "amount": 1.0, "paid_at": None},
        ),
        row_count=40,
    )


def test_table_schema_keeps_at_most_three_sample_rows():
    assert len(_invoices().sample_rows) == 3


def test_describer_lists_columns_foreign_keys_and_sample():
    text = SchemaDescriber(sample_rows=2).describe_table(_invoices())

    assert text.startswith("Table: invoices\n")
    assert "id (INTEGER NOT NULL)" in text
    assert "amount (NUMERIC(10, 2))" in text
    assert "Foreign Keys: order_id -> orders.id" in text
    assert "Sample Data (40 total rows):" in text
    assert '"order_id": 11' in text
    assert '"order_id": 12' not in text


def test_describer_reports_row_count_without_sample():
    schema = TableSchema(name="empty", columns=(ColumnDescriptor("id", "INTEGER"),))

    assert SchemaDescriber().describe_table(schema).endswith("Total Rows: 0")


def test_prompt_embeds_schema_rules_examples_and_question():
    prompt = PromptBuilder().build("What's our monthly revenue trend?", [_invoices()])

    assert "Table: invoices" in prompt
    assert "AVAILABLE TABLES: invoices" in prompt
    assert "DROP, DELETE, INSERT, UPDATE, ALTER, TRUNCATE" in prompt
    assert "o.id = i.order_id" in prompt
    assert 'Question: "Who are my best customers?"' in prompt
    assert 'Now analyze the user\'s question: "What\'s our monthly revenue trend?"' in prompt


def test_prompt_ends_with_json_contract():
    prompt = PromptBuilder().build("Top products", [_invoices()])

    tail = prompt[prompt.rindex("Return your response as a single JSON object"):]
    for key in ("sqlQuery", "chartType", "responseMessage", "insights"):
        assert f'"{key}"' in tail
    assert prompt.rstrip().endswith("}")


def test_prompt_is_deterministic():
    builder = PromptBuilder()
    schemas = [_invoices()]

    assert builder.build("Show me recent unpaid orders", schemas) == builder.build(
        "Show me recent unpaid orders", schemas
    )
