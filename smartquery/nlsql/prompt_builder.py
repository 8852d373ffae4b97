"""Prompt assembly for question-to-SQL generation.

The prompt carries the live schema description, the database rules, the
canonical join paths and a fixed panel of worked examples, and always ends by
asking for one JSON object with the ``sqlQuery``, ``chartType``,
``responseMessage`` and ``insights`` keys. All rule text comes from the
injected ``PipelineConfig`` so the output depends only on the question and the
schemas.
"""
from __future__ import annotations

import json
from typing import Optional, Sequence

from .config import PipelineConfig, WorkedExample, pipeline_config
from .schema_describer import SchemaDescriber
from .schemas import TableSchema, table_names


class PromptBuilder:
    """Construct the single instruction prompt sent to the language model."""

    APP_HEADER = (
        "You are an expert {dialect} developer and data analyst. The database contains"
        " business/e-commerce data. Your task is to:\n"
        "1. Understand the user's business question\n"
        "2. Automatically determine which tables are needed\n"
        "3. Generate the appropriate {dialect} query\n"
        "4. Suggest the best visualization type\n"
        "5. Provide helpful insights"
    )

    RESPONSE_CONTRACT = """{
  "sqlQuery": "your_sql_query_here",
  "chartType": "line|bar|pie|table",
  "responseMessage": "your_helpful_business_message_here",
  "insights": ["insight1", "insight2", "insight3", "insight4"]
}"""

    def __init__(
        self,
        config: PipelineConfig = pipeline_config,
        describer: Optional[SchemaDescriber] = None,
    ):
        self.config = config
        self.describer = describer or SchemaDescriber(sample_rows=config.prompt_sample_rows)

    def build(self, question: str, schemas: Sequence[TableSchema]) -> str:
        """Build the full prompt for ``question`` over ``schemas``."""

        cfg = self.config
        blocked = ", ".join(keyword.upper() for keyword in cfg.blocked_sql_keywords)
        rules = [
            f"Only generate SELECT queries (no {blocked}, CREATE, etc.)",
            *cfg.database_rules,
            f"Use table aliases ({cfg.table_aliases})",
        ]

        sections = [
            self.APP_HEADER.format(dialect=cfg.dialect),
            f"AVAILABLE DATABASE SCHEMA:\n{self.describer.describe(schemas)}",
            f"AVAILABLE TABLES: {', '.join(table_names(schemas))}",
            "IMPORTANT DATABASE RULES:\n" + self._bullets(rules),
            "CRITICAL JOIN RULES:\n" + self._bullets(cfg.join_hints),
            "\n".join(cfg.invalid_column_warnings),
            "BUSINESS CONTEXT UNDERSTANDING:\n" + self._bullets(cfg.business_context),
            "CHART TYPE SELECTION RULES:\n" + self._bullets(cfg.chart_rules),
            "RESPONSE MESSAGE GUIDELINES:\n" + self._bullets(cfg.response_guidelines),
            "BUSINESS QUERY EXAMPLES:\n\n"
            + "\n\n".join(self._format_example(example) for example in cfg.worked_examples),
            f'Now analyze the user\'s question: "{question.strip()}"',
            "IMPORTANT: Always choose the most relevant tables automatically based on the"
            " question. Don't ask the user to select tables.",
            "Return your response as a single JSON object with exactly these four keys"
            " and nothing else (no markdown, no prose):\n" + self.RESPONSE_CONTRACT,
        ]
        return "\n\n".join(sections)

    @staticmethod
    def _bullets(items: Sequence[str]) -> str:
        return "\n".join(f"- {item}" for item in items)

    @staticmethod
    def _format_example(example: WorkedExample) -> str:
        return (
            f'Question: "{example.question}"\n'
            f"SQL: {example.sql}\n"
            f"CHART: {example.chart_type}\n"
            f"MESSAGE: {example.message}\n"
            f"INSIGHTS: {json.dumps(list(example.insights))}"
        )
