"""
Pipeline Configuration Module
Centralized configuration for LLM providers and the question-to-SQL pipeline
"""
import os
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class LLMProviderConfig(BaseModel):
    """Configuration for LLM providers"""

    default_provider: str = Field(
        default_factory=lambda: os.getenv("LLM_PROVIDER", "gemini")
    )
    timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
    )

    # Gemini Configuration
    gemini_api_key: str = Field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY", "")
    )
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Claude Configuration
    claude_api_key: str = Field(
        default_factory=lambda: os.getenv("CLAUDE_API_KEY", "")
    )
    claude_model: str = "claude-haiku-4-5-20251001"
    claude_max_tokens: int = 2000

    # OpenAI Configuration
    openai_api_key: str = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY", "")
    )
    openai_model: str = "gpt-4o-mini"
    openai_max_tokens: int = 2000


class WorkedExample(BaseModel):
    """One question/answer pair shown to the model to anchor its output format."""

    model_config = ConfigDict(frozen=True)

    question: str
    sql: str
    chart_type: str
    message: str
    insights: Tuple[str, ...]


class PipelineConfig(BaseModel):
    """Immutable rule tables shared by the prompt builder, validator and classifier."""

    model_config = ConfigDict(frozen=True)

    dialect: str = "PostgreSQL"

    # Security settings
    blocked_sql_keywords: Tuple[str, ...] = (
        "drop", "delete", "insert", "update", "alter", "truncate",
    )
    blocked_create_targets: Tuple[str, ...] = (
        "table", "database", "index", "view", "function", "procedure", "trigger",
    )
    # (regex, replacement) pairs for the one historically wrong orders/invoices join
    join_fixups: Tuple[Tuple[str, str], ...] = (
        (r"\bo\.order_id\s*=\s*o\.id\b", "o.id = i.order_id"),
        (r"\borders\.order_id\s*=\s*orders\.id\b", "orders.id = invoices.order_id"),
    )
    # (regex, message) pairs for column references that never exist
    invalid_column_patterns: Tuple[Tuple[str, str], ...] = (
        (
            r"\bo\.order_id\b",
            "Invalid column reference: o.order_id does not exist. Use o.id = i.order_id instead",
        ),
    )

    # Prompt settings
    table_aliases: str = (
        "u for users, o for orders, oi for order_items, p for products, i for invoices"
    )
    join_hints: Tuple[str, ...] = (
        "orders.id = invoices.order_id (CORRECT: o.id = i.order_id)",
        "users.id = orders.user_id (CORRECT: u.id = o.user_id)",
        "products.id = order_items.product_id (CORRECT: p.id = oi.product_id)",
        "orders.id = order_items.order_id (CORRECT: o.id = oi.order_id)",
    )
    invalid_column_warnings: Tuple[str, ...] = (
        "NEVER USE: o.order_id (this column does not exist!)",
        "ALWAYS USE: o.id = i.order_id (to join orders with invoices)",
    )
    database_rules: Tuple[str, ...] = (
        "Use proper PostgreSQL syntax and functions",
        "Use appropriate JOINs when querying multiple tables",
        "Add meaningful column aliases for calculated fields",
        'Use LIMIT 50 unless user asks for "all" or specifies a number',
        "Use aggregate functions (COUNT, SUM, AVG, MAX, MIN) when appropriate",
        'For "top" or "highest" queries, use ORDER BY with LIMIT',
        "For date/time analysis, use DATE_TRUNC for grouping by periods",
        "Do NOT include semicolons at the end of the query",
        "Use COALESCE for handling null values in calculations",
        "Always include relevant context columns for better understanding",
    )
    business_context: Tuple[str, ...] = (
        "Revenue queries: Use paid invoices (invoices with paid_at NOT NULL) for actual revenue",
        "Customer analysis: Join users with their orders/purchases",
        "Product performance: Use order_items to see what's actually selling",
        "Sales trends: Group by time periods using DATE_TRUNC",
        "Top performers: Use ORDER BY with LIMIT",
        "Recent activity: Use date filters like created_at >= CURRENT_DATE - INTERVAL 'X days'",
    )
    chart_rules: Tuple[str, ...] = (
        "'line': Time series data, trends over time, temporal analysis (monthly sales, growth trends)",
        "'bar': Comparisons, rankings, categories (top customers, product performance)",
        "'pie': Distributions, percentages, parts of whole (market share, category splits)",
        "'table': Detailed listings, specific records, when users want to see individual items",
    )
    response_guidelines: Tuple[str, ...] = (
        "Be conversational and business-focused",
        "Explain what the data shows in simple terms",
        "Mention key business insights",
        "Use natural language, avoid technical jargon",
        "Address the user directly (\"Here's your...\" or \"Your data shows...\")",
    )
    worked_examples: Tuple[WorkedExample, ...] = (
        WorkedExample(
            question="What's our monthly revenue trend?",
            sql=(
                "SELECT DATE_TRUNC('month', i.paid_at) as month, SUM(i.amount) as revenue,"
                " COUNT(DISTINCT i.order_id) as orders_paid FROM invoices i"
                " WHERE i.paid_at IS NOT NULL AND i.paid_at >= CURRENT_DATE - INTERVAL '12 months'"
                " GROUP BY month ORDER BY month"
            ),
            chart_type="line",
            message=(
                "Here's your monthly revenue trend based on actually paid invoices over the"
                " past year. This shows your real cash flow and business growth patterns."
            ),
            insights=(
                "12 months of actual revenue data",
                "Based on paid invoices only",
                "Shows seasonal business patterns",
                "Includes order volume metrics",
            ),
        ),
        WorkedExample(
            question="Who are my best customers?",
            sql=(
                "SELECT u.first_name || ' ' || u.last_name as customer_name, u.email,"
                " COUNT(o.id) as total_orders, SUM(COALESCE(i.amount, 0)) as total_paid,"
                " MAX(o.created_at) as last_order_date FROM users u"
                " LEFT JOIN orders o ON u.id = o.user_id"
                " LEFT JOIN invoices i ON o.id = i.order_id AND i.paid_at IS NOT NULL"
                " GROUP BY u.id, u.first_name, u.last_name, u.email HAVING COUNT(o.id) > 0"
                " ORDER BY total_paid DESC LIMIT 20"
            ),
            chart_type="bar",
            message=(
                "Here are your top customers ranked by total payments received. These are"
                " your most valuable customers who actually pay their invoices."
            ),
            insights=(
                "Top 20 paying customers",
                "Includes contact information",
                "Shows purchase frequency",
                "Based on actual payments received",
            ),
        ),
        WorkedExample(
            question="Which products sell best?",
            sql=(
                "SELECT p.name as product_name, p.category, COUNT(oi.id) as times_ordered,"
                " SUM(oi.quantity) as total_quantity_sold, SUM(oi.quantity * oi.price) as total_revenue"
                " FROM products p JOIN order_items oi ON p.id = oi.product_id"
                " GROUP BY p.id, p.name, p.category ORDER BY total_quantity_sold DESC LIMIT 20"
            ),
            chart_type="bar",
            message=(
                "Here are your best-selling products by quantity sold, along with their"
                " revenue contribution and order frequency."
            ),
            insights=(
                "Top 20 products by sales volume",
                "Includes revenue per product",
                "Shows category distribution",
                "Order frequency included",
            ),
        ),
        WorkedExample(
            question="Show me recent unpaid orders",
            sql=(
                "SELECT u.first_name || ' ' || u.last_name as customer_name, u.email,"
                " o.id as order_id, o.total_amount, o.status, o.created_at,"
                " CASE WHEN i.id IS NULL THEN 'No Invoice' ELSE 'Invoice Created' END as invoice_status"
                " FROM orders o JOIN users u ON o.user_id = u.id"
                " LEFT JOIN invoices i ON o.id = i.order_id"
                " WHERE (i.paid_at IS NULL OR i.id IS NULL)"
                " AND o.created_at >= CURRENT_DATE - INTERVAL '30 days'"
                " ORDER BY o.created_at DESC LIMIT 30"
            ),
            chart_type="table",
            message=(
                "Here are your recent orders from the last 30 days that haven't been paid yet."
                " This helps you track which customers need payment follow-up."
            ),
            insights=(
                "Last 30 days of unpaid orders",
                "Customer contact info included",
                "Invoice status tracking",
                "Sorted by order date",
            ),
        ),
        WorkedExample(
            question="How many new customers this month?",
            sql=(
                "SELECT DATE_TRUNC('month', created_at) as month, COUNT(*) as new_customers"
                " FROM users WHERE created_at >= DATE_TRUNC('month', CURRENT_DATE) GROUP BY month"
            ),
            chart_type="bar",
            message=(
                "Here's your new customer acquisition for the current month compared to"
                " previous months."
            ),
            insights=(
                "Current month customer growth",
                "Monthly comparison available",
                "New user registrations tracked",
            ),
        ),
    )
    prompt_sample_rows: int = 2

    # Chart classifier keyword sets, evaluated in this order
    temporal_keywords: Tuple[str, ...] = (
        "trend", "over time", "monthly", "daily", "weekly", "yearly", "growth",
        "change", "timeline", "history", "progression",
    )
    distribution_keywords: Tuple[str, ...] = (
        "distribution", "breakdown", "percentage", "share", "proportion", "split",
        "composition",
    )
    ranking_keywords: Tuple[str, ...] = (
        "top", "best", "worst", "highest", "lowest", "most", "least", "compare",
        "comparison", "rank", "ranking", "vs",
    )
    listing_keywords: Tuple[str, ...] = (
        "show me", "list", "details", "recent", "latest", "all", "who are", "what are",
    )

    # Result settings
    max_insights: int = 4
    max_sql_results: int = 1000

    # Introspection settings
    schema_sample_rows: int = 3
    introspection_concurrency: int = 4


# Global config instances
llm_config = LLMProviderConfig()
pipeline_config = PipelineConfig()
