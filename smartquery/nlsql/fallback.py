"""
Fallback Query Generation Module
Deterministic keyword templates used when the model output is unusable
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import NoFallbackAvailableError, SQLValidationError
from .schemas import TableSchema
from .sql_validator import SQLValidator

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _keywords(*words: str) -> re.Pattern:
    return re.compile(r"\b(" + "|".join(re.escape(word) for word in words) + r")\b")


REVENUE = _keywords("revenue", "sales", "money", "income", "earnings", "profit")
CUSTOMER = _keywords("customer", "client", "user", "buyer")
PRODUCT = _keywords("product", "item", "inventory", "catalog")
ORDER = _keywords("order", "purchase", "transaction")
RECENT = _keywords("recent", "latest", "new", "today", "this month", "this week")
TOP = _keywords("top", "best", "highest", "most")


@dataclass(frozen=True)
class FallbackTemplate:
    """One row of the fallback decision table."""

    name: str
    required_tables: Tuple[str, ...]
    keyword_pattern: Optional[re.Pattern]
    sql: str
    explanation: str

    def matches(self, question_lower: str, available: set) -> bool:
        if self.keyword_pattern is not None and not self.keyword_pattern.search(question_lower):
            return False
        return all(table in available for table in self.required_tables)


FALLBACK_TEMPLATES: Tuple[FallbackTemplate, ...] = (
    FallbackTemplate(
        name="monthly_invoice_revenue",
        required_tables=("invoices",),
        keyword_pattern=REVENUE,
        sql=(
            "SELECT DATE_TRUNC('month', paid_at) as month, SUM(amount) as revenue,"
            " COUNT(*) as paid_invoices FROM invoices WHERE paid_at IS NOT NULL"
            " AND paid_at >= CURRENT_DATE - INTERVAL '6 months' GROUP BY month ORDER BY month"
        ),
        explanation="Monthly revenue from paid invoices over the last 6 months",
    ),
    FallbackTemplate(
        name="monthly_order_revenue",
        required_tables=("orders",),
        keyword_pattern=REVENUE,
        sql=(
            "SELECT DATE_TRUNC('month', created_at) as month, SUM(total_amount) as revenue,"
            " COUNT(*) as orders FROM orders"
            " WHERE created_at >= CURRENT_DATE - INTERVAL '6 months' GROUP BY month ORDER BY month"
        ),
        explanation="Monthly order revenue over the last 6 months",
    ),
    FallbackTemplate(
        name="customers_with_orders",
        required_tables=("users", "orders"),
        keyword_pattern=CUSTOMER,
        sql=(
            "SELECT u.first_name || ' ' || u.last_name as customer_name, u.email,"
            " COUNT(o.id) as order_count, COALESCE(SUM(o.total_amount), 0) as total_spent"
            " FROM users u LEFT JOIN orders o ON u.id = o.user_id"
            " GROUP BY u.id, u.first_name, u.last_name, u.email ORDER BY total_spent DESC LIMIT 20"
        ),
        explanation="Customers with their order count and total spend",
    ),
    FallbackTemplate(
        name="latest_customers",
        required_tables=("users",),
        keyword_pattern=CUSTOMER,
        sql="SELECT first_name, last_name, email, created_at FROM users ORDER BY created_at DESC LIMIT 20",
        explanation="Most recently registered customers",
    ),
    FallbackTemplate(
        name="product_sales",
        required_tables=("products", "order_items"),
        keyword_pattern=PRODUCT,
        sql=(
            "SELECT p.name, p.category, p.price, COUNT(oi.id) as times_ordered,"
            " SUM(oi.quantity) as total_sold FROM products p"
            " LEFT JOIN order_items oi ON p.id = oi.product_id"
            " GROUP BY p.id, p.name, p.category, p.price ORDER BY total_sold DESC NULLS LAST LIMIT 20"
        ),
        explanation="Products with how often and how much they sold",
    ),
    FallbackTemplate(
        name="latest_products",
        required_tables=("products",),
        keyword_pattern=PRODUCT,
        sql="SELECT name, category, price, created_at FROM products ORDER BY created_at DESC LIMIT 20",
        explanation="Most recently added products",
    ),
    FallbackTemplate(
        name="orders_with_customers",
        required_tables=("orders", "users"),
        keyword_pattern=ORDER,
        sql=(
            "SELECT o.id, u.first_name || ' ' || u.last_name as customer_name, o.total_amount,"
            " o.status, o.created_at FROM orders o JOIN users u ON o.user_id = u.id"
            " ORDER BY o.created_at DESC LIMIT 20"
        ),
        explanation="Latest orders with the ordering customer",
    ),
    FallbackTemplate(
        name="latest_orders_by_keyword",
        required_tables=("orders",),
        keyword_pattern=ORDER,
        sql="SELECT id, user_id, total_amount, status, created_at FROM orders ORDER BY created_at DESC LIMIT 20",
        explanation="Latest orders",
    ),
    FallbackTemplate(
        name="orders_last_7_days",
        required_tables=("orders",),
        keyword_pattern=RECENT,
        sql=(
            "SELECT id, user_id, total_amount, status, created_at FROM orders"
            " WHERE created_at >= CURRENT_DATE - INTERVAL '7 days' ORDER BY created_at DESC LIMIT 20"
        ),
        explanation="Orders placed in the last 7 days",
    ),
    FallbackTemplate(
        name="users_last_30_days",
        required_tables=("users",),
        keyword_pattern=RECENT,
        sql=(
            "SELECT first_name, last_name, email, created_at FROM users"
            " WHERE created_at >= CURRENT_DATE - INTERVAL '30 days' ORDER BY created_at DESC LIMIT 20"
        ),
        explanation="Customers who signed up in the last 30 days",
    ),
    FallbackTemplate(
        name="top_products",
        required_tables=("products", "order_items"),
        keyword_pattern=TOP,
        sql=(
            "SELECT p.name, SUM(oi.quantity) as total_sold, SUM(oi.quantity * oi.price) as revenue"
            " FROM products p JOIN order_items oi ON p.id = oi.product_id"
            " GROUP BY p.id, p.name ORDER BY total_sold DESC LIMIT 10"
        ),
        explanation="Top 10 products by quantity sold",
    ),
    FallbackTemplate(
        name="top_customers",
        required_tables=("users", "orders"),
        keyword_pattern=TOP,
        sql=(
            "SELECT u.first_name || ' ' || u.last_name as customer_name, COUNT(o.id) as order_count,"
            " SUM(o.total_amount) as total_spent FROM users u JOIN orders o ON u.id = o.user_id"
            " GROUP BY u.id, u.first_name, u.last_name ORDER BY total_spent DESC LIMIT 10"
        ),
        explanation="Top 10 customers by total spend",
    ),
    FallbackTemplate(
        name="latest_orders",
        required_tables=("orders",),
        keyword_pattern=None,
        sql="SELECT id, user_id, total_amount, status, created_at FROM orders ORDER BY created_at DESC LIMIT 20",
        explanation="Latest orders",
    ),
    FallbackTemplate(
        name="latest_users",
        required_tables=("users",),
        keyword_pattern=None,
        sql="SELECT first_name, last_name, email, created_at FROM users ORDER BY created_at DESC LIMIT 20",
        explanation="Most recently registered customers",
    ),
    FallbackTemplate(
        name="latest_products_default",
        required_tables=("products",),
        keyword_pattern=None,
        sql="SELECT name, category, price, created_at FROM products ORDER BY created_at DESC LIMIT 20",
        explanation="Most recently added products",
    ),
)


@dataclass(frozen=True)
class FallbackQuery:
    name: str
    sql: str
    explanation: str


class FallbackQueryGenerator:
    """Picks the first decision-table entry whose keywords and tables match."""

    def __init__(
        self,
        validator: Optional[SQLValidator] = None,
        templates: Sequence[FallbackTemplate] = FALLBACK_TEMPLATES,
    ):
        self.validator = validator or SQLValidator()
        self.templates = tuple(templates)

    def generate(self, question: str, schemas: Sequence[TableSchema]) -> FallbackQuery:
        """
        Produce a safe SELECT for ``question``

        Raises:
            NoFallbackAvailableError: No template matched and no table exists
        """
        question_lower = (question or "").lower()
        available = {schema.name for schema in schemas}

        for template in self.templates:
            if template.matches(question_lower, available):
                logger.info("Fallback template selected: %s", template.name)
                return self._checked(FallbackQuery(template.name, template.sql, template.explanation))

        for schema in schemas:
            candidate = self._generic_query(schema)
            if candidate is None:
                continue
            try:
                return self._checked(candidate)
            except SQLValidationError:
                logger.warning("Skipping table %s for generic fallback", schema.name)

        raise NoFallbackAvailableError("No suitable fallback query could be generated")

    def _checked(self, query: FallbackQuery) -> FallbackQuery:
        # Fallback SQL goes through the same gate as model SQL and must survive it unchanged.
        validated = self.validator.validate(query.sql)
        if validated != query.sql:
            raise SQLValidationError(f"Fallback template {query.name} is not normalized")
        return query

    @staticmethod
    def _generic_query(schema: TableSchema) -> Optional[FallbackQuery]:
        if not _IDENTIFIER_RE.match(schema.name):
            return None
        columns = schema.column_names
        if not columns or "id" in columns:
            sql = f"SELECT * FROM {schema.name} ORDER BY id DESC LIMIT 10"
        else:
            sql = f"SELECT * FROM {schema.name} LIMIT 10"
        return FallbackQuery(
            name=f"latest_{schema.name}",
            sql=sql,
            explanation=f"Latest rows from {schema.name}",
        )
