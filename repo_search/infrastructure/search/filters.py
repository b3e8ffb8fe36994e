"""OData filter expressions for search queries."""
from datetime import datetime
from typing import Any, Iterable, Optional

from repo_search.core.models.search import SUPPORTED_OPERATORS, SearchFilter


def quote(value: Any) -> str:
    """OData string literal; embedded single quotes are doubled."""
    return "'" + str(value).replace("'", "''") + "'"


def format_literal(value: Any) -> str:
    """Raw literal for comparisons: numbers, booleans and dates unquoted."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def check_operator(search_filter: SearchFilter) -> None:
    if search_filter.operator not in SUPPORTED_OPERATORS:
        raise ValueError(
            f"Unsupported filter operator '{search_filter.operator}' "
            f"for field '{search_filter.field}'"
        )


def build_filter(search_filter: SearchFilter) -> str:
    """Translate one filter into an OData clause.

    Raises:
        ValueError: If the operator is not supported.
    """
    check_operator(search_filter)
    field, op, value = search_filter.field, search_filter.operator, search_filter.value

    if op in ("eq", "ne"):
        literal = quote(value) if isinstance(value, str) else format_literal(value)
        return f"{field} {op} {literal}"
    if op in ("gt", "lt"):
        return f"{field} {op} {format_literal(value)}"
    return f"search.ismatch({quote(value)}, {quote(field)})"


def build_filter_expression(filters: Iterable[SearchFilter]) -> Optional[str]:
    """AND-join filter clauses; None when there are no filters."""
    clauses = [build_filter(f) for f in filters]
    return " and ".join(clauses) if clauses else None
