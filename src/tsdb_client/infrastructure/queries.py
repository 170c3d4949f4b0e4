"""
Query Templates
===============

Reusable builders for query command strings.

Usage:
    from tsdb_client.infrastructure.queries import QueryBuilder

    command = QueryBuilder("cpu_usage") \
        .select("mean(idle)") \
        .where_tag("region", "us-west1") \
        .time_range("now() - 1h") \
        .group_by_time("5m") \
        .build()
"""

from datetime import datetime, timezone
from typing import List, Optional, Union

# Commands the server only accepts over POST
_MUTATING_KEYWORDS = (
    "ALTER", "CREATE", "DELETE", "DROP", "GRANT", "KILL", "REVOKE", "SET"
)


def quote_ident(name: str) -> str:
    """Double-quote an identifier (database, measurement, tag key)."""
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


def quote_literal(value: str) -> str:
    """Single-quote a string literal."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _time_literal(value: Union[str, datetime]) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return quote_literal(value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"))
    # Relative expressions such as "now() - 1h" pass through
    return value


def requires_post(command: str) -> bool:
    """True when ``command`` modifies server state."""
    normalized = " ".join(command.split()).upper()
    if normalized.startswith("SELECT") and " INTO " in f" {normalized} ":
        return True
    return any(normalized.startswith(keyword) for keyword in _MUTATING_KEYWORDS)


def create_database_query(name: str) -> str:
    return f"CREATE DATABASE {quote_ident(name)}"


def drop_database_query(name: str) -> str:
    return f"DROP DATABASE {quote_ident(name)}"


def show_databases_query() -> str:
    return "SHOW DATABASES"


class QueryBuilder:
    """
    Fluent interface for building SELECT statements.

    Example:
        >>> QueryBuilder("shapes").select("count(value)").build()
        'SELECT count(value) FROM "shapes"'
    """

    def __init__(self, measurement: str):
        self.measurement = measurement
        self._fields: List[str] = []
        self._conditions: List[str] = []
        self._group_by: List[str] = []
        self._fill: Optional[str] = None
        self._order_desc = False
        self._limit: Optional[int] = None

    def select(self, *expressions: str) -> "QueryBuilder":
        """Add selected expressions; ``*`` when none are given."""
        self._fields.extend(expressions)
        return self

    def where_tag(self, tag_key: str, tag_value: str) -> "QueryBuilder":
        self._conditions.append(f"{quote_ident(tag_key)} = {quote_literal(tag_value)}")
        return self

    def where(self, condition: str) -> "QueryBuilder":
        """Add a raw condition."""
        self._conditions.append(condition)
        return self

    def time_range(
        self,
        start: Union[str, datetime],
        stop: Optional[Union[str, datetime]] = None
    ) -> "QueryBuilder":
        """
        Restrict to ``start <= time < stop``.

        Args:
            start: datetime or relative expression (e.g. "now() - 1h")
            stop: Optional end, same forms as ``start``
        """
        self._conditions.append(f"time >= {_time_literal(start)}")
        if stop is not None:
            self._conditions.append(f"time < {_time_literal(stop)}")
        return self

    def group_by_time(self, interval: str) -> "QueryBuilder":
        self._group_by.append(f"time({interval})")
        return self

    def group_by_tag(self, tag_key: str) -> "QueryBuilder":
        self._group_by.append(quote_ident(tag_key))
        return self

    def fill(self, value: str) -> "QueryBuilder":
        """Gap filling for time buckets (null, none, previous, linear or a number)."""
        self._fill = value
        return self

    def order_desc(self) -> "QueryBuilder":
        self._order_desc = True
        return self

    def limit(self, n: int) -> "QueryBuilder":
        if n <= 0:
            raise ValueError("limit must be positive")
        self._limit = n
        return self

    def build(self) -> str:
        """Build the final statement."""
        fields = ", ".join(self._fields) if self._fields else "*"
        parts = [f"SELECT {fields} FROM {quote_ident(self.measurement)}"]

        if self._conditions:
            parts.append("WHERE " + " AND ".join(self._conditions))
        if self._group_by:
            parts.append("GROUP BY " + ", ".join(self._group_by))
        if self._fill is not None:
            parts.append(f"fill({self._fill})")
        if self._order_desc:
            parts.append("ORDER BY time DESC")
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")

        return " ".join(parts)

    def __str__(self) -> str:
        return self.build()
