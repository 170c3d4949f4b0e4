"""
Unit Tests for Query Templates
===============================
"""

from datetime import datetime, timezone

import pytest

from tsdb_client import Query, QueryBuilder
from tsdb_client.infrastructure.queries import (
    create_database_query,
    drop_database_query,
    quote_ident,
    quote_literal,
    requires_post,
    show_databases_query
)


@pytest.mark.unit
class TestQueryBuilder:

    def test_select_all(self):
        assert QueryBuilder("cpu").build() == 'SELECT * FROM "cpu"'

    def test_full_statement(self):
        command = QueryBuilder("cpu_usage") \
            .select("mean(idle)", "max(busy)") \
            .where_tag("region", "us-west1") \
            .time_range("now() - 1h") \
            .group_by_time("5m") \
            .group_by_tag("host") \
            .fill("null") \
            .order_desc() \
            .limit(10) \
            .build()

        assert command == (
            'SELECT mean(idle), max(busy) FROM "cpu_usage" '
            "WHERE \"region\" = 'us-west1' AND time >= now() - 1h "
            'GROUP BY time(5m), "host" fill(null) ORDER BY time DESC LIMIT 10'
        )

    def test_datetime_range(self):
        start = datetime(2025, 10, 16, 10, 0, tzinfo=timezone.utc)
        stop = datetime(2025, 10, 16, 11, 0)
        command = QueryBuilder("cpu").time_range(start, stop).build()

        assert "time >= '2025-10-16T10:00:00Z'" in command
        assert "time < '2025-10-16T11:00:00Z'" in command

    def test_raw_condition(self):
        assert QueryBuilder("cpu").where("idle > 90").build() == 'SELECT * FROM "cpu" WHERE idle > 90'

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            QueryBuilder("cpu").limit(0)

    def test_str(self):
        assert str(QueryBuilder("shapes").select("count(value)")) == 'SELECT count(value) FROM "shapes"'


@pytest.mark.unit
class TestQuoting:

    def test_quote_ident(self):
        assert quote_ident('my "db"') == '"my \\"db\\""'

    def test_quote_literal(self):
        assert quote_literal("o'brien") == "'o\\'brien'"

    def test_database_commands(self):
        assert create_database_query("telegraf") == 'CREATE DATABASE "telegraf"'
        assert drop_database_query("telegraf") == 'DROP DATABASE "telegraf"'
        assert show_databases_query() == "SHOW DATABASES"


@pytest.mark.unit
class TestRequiresPost:

    @pytest.mark.parametrize("command,expected", [
        ("SELECT * FROM cpu", False),
        ("SHOW DATABASES", False),
        ("create database telegraf", True),
        ("  DROP MEASUREMENT cpu", True),
        ("SELECT mean(idle) INTO cpu_1h FROM cpu GROUP BY time(1h)", True),
        ("ALTER RETENTION POLICY autogen ON db DURATION 1d", True),
    ])
    def test_requires_post(self, command, expected):
        assert requires_post(command) is expected


@pytest.mark.unit
class TestQueryRequest:

    def test_precision_parsed(self):
        assert Query("SELECT 1", precision="ms").precision.value == "ms"

    def test_no_precision(self):
        assert Query("SELECT 1").precision is None

    def test_invalid_precision(self):
        with pytest.raises(ValueError):
            Query("SELECT 1", precision="h")
