"""
Infrastructure Layer
====================

Wire format, HTTP transport and query helpers.
"""

from .http import (
    AsyncTSDBClient,
    TSDBClient,
    RetryPolicy,
    decode_response,
    with_retries,
    with_retries_async
)

from .line_protocol import (
    encode_batch,
    encode_point,
    parse_line,
    parse_lines
)

from .queries import (
    QueryBuilder,
    create_database_query,
    drop_database_query,
    show_databases_query
)

__all__ = [
    "AsyncTSDBClient",
    "TSDBClient",
    "RetryPolicy",
    "decode_response",
    "with_retries",
    "with_retries_async",
    "encode_batch",
    "encode_point",
    "parse_line",
    "parse_lines",
    "QueryBuilder",
    "create_database_query",
    "drop_database_query",
    "show_databases_query",
]
