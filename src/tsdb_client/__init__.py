"""
tsdb-client
===========

Client for a time-series database's HTTP API: build points, write them in
batches as line protocol, run queries.

Usage:
    from tsdb_client import BatchPoints, ClientConfig, Query, TSDBClient, new_point

    client = TSDBClient(ClientConfig(url="http://localhost:8086"))

    bp = BatchPoints("BumbleBeeTuna", precision="s")
    bp.add_point(new_point("cpu_usage", {"cpu": "cpu-total"}, {"idle": 10.1}))
    client.write(bp)

    response = client.query(Query("SELECT count(idle) FROM cpu_usage", database="BumbleBeeTuna"))
    if response.error() is None:
        print(response.results)
"""

from .core.config import CLIENT_VERSION as __version__
from .core.config import ClientConfig, Settings, settings
from .core.exceptions import (
    DecodingError,
    EncodingError,
    InvalidConfig,
    InvalidPoint,
    ServerError,
    TransportError,
    TransportTimeoutError,
    TSDBClientException
)
from .domain import (
    BatchPoints,
    FieldType,
    FieldValue,
    Point,
    Precision,
    Query,
    QueryResponse,
    Result,
    Series,
    new_point
)
from .infrastructure import (
    AsyncTSDBClient,
    QueryBuilder,
    RetryPolicy,
    TSDBClient,
    encode_batch,
    encode_point,
    parse_line,
    parse_lines,
    with_retries,
    with_retries_async
)

__all__ = [
    "__version__",
    "ClientConfig",
    "Settings",
    "settings",
    "DecodingError",
    "EncodingError",
    "InvalidConfig",
    "InvalidPoint",
    "ServerError",
    "TransportError",
    "TransportTimeoutError",
    "TSDBClientException",
    "BatchPoints",
    "FieldType",
    "FieldValue",
    "Point",
    "Precision",
    "Query",
    "QueryResponse",
    "Result",
    "Series",
    "new_point",
    "AsyncTSDBClient",
    "QueryBuilder",
    "RetryPolicy",
    "TSDBClient",
    "encode_batch",
    "encode_point",
    "parse_line",
    "parse_lines",
    "with_retries",
    "with_retries_async",
]
