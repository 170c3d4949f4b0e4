"""
Domain Layer
============

Points, batches and query request/response types.
"""

from .point import (
    FieldType,
    FieldValue,
    Point,
    Precision,
    new_point
)

from .batch import BatchPoints

from .query import (
    Message,
    Query,
    QueryResponse,
    Result,
    Series
)

__all__ = [
    "FieldType",
    "FieldValue",
    "Point",
    "Precision",
    "new_point",
    "BatchPoints",
    "Message",
    "Query",
    "QueryResponse",
    "Result",
    "Series",
]
