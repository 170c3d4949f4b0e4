"""
Query Model
===========

Request and response types for ad-hoc commands.

A ``QueryResponse`` carries two error channels on purpose: transport and
HTTP failures are raised by the client, while a command the server ran and
rejected (e.g. a malformed SELECT) comes back as data on ``error()``.
Callers must check ``error()`` before consuming rows.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from tsdb_client.domain.point import Precision


@dataclass(frozen=True)
class Query:
    """
    A command to run on the server.

    ``precision`` sets the ``epoch`` of returned timestamps; when None the
    server returns RFC3339 strings.
    """

    command: str
    database: str = ""
    precision: Optional[Union[Precision, str]] = None

    def __post_init__(self):
        if self.precision is not None:
            object.__setattr__(self, "precision", Precision.parse(self.precision))


@dataclass
class Series:
    """One series of a result: a name, its group-by tags and tabular rows."""

    name: str = ""
    tags: Dict[str, str] = field(default_factory=dict)
    columns: List[str] = field(default_factory=list)
    values: List[List[Any]] = field(default_factory=list)

    def points(self) -> Iterator[Dict[str, Any]]:
        """Yield each row as a dict keyed by column name."""
        for row in self.values:
            yield dict(zip(self.columns, row))


@dataclass
class Message:
    """Informational message attached to a result."""

    level: str
    text: str


@dataclass
class Result:
    """Outcome of one statement in the command."""

    statement_id: Optional[int] = None
    series: List[Series] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class QueryResponse:
    """Decoded reply of a query call."""

    results: List[Result] = field(default_factory=list)
    err: Optional[str] = None

    def error(self) -> Optional[str]:
        """
        The response-level error, if any.

        The top-level error takes precedence over per-result errors; the
        first failing result is reported otherwise.
        """
        if self.err:
            return self.err
        for result in self.results:
            if result.error:
                return result.error
        return None

    def points(self) -> Iterator[Dict[str, Any]]:
        """Yield every row of every series of every result."""
        for result in self.results:
            for series in result.series:
                yield from series.points()
