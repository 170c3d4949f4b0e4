"""
Batch Model
===========

An ordered group of Points destined for one write call, plus the write
parameters shared by all of them (database, precision, retention policy,
write consistency).

A batch belongs to the caller. Writing it never mutates it, so a batch that
failed to write can be handed to ``write`` again unchanged.
"""

from typing import Iterable, Iterator, List, Optional, Union

from tsdb_client.core.exceptions import InvalidConfig
from tsdb_client.domain.point import Point, Precision

WRITE_CONSISTENCY_LEVELS = ("any", "one", "quorum", "all")


class BatchPoints:
    """
    Points plus their shared write parameters.

    Args:
        database: Target database name
        precision: Timestamp unit for every line in the batch
        retention_policy: Optional retention policy name (``rp`` parameter)
        write_consistency: Optional consistency level (any, one, quorum, all)

    Raises:
        InvalidConfig: empty database, unknown precision or consistency level

    Example:
        >>> bp = BatchPoints("BumbleBeeTuna", precision="s")
        >>> bp.add_point(new_point("cpu_usage", {"cpu": "cpu-total"}, {"idle": 10.1}))
        >>> client.write(bp)
    """

    def __init__(
        self,
        database: str,
        precision: Union[Precision, str] = Precision.NANOSECONDS,
        retention_policy: Optional[str] = None,
        write_consistency: Optional[str] = None,
    ):
        if not database:
            raise InvalidConfig("database", "database name is required")

        try:
            self.precision = Precision.parse(precision)
        except ValueError as e:
            raise InvalidConfig("precision", str(e)) from e

        if write_consistency and write_consistency not in WRITE_CONSISTENCY_LEVELS:
            raise InvalidConfig(
                "write_consistency",
                f"'{write_consistency}' is not one of {', '.join(WRITE_CONSISTENCY_LEVELS)}"
            )

        self.database = database
        self.retention_policy = retention_policy or None
        self.write_consistency = write_consistency or None
        self._points: List[Point] = []

    def add_point(self, point: Point) -> None:
        """Append a point. No dedup and no validation beyond ``Point`` itself."""
        if not isinstance(point, Point):
            raise TypeError(f"expected Point, got {type(point).__name__}")
        self._points.append(point)

    def add_points(self, points: Iterable[Point]) -> None:
        for point in points:
            self.add_point(point)

    @property
    def points(self) -> List[Point]:
        return list(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(list(self._points))

    def __repr__(self) -> str:
        return (
            f"BatchPoints(database={self.database!r}, precision={self.precision.value!r}, "
            f"points={len(self._points)})"
        )
