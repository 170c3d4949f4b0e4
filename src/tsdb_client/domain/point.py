"""
Point Model
===========

A Point is one timestamped measurement: a name, indexed string tags and one
or more typed field values.

Field values are a tagged variant (``FieldValue``) so each type gets an
explicit encoding rule and unsupported types are rejected when the Point is
built, not when it is serialized.

Usage:
    from tsdb_client.domain.point import new_point

    pt = new_point(
        "cpu_usage",
        tags={"cpu": "cpu-total"},
        fields={"idle": 10.1, "system": 53.3, "user": 46.6},
    )
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from tsdb_client.core.exceptions import InvalidPoint

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class Precision(str, Enum):
    """Time unit used to encode or interpret a timestamp."""

    SECONDS = "s"
    MILLISECONDS = "ms"
    MICROSECONDS = "us"
    NANOSECONDS = "ns"

    @property
    def nanoseconds(self) -> int:
        """Length of one unit in nanoseconds."""
        return _UNIT_NANOS[self]

    @classmethod
    def parse(cls, value: Union["Precision", str, None]) -> "Precision":
        """
        Accept a Precision or its wire string; None means nanoseconds.

        Raises:
            ValueError: unknown precision string
        """
        if value is None or value == "":
            return cls.NANOSECONDS
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"unknown precision '{value}', expected one of "
                f"{', '.join(p.value for p in cls)}"
            ) from None


_UNIT_NANOS = {
    Precision.SECONDS: 1_000_000_000,
    Precision.MILLISECONDS: 1_000_000,
    Precision.MICROSECONDS: 1_000,
    Precision.NANOSECONDS: 1,
}


def datetime_to_ns(value: datetime) -> int:
    """Exact nanoseconds since the Unix epoch. Naive datetimes are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


def ns_to_datetime(value: int) -> datetime:
    """UTC datetime for a nanosecond timestamp (sub-microsecond part truncated)."""
    seconds, nanos = divmod(value, 1_000_000_000)
    return EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1_000)


# =================================================================
# FIELD VALUES
# =================================================================

class FieldType(Enum):
    FLOAT = "float"
    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FieldValue:
    """A field value tagged with its wire type."""

    type: FieldType
    value: Union[float, int, str, bool]

    @classmethod
    def of(cls, value: Any) -> "FieldValue":
        """
        Classify a Python value.

        ``bool`` is checked before ``int`` because it is an ``int`` subclass.

        Raises:
            ValueError: unsupported type, non-finite float or int64 overflow
        """
        if isinstance(value, FieldValue):
            return value
        if isinstance(value, bool):
            return cls(FieldType.BOOLEAN, value)
        if isinstance(value, int):
            if not INT64_MIN <= value <= INT64_MAX:
                raise ValueError(f"integer {value} out of int64 range")
            return cls(FieldType.INTEGER, value)
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"non-finite float {value!r}")
            return cls(FieldType.FLOAT, value)
        if isinstance(value, str):
            return cls(FieldType.STRING, value)
        raise ValueError(f"unsupported field type {type(value).__name__}")


# =================================================================
# POINT
# =================================================================

class Point:
    """
    A single measurement record.

    ``time`` is optional: a Point without a timestamp is written without one
    and the server assigns its receipt time. Use ``new_point`` to stamp the
    capture time automatically.

    Raises:
        InvalidPoint: empty name, no fields, non-string tags or an
            unsupported field value
    """

    __slots__ = ("_name", "_tags", "_fields", "_time_ns", "_precision")

    def __init__(
        self,
        name: str,
        tags: Optional[Mapping[str, str]] = None,
        fields: Optional[Mapping[str, Any]] = None,
        time: Optional[Union[datetime, int]] = None,
        precision: Union[Precision, str] = Precision.NANOSECONDS,
    ):
        if not isinstance(name, str) or not name:
            raise InvalidPoint("measurement name must be a non-empty string", measurement=name)
        if not fields:
            raise InvalidPoint("at least one field is required", measurement=name)

        try:
            self._precision = Precision.parse(precision)
        except ValueError as e:
            raise InvalidPoint(str(e), measurement=name) from e

        self._name = name
        self._tags: Dict[str, str] = {}
        for key, value in (tags or {}).items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise InvalidPoint(
                    f"tag {key!r}={value!r} must map a string to a string", measurement=name
                )
            self._tags[key] = value

        self._fields: Dict[str, FieldValue] = {}
        for key, value in fields.items():
            if not isinstance(key, str):
                raise InvalidPoint(f"field key {key!r} must be a string", measurement=name)
            try:
                self._fields[key] = FieldValue.of(value)
            except ValueError as e:
                raise InvalidPoint(f"field '{key}': {e}", measurement=name) from e

        if time is None:
            self._time_ns = None
        elif isinstance(time, datetime):
            self._time_ns = datetime_to_ns(time)
        elif isinstance(time, int) and not isinstance(time, bool):
            self._time_ns = time
        else:
            raise InvalidPoint(
                f"timestamp must be a datetime or integer nanoseconds, got {type(time).__name__}",
                measurement=name,
            )

    @property
    def name(self) -> str:
        return self._name

    @property
    def tags(self) -> Dict[str, str]:
        return dict(self._tags)

    @property
    def fields(self) -> Dict[str, Union[float, int, str, bool]]:
        """Plain field values, without their type tags."""
        return {key: fv.value for key, fv in self._fields.items()}

    @property
    def typed_fields(self) -> Dict[str, FieldValue]:
        return dict(self._fields)

    @property
    def time(self) -> Optional[datetime]:
        if self._time_ns is None:
            return None
        return ns_to_datetime(self._time_ns)

    @property
    def precision(self) -> Precision:
        return self._precision

    def unix_nano(self) -> Optional[int]:
        """Timestamp as nanoseconds since the epoch, or None if unset."""
        return self._time_ns

    def timestamp_in(self, precision: Union[Precision, str]) -> Optional[int]:
        """Timestamp truncated to whole units of ``precision``."""
        if self._time_ns is None:
            return None
        return self._time_ns // Precision.parse(precision).nanoseconds

    def precision_string(self, precision: Union[Precision, str]) -> str:
        """Line-protocol rendering with the timestamp in ``precision``."""
        from tsdb_client.infrastructure.line_protocol.encoder import encode_point

        return encode_point(self, precision)

    def __str__(self) -> str:
        return self.precision_string(self._precision)

    def __repr__(self) -> str:
        return (
            f"Point(name={self._name!r}, tags={self._tags!r}, "
            f"fields={self.fields!r}, time_ns={self._time_ns!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return (
            self._name == other._name
            and self._tags == other._tags
            and self._fields == other._fields
            and self._time_ns == other._time_ns
        )

    __hash__ = None


def new_point(
    name: str,
    tags: Optional[Mapping[str, str]],
    fields: Mapping[str, Any],
    timestamp: Optional[Union[datetime, int]] = None,
    precision: Union[Precision, str] = Precision.NANOSECONDS,
) -> Point:
    """
    Build a validated Point, stamping the capture time when no timestamp is given.

    Raises:
        InvalidPoint: see ``Point``
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    return Point(name, tags=tags, fields=fields, time=timestamp, precision=precision)
