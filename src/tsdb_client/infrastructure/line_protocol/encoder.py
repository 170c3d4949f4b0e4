"""
Line Protocol Encoder
=====================

Serializes Points and batches to the line-oriented text wire format:

    measurement[,tag=value...] field=value[,field=value...] [timestamp]

- Tags and fields are written in sorted key order so equal points always
  encode to identical bytes.
- Measurement names escape commas and spaces; tag keys, tag values and field
  keys also escape ``=``.
- String field values are double-quoted with ``"`` and ``\\`` escaped.
- Integers carry an ``i`` suffix, floats are written positionally,
  booleans as ``true``/``false``.
- A point without a timestamp is written without one.
- Names, keys and tag values with a newline, a trailing backslash or a
  backslash before a separator cannot be written unambiguously and raise
  ``EncodingError``, as does a measurement starting with ``#``.

Usage:
    from tsdb_client.infrastructure.line_protocol import encode_batch

    body = encode_batch(batch)
"""

from decimal import Decimal
from typing import Iterable, List, Optional, Union

from tsdb_client.core.exceptions import EncodingError
from tsdb_client.domain.batch import BatchPoints
from tsdb_client.domain.point import FieldType, FieldValue, Point, Precision

_MEASUREMENT_ESCAPES = str.maketrans({",": r"\,", " ": r"\ "})
_KEY_ESCAPES = str.maketrans({",": r"\,", "=": r"\=", " ": r"\ "})
_STRING_ESCAPES = str.maketrans({'"': r"\"", "\\": r"\\"})

# No escape sequence exists for these inside names, keys or tag values
_UNESCAPABLE = ("\n", "\r")

_MEASUREMENT_SPECIALS = ", "
_KEY_SPECIALS = ",= "


def _check_escapable(kind: str, value: str, specials: str) -> None:
    if not value:
        raise EncodingError(f"empty {kind}")
    for char in _UNESCAPABLE:
        if char in value:
            raise EncodingError(f"{kind} contains an unescapable newline", content=value)
    # A literal backslash must not end the token or precede a separator or
    # another backslash, otherwise the reader pairs it with the wrong character
    if value.endswith("\\"):
        raise EncodingError(f"{kind} ends with a backslash", content=value)
    for i, char in enumerate(value[:-1]):
        if char == "\\" and value[i + 1] in specials + "\\":
            raise EncodingError(
                f"{kind} has a backslash before {value[i + 1]!r}", content=value
            )


def escape_measurement(name: str) -> str:
    _check_escapable("measurement name", name, _MEASUREMENT_SPECIALS)
    if name.startswith("#"):
        raise EncodingError("measurement name starts with '#' and would be read as a comment", content=name)
    return name.translate(_MEASUREMENT_ESCAPES)


def escape_key(key: str, kind: str = "key") -> str:
    """Escape a tag key, tag value or field key."""
    _check_escapable(kind, key, _KEY_SPECIALS)
    return key.translate(_KEY_ESCAPES)


def escape_string_field(value: str) -> str:
    return '"' + value.translate(_STRING_ESCAPES) + '"'


def format_float(value: float) -> str:
    """Shortest round-trip representation, never in exponent notation."""
    if value == 0:
        return "0.0"
    return format(Decimal(repr(value)), "f")


def format_field_value(field_value: FieldValue) -> str:
    if field_value.type is FieldType.BOOLEAN:
        return "true" if field_value.value else "false"
    if field_value.type is FieldType.INTEGER:
        return f"{field_value.value}i"
    if field_value.type is FieldType.FLOAT:
        return format_float(field_value.value)
    return escape_string_field(field_value.value)


def encode_point(point: Point, precision: Optional[Union[Precision, str]] = None) -> str:
    """
    Encode one point as a single line (no trailing newline).

    Args:
        point: Point to encode
        precision: Timestamp unit; defaults to the point's own precision

    Raises:
        EncodingError: a name or key is empty or contains a newline
    """
    precision = Precision.parse(precision) if precision is not None else point.precision

    parts = [escape_measurement(point.name)]
    tags = point.tags
    for key in sorted(tags):
        value = tags[key]
        # The server rejects empty tag values; a missing tag means the same thing
        if value == "":
            continue
        parts.append(f"{escape_key(key, 'tag key')}={escape_key(value, 'tag value')}")
    series_key = ",".join(parts)

    fields = point.typed_fields
    field_set = ",".join(
        f"{escape_key(key, 'field key')}={format_field_value(fields[key])}"
        for key in sorted(fields)
    )

    timestamp = point.timestamp_in(precision)
    if timestamp is None:
        return f"{series_key} {field_set}"
    return f"{series_key} {field_set} {timestamp}"


def encode_points(points: Iterable[Point], precision: Union[Precision, str]) -> str:
    """Encode points as newline-separated lines."""
    precision = Precision.parse(precision)
    lines: List[str] = [encode_point(point, precision) for point in points]
    return "\n".join(lines)


def encode_batch(batch: BatchPoints) -> bytes:
    """
    Encode a batch to a UTF-8 request body, timestamps in the batch precision.

    Raises:
        EncodingError: any point of the batch cannot be encoded
    """
    return encode_points(batch, batch.precision).encode("utf-8")
