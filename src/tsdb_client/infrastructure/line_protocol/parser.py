"""
Line Protocol Parser
====================

Reads line-protocol text back into Points. Inverse of the encoder: for any
encodable point, ``parse_line(encode_point(p, prec), prec)`` reconstructs the
same measurement, tags, fields and timestamp (truncated to ``prec``).

Also used by the scripts to load line-protocol files before writing them.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

from tsdb_client.core.exceptions import EncodingError, InvalidPoint
from tsdb_client.domain.point import Point, Precision

_TRUE_LITERALS = ("t", "T", "true", "True", "TRUE")
_FALSE_LITERALS = ("f", "F", "false", "False", "FALSE")


def _split_unescaped(text: str, sep: str, respect_quotes: bool) -> List[str]:
    """
    Split on ``sep`` where it is not backslash-escaped (and, optionally, not
    inside a double-quoted string). Escapes are kept in the returned parts.
    """
    parts = []
    current = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if char == "\\" and i + 1 < length:
            current.append(text[i:i + 2])
            i += 2
            continue
        if respect_quotes and char == '"':
            in_quotes = not in_quotes
        elif char == sep and not in_quotes:
            parts.append("".join(current))
            current = []
            i += 1
            continue
        current.append(char)
        i += 1

    if in_quotes:
        raise EncodingError("unterminated string field", content=text)

    parts.append("".join(current))
    return parts


def _unescape(text: str, escapable: str) -> str:
    out = []
    i = 0
    while i < len(text):
        if text[i] == "\\" and i + 1 < len(text) and text[i + 1] in escapable:
            out.append(text[i + 1])
            i += 2
            continue
        out.append(text[i])
        i += 1
    return "".join(out)


def _split_pair(text: str, line: str) -> Tuple[str, str]:
    pieces = _split_unescaped(text, "=", respect_quotes=False)
    if len(pieces) < 2 or not pieces[0]:
        raise EncodingError(f"expected key=value, got '{text}'", content=line)
    # Only the first unescaped '=' separates key from value
    return pieces[0], "=".join(pieces[1:])


def _parse_field_value(raw: str, line: str) -> Any:
    if not raw:
        raise EncodingError("missing field value", content=line)

    if raw[0] == '"':
        if len(raw) < 2 or raw[-1] != '"':
            raise EncodingError(f"malformed string field {raw}", content=line)
        return _unescape(raw[1:-1], '"\\')

    if raw in _TRUE_LITERALS:
        return True
    if raw in _FALSE_LITERALS:
        return False

    try:
        if raw.endswith("i"):
            return int(raw[:-1])
        return float(raw)
    except ValueError:
        raise EncodingError(f"invalid field value '{raw}'", content=line) from None


def parse_line(line: str, precision: Union[Precision, str] = Precision.NANOSECONDS) -> Point:
    """
    Parse one line into a Point.

    Args:
        line: A single line-protocol record
        precision: Unit of the line's timestamp

    Raises:
        EncodingError: malformed line
    """
    precision = Precision.parse(precision)
    sections = _split_unescaped(line.strip(), " ", respect_quotes=True)
    if len(sections) not in (2, 3):
        raise EncodingError(
            f"expected 2 or 3 space-separated sections, got {len(sections)}", content=line
        )

    key_parts = _split_unescaped(sections[0], ",", respect_quotes=False)
    name = _unescape(key_parts[0], ", ")
    if not name:
        raise EncodingError("missing measurement name", content=line)

    tags: Dict[str, str] = {}
    for raw_tag in key_parts[1:]:
        key, value = _split_pair(raw_tag, line)
        tags[_unescape(key, ",= ")] = _unescape(value, ",= ")

    fields: Dict[str, Any] = {}
    for raw_field in _split_unescaped(sections[1], ",", respect_quotes=True):
        key, value = _split_pair(raw_field, line)
        fields[_unescape(key, ",= ")] = _parse_field_value(value, line)

    timestamp: Optional[int] = None
    if len(sections) == 3:
        try:
            timestamp = int(sections[2]) * precision.nanoseconds
        except ValueError:
            raise EncodingError(f"invalid timestamp '{sections[2]}'", content=line) from None

    try:
        return Point(name, tags=tags, fields=fields, time=timestamp, precision=precision)
    except InvalidPoint as e:
        raise EncodingError(e.message, content=line) from e


def parse_lines(text: str, precision: Union[Precision, str] = Precision.NANOSECONDS) -> List[Point]:
    """Parse a multi-line payload, skipping blank lines and ``#`` comments."""
    points = []
    for line in _split_unescaped(text, "\n", respect_quotes=True):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        points.append(parse_line(stripped, precision))
    return points
