"""
Line Protocol Module
====================

Encoder and parser for the line-oriented write format.
"""

from .encoder import (
    encode_batch,
    encode_point,
    encode_points,
    escape_key,
    escape_measurement,
    escape_string_field,
    format_field_value
)

from .parser import (
    parse_line,
    parse_lines
)

__all__ = [
    "encode_batch",
    "encode_point",
    "encode_points",
    "escape_key",
    "escape_measurement",
    "escape_string_field",
    "format_field_value",
    "parse_line",
    "parse_lines",
]
