"""
Response Decoder
================

Parses the JSON body of a ``/query`` reply into a ``QueryResponse``.

Expected shape:

    {"results": [{"statement_id": 0,
                  "series": [{"name": "cpu", "tags": {...},
                              "columns": ["time", "idle"],
                              "values": [[...], ...]}],
                  "messages": [{"level": "warning", "text": "..."}],
                  "error": "..."}],
     "error": "..."}

A body that is not valid JSON, or whose structure does not match, raises
``DecodingError``. Error strings inside a well-formed body are data.
"""

import json
from typing import Any, Dict, List, Optional, Union

from tsdb_client.core.exceptions import DecodingError
from tsdb_client.domain.query import Message, QueryResponse, Result, Series


def _expect(value: Any, kind: type, where: str, body: str) -> Any:
    if not isinstance(value, kind):
        raise DecodingError(
            f"'{where}' must be {kind.__name__}, got {type(value).__name__}", body=body
        )
    return value


def _get(raw: Dict[str, Any], key: str, default: Any) -> Any:
    """Missing and null members take the default; any other value is type-checked by the caller."""
    value = raw.get(key)
    return default if value is None else value


def _decode_series(raw: Dict[str, Any], body: str) -> Series:
    _expect(raw, dict, "series[]", body)
    columns = _expect(_get(raw, "columns", []), list, "columns", body)
    values = _expect(_get(raw, "values", []), list, "values", body)
    for row in values:
        _expect(row, list, "values[]", body)
    return Series(
        name=raw.get("name", "") or "",
        tags=_expect(_get(raw, "tags", {}), dict, "tags", body),
        columns=[str(column) for column in columns],
        values=values,
    )


def _decode_result(raw: Dict[str, Any], body: str) -> Result:
    _expect(raw, dict, "results[]", body)
    series = _expect(_get(raw, "series", []), list, "series", body)
    messages = _expect(_get(raw, "messages", []), list, "messages", body)

    decoded_messages: List[Message] = []
    for message in messages:
        _expect(message, dict, "messages[]", body)
        decoded_messages.append(
            Message(level=str(message.get("level", "")), text=str(message.get("text", "")))
        )

    error = raw.get("error")
    return Result(
        statement_id=raw.get("statement_id"),
        series=[_decode_series(s, body) for s in series],
        messages=decoded_messages,
        error=str(error) if error else None,
    )


def decode_response(body: Union[bytes, str]) -> QueryResponse:
    """
    Decode a query reply body.

    Raises:
        DecodingError: invalid JSON or unexpected structure
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodingError(f"body is not UTF-8: {e}") from e

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodingError(f"invalid JSON: {e}", body=body) from e

    _expect(data, dict, "response", body)
    results = _expect(_get(data, "results", []), list, "results", body)

    error: Optional[Any] = data.get("error")
    return QueryResponse(
        results=[_decode_result(r, body) for r in results],
        err=str(error) if error else None,
    )


def extract_error_message(body: Union[bytes, str]) -> str:
    """
    Best-effort server message for a failed request: the JSON ``error`` field
    when the body is a JSON object carrying one, else the raw body text.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body.strip()

    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return body.strip()
