"""
HTTP Transport Client
=====================

Blocking and asynchronous clients for a time-series server's HTTP API:

- ``write``: POST line protocol to ``/write?db=&precision=``
- ``query``: GET (or POST for mutating commands) ``/query?q=&db=&epoch=``
- ``ping``: GET ``/ping`` for round-trip time and server version

Each call is one round trip, and ``config.timeout`` bounds both every network
step and the call as a whole (a server trickling its reply still times out).
The clients never
retry (see ``retry.py`` for an opt-in policy) and keep no state besides the
immutable config and httpx's connection pool, so one instance can be shared
by concurrent callers.

Usage:
    from tsdb_client import TSDBClient, ClientConfig, BatchPoints, new_point

    with TSDBClient(ClientConfig(url="http://localhost:8086")) as client:
        bp = BatchPoints("BumbleBeeTuna", precision="s")
        bp.add_point(new_point("cpu_usage", {"cpu": "cpu-total"}, {"idle": 10.1}))
        client.write(bp)
"""

import time
import uuid
from typing import Any, Dict, Optional, Tuple

import anyio
import httpx

from tsdb_client.core.config import ClientConfig
from tsdb_client.core.exceptions import (
    DecodingError,
    ServerError,
    TransportError,
    TransportTimeoutError
)
from tsdb_client.core.logging_config import get_logger, log_api_call, request_id_context
from tsdb_client.domain.batch import BatchPoints
from tsdb_client.domain.query import Query, QueryResponse
from tsdb_client.infrastructure.http.response import decode_response, extract_error_message
from tsdb_client.infrastructure.line_protocol import encode_batch
from tsdb_client.infrastructure.queries import (
    create_database_query,
    drop_database_query,
    requires_post
)

logger = get_logger(__name__)

VERSION_HEADER = "X-Influxdb-Version"
WRITE_HEADERS = {"Content-Type": "text/plain; charset=utf-8"}


class _DeadlineExceeded(Exception):
    """The whole call outlived ``config.timeout``."""


class _ClientBase:
    """Request building and response checks shared by both clients."""

    def __init__(self, config: Optional[ClientConfig] = None, **config_kwargs: Any):
        if config is None:
            config = ClientConfig(**config_kwargs) if config_kwargs else ClientConfig.from_settings()
        elif config_kwargs:
            raise TypeError("pass either a ClientConfig or config keyword arguments, not both")
        self.config = config

    def _client_options(self) -> Dict[str, Any]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.config.user_agent
        }
        if self.config.token:
            headers["Authorization"] = f"Token {self.config.token}"

        return {
            "base_url": self.config.url,
            "timeout": self.config.timeout,
            "auth": self.config.auth,
            "headers": headers,
            "verify": self.config.verify_ssl,
        }

    def _url(self, path: str) -> str:
        return f"{self.config.url}{path}"

    @staticmethod
    def _write_params(batch: BatchPoints) -> Dict[str, str]:
        params = {"db": batch.database, "precision": batch.precision.value}
        if batch.retention_policy:
            params["rp"] = batch.retention_policy
        if batch.write_consistency:
            params["consistency"] = batch.write_consistency
        return params

    @staticmethod
    def _query_params(query: Query) -> Dict[str, str]:
        params = {"q": query.command}
        if query.database:
            params["db"] = query.database
        if query.precision is not None:
            params["epoch"] = query.precision.value
        return params

    def _transport_failure(self, method: str, path: str, exc: httpx.RequestError) -> TransportError:
        url = self._url(path)
        if isinstance(exc, httpx.TimeoutException):
            logger.error(f"❌ {method} {url} timed out after {self.config.timeout}s")
            return TransportTimeoutError(url, f"timed out after {self.config.timeout}s ({exc.__class__.__name__})")
        logger.error(f"❌ {method} {url} failed: {exc.__class__.__name__}: {exc}")
        return TransportError(url, f"{exc.__class__.__name__}: {exc}")

    def _deadline_failure(self, method: str, path: str) -> TransportTimeoutError:
        url = self._url(path)
        logger.error(f"❌ {method} {url} exceeded the {self.config.timeout}s call timeout")
        return TransportTimeoutError(url, f"call exceeded {self.config.timeout}s")

    def _log_response(self, method: str, path: str, response: httpx.Response, started: float, **extra):
        elapsed_ms = (time.perf_counter() - started) * 1000
        log_api_call(logger, method, self._url(path), response.status_code, elapsed_ms, **extra)

    @staticmethod
    def _check_write(response: httpx.Response, batch: BatchPoints) -> None:
        if response.is_success:
            logger.info(f"✅ Wrote {len(batch)} points to {batch.database}")
            return
        message = extract_error_message(response.content)
        logger.error(f"❌ Write to {batch.database} rejected [{response.status_code}]: {message[:200]}")
        raise ServerError(response.status_code, message)

    @staticmethod
    def _check_query(response: httpx.Response, query: Query) -> QueryResponse:
        if response.is_success:
            decoded = decode_response(response.content)
        elif response.status_code == 400:
            # A rejected command still comes back as a well-formed error body
            try:
                decoded = decode_response(response.content)
            except DecodingError:
                decoded = None
            if decoded is None or decoded.error() is None:
                raise ServerError(response.status_code, extract_error_message(response.content))
        else:
            message = extract_error_message(response.content)
            logger.error(f"❌ Query rejected [{response.status_code}]: {message[:200]}")
            raise ServerError(response.status_code, message)

        if decoded.error():
            logger.warning(f"⚠️ Query returned an error: {decoded.error()} (q={query.command[:100]})")
        return decoded

    @staticmethod
    def _check_ping(response: httpx.Response, started: float) -> Tuple[float, str]:
        if not response.is_success:
            raise ServerError(response.status_code, extract_error_message(response.content))
        return time.perf_counter() - started, response.headers.get(VERSION_HEADER, "")


class TSDBClient(_ClientBase):
    """
    Blocking client.

    Args:
        config: Immutable connection config. When omitted, keyword arguments
            build one, and with neither the environment settings are used.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``)

    Raises:
        InvalidConfig: config keyword arguments fail validation
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        **config_kwargs: Any
    ):
        super().__init__(config, **config_kwargs)
        self._client = httpx.Client(transport=transport, **self._client_options())
        logger.debug(f"🔧 Client created for {self.config.url}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()
        logger.debug("🔒 Client closed")

    def _read_before(self, request: httpx.Request, deadline: float) -> httpx.Response:
        """
        Send ``request`` and read its body, giving up once ``deadline`` passes.

        httpx timeouts bound each network step separately, so a server that
        trickles its reply is cut off here between chunks.
        """
        response = self._client.send(request, stream=True)
        try:
            body = bytearray()
            if time.perf_counter() > deadline:
                raise _DeadlineExceeded()
            for chunk in response.iter_bytes():
                body.extend(chunk)
                if time.perf_counter() > deadline:
                    raise _DeadlineExceeded()
        finally:
            response.close()

        # The body is already decoded
        headers = httpx.Headers(response.headers)
        for name in ("content-encoding", "content-length", "transfer-encoding"):
            headers.pop(name, None)
        return httpx.Response(response.status_code, headers=headers, content=bytes(body), request=request)

    def _send(
        self,
        method: str,
        path: str,
        params: Dict[str, str],
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        **log_extra
    ) -> Tuple[httpx.Response, float]:
        token = request_id_context.set(uuid.uuid4().hex[:12])
        started = time.perf_counter()
        try:
            logger.debug(f"🌐 {method} {self._url(path)}")
            request = self._client.build_request(method, path, params=params, content=content, headers=headers)
            response = self._read_before(request, started + self.config.timeout)
        except _DeadlineExceeded:
            raise self._deadline_failure(method, path) from None
        except httpx.RequestError as e:
            raise self._transport_failure(method, path, e) from e
        else:
            self._log_response(method, path, response, started, **log_extra)
            return response, started
        finally:
            request_id_context.reset(token)

    def write(self, batch: BatchPoints) -> None:
        """
        Encode and send a batch. The batch is not modified.

        Raises:
            EncodingError: a point cannot be serialized (nothing is sent)
            TransportError: connection failure; TransportTimeoutError on timeout
            ServerError: non-2xx status, with the server's message
        """
        if not len(batch):
            logger.debug(f"Empty batch for {batch.database}, nothing to write")
            return

        body = encode_batch(batch)
        response, _ = self._send(
            "POST", "/write", self._write_params(batch), content=body,
            headers=WRITE_HEADERS, points=len(batch)
        )
        self._check_write(response, batch)

    def query(self, query: Query) -> QueryResponse:
        """
        Run a command and decode the reply.

        A command the server rejected is returned, not raised: check
        ``response.error()`` before reading rows.

        Raises:
            TransportError: connection failure; TransportTimeoutError on timeout
            ServerError: non-2xx status other than a decodable command error
            DecodingError: malformed success body
        """
        method = "POST" if requires_post(query.command) else "GET"
        response, _ = self._send(method, "/query", self._query_params(query))
        return self._check_query(response, query)

    def ping(self) -> Tuple[float, str]:
        """
        Check the server is reachable.

        Returns:
            (round-trip seconds, server version string)
        """
        response, started = self._send("GET", "/ping", {})
        return self._check_ping(response, started)

    def create_database(self, name: str) -> QueryResponse:
        return self.query(Query(create_database_query(name)))

    def drop_database(self, name: str) -> QueryResponse:
        return self.query(Query(drop_database_query(name)))


class AsyncTSDBClient(_ClientBase):
    """
    Asynchronous client with the same operations as ``TSDBClient``.

    Example:
        >>> async with AsyncTSDBClient(url="http://localhost:8086") as client:
        ...     response = await client.query(Query("SHOW DATABASES"))
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **config_kwargs: Any
    ):
        super().__init__(config, **config_kwargs)
        self._client = httpx.AsyncClient(transport=transport, **self._client_options())
        logger.debug(f"🔧 Async client created for {self.config.url}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()
        logger.debug("🔒 Async client closed")

    async def _send(
        self,
        method: str,
        path: str,
        params: Dict[str, str],
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        **log_extra
    ) -> Tuple[httpx.Response, float]:
        token = request_id_context.set(uuid.uuid4().hex[:12])
        started = time.perf_counter()
        try:
            logger.debug(f"🌐 {method} {self._url(path)}")
            with anyio.fail_after(self.config.timeout):
                response = await self._client.request(method, path, params=params, content=content, headers=headers)
        except TimeoutError:
            raise self._deadline_failure(method, path) from None
        except httpx.RequestError as e:
            raise self._transport_failure(method, path, e) from e
        else:
            self._log_response(method, path, response, started, **log_extra)
            return response, started
        finally:
            request_id_context.reset(token)

    async def write(self, batch: BatchPoints) -> None:
        """See ``TSDBClient.write``."""
        if not len(batch):
            logger.debug(f"Empty batch for {batch.database}, nothing to write")
            return

        body = encode_batch(batch)
        response, _ = await self._send(
            "POST", "/write", self._write_params(batch), content=body,
            headers=WRITE_HEADERS, points=len(batch)
        )
        self._check_write(response, batch)

    async def query(self, query: Query) -> QueryResponse:
        """See ``TSDBClient.query``."""
        method = "POST" if requires_post(query.command) else "GET"
        response, _ = await self._send(method, "/query", self._query_params(query))
        return self._check_query(response, query)

    async def ping(self) -> Tuple[float, str]:
        response, started = await self._send("GET", "/ping", {})
        return self._check_ping(response, started)

    async def create_database(self, name: str) -> QueryResponse:
        return await self.query(Query(create_database_query(name)))

    async def drop_database(self, name: str) -> QueryResponse:
        return await self.query(Query(drop_database_query(name)))
