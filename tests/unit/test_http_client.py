"""
Unit Tests for the Blocking Transport Client
=============================================

Runs the client against a simulated server (httpx.MockTransport).

Coverage:
- ✅ Write: endpoint, parameters, body, headers, auth
- ✅ Write: 204 → success, 500 → ServerError with message preserved
- ✅ Timeout → TransportTimeoutError, batch unmodified and reusable
- ✅ Concurrent writes on one client, no cross-contamination
- ✅ Query: parameters, decoded results, response-level errors as data
- ✅ Ping, create/drop database helpers
"""

import base64
import time
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from tsdb_client import (
    BatchPoints,
    ClientConfig,
    DecodingError,
    EncodingError,
    InvalidConfig,
    Point,
    Query,
    ServerError,
    TransportError,
    TransportTimeoutError,
    TSDBClient,
    encode_batch,
    new_point
)

TEST_URL = "http://tsdb.test:8086"


# =============================================================================
# TEST CLASS: WRITE
# =============================================================================

@pytest.mark.integration
class TestWrite:

    def test_write_204_is_success(self, client, server, cpu_batch):
        server.respond_with(204)

        assert client.write(cpu_batch) is None

        request = server.last_request
        assert request.method == "POST"
        assert request.url.path == "/write"
        assert request.url.params["db"] == "BumbleBeeTuna"
        assert request.url.params["precision"] == "s"
        assert request.content == encode_batch(cpu_batch)
        assert request.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_optional_write_parameters(self, client, server):
        bp = BatchPoints("db", precision="ms", retention_policy="one_week", write_consistency="all")
        bp.add_point(new_point("m", None, {"v": 1}))

        client.write(bp)

        params = server.last_request.url.params
        assert params["rp"] == "one_week"
        assert params["consistency"] == "all"

    def test_optional_write_parameters_omitted(self, client, server, cpu_batch):
        client.write(cpu_batch)

        params = server.last_request.url.params
        assert "rp" not in params
        assert "consistency" not in params

    def test_write_500_raises_server_error_with_message(self, client, server, cpu_batch):
        server.respond_with(500, text="engine exploded")

        with pytest.raises(ServerError) as exc_info:
            client.write(cpu_batch)

        assert exc_info.value.status_code == 500
        assert exc_info.value.server_message == "engine exploded"

    def test_write_json_error_body(self, client, server, cpu_batch):
        server.respond_with(400, json_body={"error": "unable to parse 'cpu_usage': bad timestamp"})

        with pytest.raises(ServerError) as exc_info:
            client.write(cpu_batch)

        assert exc_info.value.status_code == 400
        assert exc_info.value.server_message == "unable to parse 'cpu_usage': bad timestamp"

    def test_write_timeout(self, client, server, cpu_batch):
        """
        Verifies:
        - A timed-out write raises TransportTimeoutError (a TransportError)
        - The batch is unmodified and can be written again
        """
        before = encode_batch(cpu_batch)
        server.raise_error(httpx.ReadTimeout("read timed out"))

        with pytest.raises(TransportError) as exc_info:
            client.write(cpu_batch)

        assert isinstance(exc_info.value, TransportTimeoutError)
        assert exc_info.value.timeout is True
        assert exc_info.value.error_code == "TRANSPORT_TIMEOUT"
        assert encode_batch(cpu_batch) == before
        assert len(cpu_batch) == 1

        server.respond_with(204)
        client.write(cpu_batch)
        assert server.last_request.content == before

    def test_connection_failure(self, client, server, cpu_batch):
        server.raise_error(httpx.ConnectError("connection refused"))

        with pytest.raises(TransportError) as exc_info:
            client.write(cpu_batch)

        assert exc_info.value.timeout is False
        assert "connection refused" in exc_info.value.message

    def test_encoding_error_sends_nothing(self, client, server):
        bp = BatchPoints("db")
        bp.add_point(Point("m", fields={"bad\nkey": 1}))

        with pytest.raises(EncodingError):
            client.write(bp)

        assert server.requests == []

    def test_empty_batch_sends_nothing(self, client, server):
        client.write(BatchPoints("db"))
        assert server.requests == []

    def test_concurrent_writes_do_not_mix(self, client, server):
        """
        Verifies:
        - Two callers sharing one client with disjoint batches both succeed
        - Each request carries exactly its own batch
        """
        batches = {}
        for db in ("alpha", "beta"):
            bp = BatchPoints(db, precision="s")
            bp.add_points(
                Point("m", tags={"db": db}, fields={"i": i}, time=i * 1_000_000_000)
                for i in range(200)
            )
            batches[db] = bp

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(client.write, bp) for bp in batches.values()]
            for future in futures:
                future.result()

        assert len(server.requests) == 2
        for request in server.requests:
            db = request.url.params["db"]
            assert request.content == encode_batch(batches[db])


# =============================================================================
# TEST CLASS: AUTH AND HEADERS
# =============================================================================

@pytest.mark.integration
class TestAuth:

    def test_basic_auth(self, server, cpu_batch):
        config = ClientConfig(url=TEST_URL, username="admin", password="s3cret")
        with TSDBClient(config, transport=httpx.MockTransport(server)) as client:
            client.write(cpu_batch)

        expected = base64.b64encode(b"admin:s3cret").decode()
        assert server.last_request.headers["Authorization"] == f"Basic {expected}"

    def test_token_auth(self, server, cpu_batch):
        config = ClientConfig(url=TEST_URL, token="my-token")
        with TSDBClient(config, transport=httpx.MockTransport(server)) as client:
            client.write(cpu_batch)

        assert server.last_request.headers["Authorization"] == "Token my-token"

    def test_no_auth(self, client, server, cpu_batch):
        client.write(cpu_batch)
        assert "Authorization" not in server.last_request.headers

    def test_user_agent(self, server, cpu_batch):
        config = ClientConfig(url=TEST_URL, user_agent="collector/2.0")
        with TSDBClient(config, transport=httpx.MockTransport(server)) as client:
            client.write(cpu_batch)

        assert server.last_request.headers["User-Agent"] == "collector/2.0"

    def test_url_path_prefix_kept(self, server, cpu_batch):
        config = ClientConfig(url="http://proxy.test/tsdb/")
        with TSDBClient(config, transport=httpx.MockTransport(server)) as client:
            client.write(cpu_batch)

        assert server.last_request.url.path == "/tsdb/write"

    def test_config_keyword_arguments(self, server, cpu_batch):
        with TSDBClient(url=TEST_URL, timeout=1, transport=httpx.MockTransport(server)) as client:
            assert client.config.timeout == 1
            client.write(cpu_batch)

    def test_invalid_config_keyword_arguments(self):
        with pytest.raises(InvalidConfig):
            TSDBClient(url="ftp://tsdb.test")


# =============================================================================
# TEST CLASS: QUERY
# =============================================================================

@pytest.mark.integration
class TestQuery:

    def test_query_parameters_and_results(self, client, server):
        server.respond_with(200, json_body={"results": [{
            "statement_id": 0,
            "series": [{"name": "shapes", "columns": ["time", "count"], "values": [[0, 42]]}],
        }]})

        response = client.query(Query("SELECT count(value) FROM shapes", database="square_holes", precision="ns"))

        request = server.last_request
        assert request.method == "GET"
        assert request.url.path == "/query"
        assert request.url.params["q"] == "SELECT count(value) FROM shapes"
        assert request.url.params["db"] == "square_holes"
        assert request.url.params["epoch"] == "ns"
        assert response.error() is None
        assert list(response.points()) == [{"time": 0, "count": 42}]

    def test_query_without_database_or_epoch(self, client, server):
        server.respond_with(200, json_body={"results": [{"statement_id": 0}]})

        client.query(Query("SHOW DATABASES"))

        params = server.last_request.url.params
        assert "db" not in params
        assert "epoch" not in params

    def test_query_error_is_data(self, client, server):
        """
        Verifies:
        - {"results":[{"error":"malformed query"}]} returns normally
        - response.error() == "malformed query"
        """
        server.respond_with(200, json_body={"results": [{"error": "malformed query"}]})

        response = client.query(Query("SELEC * FROM cpu", database="db"))

        assert response.error() == "malformed query"

    def test_query_400_with_error_body_is_data(self, client, server):
        server.respond_with(400, json_body={"error": "error parsing query: found SELEC"})

        response = client.query(Query("SELEC * FROM cpu"))

        assert response.error() == "error parsing query: found SELEC"

    def test_query_400_without_error_body(self, client, server):
        server.respond_with(400, text="bad request")

        with pytest.raises(ServerError) as exc_info:
            client.query(Query("SELECT * FROM cpu"))

        assert exc_info.value.status_code == 400

    def test_query_401(self, client, server):
        server.respond_with(401, json_body={"error": "authorization failed"})

        with pytest.raises(ServerError) as exc_info:
            client.query(Query("SHOW DATABASES"))

        assert exc_info.value.status_code == 401
        assert exc_info.value.server_message == "authorization failed"

    def test_query_malformed_success_body(self, client, server):
        server.respond_with(200, text="<html>proxy error</html>")

        with pytest.raises(DecodingError):
            client.query(Query("SHOW DATABASES"))

    def test_query_timeout(self, client, server):
        server.raise_error(httpx.ConnectTimeout("connect timed out"))

        with pytest.raises(TransportTimeoutError):
            client.query(Query("SHOW DATABASES"))

    def test_mutating_command_uses_post(self, client, server):
        server.respond_with(200, json_body={"results": [{"statement_id": 0}]})

        client.query(Query("CREATE DATABASE telegraf"))

        assert server.last_request.method == "POST"
        assert server.last_request.url.params["q"] == "CREATE DATABASE telegraf"

    def test_create_and_drop_database(self, client, server):
        server.respond_with(200, json_body={"results": [{"statement_id": 0}]})

        assert client.create_database("telegraf").error() is None
        assert server.last_request.url.params["q"] == 'CREATE DATABASE "telegraf"'

        client.drop_database("telegraf")
        assert server.last_request.url.params["q"] == 'DROP DATABASE "telegraf"'

    def test_client_reusable_after_error(self, client, server):
        server.respond_with(503, text="unavailable")
        with pytest.raises(ServerError):
            client.query(Query("SHOW DATABASES"))

        server.respond_with(200, json_body={"results": [{"statement_id": 0}]})
        assert client.query(Query("SHOW DATABASES")).error() is None


# =============================================================================
# TEST CLASS: PING
# =============================================================================

@pytest.mark.integration
class TestPing:

    def test_ping_returns_version(self, client, server):
        server.respond_with(204, headers={"X-Influxdb-Version": "1.8.10"})

        elapsed, version = client.ping()

        assert server.last_request.url.path == "/ping"
        assert version == "1.8.10"
        assert elapsed >= 0

    def test_ping_failure(self, client, server):
        server.respond_with(500, text="down")

        with pytest.raises(ServerError):
            client.ping()


# =============================================================================
# TEST CLASS: WHOLE-CALL TIMEOUT
# =============================================================================

def trickle(chunks: int, delay: float):
    """Response body that sends one byte every ``delay`` seconds."""
    for _ in range(chunks):
        time.sleep(delay)
        yield b" "


@pytest.mark.integration
class TestCallTimeout:

    def test_slow_body_hits_config_timeout(self, server, cpu_batch):
        """
        Verifies:
        - A server that trickles its reply within each read timeout is still
          cut off once config.timeout has elapsed for the whole call
        - The failure is TransportTimeoutError
        """
        server.handler = lambda request: httpx.Response(500, content=trickle(20, 0.1))
        config = ClientConfig(url=TEST_URL, timeout=0.3)

        with TSDBClient(config, transport=httpx.MockTransport(server)) as client:
            started = time.perf_counter()
            with pytest.raises(TransportTimeoutError) as exc_info:
                client.write(cpu_batch)
            elapsed = time.perf_counter() - started

        assert elapsed < 1.0
        assert "0.3s" in exc_info.value.message

    def test_body_within_timeout_is_read(self, server):
        def handler(request):
            return httpx.Response(
                200,
                headers={"X-Influxdb-Version": "1.8.10"},
                content=(part for part in (b'{"results": ', b'[{"statement_id": 0}]}')),
            )

        server.handler = handler
        config = ClientConfig(url=TEST_URL, timeout=2)

        with TSDBClient(config, transport=httpx.MockTransport(server)) as client:
            response = client.query(Query("SHOW DATABASES"))

        assert response.results[0].statement_id == 0
