"""Unit tests for the LiveDB API client."""

import warnings
from unittest.mock import Mock, patch

import httpx
import pytest

from pylivedb.api import LiveDBClient
from pylivedb.cache import LocalCache
from pylivedb.config import LiveDBConfig
from pylivedb.database import LiveDatabase
from pylivedb.exceptions import (
    LiveDBAPIError,
    LiveDBAuthenticationError,
    LiveDBInvalidResponseError,
    LiveDBNetworkError,
    LiveDBNotFoundError,
    LiveDBPermissionError,
    LiveDBRateLimitError,
    LiveDBServerError,
    LiveDBTimeoutError,
    LiveDBTokenError,
)
from pylivedb.models import UploadResponse
from pylivedb.storage import LiveStorage


def make_response(status_code=200, json=None, content=None, headers=None):
    """Build a real httpx response bound to a dummy request."""
    request = httpx.Request("GET", "https://livedb.test/api")
    if json is not None:
        return httpx.Response(
            status_code, json=json, headers=headers, request=request
        )
    return httpx.Response(
        status_code, content=content or b"", headers=headers, request=request
    )


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache")


@pytest.fixture
def client():
    """Client with a token and no local storage."""
    return LiveDBClient(LiveDBConfig(base_url="https://livedb.test"), token="tok")


@pytest.fixture
def caching_client(cache):
    """Client with a token and local storage enabled."""
    config = LiveDBConfig(base_url="https://livedb.test", enable_local_storage=True)
    return LiveDBClient(config, token="tok", cache=cache)


class TestLiveDBClient:
    """Tests for LiveDBClient initialization and basic functionality."""

    def test_init_defaults(self):
        """Test client initialization with the default config."""
        client = LiveDBClient()
        assert client.config.base_url == "https://link.thelocalrent.com"
        assert client.config.chunk_size == 512 * 1024
        assert client.token is None
        assert client.cache is None

    def test_submodules_created(self, client):
        """Test that database and storage sub-modules are attached."""
        assert isinstance(client.db, LiveDatabase)
        assert isinstance(client.storage, LiveStorage)

    def test_cache_created_when_local_storage_enabled(self, tmp_path):
        """Test that enabling local storage creates a cache in cache_dir."""
        config = LiveDBConfig(enable_local_storage=True, cache_dir=tmp_path)
        client = LiveDBClient(config)
        assert isinstance(client.cache, LocalCache)
        assert client.cache.cache_dir == tmp_path

    def test_http_client_settings(self, client):
        """Test that the httpx client uses base URL, timeouts and headers."""
        http = client.http
        assert http.base_url.host == "livedb.test"
        assert http.headers["Accept"] == "application/json"
        assert http.timeout.connect == 30.0
        assert http.timeout.read == 60.0
        assert http.timeout.write == 60.0

    def test_http_client_reused_until_closed(self, client):
        """Test that the httpx client is created lazily and reused."""
        first = client.http
        assert client.http is first
        client.close()
        assert client.http is not first

    def test_context_manager_closes(self):
        """Test that leaving the context closes the connection."""
        with LiveDBClient(token="tok") as client:
            http = client.http
        assert http.is_closed


class TestSharedInstance:
    """Tests for the process-wide client instance."""

    def setup_method(self):
        LiveDBClient.reset()

    def teardown_method(self):
        LiveDBClient.reset()

    def test_instance_is_shared(self):
        """Test that instance() always returns the same client."""
        first = LiveDBClient.instance(LiveDBConfig(chunk_size=1024))
        second = LiveDBClient.instance(LiveDBConfig(chunk_size=2048))
        assert first is second
        assert second.config.chunk_size == 1024

    def test_reset_drops_instance(self):
        """Test that reset() forces a new shared client."""
        first = LiveDBClient.instance()
        LiveDBClient.reset()
        assert LiveDBClient.instance() is not first

    def test_create_builds_independent_client(self):
        """Test that create() never returns the shared client."""
        shared = LiveDBClient.instance()
        created = LiveDBClient.create(LiveDBConfig())
        assert created is not shared


class TestTokenManagement:
    """Tests for token handling."""

    def test_set_token(self):
        client = LiveDBClient()
        client.set_token("abc")
        assert client.token == "abc"
        assert client.auth_headers() == {"Authorization": "Bearer abc"}

    def test_auth_headers_without_token(self):
        assert LiveDBClient().auth_headers() == {}

    @patch("pylivedb.api.httpx.Client.post")
    def test_generate_token_success(self, mock_post):
        """Test that a generated token is stored on the client."""
        mock_post.return_value = make_response(
            json={"success": True, "message": "ok", "token": "abcdef123456"}
        )

        client = LiveDBClient()
        token = client.generate_token("me@example.com")

        assert token == "abcdef123456"
        assert client.token == "abcdef123456"
        mock_post.assert_called_once_with(
            "/api/gen_token", json={"email": "me@example.com"}
        )

    @patch("pylivedb.api.httpx.Client.post")
    def test_generate_token_unsuccessful(self, mock_post):
        """Test that success=false leaves the token unset."""
        mock_post.return_value = make_response(
            json={"success": False, "message": "invalid email"}
        )

        client = LiveDBClient()
        assert client.generate_token("bad") is None
        assert client.token is None

    @patch("pylivedb.api.httpx.Client.post")
    def test_generate_token_http_error(self, mock_post):
        """Test that a non-200 status returns None."""
        mock_post.return_value = make_response(500, content=b"oops")

        assert LiveDBClient().generate_token("me@example.com") is None

    @patch("pylivedb.api.httpx.Client.post")
    def test_generate_token_network_error(self, mock_post):
        """Test that transport errors are swallowed and return None."""
        mock_post.side_effect = httpx.ConnectError("refused")

        assert LiveDBClient().generate_token("me@example.com") is None

    @patch("pylivedb.api.httpx.Client.post")
    def test_generate_token_invalid_json(self, mock_post):
        """Test that an undecodable body returns None."""
        mock_post.return_value = make_response(content=b"<html></html>")

        assert LiveDBClient().generate_token("me@example.com") is None

    @patch("pylivedb.api.httpx.Client.post")
    def test_generate_and_set_token(self, mock_post):
        mock_post.return_value = make_response(
            json={"success": "true", "message": "", "token": "t0k3n"}
        )

        client = LiveDBClient()
        assert client.generate_and_set_token("me@example.com") is True
        assert client.token == "t0k3n"


class TestSendRequest:
    """Tests for the send_request method."""

    def test_requires_token(self):
        """Test that requests without a token are rejected."""
        client = LiveDBClient()
        with pytest.raises(LiveDBTokenError, match="Token not set"):
            client.send_request("/api/db/index/projects", method="GET")

    @patch("pylivedb.api.httpx.Client.request")
    def test_successful_json_response(self, mock_request, client):
        """Test successful request with JSON response."""
        mock_request.return_value = make_response(json={"data": [1, 2]})

        result = client.send_request(
            "/api/db/index/app/users",
            method="post",
            data={"name": "x"},
        )

        assert result == {"data": [1, 2]}
        mock_request.assert_called_once_with(
            "POST",
            "/api/db/index/app/users",
            json={"name": "x"},
            params=None,
            headers={"Authorization": "Bearer tok"},
        )

    @patch("pylivedb.api.httpx.Client.request")
    def test_query_parameters_forwarded(self, mock_request, client):
        mock_request.return_value = make_response(json={"data": []})

        client.send_request("/p", method="GET", query_parameters={"_limit": 5})

        assert mock_request.call_args.kwargs["params"] == {"_limit": 5}

    @patch("pylivedb.api.httpx.Client.request")
    def test_empty_response(self, mock_request, client):
        """Test that an empty body decodes to None."""
        mock_request.return_value = make_response(204)

        assert client.send_request("/p", method="DELETE") is None

    @patch("pylivedb.api.httpx.Client.request")
    def test_invalid_json_response(self, mock_request, client):
        """Test that a non-JSON success body raises."""
        mock_request.return_value = make_response(content=b"<html>hi</html>")

        with pytest.raises(LiveDBInvalidResponseError, match="Invalid JSON"):
            client.send_request("/p", method="GET")

    @pytest.mark.parametrize(
        ("status_code", "error_class"),
        [
            (400, LiveDBServerError),
            (401, LiveDBAuthenticationError),
            (403, LiveDBPermissionError),
            (404, LiveDBNotFoundError),
            (500, LiveDBServerError),
        ],
    )
    @patch("pylivedb.api.httpx.Client.request")
    def test_http_errors(self, mock_request, client, status_code, error_class):
        """Test that error statuses map to typed server errors."""
        mock_request.return_value = make_response(status_code, content=b"")

        with pytest.raises(error_class, match=f"Server Error: {status_code}") as exc:
            client.send_request("/p", method="GET")

        assert exc.value.status_code == status_code

    @patch("pylivedb.api.httpx.Client.request")
    def test_http_error_keeps_json_body(self, mock_request, client):
        mock_request.return_value = make_response(
            409, json={"message": "name is required"}
        )

        with pytest.raises(LiveDBServerError) as exc:
            client.send_request("/p", method="POST", data={})

        assert str(exc.value) == "Server Error: 409 - Conflict"
        assert exc.value.body == {"message": "name is required"}

    @patch("pylivedb.api.httpx.Client.request")
    def test_rate_limit_error(self, mock_request, client):
        mock_request.return_value = make_response(
            429, content=b"", headers={"Retry-After": "30"}
        )

        with pytest.raises(LiveDBRateLimitError) as exc:
            client.send_request("/p", method="GET")

        assert exc.value.retry_after == 30

    @patch("pylivedb.api.httpx.Client.request")
    def test_connect_timeout(self, mock_request, client):
        mock_request.side_effect = httpx.ConnectTimeout("timed out")

        with pytest.raises(LiveDBTimeoutError, match="Connection Timeout"):
            client.send_request("/p", method="GET")

    @patch("pylivedb.api.httpx.Client.request")
    def test_read_timeout(self, mock_request, client):
        mock_request.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(LiveDBTimeoutError, match="Request Timeout"):
            client.send_request("/p", method="GET")

    @patch("pylivedb.api.httpx.Client.request")
    def test_network_error(self, mock_request, client):
        mock_request.side_effect = httpx.ConnectError("refused")

        with pytest.raises(LiveDBNetworkError, match="Network Error"):
            client.send_request("/p", method="GET")

    @patch("pylivedb.api.httpx.Client.request")
    def test_errors_keep_cause(self, mock_request, client):
        original = httpx.ConnectError("refused")
        mock_request.side_effect = original

        with pytest.raises(LiveDBAPIError) as exc:
            client.send_request("/p", method="GET")

        assert exc.value.__cause__ is original


class TestLocalStorageFallback:
    """Tests for the GET read-through cache."""

    @patch("pylivedb.api.httpx.Client.request")
    def test_get_response_is_cached(self, mock_request, caching_client, cache):
        mock_request.return_value = make_response(json={"data": ["a"]})

        caching_client.send_request(
            "/api/db/index/app/users", method="GET", query_parameters={"_limit": 5}
        )

        assert cache.get("livedb_cache_/api/db/index/app/users__limit=5") == {
            "data": ["a"]
        }

    @patch("pylivedb.api.httpx.Client.request")
    def test_failed_get_served_from_cache(self, mock_request, caching_client):
        """Test that a failing GET returns the last cached response."""
        mock_request.side_effect = [
            make_response(json={"data": ["cached"]}),
            httpx.ConnectError("offline"),
        ]

        first = caching_client.send_request("/api/db/index/projects", method="GET")
        second = caching_client.send_request("/api/db/index/projects", method="GET")

        assert first == second == {"data": ["cached"]}

    @patch("pylivedb.api.httpx.Client.request")
    def test_server_error_served_from_cache(self, mock_request, caching_client, cache):
        cache.set("livedb_cache_/api/db/index/projects_", {"data": ["old"]})
        mock_request.return_value = make_response(503, content=b"")

        result = caching_client.send_request("/api/db/index/projects", method="GET")

        assert result == {"data": ["old"]}

    @patch("pylivedb.api.httpx.Client.request")
    def test_cache_miss_raises_mapped_error(self, mock_request, caching_client):
        mock_request.side_effect = httpx.ConnectError("offline")

        with pytest.raises(LiveDBNetworkError):
            caching_client.send_request("/api/db/index/projects", method="GET")

    @patch("pylivedb.api.httpx.Client.request")
    def test_different_query_is_a_different_key(self, mock_request, caching_client):
        mock_request.side_effect = [
            make_response(json={"data": [1]}),
            httpx.ConnectError("offline"),
        ]

        caching_client.send_request("/c", method="GET", query_parameters={"a": 1})
        with pytest.raises(LiveDBNetworkError):
            caching_client.send_request("/c", method="GET", query_parameters={"a": 2})

    @patch("pylivedb.api.httpx.Client.request")
    def test_non_get_not_cached(self, mock_request, caching_client, cache):
        """Test that writes never touch the cache."""
        mock_request.return_value = make_response(json={"ok": True})

        caching_client.send_request("/c", method="POST", data={"x": 1})

        assert cache.clear() == 0

    @patch("pylivedb.api.httpx.Client.request")
    def test_non_get_failure_not_served_from_cache(
        self, mock_request, caching_client, cache
    ):
        cache.set("livedb_cache_/c_", {"stale": True})
        mock_request.side_effect = httpx.ConnectError("offline")

        with pytest.raises(LiveDBNetworkError):
            caching_client.send_request("/c", method="PUT", data={})

    @patch("pylivedb.api.httpx.Client.request")
    def test_cache_disabled(self, mock_request, client, cache):
        """Test that with local storage off the cache is ignored."""
        client.cache = cache
        cache.set("livedb_cache_/c_", {"stale": True})
        mock_request.side_effect = httpx.ConnectError("offline")

        with pytest.raises(LiveDBNetworkError):
            client.send_request("/c", method="GET")

    @patch("pylivedb.api.httpx.Client.request")
    def test_invalid_json_served_from_cache(self, mock_request, caching_client, cache):
        cache.set("livedb_cache_/c_", {"good": True})
        mock_request.return_value = make_response(content=b"not json")

        assert caching_client.send_request("/c", method="GET") == {"good": True}


class TestStorageDelegates:
    """Tests for the upload shortcuts on the client."""

    def test_upload_delegates_to_storage(self, client, tmp_path):
        client.storage = Mock()
        client.storage.upload.return_value = UploadResponse(True, "ok")

        result = client.upload(tmp_path / "a.txt", folder_name="docs")

        assert result.success is True
        client.storage.upload.assert_called_once_with(
            tmp_path / "a.txt",
            folder_name="docs",
            device_name="python_app",
            is_secret=False,
            db_folder_id=None,
            on_progress=None,
        )

    def test_upload_by_base64_chunks_delegates(self, client):
        client.storage = Mock()

        client.upload_by_base64_chunks(b"data", "a.bin", chunk_size=2)

        kwargs = client.storage.upload_by_base64_chunks.call_args.kwargs
        assert kwargs["file_name"] == "a.bin"
        assert kwargs["chunk_size"] == 2

    def test_delete_file_delegates(self, client):
        client.storage = Mock()
        client.storage.delete_file.return_value = True

        assert client.delete_file("https://x/y") is True
        client.storage.delete_file.assert_called_once_with("https://x/y")

    def test_upload_large_file_is_deprecated(self, client, tmp_path):
        client.storage = Mock()

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            client.upload_large_file(tmp_path / "big.bin", chunk_size=10)

        assert any(issubclass(w.category, DeprecationWarning) for w in caught)
        kwargs = client.storage.upload_file_by_chunks.call_args.kwargs
        assert kwargs["chunk_size"] == 10
