"""API client for LiveDB."""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Any, ClassVar, Union

import httpx

from .cache import LocalCache
from .config import DEFAULT_CONFIG, LiveDBConfig
from .database import LiveDatabase
from .exceptions import (
    LiveDBAPIError,
    LiveDBInvalidResponseError,
    LiveDBNetworkError,
    LiveDBTimeoutError,
    LiveDBTokenError,
    server_error_for,
)
from .models import ProgressCallback, TokenResponse, UploadResponse
from .storage import LiveStorage
from .utils import (
    DEFAULT_DEVICE_NAME,
    DEFAULT_FOLDER_NAME,
    build_cache_key,
    configure_logging,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class LiveDBClient:
    """Client for the LiveDB realtime database and storage API.

    The client is split into two sub-modules sharing one HTTP connection
    and one token:

    - ``client.db``: projects, collections and documents
    - ``client.storage``: file uploads and deletion

    Example:
        >>> client = LiveDBClient(LiveDBConfig(enable_local_storage=True))
        >>> client.generate_and_set_token("me@example.com")
        >>> users = client.db.collection("my_app", "users")
        >>> users.add({"username": "dev", "score": 100})
        >>> users.get(filters={"_limit": 5, "_sort": "-created_at"})
    """

    _instance: ClassVar[LiveDBClient | None] = None

    def __init__(
        self,
        config: LiveDBConfig | None = None,
        token: str | None = None,
        cache: LocalCache | None = None,
    ):
        """Initialize LiveDB client.

        Args:
            config: Client configuration (defaults to DEFAULT_CONFIG)
            token: Optional bearer token, can also be set later with
                set_token() or generate_token()
            cache: Optional cache for GET responses (created from the config
                when local storage is enabled)
        """
        self.config = config or DEFAULT_CONFIG
        self._token = token
        self._client: httpx.Client | None = None

        if cache is None and self.config.enable_local_storage:
            cache = LocalCache(self.config.resolved_cache_dir)
        self.cache = cache

        if self.config.enable_logging:
            configure_logging(True)

        self.db = LiveDatabase(self)
        self.storage = LiveStorage(self)

    # =========================
    # Instance management
    # =========================

    @classmethod
    def instance(cls, config: LiveDBConfig | None = None) -> LiveDBClient:
        """Return the shared client, creating it on first use.

        The config is only used when the shared client is created.
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared client so the next instance() call builds a new one."""
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    @classmethod
    def create(cls, config: LiveDBConfig) -> LiveDBClient:
        """Create a new, independent client."""
        return cls(config)

    # =========================
    # HTTP connection
    # =========================

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.config.base_url,
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(
                    connect=self.config.connect_timeout / 1000,
                    read=self.config.receive_timeout / 1000,
                    write=self.config.send_timeout / 1000,
                    pool=self.config.connect_timeout / 1000,
                ),
                follow_redirects=True,
            )
        return self._client

    @property
    def http(self) -> httpx.Client:
        """The underlying httpx client, shared with the sub-modules."""
        return self._get_client()

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None

    def __enter__(self) -> LiveDBClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================
    # Token Management
    # =========================

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token
        logger.info("Token set successfully")

    def auth_headers(self) -> dict[str, str]:
        """Bearer authorization header, empty if no token is set."""
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    def generate_token(self, email: str) -> str | None:
        """Request a token for an e-mail address and use it for this client.

        Args:
            email: E-mail address the token is issued for

        Returns:
            The new token, or None if the server did not issue one
        """
        try:
            response = self._get_client().post("/api/gen_token", json={"email": email})
            if response.status_code != 200:
                logger.error(
                    f"Token generation failed with status {response.status_code}"
                )
                return None

            payload = response.json()
            if not isinstance(payload, dict):
                logger.error(f"Unexpected token response: {payload!r}")
                return None

            data = TokenResponse.from_dict(payload)
            if data.success and data.token:
                self._token = data.token
                logger.info(f"Token generated: {data.token[:8]}...")
                return self._token
            logger.error(f"Token generation failed: {data.message}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error generating token: {e}")
        return None

    def generate_and_set_token(self, email: str) -> bool:
        return self.generate_token(email) is not None

    # =========================
    # Request dispatch
    # =========================

    def send_request(
        self,
        path: str,
        method: str,
        data: Any = None,
        query_parameters: dict[str, Any] | None = None,
    ) -> Any:
        """Send an authenticated JSON request.

        When local storage is enabled, successful GET responses are cached and
        served from the cache if the same request later fails.

        Args:
            path: API path, e.g. /api/db/index/projects
            method: HTTP method
            data: JSON body
            query_parameters: Query string parameters

        Returns:
            Decoded JSON response (None for an empty body)

        Raises:
            LiveDBTokenError: If no token is set
            LiveDBTimeoutError: If the server could not be reached in time
            LiveDBNetworkError: If the server could not be reached
            LiveDBServerError: If the server answered with an error status
            LiveDBInvalidResponseError: If the response was not valid JSON
        """
        if self._token is None:
            raise LiveDBTokenError()

        method = method.upper()
        cache_key: str | None = None
        if self.config.enable_local_storage and method == "GET":
            cache_key = build_cache_key(path, query_parameters)

        logger.debug(f"API Request: {method} {path} params={query_parameters}")
        try:
            response = self._get_client().request(
                method,
                path,
                json=data,
                params=query_parameters,
                headers=self.auth_headers(),
            )
            response.raise_for_status()
            result = self._decode_response(response)
        except (httpx.HTTPError, LiveDBInvalidResponseError) as e:
            logger.error(f"Request Failed ({path}): {e}")

            if cache_key is not None:
                logger.info("Attempting to load from local storage...")
                cached = self._load_from_local(cache_key)
                if cached is not None:
                    logger.info(f"Loaded cached data for: {path}")
                    return cached
                logger.warning(f"No cached data found for: {path}")

            if isinstance(e, LiveDBAPIError):
                raise
            raise self._map_error(e) from e

        if cache_key is not None:
            self._save_to_local(cache_key, result)
        return result

    def _decode_response(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise LiveDBInvalidResponseError(
                "Invalid JSON response from server"
            ) from e

    def _map_error(self, error: httpx.HTTPError) -> LiveDBAPIError:
        """Translate an httpx error into a LiveDB error."""
        if isinstance(error, httpx.ConnectTimeout):
            return LiveDBTimeoutError()
        if isinstance(error, httpx.TimeoutException):
            return LiveDBTimeoutError(
                "Request Timeout: LiveDB server did not respond in time."
            )
        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            body = None
            try:
                if response.content:
                    body = response.json()
            except ValueError:
                # Error pages are often HTML; keep the status-based message
                body = None
            retry_after = response.headers.get("Retry-After")
            return server_error_for(
                response.status_code,
                response.reason_phrase,
                body,
                retry_after=int(retry_after)
                if retry_after and retry_after.isdigit()
                else None,
            )
        if isinstance(error, httpx.TransportError):
            return LiveDBNetworkError()
        return LiveDBAPIError(f"Request failed: {error}")

    def _save_to_local(self, key: str, data: Any) -> None:
        if self.cache is None:
            return
        self.cache.set(key, data)

    def _load_from_local(self, key: str) -> Any:
        if self.cache is None:
            return None
        return self.cache.get(key)

    # =========================
    # Storage shortcuts
    # =========================

    def upload_file(
        self,
        file_path: PathLike,
        folder_name: str = DEFAULT_FOLDER_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        is_secret: bool = False,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        return self.storage.upload_file(
            file_path,
            folder_name=folder_name,
            device_name=device_name,
            is_secret=is_secret,
            db_folder_id=db_folder_id,
            on_progress=on_progress,
        )

    def upload_file_by_chunks(
        self,
        file_path: PathLike,
        folder_name: str = DEFAULT_FOLDER_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        is_secret: bool = False,
        chunk_size: int | None = None,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        return self.storage.upload_file_by_chunks(
            file_path,
            folder_name=folder_name,
            device_name=device_name,
            is_secret=is_secret,
            chunk_size=chunk_size,
            db_folder_id=db_folder_id,
            on_progress=on_progress,
        )

    def upload_by_base64(
        self,
        data: bytes,
        file_name: str,
        folder_name: str = DEFAULT_FOLDER_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        is_secret: bool = False,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        return self.storage.upload_by_base64(
            data,
            file_name=file_name,
            folder_name=folder_name,
            device_name=device_name,
            is_secret=is_secret,
            db_folder_id=db_folder_id,
            on_progress=on_progress,
        )

    def upload_by_base64_chunks(
        self,
        data: bytes,
        file_name: str,
        folder_name: str = DEFAULT_FOLDER_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        is_secret: bool = False,
        chunk_size: int | None = None,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        return self.storage.upload_by_base64_chunks(
            data,
            file_name=file_name,
            folder_name=folder_name,
            device_name=device_name,
            is_secret=is_secret,
            chunk_size=chunk_size,
            db_folder_id=db_folder_id,
            on_progress=on_progress,
        )

    def upload_large_file(
        self,
        file_path: PathLike,
        folder_name: str = DEFAULT_FOLDER_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        is_secret: bool = False,
        chunk_size: int | None = None,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        """Deprecated alias of upload_file_by_chunks()."""
        warnings.warn(
            "upload_large_file() is deprecated, use upload_file_by_chunks() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.upload_file_by_chunks(
            file_path,
            folder_name=folder_name,
            device_name=device_name,
            is_secret=is_secret,
            chunk_size=chunk_size,
            db_folder_id=db_folder_id,
            on_progress=on_progress,
        )

    def upload(
        self,
        file_path: PathLike,
        folder_name: str = DEFAULT_FOLDER_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        is_secret: bool = False,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        return self.storage.upload(
            file_path,
            folder_name=folder_name,
            device_name=device_name,
            is_secret=is_secret,
            db_folder_id=db_folder_id,
            on_progress=on_progress,
        )

    def delete_file(self, file_link: str) -> bool:
        return self.storage.delete_file(file_link)
