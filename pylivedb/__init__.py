"""LiveDB - Python client for the LiveDB cloud database & storage API."""

import logging

from .api import LiveDBClient
from .cache import LocalCache
from .config import DEFAULT_CONFIG, LiveDBConfig
from .database import CollectionRef, DocumentRef, LiveDatabase, ProjectRef
from .exceptions import (
    LiveDBAPIError,
    LiveDBAuthenticationError,
    LiveDBConfigError,
    LiveDBInvalidResponseError,
    LiveDBNetworkError,
    LiveDBNotFoundError,
    LiveDBPermissionError,
    LiveDBRateLimitError,
    LiveDBServerError,
    LiveDBTimeoutError,
    LiveDBTokenError,
    LiveDBUploadError,
)
from .models import (
    DeleteResponse,
    ProgressCallback,
    TokenResponse,
    UploadProgress,
    UploadResponse,
)
from .storage import LiveStorage

# Silent unless configure_logging(True) or the application adds handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "LiveDBClient",
    "LiveDBConfig",
    "DEFAULT_CONFIG",
    "LocalCache",
    "LiveDatabase",
    "LiveStorage",
    "ProjectRef",
    "CollectionRef",
    "DocumentRef",
    "UploadResponse",
    "TokenResponse",
    "DeleteResponse",
    "UploadProgress",
    "ProgressCallback",
    "LiveDBAPIError",
    "LiveDBAuthenticationError",
    "LiveDBConfigError",
    "LiveDBInvalidResponseError",
    "LiveDBNetworkError",
    "LiveDBNotFoundError",
    "LiveDBPermissionError",
    "LiveDBRateLimitError",
    "LiveDBServerError",
    "LiveDBTimeoutError",
    "LiveDBTokenError",
    "LiveDBUploadError",
]
