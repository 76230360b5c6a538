"""File storage operations for LiveDB.

Uploads never raise for transport or server failures. Each upload method
returns an UploadResponse, with ``success=False`` and a message describing
the problem when something went wrong.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

import httpx

from .models import DeleteResponse, ProgressCallback, UploadResponse
from .utils import (
    DEFAULT_DEVICE_NAME,
    DEFAULT_FOLDER_NAME,
    DEFAULT_MIME_TYPE,
    SMART_UPLOAD_THRESHOLD,
    detect_mime_type,
    format_size,
    generate_file_id,
    sanitize_folder_name,
    split_chunks,
    to_data_uri,
)

if TYPE_CHECKING:
    from .api import LiveDBClient

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Granularity of progress reports while a request body is being sent
PROGRESS_BLOCK_SIZE = 64 * 1024


class LiveStorage:
    """Upload and delete files through a LiveDB client."""

    def __init__(self, client: LiveDBClient):
        self._livedb = client

    # =========================
    # Helpers
    # =========================

    def _check_token(self) -> bool:
        if not self._livedb.token:
            logger.error("Token not set.")
            return False
        return True

    def _form_fields(
        self,
        folder_name: str,
        device_name: str,
        is_secret: bool,
        db_folder_id: int | None,
    ) -> dict[str, str]:
        fields = {
            "folder_name": sanitize_folder_name(folder_name),
            "is_secret": "1" if is_secret else "0",
            "from_device_name": device_name,
        }
        if db_folder_id is not None:
            fields["db_folder_id"] = str(db_folder_id)
        return fields

    def _stream_with_progress(
        self, body: bytes, on_progress: ProgressCallback
    ) -> Iterator[bytes]:
        total = len(body)
        sent = 0
        for start in range(0, total, PROGRESS_BLOCK_SIZE):
            block = body[start : start + PROGRESS_BLOCK_SIZE]
            sent += len(block)
            on_progress(sent / total, sent, total)
            yield block

    def _post(
        self,
        path: str,
        on_progress: ProgressCallback | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """POST an authenticated request, reporting upload progress.

        The request body is encoded up front so its total size is known, then
        streamed in blocks of PROGRESS_BLOCK_SIZE, calling on_progress after
        each block.
        """
        http = self._livedb.http
        request = http.build_request(
            "POST", path, headers=self._livedb.auth_headers(), **kwargs
        )
        if on_progress is not None:
            body = request.read()
            request = httpx.Request(
                request.method,
                request.url,
                headers=request.headers,
                content=self._stream_with_progress(body, on_progress),
            )
        return http.send(request)

    def _parse_upload(self, response: httpx.Response) -> UploadResponse:
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected upload response: {payload!r}")
        return UploadResponse.from_dict(payload)

    # =========================
    # Direct uploads
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
        """Upload a file as multipart form data in a single request.

        Args:
            file_path: Local path to the file
            folder_name: Remote folder (sanitized before sending)
            device_name: Name of the uploading device
            is_secret: Whether the server should encrypt the file
            db_folder_id: Optional database folder to attach the file to
            on_progress: Optional callback(progress, sent, total)

        Returns:
            UploadResponse describing the result
        """
        if not self._check_token():
            return UploadResponse.failure("Token not set.")
        path = Path(file_path)
        if not path.is_file():
            return UploadResponse.failure("File not found")

        try:
            content = path.read_bytes()
            mime_type = detect_mime_type(str(path))
            response = self._post(
                "/api/upload_file",
                on_progress=on_progress,
                data=self._form_fields(folder_name, device_name, is_secret, db_folder_id),
                files={"file": (path.name, content, mime_type)},
            )

            if response.status_code == 200:
                data = self._parse_upload(response)
                if data.success:
                    logger.info(f"Uploaded: {data.link}")
                return data
            return UploadResponse.failure(f"Status: {response.status_code}")
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"Error: {e}")
            return UploadResponse.failure(f"Error: {e}")

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
        """Upload in-memory bytes as a base64 data URI inside a JSON body.

        The MIME type is guessed from file_name.
        """
        if not self._check_token():
            return UploadResponse.failure("Token not set")

        try:
            mime_type = detect_mime_type(file_name)
            body: dict[str, Any] = {
                "folder_name": sanitize_folder_name(folder_name),
                "is_secret": is_secret,
                "from_device_name": device_name,
                "file_base64": to_data_uri(bytes(data), mime_type),
            }
            if db_folder_id is not None:
                body["db_folder_id"] = db_folder_id

            response = self._post(
                "/api/upload_base64", on_progress=on_progress, json=body
            )

            if response.status_code == 200:
                result = self._parse_upload(response)
                if result.success:
                    logger.info(f"Uploaded (Base64): {result.link}")
                return result
            return UploadResponse.failure(f"Status: {response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error: {e}")
            return UploadResponse.failure(f"Error: {e}")

    # =========================
    # Chunked uploads
    # =========================

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
        """Upload a large file as a sequence of chunks.

        Args:
            chunk_size: Bytes per chunk (defaults to config.chunk_size)

        See upload_file() for the remaining arguments.
        """
        if not self._check_token():
            return UploadResponse.failure("Token not set.")
        path = Path(file_path)
        if not path.is_file():
            return UploadResponse.failure("File not found")

        try:
            return self._upload_bytes_by_chunks(
                path.read_bytes(),
                file_name=path.name,
                folder_name=folder_name,
                device_name=device_name,
                is_secret=is_secret,
                chunk_size=chunk_size,
                db_folder_id=db_folder_id,
                on_progress=on_progress,
            )
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"Chunked Error: {e}")
            return UploadResponse.failure(f"Error: {e}")

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
        """Upload in-memory bytes as a sequence of chunks."""
        if not self._check_token():
            return UploadResponse.failure("Token not set.")

        try:
            return self._upload_bytes_by_chunks(
                bytes(data),
                file_name=file_name,
                folder_name=folder_name,
                device_name=device_name,
                is_secret=is_secret,
                chunk_size=chunk_size,
                db_folder_id=db_folder_id,
                on_progress=on_progress,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Chunked Base64 Error: {e}")
            return UploadResponse.failure(f"Error: {e}")

    def _upload_bytes_by_chunks(
        self,
        data: bytes,
        file_name: str,
        folder_name: str,
        device_name: str,
        is_secret: bool,
        chunk_size: int | None = None,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        """Send the chunks of one upload sequentially.

        Stops at the first chunk the server does not accept with a 200 and
        returns the parsed response of the last chunk otherwise.
        """
        effective_chunk_size = chunk_size or self._livedb.config.chunk_size
        total_size = len(data)
        chunks = list(split_chunks(total_size, effective_chunk_size))
        total_chunks = len(chunks)
        file_id = generate_file_id()

        logger.info(
            f"Starting chunked upload for {file_name}: {total_chunks} chunks"
        )

        last_response: UploadResponse | None = None

        for index, start, end in chunks:
            fields = self._form_fields(folder_name, device_name, is_secret, db_folder_id)
            fields["file_id"] = file_id
            fields["chunk_index"] = str(index)
            fields["total_chunks"] = str(total_chunks)

            response = self._post(
                "/api/upload_file_chunks",
                data=fields,
                files={
                    "chunk_file": (f"chunk_{index}", data[start:end], DEFAULT_MIME_TYPE)
                },
            )

            if response.status_code != 200:
                logger.error(
                    f"Chunk {index + 1}/{total_chunks} failed: {response.status_code}"
                )
                return UploadResponse.failure(
                    f"Chunk {index} failed: {response.status_code}"
                )

            last_response = self._parse_upload(response)
            if on_progress is not None:
                on_progress((index + 1) / total_chunks, end, total_size)
            logger.debug(f"Chunk {index + 1}/{total_chunks} uploaded")

        if last_response is None:
            return UploadResponse.failure("Upload failed")
        if last_response.success:
            logger.info(f"Large file uploaded: {last_response.link}")
        return last_response

    # =========================
    # Smart upload & delete
    # =========================

    def upload(
        self,
        file_path: PathLike,
        folder_name: str = DEFAULT_FOLDER_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        is_secret: bool = False,
        db_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResponse:
        """Upload a file, choosing the method by size.

        Files of SMART_UPLOAD_THRESHOLD bytes or more are uploaded in chunks
        of the configured size, smaller files in a single request.
        """
        path = Path(file_path)
        if not path.is_file():
            return UploadResponse.failure("File not found")

        file_size = path.stat().st_size
        if file_size >= SMART_UPLOAD_THRESHOLD:
            logger.info(f"Using chunked upload for {format_size(file_size)} file")
            return self.upload_file_by_chunks(
                path,
                folder_name=folder_name,
                device_name=device_name,
                is_secret=is_secret,
                db_folder_id=db_folder_id,
                on_progress=on_progress,
            )

        logger.info("Using direct upload for small file")
        return self.upload_file(
            path,
            folder_name=folder_name,
            device_name=device_name,
            is_secret=is_secret,
            db_folder_id=db_folder_id,
            on_progress=on_progress,
        )

    def delete_file(self, file_link: str) -> bool:
        """Delete an uploaded file by its link.

        Returns:
            True if the server confirmed the deletion
        """
        if not self._check_token():
            logger.error("Token required for delete operation")
            return False

        try:
            response = self._post("/api/deletefile", json={"filelink": file_link})
            if response.status_code == 200:
                payload = response.json()
                if isinstance(payload, dict):
                    return DeleteResponse.from_dict(payload).success
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Delete error: {e}")
        return False
