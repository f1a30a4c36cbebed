"""MinIO client wrapper for object storage operations."""

from datetime import timedelta
from pathlib import Path
from typing import Iterator, Optional

import urllib3
from minio import Minio
from minio.error import InvalidResponseError, S3Error, ServerError

from .config import MinIOConfig

# Errors that mean "this object could not be read", as opposed to bugs
FETCH_EXCEPTIONS = (
    S3Error,
    ServerError,
    InvalidResponseError,
    urllib3.exceptions.HTTPError,
    OSError,
)

MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject", "NoSuchBucket")


def create_http_client(config: MinIOConfig) -> urllib3.PoolManager:
    """Build the shared HTTP pool.

    Requests are never retried; a timeout surfaces to the caller as a
    read failure.
    """
    timeout = urllib3.Timeout(
        connect=config.timeout_seconds,
        read=config.timeout_seconds,
    )
    return urllib3.PoolManager(timeout=timeout, maxsize=16, retries=False)


class MinIOClient:
    """Client for one MinIO bucket.

    The underlying SDK client is thread-safe, so one instance can serve a
    pool of fetch workers.
    """

    def __init__(self, config: MinIOConfig, bucket: str, client: Optional[Minio] = None):
        """Initialize MinIO client.

        Args:
            config: MinIOConfig instance with connection details.
            bucket: Bucket this client reads and writes.
            client: Pre-built SDK client (shares one pool across buckets).
        """
        self.client = client or Minio(
            config.endpoint,
            access_key=config.access_key,
            secret_key=config.secret_key,
            secure=config.use_tls,
            region=config.region or None,
            http_client=create_http_client(config),
        )
        self.bucket = bucket

    def ensure_bucket(self) -> None:
        """Create bucket if it doesn't exist."""
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)

    def iter_object(self, path: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Stream an object's bytes in chunks.

        The HTTP response is closed and its connection released when the
        generator finishes or is closed early.

        Args:
            path: Object path in bucket.
            chunk_size: Maximum bytes per chunk.

        Yields:
            Raw object bytes.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        try:
            response = self.client.get_object(self.bucket, path)
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                raise FileNotFoundError(f"Object not found: {self.bucket}/{path}") from e
            raise
        try:
            yield from response.stream(chunk_size)
        finally:
            response.close()
            response.release_conn()

    def put_file(
        self,
        path: str,
        file_path: Path,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload a local file as a single object.

        Args:
            path: Object path in bucket.
            file_path: Local file to upload.
            content_type: MIME type of the object.

        Returns:
            The path where data was stored.
        """
        self.client.fput_object(
            self.bucket,
            path,
            str(file_path),
            content_type=content_type,
        )
        return path

    def presign_get(self, path: str, expires: timedelta) -> str:
        """Generate a presigned GET URL.

        Args:
            path: Object path in bucket.
            expires: Validity window of the URL.

        Returns:
            Presigned URL.
        """
        return self.client.presigned_get_object(self.bucket, path, expires=expires)

    def exists(self, path: str) -> bool:
        """Check if object exists in MinIO.

        Args:
            path: Object path in bucket.

        Returns:
            True if object exists, False if the store reports it missing.
        """
        try:
            self.client.stat_object(self.bucket, path)
            return True
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                return False
            raise

    def list_keys(self, prefix: str = "") -> list[str]:
        """List object names in the bucket, in listing order.

        Args:
            prefix: Optional prefix to filter objects.

        Returns:
            Object names matching prefix (directory placeholders excluded).
        """
        return [
            obj.object_name
            for obj in self.client.list_objects(self.bucket, prefix=prefix, recursive=True)
            if not obj.is_dir
        ]
