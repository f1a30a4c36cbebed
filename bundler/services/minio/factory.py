"""Factory functions for creating MinIO service instances."""

from typing import Optional

from minio import Minio

from .client import MinIOClient, create_http_client
from .config import MinIOConfig


def create_minio_client(
    bucket: str,
    config: Optional[MinIOConfig] = None,
    ensure_bucket: bool = False,
) -> MinIOClient:
    """Create a MinIO client bound to one bucket.

    Args:
        bucket: Bucket name.
        config: Connection settings (defaults to MinIOConfig()).
        ensure_bucket: Create the bucket if it is missing.

    Returns:
        Initialized MinIOClient instance.
    """
    client = MinIOClient(config or MinIOConfig(), bucket)
    if ensure_bucket:
        client.ensure_bucket()
    return client


def create_bucket_pair(
    config: MinIOConfig,
    source_bucket: str,
    destination_bucket: str,
    ensure_destination: bool = False,
) -> tuple[MinIOClient, MinIOClient]:
    """Create source and destination clients sharing one connection pool.

    Args:
        config: Connection settings.
        source_bucket: Bucket objects are read from.
        destination_bucket: Bucket the archive is written to.
        ensure_destination: Create the destination bucket if it is missing.

    Returns:
        (source, destination) clients.
    """
    sdk = Minio(
        config.endpoint,
        access_key=config.access_key,
        secret_key=config.secret_key,
        secure=config.use_tls,
        region=config.region or None,
        http_client=create_http_client(config),
    )
    source = MinIOClient(config, source_bucket, client=sdk)
    destination = MinIOClient(config, destination_bucket, client=sdk)
    if ensure_destination:
        destination.ensure_bucket()
    return source, destination
