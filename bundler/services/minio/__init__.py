"""MinIO service module for object storage."""

from .config import MinIOConfig
from .client import FETCH_EXCEPTIONS, MinIOClient
from .factory import create_bucket_pair, create_minio_client
from .protocols import ObjectStore

__all__ = [
    "MinIOConfig",
    "MinIOClient",
    "ObjectStore",
    "FETCH_EXCEPTIONS",
    "create_minio_client",
    "create_bucket_pair",
]
