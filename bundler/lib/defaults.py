"""Default configuration values for the bundler.

All hardcoded defaults live here. The bundler should run against a local
MinIO with these defaults and nothing else set.

Config hierarchy: environment → .env → these defaults
"""

from typing import Any

# =============================================================================
# Configuration Defaults
# =============================================================================

DEFAULTS: dict[str, Any] = {
    # -------------------------------------------------------------------------
    # Object Storage - MinIO / S3
    # -------------------------------------------------------------------------
    "MINIO_URL": "http://localhost:9000",
    "MINIO_ACCESS_KEY": "minioadmin",
    "MINIO_SECRET_KEY": "minioadmin",
    "MINIO_SECURE": False,
    "MINIO_REGION": "",

    # -------------------------------------------------------------------------
    # Buckets
    # -------------------------------------------------------------------------
    "SOURCE_BUCKET": "images",
    "DESTINATION_BUCKET": "uploads",
    "ENSURE_DESTINATION_BUCKET": False,

    # -------------------------------------------------------------------------
    # Manifest
    # -------------------------------------------------------------------------
    "SOURCE_DIR": "images",
    "SOURCE_PREFIX": "",

    # -------------------------------------------------------------------------
    # Archive
    # -------------------------------------------------------------------------
    "WORK_DIR": "downloads",
    "ARCHIVE_PREFIX": "out_",
    "ARCHIVE_COMPRESSION": "stored",  # "stored" or "deflated"
    "KEEP_LOCAL_ARCHIVE": True,
    "UPLOAD_KEY_PREFIX": "",

    # -------------------------------------------------------------------------
    # Index page
    # -------------------------------------------------------------------------
    "INDEX_TEMPLATE": "",  # Empty = packaged default template
    "INDEX_ENTRY_NAME": "index.html",
    "INDEX_TITLE": "Archive index",

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------
    "FETCH_WORKERS": 1,
    "FETCH_TIMEOUT_SECONDS": 60.0,
    "FETCH_FAILURE_POLICY": "keep_empty",  # "keep_empty" or "omit"
    "CHUNK_SIZE": 64 * 1024,
    "SPOOL_MAX_BYTES": 64 * 1024 * 1024,

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------
    "LINK_TTL_SECONDS": 300,

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    "LOG_LEVEL": "INFO",
}

# Keys whose values must never be logged
SENSITIVE_KEYS: set[str] = {
    "MINIO_ACCESS_KEY",
    "MINIO_SECRET_KEY",
}


def get_default(key: str) -> Any:
    """Get default value for a config key.

    Args:
        key: Configuration key

    Returns:
        Default value or None if not defined
    """
    return DEFAULTS.get(key)


def is_sensitive(key: str) -> bool:
    """Check if a config key contains sensitive data."""
    return key in SENSITIVE_KEYS
