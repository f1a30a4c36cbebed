"""Configuration for bundle runs."""

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

from bundler.lib.config_manager import ConfigManager
from bundler.services.archive import ArchiveConfig
from bundler.services.errors import ConfigError
from bundler.services.publisher import DEFAULT_LINK_TTL, validate_ttl

from .models import FetchFailurePolicy


@dataclass
class BundleConfig:
    """Everything a run needs, built once at startup.

    Attributes:
        source_bucket: Bucket objects are fetched from
        destination_bucket: Bucket the archive is uploaded to
        archive: Local archive file settings
        link_ttl: Validity window of the issued link
        upload_key_prefix: Prefix for the uploaded object key
        index_entry_name: Entry name of the generated index page
        index_title: Title shown on the index page
        index_template: Custom template path (None for the packaged one)
        fetch_workers: Parallel fetches (1 = stream each object in turn)
        fetch_failure_policy: Keep an empty entry or omit it on fetch failure
        chunk_size: Bytes per read from the store
        spool_max_bytes: Buffered objects spill to disk beyond this size
        keep_local_archive: Keep the local zip after the run
        ensure_destination_bucket: Create the destination bucket if missing
    """

    source_bucket: str = "images"
    destination_bucket: str = "uploads"
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    link_ttl: timedelta = DEFAULT_LINK_TTL
    upload_key_prefix: str = ""
    index_entry_name: str = "index.html"
    index_title: str = "Archive index"
    index_template: Optional[Path] = None
    fetch_workers: int = 1
    fetch_failure_policy: FetchFailurePolicy = FetchFailurePolicy.KEEP_EMPTY
    chunk_size: int = 64 * 1024
    spool_max_bytes: int = 64 * 1024 * 1024
    keep_local_archive: bool = True
    ensure_destination_bucket: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if not self.source_bucket or not self.destination_bucket:
            raise ConfigError("Source and destination buckets must be set")
        if not self.index_entry_name:
            raise ConfigError("Index entry name must not be empty")
        if self.fetch_workers < 1:
            raise ConfigError(f"Invalid fetch workers: {self.fetch_workers}. Must be >= 1")
        if self.chunk_size < 1:
            raise ConfigError(f"Invalid chunk size: {self.chunk_size}. Must be >= 1")
        try:
            self.fetch_failure_policy = FetchFailurePolicy(self.fetch_failure_policy)
        except ValueError as e:
            raise ConfigError(
                f"Invalid fetch failure policy: {self.fetch_failure_policy}. "
                "Must be 'keep_empty' or 'omit'"
            ) from e
        validate_ttl(self.link_ttl)

    @classmethod
    def from_config(cls, manager: ConfigManager, **overrides: Any) -> "BundleConfig":
        """Build from a config manager.

        Args:
            manager: Resolved configuration
            **overrides: Field values that win over the manager (None is ignored)

        Raises:
            ConfigError: If any value is invalid
        """
        template = manager.get("INDEX_TEMPLATE")
        values: dict[str, Any] = {
            "source_bucket": manager.get("SOURCE_BUCKET"),
            "destination_bucket": manager.get("DESTINATION_BUCKET"),
            "archive": ArchiveConfig(
                work_dir=Path(manager.get("WORK_DIR")),
                name_prefix=manager.get("ARCHIVE_PREFIX"),
                compression=manager.get("ARCHIVE_COMPRESSION"),
            ),
            "link_ttl": timedelta(seconds=manager.get("LINK_TTL_SECONDS")),
            "upload_key_prefix": manager.get("UPLOAD_KEY_PREFIX"),
            "index_entry_name": manager.get("INDEX_ENTRY_NAME"),
            "index_title": manager.get("INDEX_TITLE"),
            "index_template": Path(template) if template else None,
            "fetch_workers": manager.get("FETCH_WORKERS"),
            "fetch_failure_policy": manager.get("FETCH_FAILURE_POLICY"),
            "chunk_size": manager.get("CHUNK_SIZE"),
            "spool_max_bytes": manager.get("SPOOL_MAX_BYTES"),
            "keep_local_archive": manager.get("KEEP_LOCAL_ARCHIVE"),
            "ensure_destination_bucket": manager.get("ENSURE_DESTINATION_BUCKET"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
