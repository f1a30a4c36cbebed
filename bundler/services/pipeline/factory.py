"""Factory functions for wiring a pipeline to MinIO."""

from pathlib import Path
from typing import Iterable, Optional

from bundler.services.errors import ConfigError
from bundler.services.manifest import (
    BucketManifestSource,
    DirectoryManifestSource,
    KeysFileManifestSource,
    ManifestSource,
    StaticManifestSource,
)
from bundler.services.minio import MinIOConfig, ObjectStore, create_bucket_pair
from bundler.services.publisher import AccessPublisher

from .config import BundleConfig
from .runner import BundlePipeline


def select_manifest_source(
    source_store: Optional[ObjectStore] = None,
    keys: Optional[Iterable[str]] = None,
    keys_file: Optional[Path] = None,
    from_bucket: bool = False,
    prefix: str = "",
    directory: Optional[Path] = None,
) -> ManifestSource:
    """Pick a manifest source, most explicit first.

    Explicit keys win over a keys file, which wins over a bucket listing,
    which wins over a local directory.
    """
    keys = list(keys or [])
    if keys:
        return StaticManifestSource(keys)
    if keys_file is not None:
        return KeysFileManifestSource(keys_file)
    if from_bucket:
        if source_store is None:
            raise ConfigError("Listing a bucket needs a source store")
        return BucketManifestSource(source_store, prefix=prefix)
    return DirectoryManifestSource(directory or Path("images"))


def create_publisher(config: BundleConfig, destination: ObjectStore) -> AccessPublisher:
    """Create the publisher for a destination bucket."""
    return AccessPublisher(
        destination,
        ttl=config.link_ttl,
        key_prefix=config.upload_key_prefix,
    )


def create_pipeline(
    config: BundleConfig,
    minio_config: MinIOConfig,
    manifest_source: Optional[ManifestSource] = None,
    **source_options,
) -> BundlePipeline:
    """Create a pipeline backed by MinIO.

    Args:
        config: Run configuration
        minio_config: Connection settings
        manifest_source: Explicit source; otherwise chosen from source_options
        **source_options: Passed to select_manifest_source

    Returns:
        Ready-to-run BundlePipeline
    """
    source, destination = create_bucket_pair(
        minio_config,
        config.source_bucket,
        config.destination_bucket,
        ensure_destination=config.ensure_destination_bucket,
    )
    if manifest_source is None:
        manifest_source = select_manifest_source(source, **source_options)
    return BundlePipeline(
        config,
        source=source,
        publisher=create_publisher(config, destination),
        manifest_source=manifest_source,
    )
