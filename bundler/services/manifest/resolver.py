"""Manifest resolution."""

import logging

from bundler.services.errors import ResolutionError
from bundler.services.minio import FETCH_EXCEPTIONS

from .models import Manifest
from .sources import ManifestSource

logger = logging.getLogger(__name__)


def resolve_manifest(source: ManifestSource) -> Manifest:
    """Resolve a source into an immutable manifest.

    Args:
        source: Where to read keys from

    Returns:
        Manifest with keys in source order

    Raises:
        ResolutionError: If the source is unreadable, absent, or yields
            something other than strings
    """
    description = source.describe()
    try:
        keys = tuple(source.list_keys())
    except FETCH_EXCEPTIONS + (UnicodeDecodeError,) as e:
        raise ResolutionError(f"Cannot read manifest source {description}: {e}") from e

    for key in keys:
        if not isinstance(key, str):
            raise ResolutionError(
                f"Manifest source {description} yielded non-string key {key!r}"
            )

    logger.info(f"Resolved {len(keys)} keys from {description}")
    return Manifest(keys=keys, source=description)
