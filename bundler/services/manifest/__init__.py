"""Manifest resolution: turn a source into an ordered list of keys.

Example usage:
    >>> from bundler.services.manifest import DirectoryManifestSource, resolve_manifest
    >>> manifest = resolve_manifest(DirectoryManifestSource(Path("images")))
    >>> list(manifest)
    ['a.png', 'b.png']
"""

from .models import Manifest
from .resolver import resolve_manifest
from .sources import (
    BucketManifestSource,
    DirectoryManifestSource,
    KeysFileManifestSource,
    ManifestSource,
    StaticManifestSource,
)

__all__ = [
    "Manifest",
    "ManifestSource",
    "DirectoryManifestSource",
    "BucketManifestSource",
    "KeysFileManifestSource",
    "StaticManifestSource",
    "resolve_manifest",
]
